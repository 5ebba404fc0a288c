from abc import ABC, abstractmethod
from typing import Dict, List

from errors import DuplicateTransaction, InsufficientFunds, TransactionNotFound
from models import Account, Amount, DisputeState, StandardTransaction, TransactionType


class TransactionStore(ABC):
    @abstractmethod
    def record(self, tx_id: int, client_id: int, kind: TransactionType, amount: Amount) -> StandardTransaction:
        """Record a deposit or withdrawal. Raises DuplicateTransaction if the id is taken."""
        pass

    @abstractmethod
    def lookup(self, tx_id: int) -> StandardTransaction:
        """Get a recorded transaction. Raises TransactionNotFound."""
        pass

    @abstractmethod
    def exists(self, tx_id: int) -> bool:
        """Check if a transaction id has been recorded."""
        pass

    @abstractmethod
    def set_dispute_state(self, tx_id: int, new_state: DisputeState) -> None:
        """Set dispute state. Callers validate the transition first."""
        pass

    @abstractmethod
    def count(self) -> int:
        """Get total number of recorded transactions."""
        pass


class AccountLedger(ABC):
    @abstractmethod
    def get_or_create(self, client_id: int) -> Account:
        """Get the account for a client, opening an empty one if needed."""
        pass

    @abstractmethod
    def credit_available(self, client_id: int, amount: Amount) -> Account:
        pass

    @abstractmethod
    def debit_available(self, client_id: int, amount: Amount) -> Account:
        """Raises InsufficientFunds, leaving the account untouched, if available < amount."""
        pass

    @abstractmethod
    def hold(self, client_id: int, amount: Amount) -> Account:
        """Move funds from available to held. Raises InsufficientFunds if available < amount."""
        pass

    @abstractmethod
    def release(self, client_id: int, amount: Amount) -> Account:
        """Move funds from held back to available."""
        pass

    @abstractmethod
    def charge_back(self, client_id: int, amount: Amount) -> Account:
        """Remove held funds and lock the account."""
        pass

    @abstractmethod
    def snapshot(self) -> List[Account]:
        """Copies of every account, ordered by client id."""
        pass

    @abstractmethod
    def count(self) -> int:
        """Get total number of accounts."""
        pass


class InMemoryTransactionStore(TransactionStore):
    def __init__(self):
        self.transactions: Dict[int, StandardTransaction] = {}

    def record(self, tx_id: int, client_id: int, kind: TransactionType, amount: Amount) -> StandardTransaction:
        if tx_id in self.transactions:
            raise DuplicateTransaction(tx_id)
        if not kind.is_standard:
            raise ValueError(f"Only deposits and withdrawals are recorded, got {kind.value}")
        transaction = StandardTransaction(tx=tx_id, client=client_id, kind=kind, amount=amount)
        self.transactions[tx_id] = transaction
        return transaction

    def lookup(self, tx_id: int) -> StandardTransaction:
        try:
            return self.transactions[tx_id]
        except KeyError:
            raise TransactionNotFound(tx_id) from None

    def exists(self, tx_id: int) -> bool:
        return tx_id in self.transactions

    def set_dispute_state(self, tx_id: int, new_state: DisputeState) -> None:
        self.lookup(tx_id).dispute_state = new_state

    def count(self) -> int:
        return len(self.transactions)

    def clear(self) -> None:
        """Clear all recorded transactions (for testing)."""
        self.transactions.clear()


class InMemoryAccountLedger(AccountLedger):
    def __init__(self):
        self.accounts: Dict[int, Account] = {}

    def get_or_create(self, client_id: int) -> Account:
        account = self.accounts.get(client_id)
        if account is None:
            account = Account(client=client_id)
            self.accounts[client_id] = account
        return account

    def credit_available(self, client_id: int, amount: Amount) -> Account:
        account = self.get_or_create(client_id)
        account.available += amount
        account.total += amount
        return _checked(account)

    def debit_available(self, client_id: int, amount: Amount) -> Account:
        account = self.get_or_create(client_id)
        if account.available < amount:
            raise InsufficientFunds(client_id, amount, account.available)
        account.available -= amount
        account.total -= amount
        return _checked(account)

    def hold(self, client_id: int, amount: Amount) -> Account:
        account = self.get_or_create(client_id)
        if account.available < amount:
            raise InsufficientFunds(client_id, amount, account.available)
        account.available -= amount
        account.held += amount
        return _checked(account)

    def release(self, client_id: int, amount: Amount) -> Account:
        account = self.get_or_create(client_id)
        account.held -= amount
        account.available += amount
        return _checked(account)

    def charge_back(self, client_id: int, amount: Amount) -> Account:
        account = self.get_or_create(client_id)
        account.held -= amount
        account.total -= amount
        account.locked = True
        return _checked(account)

    def snapshot(self) -> List[Account]:
        return [self.accounts[client_id].model_copy() for client_id in sorted(self.accounts)]

    def count(self) -> int:
        return len(self.accounts)

    def clear(self) -> None:
        """Clear all accounts (for testing)."""
        self.accounts.clear()


def _checked(account: Account) -> Account:
    """Assert the balance invariants after a mutation."""
    assert account.total == account.available + account.held, (
        f"client {account.client}: total {account.total} != "
        f"available {account.available} + held {account.held}"
    )
    assert account.held >= Amount.zero(), f"client {account.client}: negative held {account.held}"
    assert account.available >= Amount.zero(), f"client {account.client}: negative available {account.available}"
    return account


# Singleton instances used by the CLI
_transaction_store = InMemoryTransactionStore()
_account_ledger = InMemoryAccountLedger()


def get_transaction_store() -> TransactionStore:
    return _transaction_store


def get_account_ledger() -> AccountLedger:
    return _account_ledger


def reset_repositories():
    """Reset all repositories to an empty state (for testing only)."""
    global _transaction_store, _account_ledger
    _transaction_store = InMemoryTransactionStore()
    _account_ledger = InMemoryAccountLedger()

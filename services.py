from collections import Counter
from typing import Dict, Iterable, List, Tuple
import structlog

from errors import InsufficientFunds, TransactionNotFound
from models import Account, DisputeState, EventOutcome, TransactionEvent, TransactionType
from repositories import AccountLedger, TransactionStore

logger = structlog.get_logger()


# (current state, meta event) -> next state; pairs not listed are ignored
_DISPUTE_TRANSITIONS: Dict[Tuple[DisputeState, TransactionType], DisputeState] = {
    (DisputeState.normal, TransactionType.dispute): DisputeState.disputed,
    (DisputeState.disputed, TransactionType.resolve): DisputeState.normal,
    (DisputeState.disputed, TransactionType.chargeback): DisputeState.charged_back,
}


def _ignored_outcome(state: DisputeState) -> EventOutcome:
    if state == DisputeState.charged_back:
        return EventOutcome.charged_back
    if state == DisputeState.disputed:
        return EventOutcome.already_disputed
    return EventOutcome.not_disputed


class TransactionProcessor:
    """Applies transaction events, in order, to a store and a ledger.

    Every domain problem (duplicate id, insufficient funds, unknown or
    foreign transaction, invalid dispute transition) skips the event and is
    reported through the returned outcome. Nothing here is fatal.
    """

    def __init__(
        self,
        transaction_store: TransactionStore,
        account_ledger: AccountLedger,
        reject_locked_accounts: bool = False,
    ):
        self.transaction_store = transaction_store
        self.account_ledger = account_ledger
        self.reject_locked_accounts = reject_locked_accounts

    def process(self, event: TransactionEvent) -> EventOutcome:
        """Apply a single event and report what happened to it."""
        account = self.account_ledger.get_or_create(event.client)

        if event.type.is_standard:
            if self.reject_locked_accounts and account.locked:
                return self._skip(event, EventOutcome.account_locked)
            if event.amount is None or event.amount.units <= 0:
                return self._skip(event, EventOutcome.invalid_amount)
            if self.transaction_store.exists(event.tx):
                return self._skip(event, EventOutcome.duplicate_transaction)

            if event.type == TransactionType.deposit:
                outcome = self._process_deposit(event)
            else:
                outcome = self._process_withdrawal(event)
        else:
            outcome = self._process_meta(event)

        if outcome == EventOutcome.applied:
            logger.debug(
                "Event applied",
                type=event.type.value,
                client=event.client,
                tx=event.tx,
            )
        return outcome

    def process_all(self, events: Iterable[TransactionEvent]) -> Counter:
        """Fold the events in order; returns a tally of outcomes."""
        outcomes: Counter = Counter()
        for event in events:
            outcomes[self.process(event)] += 1
        return outcomes

    def accounts(self) -> List[Account]:
        return self.account_ledger.snapshot()

    def _process_deposit(self, event: TransactionEvent) -> EventOutcome:
        self.account_ledger.credit_available(event.client, event.amount)
        self.transaction_store.record(event.tx, event.client, event.type, event.amount)
        return EventOutcome.applied

    def _process_withdrawal(self, event: TransactionEvent) -> EventOutcome:
        try:
            self.account_ledger.debit_available(event.client, event.amount)
        except InsufficientFunds as e:
            return self._skip(event, EventOutcome.insufficient_funds, available=str(e.available))
        self.transaction_store.record(event.tx, event.client, event.type, event.amount)
        return EventOutcome.applied

    def _process_meta(self, event: TransactionEvent) -> EventOutcome:
        try:
            transaction = self.transaction_store.lookup(event.tx)
        except TransactionNotFound:
            return self._skip(event, EventOutcome.unknown_transaction)

        if transaction.client != event.client:
            return self._skip(event, EventOutcome.client_mismatch, owner=transaction.client)

        current = transaction.dispute_state
        next_state = _DISPUTE_TRANSITIONS.get((current, event.type))
        if next_state is None:
            return self._skip(event, _ignored_outcome(current), dispute_state=current.value)

        client, amount = transaction.client, transaction.amount
        if event.type == TransactionType.dispute:
            try:
                self.account_ledger.hold(client, amount)
            except InsufficientFunds as e:
                return self._skip(event, EventOutcome.insufficient_funds, available=str(e.available))
        elif event.type == TransactionType.resolve:
            self.account_ledger.release(client, amount)
        else:
            self.account_ledger.charge_back(client, amount)
            logger.info("Account locked by chargeback", client=client, tx=event.tx, amount=str(amount))

        self.transaction_store.set_dispute_state(transaction.tx, next_state)
        return EventOutcome.applied

    def _skip(self, event: TransactionEvent, outcome: EventOutcome, **details) -> EventOutcome:
        logger.warning(
            "Event skipped",
            reason=outcome.value,
            type=event.type.value,
            client=event.client,
            tx=event.tx,
            amount=str(event.amount) if event.amount is not None else None,
            **details
        )
        return outcome


# Factory function for dependency injection
def get_transaction_processor(
    transaction_store: TransactionStore,
    account_ledger: AccountLedger,
    reject_locked_accounts: bool = False,
) -> TransactionProcessor:
    return TransactionProcessor(transaction_store, account_ledger, reject_locked_accounts)

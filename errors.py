"""Domain errors raised by the ledger and the transaction store.

None of these are fatal to a replay: the processor catches them, logs the
event as skipped and moves on to the next row.
"""


class LedgerError(Exception):
    """Base error for ledger replay."""

    def __init__(self, code: str, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(message)


class InvalidAmount(LedgerError, ValueError):
    def __init__(self, literal: object, reason: str) -> None:
        self.literal = literal
        super().__init__("INVALID_AMOUNT", f"Invalid amount {literal!r}: {reason}")


class DuplicateTransaction(LedgerError):
    def __init__(self, tx_id: int) -> None:
        self.tx_id = tx_id
        super().__init__("DUPLICATE_TRANSACTION", f"Transaction {tx_id} already recorded")


class TransactionNotFound(LedgerError):
    def __init__(self, tx_id: int) -> None:
        self.tx_id = tx_id
        super().__init__("TRANSACTION_NOT_FOUND", f"Transaction {tx_id} not found")


class InsufficientFunds(LedgerError):
    def __init__(self, client_id: int, required: object, available: object) -> None:
        self.client_id = client_id
        self.required = required
        self.available = available
        super().__init__(
            "INSUFFICIENT_FUNDS",
            f"Insufficient funds for client {client_id}: required {required}, available {available}",
        )

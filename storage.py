"""CSV input and output for a ledger replay.

Input rows look like ``type, client, tx, amount`` with optional whitespace
around every field. Output is one row per account, ordered by client id.
"""

import csv
from typing import IO, Iterable, Iterator

from pydantic import ValidationError
import structlog

from models import Account, TransactionEvent

logger = structlog.get_logger()

INPUT_FIELDS = ("type", "client", "tx", "amount")
OUTPUT_FIELDS = ("client", "available", "held", "total", "locked")


def read_transactions(stream: IO[str], amount_rounding: str = "reject") -> Iterator[TransactionEvent]:
    """Yield validated events from a CSV stream, in file order.

    Rows that fail validation are logged and skipped. A missing header or
    missing required columns raise ``ValueError``.
    """
    reader = csv.DictReader(stream, skipinitialspace=True)
    if reader.fieldnames is None:
        raise ValueError("CSV appears to have no header row")

    reader.fieldnames = [name.replace("\ufeff", "").strip().lower() for name in reader.fieldnames]
    missing = [name for name in INPUT_FIELDS[:3] if name not in reader.fieldnames]
    if missing:
        raise ValueError(f"CSV header is missing columns: {', '.join(missing)}")

    for row in reader:
        values = {
            key: value.strip() if isinstance(value, str) else value
            for key, value in row.items()
            if key in INPUT_FIELDS
        }
        try:
            yield TransactionEvent.model_validate(values, context={"amount_rounding": amount_rounding})
        except ValidationError as e:
            logger.warning(
                "Malformed row skipped",
                line=reader.line_num,
                row=values,
                errors=[error["msg"] for error in e.errors()],
            )


def write_accounts(accounts: Iterable[Account], stream: IO[str]) -> int:
    """Write the account snapshot as CSV. Returns the number of rows written."""
    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(OUTPUT_FIELDS)
    written = 0
    for account in accounts:
        writer.writerow([
            account.client,
            str(account.available),
            str(account.held),
            str(account.total),
            "true" if account.locked else "false",
        ])
        written += 1
    return written

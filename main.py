from pathlib import Path
from typing import Annotated
import csv
import logging
import sys

import structlog
import typer

from config import Settings, get_settings
from models import EventOutcome
from repositories import get_account_ledger, get_transaction_store
from services import get_transaction_processor
from storage import read_transactions, write_accounts


def configure_logging(settings: Settings) -> None:
    """Route structured logs to stderr; stdout is reserved for the CSV report."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=settings.log_level,
        force=True,
    )
    renderer = (
        structlog.processors.JSONRenderer()
        if settings.log_format == "json"
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


logger = structlog.get_logger()

app = typer.Typer(
    name="ledger-replay",
    help="Replay a CSV of transactions and print the resulting client accounts as CSV.",
    add_completion=False,
)


@app.command()
def replay(
    path: Annotated[Path, typer.Argument(help="CSV file with type, client, tx, amount columns")],
) -> None:
    """Replay transactions from PATH and write account balances to stdout."""
    settings = get_settings()
    configure_logging(settings)

    transaction_store = get_transaction_store()
    account_ledger = get_account_ledger()
    processor = get_transaction_processor(
        transaction_store,
        account_ledger,
        reject_locked_accounts=settings.reject_locked_accounts,
    )

    logger.info("Replay started", path=str(path), app_env=settings.app_env, app_version=settings.app_version)
    try:
        with open(path, encoding="utf-8-sig", newline="") as f:
            outcomes = processor.process_all(read_transactions(f, settings.amount_rounding))
    except OSError as e:
        logger.error("Input file could not be read", path=str(path), error=str(e))
        typer.echo(f"Error: cannot read {path}: {e.strerror or e}", err=True)
        raise typer.Exit(1)
    except (csv.Error, ValueError) as e:
        logger.error("Input file could not be parsed", path=str(path), error=str(e))
        typer.echo(f"Error: failed to parse {path}: {e}", err=True)
        raise typer.Exit(1)

    written = write_accounts(processor.accounts(), sys.stdout)

    applied = outcomes[EventOutcome.applied]
    logger.info(
        "Replay finished",
        accounts=written,
        transactions_recorded=transaction_store.count(),
        events_applied=applied,
        events_skipped=sum(outcomes.values()) - applied,
        skipped_by_reason={
            outcome.value: count for outcome, count in outcomes.items() if outcome != EventOutcome.applied
        },
    )


def main() -> None:
    app()


if __name__ == "__main__":
    main()

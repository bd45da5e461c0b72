import csv
import logging
from decimal import Decimal, InvalidOperation, ROUND_HALF_EVEN
from typing import Dict, Iterator, Mapping, Optional, TextIO

from models import AMOUNT_PRECISION, ClientAccount, InvalidTransactionError, Transaction, TransactionType

logger = logging.getLogger(__name__)

OUTPUT_HEADER = ["client", "available", "held", "total", "locked"]


def _parse_id(value: str) -> int:
    # int() would also accept signs, underscores and non-ASCII digits.
    if not (value.isascii() and value.isdigit()):
        raise ValueError(f"invalid id {value!r}")
    return int(value)


def parse_row(row: Mapping[Optional[str], Optional[str]]) -> Transaction:
    """
    Parse a CSV row into a Transaction.
    Raises InvalidTransactionError if the row is malformed.
    """
    normalized = {k.strip(): (v or "").strip() for k, v in row.items() if k is not None}

    try:
        transaction_type = TransactionType(normalized["type"].lower())
        client_id = _parse_id(normalized["client"])
        tx_id = _parse_id(normalized["tx"])
    except KeyError as e:
        raise InvalidTransactionError(f"missing column {e}") from e
    except ValueError as e:
        raise InvalidTransactionError(str(e)) from e

    amount = None
    amount_str = normalized.get("amount", "")
    # Stray amounts on dispute/resolve/chargeback rows carry no meaning and are dropped.
    if amount_str and transaction_type.carries_amount:
        if "_" in amount_str:
            raise InvalidTransactionError(f"invalid amount {amount_str!r}")
        try:
            amount = Decimal(amount_str).quantize(AMOUNT_PRECISION, rounding=ROUND_HALF_EVEN)
        except InvalidOperation as e:
            raise InvalidTransactionError(f"invalid amount {amount_str!r}") from e

    return Transaction(
        transaction_type=transaction_type,
        client_id=client_id,
        tx_id=tx_id,
        amount=amount,
    )


def parse_rows(reader: Iterator[Mapping[Optional[str], Optional[str]]], on_error=None) -> Iterator[Transaction]:
    """Parse rows lazily, skipping (and logging) the malformed ones."""
    for row in reader:
        try:
            yield parse_row(row)
        except InvalidTransactionError as e:
            logger.warning(f"Failed to parse row {row}: {e}")
            if on_error is not None:
                on_error(row, e)


def read_transactions(filepath: str, on_error=None) -> Iterator[Transaction]:
    """Stream transactions from a CSV file in file order."""
    with open(filepath, "r", newline="", encoding="utf-8-sig") as f:
        yield from parse_rows(csv.DictReader(f), on_error=on_error)


def format_decimal(value: Decimal) -> str:
    """Format decimal with up to 4 decimal places, removing trailing zeros."""
    normalized = value.quantize(AMOUNT_PRECISION, rounding=ROUND_HALF_EVEN).normalize()
    return f"{normalized:f}"


def write_accounts(accounts: Dict[int, ClientAccount], stream: TextIO) -> None:
    """Write the account snapshot as CSV, ordered by client id."""
    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(OUTPUT_HEADER)
    for client_id in sorted(accounts):
        account = accounts[client_id]
        writer.writerow([
            client_id,
            format_decimal(account.available),
            format_decimal(account.held),
            format_decimal(account.total),
            str(account.locked).lower(),
        ])

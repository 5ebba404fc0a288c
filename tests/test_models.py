import pytest
from decimal import Decimal
from pydantic import ValidationError

from errors import InvalidAmount, LedgerError
from models import Account, Amount, StandardTransaction, TransactionEvent, TransactionType


class TestAmountParsing:
    """Test parsing of decimal literals into fixed-point amounts."""

    @pytest.mark.parametrize("literal,units", [
        ("1", 10_000),
        ("1.0", 10_000),
        ("1.5", 15_000),
        ("0.0001", 1),
        ("10.4752", 104_752),
        (".25", 2_500),
        ("3.", 30_000),
        ("  2.75 ", 27_500),
        ("-0.5", -5_000),
        ("+7", 70_000),
        ("1.50000", 15_000),
    ])
    def test_valid_literals(self, literal, units):
        assert Amount.parse(literal).units == units

    @pytest.mark.parametrize("literal", ["", "   ", "abc", "1.2.3", "1e5", "nan", "inf", "1,000", ".", "--1"])
    def test_non_numeric_literals_rejected(self, literal):
        with pytest.raises(InvalidAmount):
            Amount.parse(literal)

    @pytest.mark.parametrize("literal", ["١٢", "１２.５", "1.٥"])
    def test_non_ascii_digits_rejected(self, literal):
        with pytest.raises(InvalidAmount, match="not a decimal number"):
            Amount.parse(literal)

    def test_too_many_fractional_digits_rejected(self):
        with pytest.raises(InvalidAmount, match="more than 4 fractional digits"):
            Amount.parse("1.00001")

    def test_truncate_mode_drops_extra_digits(self):
        assert Amount.parse("1.23456789", rounding="truncate") == Amount.parse("1.2345")
        assert Amount.parse("-1.23459", rounding="truncate") == Amount.parse("-1.2345")

    def test_unknown_rounding_mode(self):
        with pytest.raises(ValueError):
            Amount.parse("1", rounding="round-half-up")

    def test_parse_positive(self):
        assert Amount.parse_positive("0.0001").units == 1
        with pytest.raises(InvalidAmount, match="positive"):
            Amount.parse_positive("0")
        with pytest.raises(InvalidAmount, match="positive"):
            Amount.parse_positive("-3")

    def test_floats_refused(self):
        with pytest.raises(TypeError):
            Amount(1.5)
        with pytest.raises(InvalidAmount):
            Amount.parse(1.5)

    def test_from_decimal(self):
        assert Amount.from_decimal(Decimal("2.5")) == Amount.parse("2.5")
        assert Amount.from_decimal(Decimal("1E+2")) == Amount.parse("100")
        with pytest.raises(InvalidAmount):
            Amount.from_decimal(Decimal("NaN"))

    def test_invalid_amount_is_a_ledger_error(self):
        with pytest.raises(LedgerError) as exc_info:
            Amount.parse("x")
        assert exc_info.value.code == "INVALID_AMOUNT"


class TestAmountArithmetic:
    """Test exact arithmetic, comparison and formatting."""

    def test_repeated_addition_is_exact(self):
        total = Amount.zero()
        for _ in range(10):
            total += Amount.parse("0.1")
        assert total == Amount.parse("1")

    def test_subtraction_and_negation(self):
        assert Amount.parse("0.3") - Amount.parse("0.1") == Amount.parse("0.2")
        assert -Amount.parse("1.5") == Amount.parse("-1.5")

    def test_comparisons(self):
        small, large = Amount.parse("1.9999"), Amount.parse("2")
        assert small < large
        assert large >= small
        assert large >= Amount.parse("2.0000")
        assert not small >= large

    def test_equality_and_hash(self):
        assert Amount.parse("1.50") == Amount.parse("1.5")
        assert hash(Amount.parse("1.50")) == hash(Amount.parse("1.5"))
        assert Amount.parse("1") != 1

    def test_bool(self):
        assert not Amount.zero()
        assert Amount.parse("0.0001")

    @pytest.mark.parametrize("literal,text", [
        ("0", "0.0000"),
        ("1.5", "1.5000"),
        ("10.4752", "10.4752"),
        ("-0.25", "-0.2500"),
        ("123456789.0001", "123456789.0001"),
    ])
    def test_str(self, literal, text):
        assert str(Amount.parse(literal)) == text

    def test_to_decimal(self):
        assert Amount.parse("10.4752").to_decimal() == Decimal("10.4752")


class TestTransactionEvent:
    """Test validation of input rows."""

    def test_deposit_row(self):
        event = TransactionEvent(type="deposit", client="1", tx="1", amount="1.0")
        assert event.type == TransactionType.deposit
        assert event.client == 1
        assert event.amount == Amount.parse("1.0")

    def test_type_is_whitespace_and_case_tolerant(self):
        event = TransactionEvent(type="  Withdrawal ", client=2, tx=5, amount="3.0")
        assert event.type == TransactionType.withdrawal

    def test_meta_row_drops_amount(self):
        event = TransactionEvent(type="dispute", client=1, tx=1, amount="")
        assert event.amount is None
        event = TransactionEvent(type="chargeback", client=1, tx=1, amount="5.0")
        assert event.amount is None
        event = TransactionEvent(type="resolve", client=1, tx=1, amount="n/a")
        assert event.amount is None

    def test_standard_rows_require_amount(self):
        with pytest.raises(ValidationError, match="requires an amount"):
            TransactionEvent(type="deposit", client=1, tx=1)
        with pytest.raises(ValidationError, match="requires an amount"):
            TransactionEvent(type="withdrawal", client=1, tx=1, amount=" ")

    @pytest.mark.parametrize("amount", ["0", "-1.0"])
    def test_standard_rows_require_positive_amount(self, amount):
        with pytest.raises(ValidationError, match="must be positive"):
            TransactionEvent(type="deposit", client=1, tx=1, amount=amount)

    def test_bad_amount_literal(self):
        with pytest.raises(ValidationError):
            TransactionEvent(type="deposit", client=1, tx=1, amount="1.00001")

    def test_truncate_through_validation_context(self):
        event = TransactionEvent.model_validate(
            {"type": "deposit", "client": 1, "tx": 1, "amount": "1.00009"},
            context={"amount_rounding": "truncate"},
        )
        assert event.amount == Amount.parse("1")

    def test_unknown_type(self):
        with pytest.raises(ValidationError):
            TransactionEvent(type="transfer", client=1, tx=1, amount="1")

    @pytest.mark.parametrize("client,tx", [(-1, 1), (65536, 1), (1, -1), (1, 2**32)])
    def test_id_ranges(self, client, tx):
        with pytest.raises(ValidationError):
            TransactionEvent(type="dispute", client=client, tx=tx)

    def test_id_bounds_accepted(self):
        event = TransactionEvent(type="dispute", client=65535, tx=2**32 - 1)
        assert (event.client, event.tx) == (65535, 2**32 - 1)


class TestRecords:
    def test_new_account_is_empty(self):
        account = Account(client=3)
        assert account.available == account.held == account.total == Amount.zero()
        assert account.locked is False

    def test_standard_transaction_serializes_amount_as_string(self):
        transaction = StandardTransaction(tx=1, client=1, kind=TransactionType.deposit, amount="2.5")
        dumped = transaction.model_dump(mode="json")
        assert dumped["amount"] == "2.5000"
        assert dumped["dispute_state"] == "normal"

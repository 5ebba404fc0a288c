from pydantic import BaseModel, Field, ValidationInfo, field_validator, model_validator
from pydantic_core import core_schema
from enum import Enum
from typing import Any, Optional
from decimal import Decimal
import functools
import re

from errors import InvalidAmount


_AMOUNT_PATTERN = re.compile(r"^(?P<sign>[+-]?)(?:(?P<whole>[0-9]+)(?:\.(?P<frac>[0-9]*))?|\.(?P<frac_only>[0-9]+))$")

AMOUNT_ROUNDING_MODES = ("reject", "truncate")

MAX_CLIENT_ID = 2**16 - 1
MAX_TX_ID = 2**32 - 1


@functools.total_ordering
class Amount:
    """Fixed-point decimal with four fractional digits.

    The value is held as an integer count of 1/10,000 units, so addition,
    subtraction and comparison are exact. Floats are refused everywhere.
    """

    SCALE = 10_000
    DIGITS = 4

    __slots__ = ("_units",)

    def __init__(self, units: int = 0):
        if isinstance(units, bool) or not isinstance(units, int):
            raise TypeError(f"Amount units must be int, got {type(units).__name__}")
        self._units = units

    @property
    def units(self) -> int:
        return self._units

    @classmethod
    def zero(cls) -> "Amount":
        return cls(0)

    @classmethod
    def from_units(cls, units: int) -> "Amount":
        return cls(units)

    @classmethod
    def parse(cls, literal: str, *, rounding: str = "reject") -> "Amount":
        """Parse a decimal literal such as ``" 1.5 "`` or ``"-0.0001"``.

        With ``rounding="reject"`` a literal whose value needs more than four
        fractional digits raises :class:`InvalidAmount`; ``"truncate"`` drops
        the excess digits toward zero. Trailing zeros are always exact.
        """
        if rounding not in AMOUNT_ROUNDING_MODES:
            raise ValueError(f"Unknown rounding mode: {rounding}")
        if not isinstance(literal, str):
            raise InvalidAmount(literal, "expected a decimal string")

        match = _AMOUNT_PATTERN.match(literal.strip())
        if match is None:
            raise InvalidAmount(literal, "not a decimal number")

        whole = match.group("whole") or "0"
        frac = match.group("frac") or match.group("frac_only") or ""
        kept, extra = frac[: cls.DIGITS], frac[cls.DIGITS:]
        if extra.strip("0") and rounding == "reject":
            raise InvalidAmount(literal, f"more than {cls.DIGITS} fractional digits")

        units = int(whole) * cls.SCALE + int(kept.ljust(cls.DIGITS, "0"))
        if match.group("sign") == "-":
            units = -units
        return cls(units)

    @classmethod
    def parse_positive(cls, literal: str, *, rounding: str = "reject") -> "Amount":
        amount = cls.parse(literal, rounding=rounding)
        if amount.units <= 0:
            raise InvalidAmount(literal, "amount must be positive")
        return amount

    @classmethod
    def from_decimal(cls, value: Decimal, *, rounding: str = "reject") -> "Amount":
        if not value.is_finite():
            raise InvalidAmount(value, "not a finite number")
        return cls.parse(format(value, "f"), rounding=rounding)

    def to_decimal(self) -> Decimal:
        return Decimal(self._units).scaleb(-self.DIGITS)

    def __add__(self, other: "Amount") -> "Amount":
        if not isinstance(other, Amount):
            return NotImplemented
        return Amount(self._units + other._units)

    def __sub__(self, other: "Amount") -> "Amount":
        if not isinstance(other, Amount):
            return NotImplemented
        return Amount(self._units - other._units)

    def __neg__(self) -> "Amount":
        return Amount(-self._units)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Amount):
            return NotImplemented
        return self._units == other._units

    def __lt__(self, other: "Amount") -> bool:
        if not isinstance(other, Amount):
            return NotImplemented
        return self._units < other._units

    def __hash__(self) -> int:
        return hash(self._units)

    def __bool__(self) -> bool:
        return self._units != 0

    def __str__(self) -> str:
        sign = "-" if self._units < 0 else ""
        whole, frac = divmod(abs(self._units), self.SCALE)
        return f"{sign}{whole}.{frac:0{self.DIGITS}d}"

    def __repr__(self) -> str:
        return f"Amount('{self}')"

    @classmethod
    def _coerce(cls, value: Any) -> "Amount":
        if isinstance(value, Amount):
            return value
        if isinstance(value, str):
            return cls.parse(value)
        if isinstance(value, Decimal):
            return cls.from_decimal(value)
        if isinstance(value, int) and not isinstance(value, bool):
            return cls(value * cls.SCALE)
        raise InvalidAmount(value, f"unsupported type {type(value).__name__}")

    @classmethod
    def __get_pydantic_core_schema__(cls, source_type: Any, handler: Any) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls._coerce,
            serialization=core_schema.plain_serializer_function_ser_schema(str),
        )


class TransactionType(str, Enum):
    deposit = "deposit"
    withdrawal = "withdrawal"
    dispute = "dispute"
    resolve = "resolve"
    chargeback = "chargeback"

    @property
    def is_standard(self) -> bool:
        """Deposits and withdrawals move money; the rest refer to them."""
        return self in (TransactionType.deposit, TransactionType.withdrawal)


class DisputeState(str, Enum):
    normal = "normal"
    disputed = "disputed"
    charged_back = "charged_back"


class EventOutcome(str, Enum):
    applied = "applied"
    duplicate_transaction = "duplicate_transaction"
    insufficient_funds = "insufficient_funds"
    unknown_transaction = "unknown_transaction"
    client_mismatch = "client_mismatch"
    not_disputed = "not_disputed"
    already_disputed = "already_disputed"
    charged_back = "charged_back"
    account_locked = "account_locked"
    invalid_amount = "invalid_amount"


class TransactionEvent(BaseModel):
    """One row of the input stream."""

    type: TransactionType = Field(..., description="Event kind")
    client: int = Field(..., ge=0, le=MAX_CLIENT_ID, description="Client identifier (u16)")
    tx: int = Field(..., ge=0, le=MAX_TX_ID, description="Transaction identifier (u32)")
    amount: Optional[Amount] = Field(default=None, description="Present for deposits and withdrawals only")

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("amount", mode="before")
    @classmethod
    def parse_amount(cls, v, info: ValidationInfo):
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        event_type = info.data.get("type")
        if event_type is not None and not event_type.is_standard:
            return None
        if isinstance(v, str):
            rounding = (info.context or {}).get("amount_rounding", "reject")
            return Amount.parse(v, rounding=rounding)
        return v

    @model_validator(mode="after")
    def check_amount_for_type(self):
        if self.type.is_standard:
            if self.amount is None:
                raise ValueError(f"{self.type.value} requires an amount")
            if self.amount.units <= 0:
                raise ValueError(f"{self.type.value} amount must be positive")
        else:
            # Meta events carry no amount of their own
            self.amount = None
        return self


class StandardTransaction(BaseModel):
    tx: int
    client: int
    kind: TransactionType
    amount: Amount
    dispute_state: DisputeState = DisputeState.normal


class Account(BaseModel):
    client: int = Field(..., ge=0, le=MAX_CLIENT_ID)
    available: Amount = Field(default_factory=Amount.zero)
    held: Amount = Field(default_factory=Amount.zero)
    total: Amount = Field(default_factory=Amount.zero)
    locked: bool = False

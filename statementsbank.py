"""
statementsbank.py
--------------------------------------------------
Bank-specific statement rows and the normalized transaction they turn into.

Each supported bank provides a row parser, a record type exposing its fields
by name (for filtering) and a field map telling the filter decoder what kind
of value each of those names holds. To add a bank, write those three pieces
and register them in ``_ADAPTERS`` at the bottom of this module.
"""

import re
import sys
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Callable, List, Sequence

from statementsfilter import (
    LITTLE_ENDIAN_DATE,
    FieldKind,
    FieldMap,
    parse_little_endian_date,
)


class StatementParseError(ValueError):
    """A statement row could not be parsed into a bank record."""


class UnsupportedBankError(ValueError):
    pass


# ----------------- NORMALIZED TRANSACTION -----------------
@dataclass(frozen=True)
class Transaction:
    date: date
    account_holder: str
    description: str
    value: int  # minor currency units, negative for money going out
    currency: str

    def formatted_value(self):
        units, cents = divmod(abs(self.value), 100)
        sign = "-" if self.value < 0 else ""
        return f"{sign}{units},{cents:02d}"

    def csv_row(self):
        return [
            self.date.strftime(LITTLE_ENDIAN_DATE),
            self.account_holder,
            self.description,
            self.formatted_value(),
            self.currency,
        ]


# ----------------- BANKS -----------------
class Bank(str, Enum):
    SWEDBANK = "swedbank"

    @classmethod
    def parse(cls, text):
        """Case-insensitive lookup of a bank by name."""
        names = ", ".join(f'"{b.value}"' for b in cls)
        if text is not None and not isinstance(text, str):
            raise UnsupportedBankError(f"must be one of {names}")
        try:
            return cls((text or "").strip().lower())
        except ValueError:
            raise UnsupportedBankError(f"must be one of {names}") from None

    def default_input(self):
        return resolve_adapter(self).default_input


# ----------------- SWEDBANK -----------------
class SwedbankEntryType(str, Enum):
    START_BALANCE = "10"
    TRANSACTION = "20"
    TURNOVER = "82"
    END_BALANCE = "86"
    CURRENT_INTEREST = "900"


class SwedbankTransactionType(str, Enum):
    START_BALANCE = "AS"
    TO_BANK = "INB"
    TO_PRIVATE = "PRV"
    CAPITAL_GAINS = "AIA"
    CURRENT_INTEREST = "AI"
    COMMISSION = "KOM"
    TURNOVER = "K2"
    END_BALANCE = "LS"


class SwedbankFlow(str, Enum):
    DEBIT = "D"
    CREDIT = "K"


# Column headers of a Swedbank (Latvia) statement export, in column order.
SWEDBANK_COLUMNS = [
    "Klienta konts",
    "Ieraksta tips",
    "Datums",
    "Saņēmējs/Maksātājs",
    "Informācija saņēmējam",
    "Summa",
    "Valūta",
    "Debets/Kredīts",
    "Arhīva kods",
    "Maksājuma veids",
    "Refernces numurs",
    "Dokumenta numurs",
]

SWEDBANK_FIELD_MAP = FieldMap({
    name: (
        FieldKind.DATE if name == "Datums"
        else FieldKind.NUMBER if name == "Summa"
        else FieldKind.STRING
    )
    for name in SWEDBANK_COLUMNS
})


_AMOUNT_RE = re.compile(r"([0-9]+)(?:,([0-9]{1,2}))?")


def _parse_enum(enum_cls, raw, label):
    try:
        return enum_cls(raw)
    except ValueError:
        raise StatementParseError(f"invalid Swedbank {label} provided: {raw}") from None


def parse_decimal_amount(raw):
    """Turn a ``1234,56`` amount into minor units (123456)."""
    m = _AMOUNT_RE.fullmatch(raw.strip())
    if not m:
        raise StatementParseError(f"invalid Swedbank amount provided: {raw}")
    whole, frac = m.group(1), m.group(2) or ""
    return int(whole) * 100 + int(frac.ljust(2, "0"))


@dataclass(frozen=True)
class SwedbankTransaction:
    account_number: str
    entry_type: SwedbankEntryType
    date: date
    account_holder: str
    description: str
    value: int  # unsigned, direction is in ``flow``
    currency: str
    flow: SwedbankFlow
    archive_code: str
    transaction_type: SwedbankTransactionType
    reference_number: str
    document_number: str

    @classmethod
    def from_row(cls, row: Sequence[str]):
        if len(row) < len(SWEDBANK_COLUMNS):
            raise StatementParseError(
                f"expected {len(SWEDBANK_COLUMNS)} Swedbank columns, got {len(row)}"
            )

        entry_type = _parse_enum(SwedbankEntryType, row[1], "entry type")
        transaction_type = _parse_enum(SwedbankTransactionType, row[9], "transaction type")
        flow = _parse_enum(SwedbankFlow, row[7], "flow")

        booked = parse_little_endian_date(row[2])
        if booked is None:
            raise StatementParseError(f"invalid Swedbank date provided: {row[2]}")

        return cls(
            account_number=row[0],
            entry_type=entry_type,
            date=booked,
            account_holder=row[3],
            description=row[4],
            value=parse_decimal_amount(row[5]),
            currency=row[6],
            flow=flow,
            archive_code=row[8],
            transaction_type=transaction_type,
            reference_number=row[10],
            document_number=row[11],
        )

    def field_value(self, field):
        """Value of a column by its Swedbank header name, or None."""
        return {
            "Klienta konts": self.account_number,
            "Ieraksta tips": self.entry_type,
            "Datums": self.date,
            "Saņēmējs/Maksātājs": self.account_holder,
            "Informācija saņēmējam": self.description,
            "Summa": self.value,
            "Valūta": self.currency,
            "Debets/Kredīts": self.flow,
            "Arhīva kods": self.archive_code,
            "Maksājuma veids": self.transaction_type,
            "Refernces numurs": self.reference_number,
            "Dokumenta numurs": self.document_number,
        }.get(field)

    def normalize(self):
        signed = -self.value if self.flow == SwedbankFlow.DEBIT else self.value
        return Transaction(
            date=self.date,
            account_holder=self.account_holder,
            description=self.description,
            value=signed,
            currency=self.currency,
        )


def _is_swedbank_header(row):
    return len(row) > 1 and row[1].strip() == SWEDBANK_COLUMNS[1]


def new_swedbank_transactions(rows, verbose=False):
    """Parse raw CSV rows of a Swedbank export, skipping header and blank rows."""
    out = []
    for idx, row in enumerate(rows, start=1):
        if not any(c.strip() for c in row):
            continue
        if _is_swedbank_header(row):
            if verbose:
                print(f"[DEBUG] Skipping header row {idx}: {row}", file=sys.stderr)
            continue
        try:
            out.append(SwedbankTransaction.from_row(row))
        except StatementParseError as e:
            raise StatementParseError(f"row {idx}: {e}") from e
    if verbose:
        print(f"[DEBUG] Extracted {len(out)} Swedbank rows.", file=sys.stderr)
    return out


# ----------------- ADAPTER REGISTRY -----------------
@dataclass(frozen=True)
class BankAdapter:
    """Everything the process pipeline needs to know about one bank."""

    bank: Bank
    label: str
    parse_rows: Callable[..., List]
    field_map: FieldMap
    default_input: str


_ADAPTERS = {
    Bank.SWEDBANK: BankAdapter(
        bank=Bank.SWEDBANK,
        label="Swedbank",
        parse_rows=new_swedbank_transactions,
        field_map=SWEDBANK_FIELD_MAP,
        default_input="statement.csv",
    ),
}


def resolve_adapter(bank):
    if not isinstance(bank, Bank):
        bank = Bank.parse(bank)
    adapter = _ADAPTERS.get(bank)
    if adapter is None:
        raise UnsupportedBankError(f"no adapter registered for bank {bank.value!r}")
    return adapter


def available_banks():
    return sorted(b.value for b in _ADAPTERS)

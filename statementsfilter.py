"""
statementsfilter.py
--------------------------------------------------
Declarative field filters for bank statement records.

Filters come out of the config file as loose JSON objects. Which shape a
filter has (date, number or string) is not written in the object itself: it
depends on the field it names, so every bank ships a field map telling the
decoder what kind of value lives behind each field name.
"""

import json
import re
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional, Sequence, Union

# ----------------- CONSTANTS -----------------
LITTLE_ENDIAN_DATE = "%d.%m.%Y"
_LITTLE_ENDIAN_DATE_RE = re.compile(r"^[0-9]{2}\.[0-9]{2}\.[0-9]{4}$")
_INTEGER_RE = re.compile(r"^[-+]?[0-9]+$")

# What a record hands back for a field: a date, an integer, a string
# (or str-valued enum) or None when the record has no such field.
FieldValue = Union[date, int, str, Enum, None]


class FilterDecodeError(ValueError):
    """A filter from the config could not be turned into a typed filter."""

    def __init__(self, message, field=None):
        super().__init__(message)
        self.field = field


# ----------------- FIELD TYPES -----------------
class FieldKind(Enum):
    UNKNOWN = 0
    DATE = 1
    NUMBER = 2
    STRING = 3


class FieldMap:
    """Read-only lookup of config field names to the kind of value they hold.

    Names are matched exactly (case-sensitive). Anything not in the map is
    ``FieldKind.UNKNOWN``.
    """

    def __init__(self, kinds: Mapping[str, FieldKind]):
        self._kinds = MappingProxyType(dict(kinds))

    def lookup(self, name: str) -> FieldKind:
        return self._kinds.get(name, FieldKind.UNKNOWN)

    def __contains__(self, name):
        return self.lookup(name) is not FieldKind.UNKNOWN

    def __iter__(self):
        return iter(self._kinds)

    def __len__(self):
        return len(self._kinds)

    def __repr__(self):
        return f"FieldMap({dict(self._kinds)!r})"


# ----------------- CONDITIONS -----------------
class DateCondition(str, Enum):
    LESS_THAN = "LESS_THAN"
    LESS_THAN_EQUAL = "LESS_THAN_EQUAL"
    GREATER_THAN = "GREATER_THAN"
    GREATER_THAN_EQUAL = "GREATER_THAN_EQUAL"
    EQUAL = "EQUAL"
    NOT_EQUAL = "NOT_EQUAL"


class NumberCondition(str, Enum):
    LESS_THAN = "LESS_THAN"
    LESS_THAN_EQUAL = "LESS_THAN_EQUAL"
    GREATER_THAN = "GREATER_THAN"
    GREATER_THAN_EQUAL = "GREATER_THAN_EQUAL"
    EQUAL = "EQUAL"
    NOT_EQUAL = "NOT_EQUAL"


class StringCondition(str, Enum):
    EQUAL = "EQUAL"
    NOT_EQUAL = "NOT_EQUAL"
    CONTAIN = "CONTAIN"
    NOT_CONTAIN = "NOT_CONTAIN"


def condition_literals():
    """Every condition literal a config file may use, in a stable order."""
    seen = []
    for enum_cls in (DateCondition, NumberCondition, StringCondition):
        for member in enum_cls:
            if member.value not in seen:
                seen.append(member.value)
    return seen


# ----------------- VALUE COERCION -----------------
def parse_little_endian_date(text: str) -> Optional[date]:
    """Parse ``DD.MM.YYYY``; return None if the text is anything else."""
    if not isinstance(text, str) or not _LITTLE_ENDIAN_DATE_RE.match(text):
        return None
    try:
        return datetime.strptime(text, LITTLE_ENDIAN_DATE).date()
    except ValueError:
        return None


def _as_date(value) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return parse_little_endian_date(value)
    return None


def _as_int(value) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return int(value)
    if isinstance(value, str) and _INTEGER_RE.match(value.strip()):
        return int(value.strip())
    return None


def _as_str(value) -> Optional[str]:
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, str):
        return str(value)
    return None


# ----------------- FILTERS -----------------
@dataclass(frozen=True)
class DateFilter:
    """Compares a date field against a ``DD.MM.YYYY`` literal.

    The record date is the left operand, same as NumberFilter:
    ``GREATER_THAN "01.01.2025"`` keeps records dated after the first of
    January. Compared by day, time of day is dropped.
    """

    field: str
    condition: DateCondition
    comparison: str

    def field_name(self) -> str:
        return self.field

    def match(self, value: FieldValue) -> bool:
        actual = _as_date(value)
        if actual is None:
            return False
        wanted = parse_little_endian_date(self.comparison)
        if wanted is None:
            return False

        if self.condition == DateCondition.LESS_THAN:
            return actual < wanted
        if self.condition == DateCondition.LESS_THAN_EQUAL:
            return actual <= wanted
        if self.condition == DateCondition.GREATER_THAN:
            return actual > wanted
        if self.condition == DateCondition.GREATER_THAN_EQUAL:
            return actual >= wanted
        if self.condition == DateCondition.EQUAL:
            return actual == wanted
        if self.condition == DateCondition.NOT_EQUAL:
            return actual != wanted
        return False


@dataclass(frozen=True)
class NumberFilter:
    """Compares an integer field (minor currency units) against an integer.

    The record value is the left operand.
    """

    field: str
    condition: NumberCondition
    comparison: int

    def field_name(self) -> str:
        return self.field

    def match(self, value: FieldValue) -> bool:
        actual = _as_int(value)
        if actual is None:
            return False

        if self.condition == NumberCondition.LESS_THAN:
            return actual < self.comparison
        if self.condition == NumberCondition.LESS_THAN_EQUAL:
            return actual <= self.comparison
        if self.condition == NumberCondition.GREATER_THAN:
            return actual > self.comparison
        if self.condition == NumberCondition.GREATER_THAN_EQUAL:
            return actual >= self.comparison
        if self.condition == NumberCondition.EQUAL:
            return actual == self.comparison
        if self.condition == NumberCondition.NOT_EQUAL:
            return actual != self.comparison
        return False


@dataclass(frozen=True)
class StringFilter:
    field: str
    condition: StringCondition
    comparison: str

    def field_name(self) -> str:
        return self.field

    def match(self, value: FieldValue) -> bool:
        actual = _as_str(value)
        if actual is None:
            return False

        if self.condition == StringCondition.EQUAL:
            return actual == self.comparison
        if self.condition == StringCondition.NOT_EQUAL:
            return actual != self.comparison
        if self.condition == StringCondition.CONTAIN:
            return self.comparison in actual
        if self.condition == StringCondition.NOT_CONTAIN:
            return self.comparison not in actual
        return False


Filter = Union[DateFilter, NumberFilter, StringFilter]

_VARIANTS = {
    FieldKind.DATE: (DateFilter, DateCondition, str),
    FieldKind.NUMBER: (NumberFilter, NumberCondition, int),
    FieldKind.STRING: (StringFilter, StringCondition, str),
}


# ----------------- DECODING -----------------
class RawFilter:
    """A filter exactly as it came out of the config, not yet typed.

    ``raw`` is either the parsed mapping (JSON/YAML loaders already did the
    work) or JSON text still waiting to be parsed.
    """

    def __init__(self, raw):
        self.raw = raw

    @classmethod
    def from_json(cls, data):
        if isinstance(data, (bytes, bytearray)):
            data = data.decode("utf-8")
        return cls(data)

    def payload(self):
        raw = self.raw
        if isinstance(raw, (str, bytes, bytearray)):
            try:
                raw = json.loads(raw)
            except ValueError as e:
                raise FilterDecodeError(f"could not parse filter: {e}") from e
        if not isinstance(raw, Mapping):
            raise FilterDecodeError(f"filter must be an object, got {type(raw).__name__}")
        return raw

    def decode_with_field_map(self, field_map: FieldMap) -> Filter:
        return decode_filter(self, field_map)

    def __repr__(self):
        return f"RawFilter({self.raw!r})"


def decode_filter(raw, field_map: FieldMap) -> Filter:
    """Turn a raw filter into a DateFilter, NumberFilter or StringFilter.

    The field name is read first; its kind in ``field_map`` decides which
    variant the whole object is then decoded into.
    """
    if not isinstance(raw, RawFilter):
        raw = RawFilter(raw)
    payload = raw.payload()

    name = payload.get("field")
    if not isinstance(name, str):
        raise FilterDecodeError(f"filter field must be a string, got {name!r}", field=name)

    kind = field_map.lookup(name)
    if kind not in _VARIANTS:
        raise FilterDecodeError(f'unknown field or type for field "{name}"', field=name)

    filter_cls, condition_cls, comparison_type = _VARIANTS[kind]

    if "condition" not in payload:
        raise FilterDecodeError(f'filter for field "{name}" has no condition', field=name)
    try:
        condition = condition_cls(payload["condition"])
    except ValueError:
        allowed = ", ".join(c.value for c in condition_cls)
        raise FilterDecodeError(
            f'invalid condition {payload["condition"]!r} for field "{name}" (expected one of {allowed})',
            field=name,
        ) from None

    if "comparison" not in payload:
        raise FilterDecodeError(f'filter for field "{name}" has no comparison', field=name)
    comparison = payload["comparison"]
    if isinstance(comparison, bool) or not isinstance(comparison, comparison_type):
        raise FilterDecodeError(
            f'comparison for field "{name}" must be {comparison_type.__name__}, got {comparison!r}',
            field=name,
        )

    return filter_cls(field=name, condition=condition, comparison=comparison)


def decode_filters(raws: Iterable, field_map: FieldMap) -> List[Filter]:
    return [decode_filter(raw, field_map) for raw in raws]


# ----------------- PIPELINE -----------------
def filter_transactions(records: Sequence, filters: Sequence[Filter]) -> list:
    """Keep the records that pass every filter, in their original order."""
    return [
        record for record in records
        if all(f.match(record.field_value(f.field_name())) for f in filters)
    ]

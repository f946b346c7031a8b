"""Shared pytest fixtures.

Provides:
- MockRecord: minimal record exposing field_value/normalize
- mock_records: the three-record fixture (1/5/10 Jan 2025, 100/200/300)
- SWEDBANK_CSV: a small Swedbank export with header, balances and two payments
- write_config: writes a config file into tmp_path
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import date

import pytest

from statementsbank import Transaction


@dataclass(frozen=True)
class MockRecord:
    date: date
    value: int
    desc: str

    def field_value(self, field):
        if field == "date":
            return self.date
        if field == "value":
            return self.value
        if field == "description":
            return self.desc
        return None

    def normalize(self):
        return Transaction(
            date=self.date,
            account_holder="Test",
            description=self.desc,
            value=self.value,
            currency="EUR",
        )


@pytest.fixture()
def mock_records():
    return [
        MockRecord(date(2025, 1, 1), 100, "Test transaction"),
        MockRecord(date(2025, 1, 5), 200, "Another transaction"),
        MockRecord(date(2025, 1, 10), 300, "Third transaction"),
    ]


SWEDBANK_HEADER = (
    '"Klienta konts";"Ieraksta tips";"Datums";"Saņēmējs/Maksātājs";'
    '"Informācija saņēmējam";"Summa";"Valūta";"Debets/Kredīts";"Arhīva kods";'
    '"Maksājuma veids";"Refernces numurs";"Dokumenta numurs";'
)

SWEDBANK_CSV = "\n".join([
    SWEDBANK_HEADER,
    '"LV02HABA0123456789012";"10";"01.10.2025";"";"Sākuma atlikums";"100,00";"EUR";"K";"";"AS";"";"";',
    '"LV02HABA0123456789012";"20";"03.10.2025";"SIA VEIKALS";"Pirkums 123";"12,50";"EUR";"D";"2025100301234567";"PRV";"";"";',
    '"LV02HABA0123456789012";"20";"31.10.2025";"TEST USER";"SOME DESCRIPTION";"0,83";"EUR";"K";"2025103101234567";"INB";"";"";',
    '"LV02HABA0123456789012";"86";"31.10.2025";"";"Beigu atlikums";"88,33";"EUR";"K";"";"LS";"";"";',
    "",
])


@pytest.fixture()
def swedbank_csv(tmp_path):
    path = tmp_path / "statement.csv"
    path.write_text(SWEDBANK_CSV, encoding="utf-8")
    return path


@pytest.fixture()
def write_config(tmp_path):
    def _write(data, name="config.json"):
        path = tmp_path / name
        if isinstance(data, str):
            path.write_text(data, encoding="utf-8")
        else:
            path.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
        return path

    return _write

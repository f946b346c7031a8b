#!/usr/bin/env python3
"""
statements.py
--------------------------------------------------
Bank statement parser. Reads a semicolon-delimited statement export, keeps the
rows matching the filters from the config file and writes them back out as a
normalized semicolon-delimited CSV (date;holder;description;amount;currency).

    statements process -i statement.csv -o output.csv --config config.json
    statements config validate config.json
    statements version
"""

import argparse
import contextlib
import csv
import json
import sys
from dataclasses import dataclass, field
from typing import List

import yaml
from jsonschema import validators
from jsonschema.exceptions import ValidationError

from statementsbank import Bank, available_banks, resolve_adapter
from statementsfilter import (
    RawFilter,
    condition_literals,
    decode_filters,
    filter_transactions,
)

# ----------------- CONSTANTS -----------------
VERSION = "0.1.0"
DEFAULT_CONFIG = "config.json"
DEFAULT_OUTPUT = "output.csv"
CSV_DELIMITER = ";"

CONFIG_SCHEMA = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "statements configuration",
    "type": "object",
    "required": ["flags", "filters"],
    "properties": {
        "$schema": {"type": "string"},
        "flags": {
            "type": "object",
            "required": ["bank"],
            "properties": {
                "bank": {"type": "string", "description": f"one of {available_banks()}"},
                "input": {"type": "string"},
                "output": {"type": "string"},
            },
            "additionalProperties": False,
        },
        "filters": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["field", "condition", "comparison"],
                "properties": {
                    "field": {"type": "string"},
                    "condition": {"enum": condition_literals()},
                    "comparison": {"type": ["string", "integer"]},
                },
                "additionalProperties": False,
            },
        },
    },
}


class ConfigError(ValueError):
    pass


# ----------------- UTILITIES -----------------
def log_verbose(enabled, *args):
    """Print only when verbose mode is active."""
    if enabled:
        print("[DEBUG]", *args, file=sys.stderr)


@contextlib.contextmanager
def open_maybe_stdin(path, mode="r", *args, **kwargs):
    """
    Context-manager wrapper around open() that transparently handles
    '-', '/dev/stdin' (for reading) and '-', '/dev/stdout' (for writing).
    Prints user-friendly errors instead of traceback.
    """
    path = str(path)
    is_read = "r" in mode or "+" in mode
    is_write = any(m in mode for m in ("w", "a", "x"))

    if is_read and path in ("-", "/dev/stdin"):
        yield sys.stdin
        return

    if is_write and path in ("-", "/dev/stdout"):
        try:
            yield sys.stdout
        finally:
            sys.stdout.flush()
        return

    try:
        f = open(path, mode, *args, **kwargs)
    except FileNotFoundError:
        print(f"❌ Error: File not found — {path}", file=sys.stderr)
        sys.exit(1)
    except PermissionError:
        print(f"❌ Error: Permission denied — {path}", file=sys.stderr)
        sys.exit(1)
    except OSError as e:
        print(f"❌ Error: Cannot open {path}: {e}", file=sys.stderr)
        sys.exit(1)

    with f:
        yield f


# ----------------- CONFIG -----------------
def load_config_data(path):
    """Read a config file: JSON for *.json, YAML for anything else."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            try:
                if str(path).lower().endswith(".json"):
                    return json.load(f)
                return yaml.safe_load(f)
            except (ValueError, yaml.YAMLError) as e:
                raise ConfigError(f"could not parse config file: {e}") from e
    except OSError as e:
        raise ConfigError(f"could not open config file: {e}") from e


@dataclass
class FlagConfig:
    bank: str = ""
    input: str = ""
    output: str = ""


@dataclass
class Config:
    flags: FlagConfig = field(default_factory=FlagConfig)
    filters: List[RawFilter] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise ConfigError("could not parse config file: top level must be an object")
        flags = data.get("flags") or {}
        filters = data.get("filters") or []
        if not isinstance(flags, dict) or not isinstance(filters, list):
            raise ConfigError("could not parse config file: 'flags' must be an object and 'filters' a list")
        values = {}
        for name in ("bank", "input", "output"):
            value = flags.get(name)
            if value is not None and not isinstance(value, str):
                raise ConfigError(f"could not parse config file: flags.{name} must be a string")
            values[name] = value or ""
        return cls(
            flags=FlagConfig(**values),
            filters=[RawFilter(f) for f in filters],
        )

    @classmethod
    def parse(cls, path=None):
        """Parse a config file, defaulting to config.json."""
        return cls.from_dict(load_config_data(path or DEFAULT_CONFIG))


def validate_config(path=None):
    """Validate a config file against CONFIG_SCHEMA. Raises ConfigError."""
    data = load_config_data(path or DEFAULT_CONFIG)

    validator_cls = validators.validator_for(CONFIG_SCHEMA)
    validator_cls.check_schema(CONFIG_SCHEMA)
    try:
        validator_cls(CONFIG_SCHEMA).validate(data)
    except ValidationError as e:
        where = "/".join(str(p) for p in e.absolute_path) or "<root>"
        raise ConfigError(f"config file invalid: {where}: {e.message}") from e


# ----------------- CSV I/O -----------------
def read_input(path):
    """Read a semicolon-delimited statement into a list of rows."""
    with open_maybe_stdin(path, "r", newline="", encoding="utf-8-sig", errors="ignore") as f:
        reader = csv.reader(f, delimiter=CSV_DELIMITER, quotechar='"')
        rows = []
        for row in reader:
            cleaned = [c.strip() for c in row]
            if any(cleaned):
                rows.append(cleaned)
    return rows


def write_output(path, transactions):
    """Write normalized transactions as semicolon-delimited rows, no header."""
    with open_maybe_stdin(path, "w", newline="", encoding="utf-8") as f:
        w = csv.writer(f, delimiter=CSV_DELIMITER, lineterminator="\n")
        count = 0
        for t in transactions:
            w.writerow(t.csv_row())
            count += 1
    return count


# ----------------- COMMANDS -----------------
def _status_stream(outfile):
    return sys.stderr if str(outfile) in ("-", "/dev/stdout") else sys.stdout


def run_process(args):
    config = Config.parse(args.config)
    log_verbose(args.verbose, f"Loaded config {args.config or DEFAULT_CONFIG}: {len(config.filters)} filter(s)")

    bank = Bank.parse(config.flags.bank)
    adapter = resolve_adapter(bank)

    filters = decode_filters(config.filters, adapter.field_map)
    for f in filters:
        log_verbose(args.verbose, f"Filter: {f}")

    infile = args.input or config.flags.input or adapter.default_input
    outfile = args.output or config.flags.output or DEFAULT_OUTPUT
    status = _status_stream(outfile)

    rows = read_input(infile)
    records = adapter.parse_rows(rows, verbose=args.verbose)
    print(f"🏦 Parsed {adapter.label} statement {infile} ({len(records)} rows)", file=status)

    kept = filter_transactions(records, filters)
    log_verbose(args.verbose, f"{len(kept)} of {len(records)} rows passed {len(filters)} filter(s)")

    transactions = [r.normalize() for r in kept]
    count = write_output(outfile, transactions)
    print(f"✅ Output written to {outfile} ({count} transactions)", file=status)


def run_config_validate(args):
    path = args.file or DEFAULT_CONFIG
    validate_config(path)
    print("Configuration valid!")


def run_version(args):
    print(f"statements v{VERSION}")


def build_parser():
    p = argparse.ArgumentParser(
        prog="statements",
        description="Utility tool for automatically parsing and analyzing bank statements",
    )
    sub = p.add_subparsers(dest="command", required=True)

    proc = sub.add_parser("process", help="Process a bank statement")
    proc.add_argument("-i", "--input", default="", help="input file to process ('-' for stdin)")
    proc.add_argument("-o", "--output", default="", help="output file to write to ('-' for stdout)")
    proc.add_argument("--config", default=DEFAULT_CONFIG, help="configuration file to use")
    proc.add_argument("-v", "--verbose", action="store_true", help="Enable verbose debugging output.")
    proc.set_defaults(func=run_process)

    conf = sub.add_parser("config", help="Configure the CLI")
    conf_sub = conf.add_subparsers(dest="config_command", required=True)
    val = conf_sub.add_parser("validate", help="Validate a configuration file, defaulting to config.json")
    val.add_argument("file", nargs="?", default=None)
    val.set_defaults(func=run_config_validate)

    ver = sub.add_parser("version", help="Print the tool's version")
    ver.set_defaults(func=run_version)
    return p


# ----------------- MAIN -----------------
def main(argv=None):
    args = build_parser().parse_args(argv)
    try:
        args.func(args)
    except (ValueError, OSError) as e:
        print(f"❌ {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()

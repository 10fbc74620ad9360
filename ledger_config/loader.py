"""
Settings Loader (``ledger_config.loader``).

Responsibility
--------------
Loads a YAML settings file and parses it into ``ledger_config.schema``
dataclasses.  Runtime callers go through
``ledger_config.get_active_settings()``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys in a category entry  -> ``KeyError`` propagates.
* Invalid values  -> ``ValueError`` from the schema ``__post_init__``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from ledger_config.schema import CategorySeed, LedgerSettings, NumberingSettings


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a single YAML file; an empty file yields an empty dict."""
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_numbering(data: dict[str, Any]) -> NumberingSettings:
    defaults = NumberingSettings()
    return NumberingSettings(
        invoice_prefix=data.get("invoice_prefix", defaults.invoice_prefix),
        receipt_prefix=data.get("receipt_prefix", defaults.receipt_prefix),
        expense_prefix=data.get("expense_prefix", defaults.expense_prefix),
        width=int(data.get("width", defaults.width)),
    )


def parse_category(data: dict[str, Any]) -> CategorySeed:
    """Parse one starter category; ``name`` and ``type`` are required."""
    return CategorySeed(
        name=data["name"],
        default_expense_type=data["type"],
        default_company_ref=data.get("company"),
    )


def parse_settings(data: dict[str, Any]) -> LedgerSettings:
    """Build LedgerSettings from a parsed YAML mapping."""
    return LedgerSettings(
        default_currency=data.get("default_currency", "PHP"),
        numbering=parse_numbering(data.get("numbering") or {}),
        starter_categories=tuple(
            parse_category(item) for item in data.get("starter_categories") or []
        ),
    )


def load_settings(path: Path | str) -> LedgerSettings:
    """Load and validate a settings file."""
    return parse_settings(load_yaml_file(Path(path)))


def compute_checksum(data: dict[str, Any]) -> str:
    """Deterministic SHA-256 of a settings mapping, for change detection."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()

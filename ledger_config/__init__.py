"""
ledger_config -- single public entrypoint for ledger settings.

Responsibility:
    ``get_active_settings()`` returns the LedgerSettings the services run
    with.  The file comes from ``LEDGER_SETTINGS_PATH`` when set, otherwise
    the packaged ``defaults.yaml``.

Failure modes:
    - ``FileNotFoundError`` -- LEDGER_SETTINGS_PATH points nowhere.
    - ``ValueError`` -- the file fails schema validation.
"""

from __future__ import annotations

import os
from pathlib import Path

from ledger_config.loader import compute_checksum, load_yaml_file, parse_settings
from ledger_config.schema import CategorySeed, LedgerSettings, NumberingSettings
from ledger_kernel.logging_config import get_logger

logger = get_logger("config")

SETTINGS_ENV_VAR = "LEDGER_SETTINGS_PATH"
DEFAULT_SETTINGS_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_settings(path: Path | str | None = None) -> LedgerSettings:
    """
    Load the active settings.

    Resolution order: explicit ``path``, then ``$LEDGER_SETTINGS_PATH``,
    then the packaged defaults.
    """
    if path is None:
        path = os.environ.get(SETTINGS_ENV_VAR) or DEFAULT_SETTINGS_PATH
    path = Path(path)

    data = load_yaml_file(path)
    settings = parse_settings(data)
    logger.info(
        "ledger_settings_loaded",
        extra={
            "path": str(path),
            "checksum": compute_checksum(data),
            "default_currency": settings.default_currency,
            "starter_category_count": len(settings.starter_categories),
        },
    )
    return settings


__all__ = [
    "CategorySeed",
    "DEFAULT_SETTINGS_PATH",
    "LedgerSettings",
    "NumberingSettings",
    "SETTINGS_ENV_VAR",
    "get_active_settings",
]

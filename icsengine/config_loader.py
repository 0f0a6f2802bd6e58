"""icsengine.config_loader

Config loader for icsengine.

- Reads YAML (PyYAML ``safe_load``; JSON files load too, being valid YAML).
- Exposes a typed dataclass ``Config`` and a ``load_config()`` helper that
  accepts an optional path override.
- ``ICSENGINE_*`` environment variables override file values.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ICSConfigError
from .generator import DEFAULT_PRODID, DEFAULT_UID_DOMAIN
from .import_service import DEFAULT_MAX_FILE_SIZE
from .models import DuplicateDetectionConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("icsengine.yaml")

ENV_OVERRIDES = {
    "ICSENGINE_DATE_TOLERANCE_MS": "date_tolerance_ms",
    "ICSENGINE_MAX_FILE_SIZE": "max_file_size",
    "ICSENGINE_LOG_LEVEL": "log_level",
    "ICSENGINE_PRODID": "prodid",
    "ICSENGINE_UID_DOMAIN": "uid_domain",
}

_TRUTHY = ("1", "true", "yes", "on")
_FALSY = ("0", "false", "no", "off")


@dataclass
class Config:
    """Typed configuration for icsengine.

    Fields:
        date_tolerance_ms: duplicate detection tolerance in milliseconds (> 0)
        use_uid: compare by UID when both events carry one
        use_title: require normalized titles to match
        use_location: require normalized locations to match
        max_file_size: upload limit in bytes for imports (> 0)
        prodid: PRODID written into generated calendars
        uid_domain: domain used to build UIDs for events that have none
        log_level: logging level name
    """

    date_tolerance_ms: int = 60000
    use_uid: bool = True
    use_title: bool = True
    use_location: bool = False
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    prodid: str = DEFAULT_PRODID
    uid_domain: str = DEFAULT_UID_DOMAIN
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> Config:
        """Create Config from a plain mapping, applying defaults and validation.

        Numeric-like values are coerced to int and booleans accept the usual
        string spellings. Values that cannot be coerced, and non-positive
        limits, fall back to the default with a warning.
        """
        if data is None:
            data = {}

        # Accept the nested layout as well: {"duplicates": {...}, "export": {...}}
        flat: dict[str, Any] = dict(data)
        for section in ("duplicates", "import", "export", "logging"):
            nested = flat.pop(section, None)
            if isinstance(nested, Mapping):
                for key, value in nested.items():
                    flat.setdefault(key, value)
            elif nested is not None:
                logger.warning("Config section `%s` is not a mapping; ignoring", section)

        def _coerce_positive_int(key: str, default: int) -> int:
            raw = flat.get(key, default)
            try:
                value = int(raw)
            except (TypeError, ValueError):
                logger.warning("Config %s=%r is not an int; using default %d", key, raw, default)
                return default
            if value <= 0:
                logger.warning("Config %s=%d must be positive; using default %d", key, value, default)
                return default
            return value

        def _coerce_bool(key: str, default: bool) -> bool:
            raw = flat.get(key, default)
            if isinstance(raw, bool):
                return raw
            text = str(raw).strip().lower()
            if text in _TRUTHY:
                return True
            if text in _FALSY:
                return False
            logger.warning("Config %s=%r is not a boolean; using default %s", key, raw, default)
            return default

        def _coerce_str(key: str, default: str) -> str:
            raw = flat.get(key)
            if raw is None or not str(raw).strip():
                return default
            return str(raw).strip()

        return cls(
            date_tolerance_ms=_coerce_positive_int("date_tolerance_ms", 60000),
            use_uid=_coerce_bool("use_uid", True),
            use_title=_coerce_bool("use_title", True),
            use_location=_coerce_bool("use_location", False),
            max_file_size=_coerce_positive_int("max_file_size", DEFAULT_MAX_FILE_SIZE),
            prodid=_coerce_str("prodid", DEFAULT_PRODID),
            uid_domain=_coerce_str("uid_domain", DEFAULT_UID_DOMAIN),
            log_level=_coerce_str("log_level", "INFO").upper(),
        )

    def detection_config(self) -> DuplicateDetectionConfig:
        """Build the duplicate detection policy described by this config."""
        return DuplicateDetectionConfig(
            date_tolerance=self.date_tolerance_ms,
            use_uid=self.use_uid,
            use_title=self.use_title,
            use_location=self.use_location,
        )


def _load_yaml(path: Path) -> Any:
    """Load a YAML (or JSON) document, normalizing empty files to an empty mapping."""
    try:
        loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ICSConfigError(f"Unable to parse config file {path}: {exc}") from exc
    # safe_load returns None for empty files
    if loaded is None:
        return {}
    return loaded


def _env_overrides(environ: Mapping[str, str]) -> dict[str, str]:
    overrides = {}
    for env_name, key in ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if value is not None and value.strip():
            overrides[key] = value.strip()
    return overrides


def load_config(path: str | None = None, environ: Mapping[str, str] | None = None) -> Config:
    """Load configuration from a YAML file and the environment.

    Args:
        path: Optional path to the config file. Defaults to ./icsengine.yaml.
        environ: Environment mapping (defaults to ``os.environ``)

    Returns:
        Config dataclass instance with values from file, environment, or defaults.

    Behavior:
    - If the file is missing: defaults (plus environment overrides) are used.
    - If the file exists but is not valid YAML or its top level is not a
      mapping: raises ICSConfigError.
    """
    environ = os.environ if environ is None else environ
    p = Path(path) if path else DEFAULT_CONFIG_PATH
    logger.debug("Attempting to load config from %s", p)

    raw: Any = {}
    if p.exists():
        raw = _load_yaml(p)
        if not isinstance(raw, Mapping):
            logger.warning("Config file %s parsed but top-level is not a mapping: %r", p, raw)
            raise ICSConfigError("Config file must contain a mapping at top level")
        logger.info("Loaded configuration from %s", p)
    else:
        logger.info("Config file %s not found; using defaults", p)

    merged = dict(raw)
    merged.update(_env_overrides(environ))
    cfg = Config.from_dict(merged)
    logger.debug("Configuration values: %s", cfg)
    return cfg

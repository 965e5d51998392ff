"""YAML configuration loader with environment variable overrides.

# ─── CONFIGURATION HIERARCHY ───────────────────────────────────────────
#
# Configuration is loaded in layers (later layers override earlier):
#
#   1. config/config.yaml  - Static defaults checked into the repo
#   2. .env file           - Local developer overrides (not committed)
#   3. Environment vars    - Set at deploy time
#
# Only keys that Settings actually defines are honoured; the YAML file is
# a flat mapping of Settings field names, optionally grouped into sections:
#
#   cache:
#     cycle_interval_seconds: 86400     → cache_cycle_interval_seconds
#   app:
#     port: 3000                        → app_port
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from src.config.settings import Settings


def load_config(path: str = "config/config.yaml") -> dict[str, Any]:
    """Read the YAML file at *path* into a flat ``{settings_field: value}`` dict.

    Nested sections are flattened by joining keys with ``_``.  A missing file
    yields an empty dict.
    """
    config_path = Path(path)
    if not config_path.exists():
        return {}

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    flat: dict[str, Any] = {}
    _flatten(raw, "", flat)
    return {key: value for key, value in flat.items() if key in Settings.model_fields}


def load_settings(path: str = "config/config.yaml", **overrides: Any) -> Settings:
    """Build :class:`Settings` with YAML values underneath environment values.

    Environment variables (and ``.env``) win over YAML; explicit keyword
    *overrides* win over both.
    """
    env_settings = Settings()
    # Fields populated from the environment or .env show up in model_fields_set.
    explicitly_set = env_settings.model_fields_set
    merged = {
        key: value for key, value in load_config(path).items() if key not in explicitly_set
    }
    merged.update(overrides)
    return Settings(**merged) if merged else env_settings


def _flatten(node: dict[str, Any], prefix: str, out: dict[str, Any]) -> None:
    """Recursively flatten *node* into *out*, mutating *out* in place."""
    for key, value in node.items():
        name = f"{prefix}_{key}" if prefix else str(key)
        if isinstance(value, dict):
            _flatten(value, name, out)
        else:
            out[name] = value

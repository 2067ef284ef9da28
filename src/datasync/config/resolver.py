"""
Environment variable substitution for configuration values.

Keeps credentials out of the task file: ``"password": "${SFTP_PASSWORD}"``.
"""

import os
import re
from typing import Any

_VAR_RE = re.compile(r"\$\{([^}]+)\}")


def resolve_config(config_data: Any) -> Any:
    """
    Recursively substitute ``${VAR_NAME}`` in every string value.

    Unset variables are left as the literal placeholder so validation can
    report them.
    """
    if isinstance(config_data, dict):
        return {k: resolve_config(v) for k, v in config_data.items()}
    if isinstance(config_data, list):
        return [resolve_config(item) for item in config_data]
    if isinstance(config_data, str):
        return _VAR_RE.sub(lambda m: os.getenv(m.group(1), m.group(0)), config_data)
    return config_data


def unresolved_placeholders(value: Any) -> list[str]:
    """Names of ``${VAR}`` placeholders still present in ``value``."""
    if isinstance(value, str):
        return _VAR_RE.findall(value)
    return []

import os
import re
import yaml
from pathlib import Path
from typing import Any, Dict

ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::([^}]+))?\}")
ALLOWED_SECTIONS = {"doctainer", "store"}

class ConfigError(ValueError):
    """Raised when a config file exists but cannot be used."""

def interpolate_env_vars(content: str) -> str:
    """Replace ${VAR} or ${VAR:default} with environment variables."""
    def replace_match(match: re.Match) -> str:
        var_name = match.group(1)
        default_value = match.group(2) if match.group(2) is not None else ""
        return os.environ.get(var_name, default_value)

    return ENV_VAR_PATTERN.sub(replace_match, content)

def load_config(path: Path) -> Dict[str, Any]:
    """
    Load doctainer.yaml with environment variable interpolation.

    Only the 'doctainer' and 'store' sections are kept. A missing file yields
    an empty dict; an unreadable or non-mapping file raises ConfigError.
    """
    if not path.exists():
        return {}

    try:
        content = path.read_text()
        interpolated_content = interpolate_env_vars(content)
        full_config = yaml.safe_load(interpolated_content) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc

    if not isinstance(full_config, dict):
        raise ConfigError(f"Config file {path} must contain a mapping at top level.")

    filtered_config = {k: v for k, v in full_config.items() if k in ALLOWED_SECTIONS}

    for section, value in filtered_config.items():
        if value is not None and not isinstance(value, dict):
            raise ConfigError(f"Section '{section}' in {path} must be a mapping.")

    return {k: (v or {}) for k, v in filtered_config.items()}

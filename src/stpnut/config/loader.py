"""Loading of a stpnut YAML config file.

The host names the file; the library does no discovery and reads no
environment variables except ${VAR} references written in that file.

Example:
    >>> config = load_config("stpnut.yaml")
    >>> client = Client.from_config(config)
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from stpnut.api.http import PnutError
from stpnut.config.schema import Config

# ${VAR_NAME} references inside string values
ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)\}")


class ConfigError(PnutError):
    """Raised when a config file cannot be read, parsed or validated."""

    def __init__(self, message: str, *, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


class ConfigNotFoundError(ConfigError):
    """Raised when the named config file does not exist."""


class EnvironmentVariableError(ConfigError):
    """Raised when a ${VAR} reference names an unset variable."""

    def __init__(self, var_name: str, *, path: Path | None = None) -> None:
        super().__init__(f"Environment variable '{var_name}' is not set", path=path)
        self.var_name = var_name


class ConfigValidationError(ConfigError):
    """Raised when the file's contents do not match the Config schema.

    Attributes:
        validation_errors: pydantic error dicts, one per invalid field
    """

    def __init__(self, error: ValidationError, *, path: Path | None = None) -> None:
        self.validation_errors = [dict(err) for err in error.errors()]
        problems = "\n".join(
            f"  - {'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in self.validation_errors
        )
        super().__init__(f"Invalid stpnut config:\n{problems}", path=path)


def expand_env_vars(value: Any, *, strict: bool = True) -> Any:
    """Replace ${VAR} references in strings, lists and dicts.

    Args:
        value: Parsed YAML value.
        strict: Raise for unset variables instead of leaving the
            reference in place.

    Raises:
        EnvironmentVariableError: If strict and a variable is unset.
    """
    if isinstance(value, dict):
        return {key: expand_env_vars(item, strict=strict) for key, item in value.items()}
    if isinstance(value, list):
        return [expand_env_vars(item, strict=strict) for item in value]
    if not isinstance(value, str):
        return value

    def lookup(match: re.Match[str]) -> str:
        name = match.group(1)
        if name in os.environ:
            return os.environ[name]
        if strict:
            raise EnvironmentVariableError(name)
        return match.group(0)

    return ENV_VAR_PATTERN.sub(lookup, value)


def load_config(path: str | Path, *, expand_env: bool = True) -> Config:
    """Load and validate a stpnut config file.

    Args:
        path: Path to the YAML file (``~`` is expanded).
        expand_env: Whether to expand ${VAR} references.

    Returns:
        Validated Config, whose client and realtime sections feed
        Client.from_config.

    Raises:
        ConfigNotFoundError: If the file does not exist.
        ConfigError: If the file cannot be read, is not valid YAML, or
            is not a mapping.
        EnvironmentVariableError: If a referenced variable is unset.
        ConfigValidationError: If the contents fail schema validation.
    """
    config_path = Path(path).expanduser().resolve()

    try:
        raw = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ConfigNotFoundError(f"Config file not found: {config_path}", path=config_path) from e
    except OSError as e:
        raise ConfigError(f"Cannot read config file: {e}", path=config_path) from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file: {e}", path=config_path) from e

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError("Config file must contain a YAML mapping", path=config_path)

    if expand_env:
        try:
            raw = expand_env_vars(raw)
        except EnvironmentVariableError as e:
            e.path = config_path
            raise

    try:
        return Config.model_validate(raw)
    except ValidationError as e:
        raise ConfigValidationError(e, path=config_path) from e

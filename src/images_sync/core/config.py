"""Configuration file discovery, validation and credential resolution."""

import json
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import ValidationError

from .exceptions import ConfigError
from .matching import validate_specs
from .models import AppConfig, StoreSettings

CONFIG_FILENAMES = (
    "images-sync.config.json",
    ".images-syncrc.json",
    ".images-syncrc",
)

# Environment fallbacks for values missing from the config file
CREDENTIAL_ENV_VARS = {
    "access_key_id": "ACCESS_KEY_ID",
    "secret_key": "SECRET_KEY",
    "endpoint_url": "ENDPOINT_URL",
    "region": "REGION",
}


def find_config_file(start: Optional[Path] = None) -> Optional[Path]:
    """Search ``start`` (default: cwd) and its parents for a config file."""
    directory = (start or Path.cwd()).resolve()
    for candidate_dir in (directory, *directory.parents):
        for filename in CONFIG_FILENAMES:
            candidate = candidate_dir / filename
            if candidate.is_file():
                return candidate
    return None


def format_validation_error(error: ValidationError) -> str:
    lines = []
    for detail in error.errors():
        field_path = ".".join(str(part) for part in detail["loc"])
        lines.append(f'Error in config field "{field_path}": {detail["msg"]}')
    return "Configuration validation error:\n" + "\n".join(lines)


def validate_config(raw: Mapping[str, Any]) -> AppConfig:
    """
    Validate raw configuration data.

    Raises:
        ConfigError: on schema errors, specs without dimensions or duplicate
            spec identities
    """
    try:
        config = AppConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(format_validation_error(e)) from e

    validate_specs(config.input_config.output_images)
    return config


def check_pool_size(name: str, size: int) -> None:
    """Raise ConfigError unless ``size`` can bound a worker pool."""
    if isinstance(size, bool) or not isinstance(size, int) or size < 1:
        raise ConfigError(f"{name} must be a positive integer, got {size!r}")


def resolve_credentials(
    settings: StoreSettings, environ: Optional[Mapping[str, str]] = None
) -> StoreSettings:
    """Fill settings missing from the config file from the environment."""
    environ = os.environ if environ is None else environ
    updates: Dict[str, str] = {}
    for field_name, env_var in CREDENTIAL_ENV_VARS.items():
        if getattr(settings, field_name) is None and environ.get(env_var):
            updates[field_name] = environ[env_var]
    return settings.model_copy(update=updates)


def load_config(
    path: Optional[Union[str, Path]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> AppConfig:
    """
    Load, validate and resolve the configuration file.

    Args:
        path: Explicit config file; searched for when omitted
        environ: Environment used for credential fallbacks

    Returns:
        Validated configuration with credentials resolved
    """
    config_path = Path(path) if path else find_config_file()
    if config_path is None or not config_path.is_file():
        raise ConfigError("configuration file not found or is empty")

    text = config_path.read_text(encoding="utf-8").strip()
    if not text:
        raise ConfigError("configuration file not found or is empty")

    try:
        raw = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Unable to parse {config_path}: {e}") from e
    if not isinstance(raw, dict) or not raw:
        raise ConfigError("configuration file not found or is empty")

    config = validate_config(raw)
    return config.model_copy(
        update={"credentials": resolve_credentials(config.credentials, environ)}
    )

# bridaprep/core/config.py

import copy
import json
import logging
from importlib import resources
from pathlib import Path
from typing import Any

import jsonschema
from jsonschema import Draft7Validator

SCHEMA: dict[str, Any] = json.loads(
    resources.files("bridaprep.schema").joinpath("config.v1.schema.json").read_text()
)

log = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "bridaprep" / "config.json"

# grab the un-hooked "properties" validator
_default_properties = Draft7Validator.VALIDATORS["properties"]


def _set_defaults(validator, properties, instance, schema):
    """
    jsonschema hook: whenever a property has a 'default', insert a copy of it,
    then delegate to the original Draft7 `properties` validator.
    """
    if not isinstance(instance, dict):
        return
    for prop, subschema in properties.items():
        if "default" in subschema:
            instance.setdefault(prop, copy.deepcopy(subschema["default"]))

    yield from _default_properties(validator, properties, instance, schema)


_DefaultingValidator = jsonschema.validators.extend(
    Draft7Validator,
    {"properties": _set_defaults},
)


def _deep_update(base: dict, updates: dict) -> None:
    """
    Recursively update base with updates (mutates base). Lists are replaced.
    """
    for k, v in updates.items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_update(base[k], v)
        else:
            base[k] = v


def default_config() -> dict[str, Any]:
    """Schema defaults only."""
    config: dict[str, Any] = {}
    for _ in _DefaultingValidator(SCHEMA).iter_errors(config):
        pass
    return config


def load_config(config_path: Path = DEFAULT_CONFIG_PATH) -> dict[str, Any]:
    """
    Loads and validates configuration against our JSON Schema.
    Fills in any missing properties with the schema's own default values.
    An unreadable or invalid user file falls back to the defaults.
    """
    log.debug(f"Attempting to load configuration from: {config_path}")
    config = default_config()
    final_validator = Draft7Validator(SCHEMA)

    if not config_path.is_file():
        log.debug(f"No config at {config_path}; using schema defaults.")
        return config

    try:
        user_config = json.loads(config_path.read_text())
        final_validator.validate(user_config)
    except json.JSONDecodeError as e:
        log.error(f"Error parsing JSON in {config_path}: {e}")
        log.warning("Using schema defaults only.")
        return config
    except jsonschema.ValidationError as e:
        log.error(f"Configuration validation error: {e.message}")
        log.warning("Falling back to schema defaults.")
        return config

    _deep_update(config, user_config)

    # Merged config must still be valid; this is a programming error if not
    final_validator.validate(config)

    log.debug("Configuration loaded and validated.")
    return config


def generate_default_config(config_path: Path = DEFAULT_CONFIG_PATH) -> bool:
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(json.dumps(default_config(), indent=4) + "\n")
    except OSError as e:
        log.error(f"Failed to write default config: {e}")
        return False
    log.info("Default configuration file created.")
    return True

# config/config_loader.py
# -*- coding: utf-8 -*-
"""
Configuration loader for the application.

Handles loading settings from Pydantic model defaults, a YAML file,
environment variables, and command-line arguments, applying this order of
precedence:
1. Pydantic Model Defaults
2. YAML Configuration File
3. Environment Variables
4. Command-Line Arguments
"""

import argparse
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import ValidationError

from .config_models import AppSettings

module_logger = logging.getLogger(__name__)

ENV_PREFIX = "GTFS_EXTRACT_"

# CLI argument name -> settings path.
CLI_SETTING_PATHS: Dict[str, tuple] = {
    "log_level": ("log_level",),
    "clip_to_bbox": ("clip_to_bbox",),
    "copy_extra_files": ("writer", "copy_extra_files"),
}


def _deep_update(
    source: Dict[str, Any], overrides: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Recursively updates a dictionary `source` with values from another dictionary
    `overrides`. Nested dictionaries are merged key by key; None values in
    `overrides` never replace an existing value.

    Parameters:
        source: Dict[str, Any]
            The dictionary to be updated. This dictionary gets modified in place.
        overrides: Dict[str, Any]
            The dictionary containing values to update or add to the `source`.

    Returns:
        Dict[str, Any]:
            The updated dictionary after applying all `overrides` to the input `source`.
    """
    for key, value in overrides.items():
        if (
            isinstance(value, dict)
            and key in source
            and isinstance(source[key], dict)
        ):
            source[key] = _deep_update(source[key], value)
        elif value is not None:
            source[key] = value
        elif key not in source:
            source[key] = value
    return source


def _env_overrides() -> Dict[str, Any]:
    """
    Collect the settings given by environment variables.

    Only variables that are actually set are returned, so that they can be
    applied on top of the YAML file without resetting it to defaults.
    """
    environ = {k.upper() for k in os.environ}
    overrides: Dict[str, Any] = {}
    for key, value in AppSettings().model_dump().items():
        name = f"{ENV_PREFIX}{key}".upper()
        if name in environ:
            overrides[key] = value
        elif isinstance(value, dict):
            nested = {
                k: v for k, v in value.items() if f"{name}__{k}".upper() in environ
            }
            if nested:
                overrides[key] = nested
    return overrides


def _cli_overrides(cli_args: argparse.Namespace) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    for cli_key, cli_value in vars(cli_args).items():
        if cli_value is None or cli_key not in CLI_SETTING_PATHS:
            continue
        path = CLI_SETTING_PATHS[cli_key]
        target = overrides
        for part in path[:-1]:
            target = target.setdefault(part, {})
        target[path[-1]] = cli_value
    return overrides


def load_yaml_config(
    config_file_path: Union[str, Path],
    current_logger: Optional[logging.Logger] = None,
) -> Dict[str, Any]:
    """
    Read a YAML configuration file.

    A missing, unreadable or malformed file is logged and treated as empty.

    Args:
        config_file_path: Path to the YAML file.
        current_logger: Optional logger to use instead of the module logger.

    Returns:
        The parsed mapping, or an empty dict.
    """
    logger_to_use = current_logger if current_logger else module_logger
    yaml_config_path = Path(config_file_path)
    if not yaml_config_path.is_file():
        logger_to_use.info(
            f"Configuration file '{yaml_config_path}' not found. Using defaults, environment variables, and CLI args."
        )
        return {}
    try:
        with open(yaml_config_path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger_to_use.warning(
            f"Could not parse YAML config file '{yaml_config_path}': {e}. Using defaults and environment variables."
        )
        return {}
    except IOError as e:
        logger_to_use.warning(
            f"Could not read config file '{yaml_config_path}': {e}. Using defaults and environment variables."
        )
        return {}
    if yaml_data is None:
        return {}
    if not isinstance(yaml_data, dict):
        logger_to_use.warning(
            f"Config file '{yaml_config_path}' does not contain a valid YAML dictionary. Ignoring."
        )
        return {}
    logger_to_use.info(f"Loaded configuration from {yaml_config_path}")
    return yaml_data


def load_app_settings(
    cli_args: Optional[argparse.Namespace] = None,
    config_file_path: Optional[Union[str, Path]] = "config.yaml",
    current_logger: Optional[logging.Logger] = None,
) -> AppSettings:
    """
    Loads application settings with the following precedence:
    1. Pydantic Model Defaults.
    2. Values from the YAML configuration file.
    3. Environment Variables prefixed with GTFS_EXTRACT_.
    4. Command-Line Arguments (highest precedence, overrides all else).

    Args:
        cli_args: Parsed command-line arguments (from argparse).
        config_file_path: Path to the YAML configuration file, or None to skip it.
        current_logger: Optional logger to use instead of the module logger.

    Returns:
        An instance of AppSettings with the fully resolved configuration.

    Raises:
        SystemExit: If the merged configuration does not validate.
    """
    logger_to_use = current_logger if current_logger else module_logger

    current_values_dict = AppSettings.model_construct().model_dump()

    if config_file_path:
        current_values_dict = _deep_update(
            current_values_dict, load_yaml_config(config_file_path, logger_to_use)
        )

    try:
        current_values_dict = _deep_update(current_values_dict, _env_overrides())
    except ValidationError as e:
        logger_to_use.error(f"Configuration validation failed: {e}")
        raise SystemExit(f"Configuration error: {e}") from e

    if cli_args:
        current_values_dict = _deep_update(current_values_dict, _cli_overrides(cli_args))

    try:
        final_settings = AppSettings.model_validate(current_values_dict)
    except ValidationError as e:
        logger_to_use.error(f"Configuration validation failed: {e}")
        raise SystemExit(f"Configuration error: {e}") from e

    logger_to_use.debug(
        "Successfully loaded and validated application settings"
    )
    return final_settings

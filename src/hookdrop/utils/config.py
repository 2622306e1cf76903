import logging
from collections.abc import Iterable
from os import PathLike
from typing import Any

import yaml

__all__ = [
    "deep_merge",
    "load_config_files",
]

log = logging.getLogger(__name__)


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Return ``base`` updated with ``override``, merging nested mappings key by key.

    ``None`` in ``override`` keeps the value from ``base``. Neither argument is modified;
    type checks are left to the settings models validating the result.
    """
    merged = dict(base)
    for key, value in override.items():
        if value is None:
            continue
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def load_config_files(config_files: Iterable[str | PathLike]) -> dict[str, Any]:
    """
    Load YAML configuration files in order, later files overriding earlier ones.

    :param config_files: Paths to YAML files. Empty files are skipped.
    :return: The merged configuration.
    :raises RuntimeError: If a file cannot be read, cannot be parsed or does not hold a mapping.
    """
    configuration: dict[str, Any] = {}
    for config_file in config_files:
        try:
            with open(config_file) as fd:
                content = yaml.safe_load(fd)
        except (OSError, yaml.YAMLError) as e:
            raise RuntimeError(f"Error reading configuration file: '{config_file}'") from e

        if content is None:
            log.debug(f"Skipping empty configuration file: {config_file}")
            continue
        if not isinstance(content, dict):
            raise RuntimeError(f"Configuration file '{config_file}' does not hold a mapping")
        configuration = deep_merge(configuration, content)
        log.debug(f"Loaded configuration file: {config_file}")

    return configuration

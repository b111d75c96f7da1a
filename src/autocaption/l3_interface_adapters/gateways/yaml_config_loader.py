"""Gateway: YAML configuration loader — implements ConfigLoader port."""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from autocaption.l1_entities.config import AppConfig
from autocaption.l3_interface_adapters.gateways.paths import DEFAULT_CONFIG_PATHS, find_user_config

log = logging.getLogger('acap.config')

KNOWN_SECTIONS = frozenset(AppConfig.model_fields)


class YamlConfigLoader:
    """Reads the user's YAML config and layers command-line overrides on top.

    Override values of ``None`` mean "flag not given" and never replace file values.
    """

    def load(
        self,
        config_path: str | None = None,
        overrides: dict | None = None,
    ) -> AppConfig:
        """Validate the file as a complete config; no defaults are filled in here."""
        return AppConfig.model_validate(self.load_raw(config_path, overrides))

    def load_raw(
        self,
        config_path: str | None = None,
        overrides: dict | None = None,
    ) -> dict:
        path = _locate(config_path)
        data = _read_mapping(path) if path is not None else {}
        unknown = sorted(set(data) - KNOWN_SECTIONS)
        if unknown:
            log.warning('Ignoring unknown config section(s) in %s: %s', path, ', '.join(unknown))
        if overrides:
            deep_merge(data, prune_none(overrides))
        return data


def _locate(config_path: str | None) -> Path | None:
    if config_path is None:
        return find_user_config(DEFAULT_CONFIG_PATHS)
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f'Config file not found: {path}')
    return path


def _read_mapping(path: Path) -> dict:
    data = yaml.safe_load(path.read_text(encoding='utf-8')) or {}
    if not isinstance(data, dict):
        raise ValueError(f'Config root must be a mapping, got {type(data).__name__}')
    log.debug('Loaded config from %s', path)
    return data


def prune_none(overrides: dict) -> dict:
    """Drop ``None`` leaves and any section left empty by that."""
    pruned: dict = {}
    for key, value in overrides.items():
        if isinstance(value, dict):
            value = prune_none(value)
            if not value:
                continue
        elif value is None:
            continue
        pruned[key] = value
    return pruned


def deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge *override* into *base* (mutates base)."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            deep_merge(base[key], value)
        else:
            base[key] = value
    return base

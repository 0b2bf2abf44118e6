"""Engine configuration and transaction input loader."""

import json
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from swap_cycle_tracker.core.config import EngineConfig
from swap_cycle_tracker.core.models import RawTransaction
from swap_cycle_tracker.exceptions import ConfigError, InputError

DEFAULT_CONFIG_PATH = Path(__file__).parent / "engine.yaml"


def load_config_data(path: str | Path | None = None) -> dict[str, Any]:
    """
    Load raw configuration data, user values layered over packaged defaults.

    Parameters
    ----------
    path : str | Path | None
        User configuration file. Only the packaged defaults are used if None.

    Returns
    -------
    dict[str, Any]
        Merged configuration mapping

    Raises
    ------
    ConfigError
        If a file cannot be read or is not a YAML mapping

    """
    data = _read_yaml_mapping(DEFAULT_CONFIG_PATH)
    if path is not None:
        data.update(_read_yaml_mapping(Path(path)))
    return data


def load_engine_config(path: str | Path | None = None) -> EngineConfig:
    """
    Load the engine configuration.

    Parameters
    ----------
    path : str | Path | None
        User configuration file overriding the packaged defaults key by key

    Returns
    -------
    EngineConfig
        Validated configuration

    Raises
    ------
    ConfigError
        If the file cannot be read or fails validation

    """
    data = load_config_data(path)
    try:
        return EngineConfig.model_validate(data)
    except ValidationError as e:
        msg = f"Invalid engine configuration: {e}"
        raise ConfigError(msg) from e


def load_transactions(path: str | Path) -> list[RawTransaction]:
    """
    Load raw transactions from a JSON or YAML file.

    The file holds either a list of transactions or a mapping with a
    ``transactions`` list. JSON numbers are read as ``Decimal``.

    Parameters
    ----------
    path : str | Path
        Input file (``.json``, ``.yaml`` or ``.yml``)

    Returns
    -------
    list[RawTransaction]
        Parsed transactions

    Raises
    ------
    InputError
        If the file cannot be read or parsed

    """
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            if path.suffix.lower() in {".yaml", ".yml"}:
                data = yaml.safe_load(f)
            else:
                data = json.load(f, parse_float=Decimal)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
        msg = f"Cannot read transactions from {path}: {e}"
        raise InputError(msg) from e

    if isinstance(data, dict):
        data = data.get("transactions", [])
    if not isinstance(data, list):
        msg = f"{path} must contain a list of transactions"
        raise InputError(msg)

    try:
        return [RawTransaction.model_validate(item) for item in data]
    except ValidationError as e:
        msg = f"Invalid transaction in {path}: {e}"
        raise InputError(msg) from e


def _read_yaml_mapping(path: Path) -> dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        msg = f"Cannot read configuration {path}: {e}"
        raise ConfigError(msg) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        msg = f"Configuration {path} must be a mapping"
        raise ConfigError(msg)
    return data

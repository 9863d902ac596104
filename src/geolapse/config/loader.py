"""
YAML configuration loader for geolapse.

Loads YAML configurations and validates them against the Pydantic schemas.
Supports ``${NAME}`` substitution from runtime parameters or environment
variables (e.g. ``colour_ramp: ${RAMP_PATH}``).
"""

import os
import re
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .schema import GeolapseConfig


PLACEHOLDER = re.compile(r"\$\{(\w+)\}")


def _lookup_param(name: str, params: Dict[str, Any]) -> Any:
    if name in params:
        return params[name]
    if name in os.environ:
        return os.environ[name]
    raise ValueError(
        f"Missing parameter: {name}. Set it as a runtime parameter "
        f"(known: {sorted(params)}) or as an environment variable."
    )


def substitute_params(obj: Any, params: Dict[str, Any]) -> Any:
    """
    Recursively substitute ``${NAME}`` placeholders.

    A value that is exactly one placeholder takes the parameter as-is (so
    ``height: ${H}`` can receive an int); placeholders embedded in longer
    strings are formatted in. Runtime params win over environment variables.

    Example:
        >>> substitute_params({"height": "${h}"}, {"h": 900})
        {'height': 900}
        >>> substitute_params(["${root}/heat.csv"], {"root": "ramps"})
        ['ramps/heat.csv']
    """
    if isinstance(obj, dict):
        return {key: substitute_params(value, params) for key, value in obj.items()}
    if isinstance(obj, list):
        return [substitute_params(item, params) for item in obj]
    if not isinstance(obj, str):
        return obj

    whole = PLACEHOLDER.fullmatch(obj)
    if whole:
        return _lookup_param(whole.group(1), params)
    return PLACEHOLDER.sub(lambda m: str(_lookup_param(m.group(1), params)), obj)


def load_yaml(path: Path) -> Dict[str, Any]:
    """
    Load a YAML mapping. An empty document yields an empty dict.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the YAML is malformed or not a mapping
    """
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(path, "r") as f:
        try:
            config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {path}: {e}")

    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ValueError(f"Configuration must be a YAML dict, got {type(config)}")

    return config


def load_config(
    path: Path,
    runtime_params: Optional[Dict[str, Any]] = None,
) -> GeolapseConfig:
    """
    Load and validate a geolapse configuration file.

    Raises:
        FileNotFoundError: If the config file doesn't exist
        ValueError: If YAML is malformed or validation fails
    """
    raw_config = load_yaml(Path(path))
    raw_config = substitute_params(raw_config, runtime_params or {})

    try:
        config = GeolapseConfig(**raw_config)
    except Exception as e:
        raise ValueError(f"Configuration validation failed for {path}:\n{e}")

    return config


def save_config(config: GeolapseConfig, path: Union[str, Path]) -> None:
    """Write a configuration back to YAML."""
    config_dict = config.model_dump(mode="json")

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.dump(config_dict, f, default_flow_style=False, sort_keys=False)

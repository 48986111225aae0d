"""Address registry loader."""

import os
from pathlib import Path

import yaml
from pydantic import ValidationError

from holder_ledger.core.errors import RegistryError
from holder_ledger.data.registry import AddressRegistry

REGISTRY_ENV = "HOLDER_LEDGER_REGISTRY"
DEFAULT_REGISTRY_PATH = Path(__file__).parent / "registry.yaml"


def registry_path() -> Path:
    """
    Path of the registry in effect.

    Returns
    -------
    Path
        ``$HOLDER_LEDGER_REGISTRY`` when set, the packaged registry otherwise

    """
    override = os.getenv(REGISTRY_ENV)
    return Path(override) if override else DEFAULT_REGISTRY_PATH


def load_registry(path: str | Path | None = None) -> AddressRegistry:
    """
    Load and validate the address registry.

    Parameters
    ----------
    path : str | Path | None
        Registry YAML file; defaults to ``registry_path()``

    Returns
    -------
    AddressRegistry
        Validated registry

    Raises
    ------
    RegistryError
        If the file is missing, not valid YAML, or fails validation

    """
    path = Path(path) if path else registry_path()
    try:
        with open(path, encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except OSError as e:
        msg = f"Cannot read address registry {path}: {e}"
        raise RegistryError(msg) from e
    except yaml.YAMLError as e:
        msg = f"Address registry {path} is not valid YAML: {e}"
        raise RegistryError(msg) from e

    try:
        return AddressRegistry.model_validate(raw)
    except ValidationError as e:
        msg = f"Address registry {path} is invalid: {e}"
        raise RegistryError(msg) from e

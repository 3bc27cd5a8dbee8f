"""
Configuration loading utilities.

This module loads the storage endpoint configuration and function package
manifests from JSON files.

File formats:
    storage config:
        {
            "subscription_id": "...",           (required)
            "resource_group_name": "rg-pl-acme-app",  (required)
            "location": "westeurope",
            "organization": "acme",
            "project": "...",
            "environment": "...",
            "storage_account_name": "..."
        }

    function manifest:
        {
            "function_app_name": "orders-api",  (required)
            "runtime": "~4",
            "functions": [{"name": "...", "code": "..." | "code_file": "...", ...}]
        }

Usage:
    from artifact_pipeline.core.config_loader import load_storage_config

    config = load_storage_config(Path("deploy/storage.json"))
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional

from .context import StorageEndpointConfig
from .exceptions import ConfigurationError

STORAGE_CONFIG_REQUIRED_FIELDS = ["subscription_id", "resource_group_name"]
STORAGE_CONFIG_OPTIONAL_FIELDS = [
    "location", "organization", "project", "environment", "storage_account_name"
]
MANIFEST_REQUIRED_FIELDS = ["function_app_name"]


def _load_json_file(file_path: Path) -> Dict[str, Any]:
    """
    Load a JSON file that must contain an object.

    Raises:
        ConfigurationError: If the file is missing, not valid JSON, or not an object
    """
    if not file_path.exists():
        raise ConfigurationError(
            f"Required configuration file not found: {file_path.name}",
            config_file=str(file_path)
        )

    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(
            f"Invalid JSON in configuration file: {e}",
            config_file=str(file_path)
        ) from e

    if not isinstance(data, dict):
        raise ConfigurationError(
            "Configuration file must contain a JSON object",
            config_file=str(file_path)
        )
    return data


def _require_fields(data: Dict[str, Any], fields: list, file_path: Path) -> None:
    for field_name in fields:
        if not data.get(field_name):
            raise ConfigurationError(
                f"Missing required field '{field_name}'",
                config_file=str(file_path)
            )


def load_storage_config(config_path: Path, credential: Optional[Any] = None) -> StorageEndpointConfig:
    """
    Load a StorageEndpointConfig from a JSON file.

    Args:
        config_path: Path to the JSON file
        credential: Optional async token credential to attach

    Returns:
        The immutable StorageEndpointConfig

    Raises:
        ConfigurationError: If the file is missing/invalid or required fields are absent
    """
    config_path = Path(config_path)
    data = _load_json_file(config_path)
    _require_fields(data, STORAGE_CONFIG_REQUIRED_FIELDS, config_path)

    optional = {k: data[k] for k in STORAGE_CONFIG_OPTIONAL_FIELDS if data.get(k)}

    return StorageEndpointConfig(
        subscription_id=data["subscription_id"],
        resource_group_name=data["resource_group_name"],
        credential=credential,
        **optional
    )


def load_function_manifest(manifest_path: Path):
    """
    Load a FunctionPackageManifest from a JSON file.

    Function entries may carry their code inline ("code") or point at a file
    relative to the manifest ("code_file").

    Raises:
        ConfigurationError: If the file is missing/invalid, required fields are
            absent, or a referenced code file does not exist
    """
    from artifact_pipeline.packaging.models import FunctionPackageManifest

    manifest_path = Path(manifest_path)
    data = _load_json_file(manifest_path)
    _require_fields(data, MANIFEST_REQUIRED_FIELDS, manifest_path)

    functions = data.get("functions", [])
    if not isinstance(functions, list):
        raise ConfigurationError("'functions' must be a list", config_file=str(manifest_path))

    resolved = []
    for entry in functions:
        entry = dict(entry)
        code_file = entry.pop("code_file", None)
        if code_file and "code" not in entry:
            code_path = manifest_path.parent / code_file
            if not code_path.exists():
                raise ConfigurationError(
                    f"Code file not found for function '{entry.get('name')}': {code_file}",
                    config_file=str(manifest_path)
                )
            entry["code"] = code_path.read_text(encoding="utf-8")
        resolved.append(entry)

    try:
        return FunctionPackageManifest.from_dict({**data, "functions": resolved})
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigurationError(
            f"Invalid function manifest: {e}",
            config_file=str(manifest_path)
        ) from e

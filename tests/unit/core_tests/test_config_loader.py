"""
Unit tests for JSON configuration loading.
"""

import json
from unittest.mock import MagicMock

import pytest

from artifact_pipeline.core.config_loader import load_function_manifest, load_storage_config
from artifact_pipeline.core.exceptions import ConfigurationError


def write_json(path, data):
    path.write_text(json.dumps(data))
    return path


class TestLoadStorageConfig:
    """Tests for load_storage_config()."""

    def test_loads_required_and_optional_fields(self, tmp_path):
        """All known fields should be mapped onto the config."""
        path = write_json(tmp_path / "storage.json", {
            "subscription_id": "sub-1",
            "resource_group_name": "rg-pl-acme-app",
            "location": "northeurope",
            "organization": "acme",
            "project": "shop",
        })

        config = load_storage_config(path)

        assert config.subscription_id == "sub-1"
        assert config.resource_group_name == "rg-pl-acme-app"
        assert config.location == "northeurope"
        assert config.organization == "acme"
        assert config.project == "shop"
        assert config.environment is None

    def test_default_location(self, tmp_path):
        """location defaults to westeurope."""
        path = write_json(tmp_path / "storage.json", {"subscription_id": "s", "resource_group_name": "rg"})
        assert load_storage_config(path).location == "westeurope"

    def test_attaches_credential(self, tmp_path):
        """A credential passed in should be attached to the config."""
        path = write_json(tmp_path / "storage.json", {"subscription_id": "s", "resource_group_name": "rg"})
        credential = MagicMock()

        assert load_storage_config(path, credential=credential).credential is credential

    def test_missing_file(self, tmp_path):
        """A missing file raises ConfigurationError."""
        with pytest.raises(ConfigurationError, match="not found"):
            load_storage_config(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path):
        """Malformed JSON raises ConfigurationError."""
        path = tmp_path / "storage.json"
        path.write_text("{nope")

        with pytest.raises(ConfigurationError, match="Invalid JSON"):
            load_storage_config(path)

    def test_not_an_object(self, tmp_path):
        """A JSON list is rejected."""
        path = write_json(tmp_path / "storage.json", ["a"])

        with pytest.raises(ConfigurationError, match="JSON object"):
            load_storage_config(path)

    def test_missing_required_field(self, tmp_path):
        """A missing resource group raises ConfigurationError naming the field."""
        path = write_json(tmp_path / "storage.json", {"subscription_id": "s"})

        with pytest.raises(ConfigurationError, match="resource_group_name") as exc_info:
            load_storage_config(path)

        assert exc_info.value.config_file == str(path)


class TestLoadFunctionManifest:
    """Tests for load_function_manifest()."""

    def test_inline_code(self, tmp_path):
        """Functions with inline code load as-is."""
        path = write_json(tmp_path / "manifest.json", {
            "function_app_name": "func-acme",
            "runtime": "~4",
            "functions": [{
                "name": "hello",
                "code": "module.exports = 1;",
                "httpTrigger": {"methods": ["GET"], "authLevel": "anonymous", "route": "hi"},
            }],
        })

        manifest = load_function_manifest(path)

        assert manifest.function_app_name == "func-acme"
        assert manifest.runtime == "~4"
        func = manifest.functions[0]
        assert func.code == "module.exports = 1;"
        assert func.http_trigger.auth_level == "anonymous"
        assert func.http_trigger.route == "hi"

    def test_code_file_relative_to_manifest(self, tmp_path):
        """code_file is resolved next to the manifest."""
        (tmp_path / "src").mkdir()
        (tmp_path / "src" / "hello.js").write_text("module.exports = 2;")
        path = write_json(tmp_path / "manifest.json", {
            "function_app_name": "func-acme",
            "functions": [{"name": "hello", "code_file": "src/hello.js"}],
        })

        assert load_function_manifest(path).functions[0].code == "module.exports = 2;"

    def test_missing_code_file(self, tmp_path):
        """A missing code_file raises ConfigurationError."""
        path = write_json(tmp_path / "manifest.json", {
            "function_app_name": "func-acme",
            "functions": [{"name": "hello", "code_file": "missing.js"}],
        })

        with pytest.raises(ConfigurationError, match="Code file not found"):
            load_function_manifest(path)

    def test_function_without_name(self, tmp_path):
        """Entries without a name are rejected."""
        path = write_json(tmp_path / "manifest.json", {
            "function_app_name": "func-acme",
            "functions": [{"code": "x"}],
        })

        with pytest.raises(ConfigurationError, match="Invalid function manifest"):
            load_function_manifest(path)

    def test_functions_must_be_list(self, tmp_path):
        """A non-list functions value is rejected."""
        path = write_json(tmp_path / "manifest.json", {"function_app_name": "f", "functions": {}})

        with pytest.raises(ConfigurationError, match="must be a list"):
            load_function_manifest(path)

    def test_missing_app_name(self, tmp_path):
        """function_app_name is required."""
        path = write_json(tmp_path / "manifest.json", {"functions": []})

        with pytest.raises(ConfigurationError, match="function_app_name"):
            load_function_manifest(path)

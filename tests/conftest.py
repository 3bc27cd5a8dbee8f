import base64
import os
import sys
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

# Allow running the tests from a plain checkout (without pip install -e .)
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src")))

from artifact_pipeline.config import PipelineSettings
from artifact_pipeline.core.context import StorageEndpointConfig

SUBSCRIPTION_ID = "00000000-0000-0000-0000-000000000001"
RESOURCE_GROUP = "rg-pl-acme-app"
FIXED_NOW = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)
# generate_container_sas needs a valid base64 key
ACCOUNT_KEY = base64.b64encode(b"0" * 32).decode()


class AsyncIter:
    """Async iterator over a fixed list, stands in for SDK paging results."""

    def __init__(self, items, error=None):
        self._items = list(items)
        self._error = error

    def __aiter__(self):
        return self._gen()

    async def _gen(self):
        for item in self._items:
            yield item
        if self._error is not None:
            raise self._error


@pytest.fixture(autouse=True)
def clean_pipeline_env(monkeypatch):
    """Keep developer environment variables out of PipelineSettings."""
    for key in list(os.environ):
        if key.startswith("ARTIFACT_PIPELINE_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def settings():
    return PipelineSettings(_env_file=None)


@pytest.fixture
def storage_config():
    """Config with an injected credential so azure.identity is never touched."""
    return StorageEndpointConfig(
        subscription_id=SUBSCRIPTION_ID,
        resource_group_name=RESOURCE_GROUP,
        location="westeurope",
        project="shop",
        environment="dev",
        credential=MagicMock(name="credential"),
    )


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def management_client():
    """Storage management client where the account already exists."""
    client = MagicMock()
    client.storage_accounts.get_properties = AsyncMock(return_value=SimpleNamespace(name="existing"))

    poller = MagicMock()
    poller.result = AsyncMock(return_value=SimpleNamespace(name="created"))
    client.storage_accounts.begin_create = AsyncMock(return_value=poller)

    client.storage_accounts.list_keys = AsyncMock(
        return_value=SimpleNamespace(keys=[SimpleNamespace(value=ACCOUNT_KEY)])
    )
    client.close = AsyncMock()
    return client


def make_blob_client(name):
    blob_client = MagicMock()
    blob_client.url = f"https://acmecdk.blob.core.windows.net/arm-templates/{name}"
    blob_client.upload_blob = AsyncMock()
    return blob_client


@pytest.fixture
def container_client():
    client = MagicMock()
    client.exists = AsyncMock(return_value=True)
    client.create_container = AsyncMock()
    client.delete_blob = AsyncMock()
    client.blob_clients = {}

    def get_blob_client(name):
        if name not in client.blob_clients:
            client.blob_clients[name] = make_blob_client(name)
        return client.blob_clients[name]

    client.get_blob_client = MagicMock(side_effect=get_blob_client)
    client.list_blobs = MagicMock(return_value=AsyncIter([]))
    return client


@pytest.fixture
def blob_service(container_client):
    service = MagicMock()
    service.get_container_client = MagicMock(return_value=container_client)
    service.close = AsyncMock()
    return service


@pytest.fixture
def blob_service_factory(blob_service):
    return MagicMock(return_value=blob_service)


@pytest.fixture
def provisioner(storage_config, settings, management_client, blob_service_factory, clock):
    from artifact_pipeline.providers.azure.storage_provisioner import StorageProvisioner

    return StorageProvisioner(
        storage_config,
        settings=settings,
        management_client=management_client,
        blob_service_factory=blob_service_factory,
        clock=clock,
    )

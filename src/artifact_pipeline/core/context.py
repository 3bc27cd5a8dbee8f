"""
Storage endpoint configuration and provisioning results.

Instead of a module-level singleton, each StorageProvisioner owns exactly one
StorageEndpointConfig (input) and at most one ProvisionedEndpoint (output).
Construct one provisioner per deployment session.

Lifecycle:
    1. StorageEndpointConfig is built once (code or load_storage_config)
    2. StorageProvisioner.provision() produces the ProvisionedEndpoint
    3. The endpoint is cached for the provisioner's lifetime, never mutated
    4. Each upload returns a fresh UploadResult to the caller
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class StorageEndpointConfig:
    """
    Immutable input describing where artifacts should live.

    Attributes:
        subscription_id: Azure subscription ID
        resource_group_name: Resource group holding the storage account
        location: Azure region used when the account has to be created
        organization: Naming seed; extracted from the resource group when omitted
        project: Naming seed (informational, used in tags)
        environment: Naming seed (informational, used in tags)
        storage_account_name: Explicit account name, skips deterministic naming
        credential: Async token credential; DefaultAzureCredential when omitted
    """

    subscription_id: str
    resource_group_name: str
    location: str = "westeurope"
    organization: Optional[str] = None
    project: Optional[str] = None
    environment: Optional[str] = None
    storage_account_name: Optional[str] = None
    credential: Optional[Any] = field(default=None, repr=False, compare=False)


@dataclass(frozen=True)
class ProvisionedEndpoint:
    """
    The storage endpoint established for one deployment session.

    Attributes:
        account_name: Storage account name (computed or explicit)
        account_url: Blob endpoint, e.g. https://acmecdk1a2b3c.blob.core.windows.net
        container_name: Artifact container
        deployment_id: Per-session correlation token namespacing every blob key
    """

    account_name: str
    account_url: str
    container_name: str
    deployment_id: str


@dataclass(frozen=True)
class UploadResult:
    """Returned for every uploaded artifact; not retained by the provisioner."""

    blob_url: str
    sas_url: str
    checksum: str


@dataclass
class CleanupReport:
    """
    Outcome of one retention cleanup pass.

    Attributes:
        deleted: Blob names removed
        skipped: Blobs without an upload timestamp (left untouched)
        failed: Blob names whose deletion or timestamp parsing failed
    """

    deleted: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    @property
    def completed(self) -> bool:
        return not self.failed

    def to_dict(self) -> Dict[str, List[str]]:
        return {
            "deleted": list(self.deleted),
            "skipped": list(self.skipped),
            "failed": list(self.failed),
        }

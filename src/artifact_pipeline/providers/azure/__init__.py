"""
Azure artifact storage.

Modules:
    naming: Deterministic storage account names, deployment IDs, blob keys
    signing: SharedKeySigner (KeySigner capability) and credential resolution
    storage_provisioner: StorageProvisioner (provision, upload, SAS, cleanup)
"""

from .naming import ArtifactNaming, generate_storage_account_name, generate_deployment_id
from .signing import SharedKeySigner, resolve_credential
from .storage_provisioner import StorageProvisioner

__all__ = [
    "ArtifactNaming",
    "generate_storage_account_name",
    "generate_deployment_id",
    "SharedKeySigner",
    "resolve_credential",
    "StorageProvisioner",
]

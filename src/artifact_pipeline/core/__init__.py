"""
Core abstractions for the deployment artifact pipeline.

Modules:
    context: StorageEndpointConfig, ProvisionedEndpoint, UploadResult, CleanupReport
    protocols: Capability interfaces (KeySigner, CredentialProvider, ArtifactStore)
    config_loader: JSON configuration loading
    exceptions: Custom exception types
"""

from .context import StorageEndpointConfig, ProvisionedEndpoint, UploadResult, CleanupReport
from .protocols import KeySigner, CredentialProvider, ArtifactStore
from .exceptions import (
    PipelineError,
    ConfigurationError,
    ProvisioningError,
    NotProvisionedError,
    MissingCredentialError,
    UploadError,
    CleanupItemError,
    PackageStructureViolation,
    PackageStateError,
    InlinePackageTooLargeError,
)

__all__ = [
    # Context
    "StorageEndpointConfig",
    "ProvisionedEndpoint",
    "UploadResult",
    "CleanupReport",
    # Protocols
    "KeySigner",
    "CredentialProvider",
    "ArtifactStore",
    # Exceptions
    "PipelineError",
    "ConfigurationError",
    "ProvisioningError",
    "NotProvisionedError",
    "MissingCredentialError",
    "UploadError",
    "CleanupItemError",
    "PackageStructureViolation",
    "PackageStateError",
    "InlinePackageTooLargeError",
]

"""
Custom exceptions for the deployment artifact pipeline.

This module defines a hierarchy of exceptions used throughout the pipeline
to provide clear, actionable error messages without leaking credential material.

Exception Hierarchy:
    PipelineError (base)
    ├── ConfigurationError - Invalid or missing configuration
    ├── ProvisioningError - Storage account / container lookup or create failed
    ├── MissingCredentialError - SAS token requested without a signing key
    ├── UploadError - Template or package upload failed
    ├── CleanupItemError - A single blob could not be cleaned up (never raised out of cleanup)
    ├── PackageStateError - Package assembly mutated after it was persisted
    └── InlinePackageTooLargeError - Code does not fit an inline ARM property
    NotProvisionedError (RuntimeError) - Accessor used before provision()
    PackageStructureViolation - Collected by package validation, never raised
"""

from typing import Optional


class PipelineError(Exception):
    """
    Base exception for all pipeline errors.

    Attributes:
        message: Human-readable error description
        resource: Optional name of the resource being worked on
    """

    def __init__(self, message: str, resource: Optional[str] = None):
        self.message = message
        self.resource = resource

        if resource:
            full_message = f"{message} [resource={resource}]"
        else:
            full_message = message

        super().__init__(full_message)


class ConfigurationError(PipelineError):
    """
    Raised when configuration is invalid or missing required fields.

    Example:
        >>> load_storage_config(Path("missing.json"))
        ConfigurationError: Required configuration file not found: missing.json (file: missing.json)
    """

    def __init__(self, message: str, config_file: Optional[str] = None):
        self.config_file = config_file
        if config_file:
            message = f"{message} (file: {config_file})"
        super().__init__(message)


class ProvisioningError(PipelineError):
    """
    Raised when the artifact storage account or container cannot be established.

    "Not found" during lookup is NOT an error (it triggers creation) and
    "already exists" during container creation is treated as success.
    Everything else ends up here, wrapping the SDK error.

    Attributes:
        resource_type: "storage_account" or "container"
        resource_name: Name of the resource that failed
        original_error: The underlying SDK exception
    """

    def __init__(
        self,
        resource_type: str,
        resource_name: str,
        original_error: Optional[Exception] = None,
        detail: Optional[str] = None
    ):
        self.resource_type = resource_type
        self.resource_name = resource_name
        self.original_error = original_error

        message = f"Failed to provision {resource_type} '{resource_name}'"
        if detail:
            message += f": {detail}"
        elif original_error:
            message += f": {type(original_error).__name__}: {original_error}"

        super().__init__(message, resource=resource_name)


class NotProvisionedError(RuntimeError):
    """
    Raised when the provisioner is used before provision() completed.

    This is a programming error, not a retryable condition.
    """

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(
            f"Storage not provisioned. Call provision() before {operation}()."
        )


class MissingCredentialError(PipelineError):
    """Raised when a SAS token is requested but no signing key is available."""

    def __init__(self, account_name: Optional[str] = None):
        super().__init__(
            "Shared key credential not initialized. Storage account keys not available.",
            resource=account_name
        )


class UploadError(PipelineError):
    """
    Raised when an artifact upload fails or its checksum does not match.

    Attributes:
        blob_name: Full blob key that was being written
        original_error: The underlying SDK exception, if any
    """

    def __init__(
        self,
        blob_name: str,
        original_error: Optional[Exception] = None,
        detail: Optional[str] = None
    ):
        self.blob_name = blob_name
        self.original_error = original_error

        message = f"Failed to upload '{blob_name}'"
        if detail:
            message += f": {detail}"
        elif original_error:
            message += f": {type(original_error).__name__}: {original_error}"

        super().__init__(message, resource=blob_name)


class CleanupItemError(PipelineError):
    """
    A single blob failed during retention cleanup.

    Cleanup records these and keeps going; they are logged, never raised
    to the caller.
    """

    def __init__(self, blob_name: str, original_error: Optional[Exception] = None):
        self.blob_name = blob_name
        self.original_error = original_error
        message = f"Failed to clean up '{blob_name}'"
        if original_error:
            message += f": {type(original_error).__name__}: {original_error}"
        super().__init__(message, resource=blob_name)


class PackageStructureViolation(Exception):
    """
    A structural problem found in a function package.

    Validation collects these into a report instead of raising them.

    Attributes:
        message: Description of the violation
        function_name: Function the violation refers to, if any
    """

    def __init__(self, message: str, function_name: Optional[str] = None):
        self.message = message
        self.function_name = function_name
        super().__init__(message)


class PackageStateError(PipelineError):
    """Raised when a package assembly is used out of order (e.g. written to after persisting)."""
    pass


class InlinePackageTooLargeError(PipelineError):
    """Raised when function code is too large for inline ARM packaging."""

    def __init__(self, size: int, max_size: int):
        self.size = size
        self.max_size = max_size
        super().__init__(
            f"Code is too large for inline packaging: {size} bytes (max {max_size} bytes). "
            f"Consider using external packaging or reducing code size."
        )


# Names used by the surrounding tooling
ProvisioningFailure = ProvisioningError
UploadFailure = UploadError
CleanupItemFailure = CleanupItemError

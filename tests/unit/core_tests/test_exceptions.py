"""
Unit tests for the pipeline exception hierarchy and settings.
"""

from azure.core.exceptions import HttpResponseError

from artifact_pipeline.config import PipelineSettings
from artifact_pipeline.core.context import CleanupReport
from artifact_pipeline.core.exceptions import (
    CleanupItemError,
    CleanupItemFailure,
    ConfigurationError,
    InlinePackageTooLargeError,
    MissingCredentialError,
    NotProvisionedError,
    PipelineError,
    ProvisioningError,
    ProvisioningFailure,
    UploadError,
    UploadFailure,
)


class TestExceptions:
    """Tests for exception messages and hierarchy."""

    def test_pipeline_error_resource_suffix(self):
        """The resource name is appended to the message."""
        error = PipelineError("boom", resource="acct")
        assert str(error) == "boom [resource=acct]"
        assert error.message == "boom"

    def test_configuration_error_file(self):
        """The config file is appended to the message."""
        error = ConfigurationError("bad", config_file="x.json")
        assert "x.json" in str(error)
        assert isinstance(error, PipelineError)

    def test_provisioning_error_wraps_sdk_error(self):
        """The SDK error type is named in the message."""
        sdk_error = HttpResponseError(message="denied")
        error = ProvisioningError("container", "arm-templates", sdk_error)
        assert "HttpResponseError" in str(error)
        assert error.original_error is sdk_error
        assert error.resource == "arm-templates"

    def test_provisioning_error_detail_wins(self):
        """An explicit detail replaces the SDK error text."""
        error = ProvisioningError("storage_account", "acct", detail="No keys found")
        assert "No keys found" in str(error)

    def test_not_provisioned_is_runtime_error(self):
        """NotProvisionedError is a programming error."""
        error = NotProvisionedError("upload_template")
        assert isinstance(error, RuntimeError)
        assert not isinstance(error, PipelineError)
        assert "upload_template()" in str(error)

    def test_upload_error(self):
        """UploadError names the blob."""
        error = UploadError("d/main.json", detail="Checksum mismatch")
        assert error.blob_name == "d/main.json"
        assert "Checksum mismatch" in str(error)

    def test_missing_credential(self):
        """MissingCredentialError mentions the account."""
        assert "acct" in str(MissingCredentialError("acct"))

    def test_inline_too_large(self):
        """InlinePackageTooLargeError carries both sizes."""
        error = InlinePackageTooLargeError(5000, 4096)
        assert "5000" in str(error) and "4096" in str(error)

    def test_aliases(self):
        """Failure aliases point at the same classes."""
        assert ProvisioningFailure is ProvisioningError
        assert UploadFailure is UploadError
        assert CleanupItemFailure is CleanupItemError


class TestCleanupReport:
    """Tests for CleanupReport."""

    def test_completed_without_failures(self):
        """completed is True while nothing failed."""
        report = CleanupReport(deleted=["a"], skipped=["b"])
        assert report.completed
        assert report.to_dict() == {"deleted": ["a"], "skipped": ["b"], "failed": []}

    def test_not_completed_with_failures(self):
        """completed is False once a blob failed."""
        assert not CleanupReport(failed=["x"]).completed


class TestPipelineSettings:
    """Tests for PipelineSettings."""

    def test_defaults(self):
        """Defaults match the pipeline constants."""
        settings = PipelineSettings(_env_file=None)
        assert settings.CONTAINER_NAME == "arm-templates"
        assert settings.SAS_EXPIRY_HOURS == 24
        assert settings.RETENTION_DAYS == 30
        assert settings.UPLOAD_CONCURRENCY == 5
        assert settings.MINIFY is False

    def test_environment_prefix(self, monkeypatch):
        """Settings are read from ARTIFACT_PIPELINE_* variables."""
        monkeypatch.setenv("ARTIFACT_PIPELINE_SAS_EXPIRY_HOURS", "2")
        monkeypatch.setenv("ARTIFACT_PIPELINE_CONTAINER_NAME", "templates")

        settings = PipelineSettings(_env_file=None)

        assert settings.SAS_EXPIRY_HOURS == 2
        assert settings.CONTAINER_NAME == "templates"

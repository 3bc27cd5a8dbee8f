"""
Azure Artifact Storage - provisioning, uploads, SAS tokens and retention.

This module owns the storage account and container that hold deployment
artifacts (ARM templates and function packages) for a downstream deployment.

Resources managed:
- Storage Account: created once with a secure baseline, then reused
- Container: "arm-templates", private, created if missing
- Blobs: {deployment_id}/{template} and {deployment_id}/packages/{package}

Provisioning Order:
    1. Resolve account name (explicit or deterministic)
    2. Look up the account; create it on "not found"
    3. Fetch the account key (needed for SAS signing)
    4. Create the blob service client and ensure the container exists

Note:
    One StorageProvisioner per deployment session. The ProvisionedEndpoint is
    written once and then only read. Two independent provisioners racing to
    CREATE the same account are not coordinated; "already exists" on the
    container is the only race that is normalized to success.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, AsyncIterable, Callable, Optional

from azure.core.exceptions import (
    AzureError,
    HttpResponseError,
    ResourceExistsError,
    ResourceNotFoundError,
)

from artifact_pipeline import constants as CONSTANTS
from artifact_pipeline.config import PipelineSettings
from artifact_pipeline.core.context import (
    CleanupReport,
    ProvisionedEndpoint,
    StorageEndpointConfig,
    UploadResult,
)
from artifact_pipeline.core.exceptions import (
    CleanupItemError,
    MissingCredentialError,
    NotProvisionedError,
    PipelineError,
    ProvisioningError,
    UploadError,
)
from artifact_pipeline.core.protocols import CredentialProvider, KeySigner
from artifact_pipeline.logger import print_stack_trace
from artifact_pipeline.providers.azure.naming import ArtifactNaming, generate_deployment_id
from artifact_pipeline.providers.azure.signing import AzureCredentialProvider, SharedKeySigner
from artifact_pipeline.util import calculate_checksum, parse_timestamp, utc_now

logger = logging.getLogger(__name__)

SAS_PERMISSION = "rl"  # read + list
SAS_PROTOCOL = "https"


def _is_not_found(error: Exception) -> bool:
    if isinstance(error, ResourceNotFoundError):
        return True
    return isinstance(error, HttpResponseError) and error.status_code == 404


def _is_already_exists(error: Exception) -> bool:
    if isinstance(error, ResourceExistsError):
        return True
    return isinstance(error, HttpResponseError) and error.status_code == 409


def _default_management_client(credential: Any, subscription_id: str) -> Any:
    from azure.mgmt.storage.aio import StorageManagementClient
    return StorageManagementClient(credential=credential, subscription_id=subscription_id)


def _default_blob_service(account_url: str, credential: Any) -> Any:
    from azure.storage.blob.aio import BlobServiceClient
    return BlobServiceClient(account_url, credential=credential)


def build_create_parameters(location: str, tags: dict) -> Any:
    """
    Storage account creation parameters with the secure baseline.

    - HTTPS only, minimum TLS 1.2
    - No public blob access
    - Blob encryption with Microsoft-managed keys
    """
    from azure.mgmt.storage.models import (
        Encryption,
        EncryptionService,
        EncryptionServices,
        Sku,
        StorageAccountCreateParameters,
    )

    return StorageAccountCreateParameters(
        sku=Sku(name=CONSTANTS.STORAGE_ACCOUNT_SKU),
        kind=CONSTANTS.STORAGE_ACCOUNT_KIND,
        location=location,
        tags=tags,
        access_tier=CONSTANTS.STORAGE_ACCOUNT_ACCESS_TIER,
        allow_blob_public_access=False,
        minimum_tls_version=CONSTANTS.STORAGE_ACCOUNT_MIN_TLS,
        enable_https_traffic_only=True,
        encryption=Encryption(
            services=EncryptionServices(
                blob=EncryptionService(enabled=True, key_type="Account")
            ),
            key_source="Microsoft.Storage",
        ),
    )


class StorageProvisioner:
    """
    Provisions artifact storage and stores deployment artifacts in it.

    Attributes:
        config: Immutable StorageEndpointConfig
        naming: ArtifactNaming derived from the config
        endpoint: The cached ProvisionedEndpoint (None until provision() succeeds)
    """

    def __init__(
        self,
        config: StorageEndpointConfig,
        settings: Optional[PipelineSettings] = None,
        management_client: Optional[Any] = None,
        blob_service_factory: Optional[Callable[[str, Any], Any]] = None,
        signer_factory: Callable[[str, str], KeySigner] = SharedKeySigner,
        clock: Callable[[], datetime] = utc_now,
        credential_provider: Optional[CredentialProvider] = None,
    ):
        """
        Args:
            config: Storage endpoint configuration
            settings: Pipeline settings (container name, SAS expiry, credentials)
            management_client: Async storage management client; created on demand
            blob_service_factory: (account_url, credential) -> async blob service client
            signer_factory: (account_name, account_key) -> KeySigner
            clock: Returns the current UTC time
            credential_provider: Supplies the SDK credential; defaults to
                AzureCredentialProvider over config and settings
        """
        self._config = config
        self._settings = settings or PipelineSettings()
        self._naming = ArtifactNaming(config)
        self._container_name = self._settings.CONTAINER_NAME
        self._management_client = management_client
        self._blob_service_factory = blob_service_factory or _default_blob_service
        self._signer_factory = signer_factory
        self._clock = clock

        if credential_provider is None:
            default_provider = AzureCredentialProvider(config, self._settings)
            self._owns_credential = default_provider.owns_credential
            credential_provider = default_provider
        else:
            self._owns_credential = False
        self._credential_provider = credential_provider

        self._credential: Optional[Any] = None
        self._owns_management_client = management_client is None
        self._blob_service: Optional[Any] = None
        self._container_client: Optional[Any] = None
        self._signer: Optional[KeySigner] = None
        self._endpoint: Optional[ProvisionedEndpoint] = None
        self._provision_lock = asyncio.Lock()

    @property
    def config(self) -> StorageEndpointConfig:
        return self._config

    @property
    def naming(self) -> ArtifactNaming:
        return self._naming

    @property
    def endpoint(self) -> Optional[ProvisionedEndpoint]:
        return self._endpoint

    # ==========================================
    # Provisioning
    # ==========================================

    async def provision(self) -> ProvisionedEndpoint:
        """
        Provision or reuse the artifact storage account and container.

        Idempotent per instance: once an endpoint is established it is
        returned without contacting Azure.

        Returns:
            The ProvisionedEndpoint for this session

        Raises:
            ProvisioningError: If lookup/create/key retrieval/container setup fails
        """
        if self._endpoint is not None:
            return self._endpoint

        async with self._provision_lock:
            if self._endpoint is not None:
                return self._endpoint

            account_name = self._naming.storage_account()
            account_url = self._naming.account_url(account_name)
            deployment_id = generate_deployment_id(self._clock())

            credential = self._get_credential()
            management_client = self._get_management_client(credential)

            await self._get_or_create_account(management_client, account_name)
            account_key = await self._fetch_account_key(management_client, account_name)

            # Clients are only kept once the container is confirmed
            blob_service = self._blob_service_factory(account_url, credential)
            try:
                container_client = await self._ensure_container(blob_service, self._container_name)
            except ProvisioningError:
                await blob_service.close()
                raise

            self._blob_service = blob_service
            self._container_client = container_client
            self._signer = self._signer_factory(account_name, account_key)
            self._endpoint = ProvisionedEndpoint(
                account_name=account_name,
                account_url=account_url,
                container_name=self._container_name,
                deployment_id=deployment_id,
            )
            logger.info(f"✓ Artifact storage ready: {account_name}/{self._container_name}")
            logger.info(f"  Deployment ID: {deployment_id}")
            return self._endpoint

    def _get_credential(self) -> Any:
        if self._credential is None:
            self._credential = self._credential_provider.get_credential()
        return self._credential

    def _get_management_client(self, credential: Any) -> Any:
        if self._management_client is None:
            self._management_client = _default_management_client(
                credential, self._config.subscription_id
            )
        return self._management_client

    async def _get_or_create_account(self, management_client: Any, account_name: str) -> None:
        rg_name = self._config.resource_group_name

        try:
            await management_client.storage_accounts.get_properties(rg_name, account_name)
            logger.info(f"Using existing Storage Account: {account_name}")
            return
        except AzureError as e:
            if not _is_not_found(e):
                logger.error(f"Failed to look up Storage Account {account_name}: {type(e).__name__}")
                raise ProvisioningError("storage_account", account_name, e) from e

        logger.info(f"Creating Storage Account: {account_name} in {self._config.location}")

        parameters = build_create_parameters(
            self._config.location,
            self._naming.storage_account_tags(self._clock())
        )
        try:
            poller = await management_client.storage_accounts.begin_create(
                rg_name, account_name, parameters
            )
            await poller.result()
        except AzureError as e:
            logger.error(f"Failed to create Storage Account {account_name}: {type(e).__name__}")
            print_stack_trace()
            raise ProvisioningError("storage_account", account_name, e) from e

        logger.info(f"✓ Storage Account created: {account_name}")

    async def _fetch_account_key(self, management_client: Any, account_name: str) -> str:
        try:
            result = await management_client.storage_accounts.list_keys(
                self._config.resource_group_name, account_name
            )
        except AzureError as e:
            raise ProvisioningError("storage_account", account_name, e) from e

        keys = getattr(result, "keys", None) or []
        if not keys or not keys[0].value:
            raise ProvisioningError(
                "storage_account", account_name,
                detail=f"No keys found for storage account {account_name}"
            )
        return keys[0].value

    async def ensure_container(self, container_name: Optional[str] = None) -> Any:
        """
        Ensure the container exists, creating it (private) if missing.

        "Already exists" (e.g. another session won the race) counts as success.

        Args:
            container_name: Container to ensure; defaults to the artifact container

        Returns:
            The container client

        Raises:
            NotProvisionedError: If the blob service client is not initialized yet
            ProvisioningError: On any other failure
        """
        if self._blob_service is None:
            raise NotProvisionedError("ensure_container")

        container_name = container_name or self._container_name
        container_client = await self._ensure_container(self._blob_service, container_name)

        if container_name == self._container_name:
            self._container_client = container_client
        return container_client

    async def _ensure_container(self, blob_service: Any, container_name: str) -> Any:
        container_client = blob_service.get_container_client(container_name)

        try:
            if await container_client.exists():
                logger.info(f"Using existing container: {container_name}")
            else:
                logger.info(f"Creating container: {container_name}...")
                await container_client.create_container()
                logger.info(f"✓ Container created: {container_name}")
        except AzureError as e:
            if _is_already_exists(e):
                logger.info(f"Container already exists: {container_name}")
            else:
                raise ProvisioningError("container", container_name, e) from e

        return container_client

    # ==========================================
    # Uploads
    # ==========================================

    async def upload_template(self, template_name: str, template_content: str) -> UploadResult:
        """
        Upload an ARM template to {deployment_id}/{template_name}.

        Raises:
            NotProvisionedError: If provision() has not completed
            UploadError: If the upload fails
        """
        endpoint = self._require_endpoint("upload_template")
        blob_name = ArtifactNaming.template_blob(endpoint.deployment_id, template_name)
        return await self._upload(
            blob_name,
            template_content.encode("utf-8"),
            CONSTANTS.TEMPLATE_CONTENT_TYPE,
            endpoint,
        )

    async def upload_package(self, package_name: str, package_content: bytes) -> UploadResult:
        """
        Upload a function package to {deployment_id}/packages/{package_name}.

        Raises:
            NotProvisionedError: If provision() has not completed
            UploadError: If the upload fails
        """
        endpoint = self._require_endpoint("upload_package")
        blob_name = ArtifactNaming.package_blob(endpoint.deployment_id, package_name)
        return await self._upload(
            blob_name,
            bytes(package_content),
            CONSTANTS.PACKAGE_CONTENT_TYPE,
            endpoint,
        )

    async def _upload(
        self,
        blob_name: str,
        data: bytes,
        content_type: str,
        endpoint: ProvisionedEndpoint
    ) -> UploadResult:
        from azure.storage.blob import ContentSettings

        checksum = calculate_checksum(data)
        metadata = {
            CONSTANTS.METADATA_CHECKSUM: checksum,
            CONSTANTS.METADATA_UPLOADED_AT: self._clock().isoformat(),
            CONSTANTS.METADATA_DEPLOYMENT_ID: endpoint.deployment_id,
        }

        container_client = self._require_container("upload")
        blob_client = container_client.get_blob_client(blob_name)

        logger.debug(f"Uploading {blob_name} ({len(data)} bytes)")
        try:
            await blob_client.upload_blob(
                data,
                overwrite=True,
                content_settings=ContentSettings(content_type=content_type),
                metadata=metadata,
            )
        except AzureError as e:
            logger.error(f"Failed to upload {blob_name}: {type(e).__name__}")
            raise UploadError(blob_name, e) from e

        blob_url = blob_client.url
        sas_token = self.generate_sas_token(self._settings.SAS_EXPIRY_HOURS)
        logger.info(f"✓ Uploaded: {blob_name}")

        return UploadResult(blob_url=blob_url, sas_url=f"{blob_url}{sas_token}", checksum=checksum)

    # ==========================================
    # SAS Tokens
    # ==========================================

    def generate_sas_token(self, expiry_hours: float = CONSTANTS.DEFAULT_SAS_EXPIRY_HOURS) -> str:
        """
        Generate a container-level, read+list, HTTPS-only SAS token.

        Args:
            expiry_hours: Lifetime of the token in hours (must be positive)

        Returns:
            Token string with a leading "?", ready to append to a blob URL

        Raises:
            MissingCredentialError: If no signing key is available yet
                (provision() has not completed)
        """
        if self._signer is None:
            account_name = self._endpoint.account_name if self._endpoint else None
            raise MissingCredentialError(account_name)
        endpoint = self._require_endpoint("generate_sas_token")
        if expiry_hours <= 0:
            raise ValueError(f"expiry_hours must be positive, got {expiry_hours}")

        expires_on = self._clock() + timedelta(hours=expiry_hours)

        try:
            token = self._signer.sign_container(
                endpoint.container_name,
                SAS_PERMISSION,
                expires_on,
                SAS_PROTOCOL,
            )
        except (ValueError, TypeError) as e:
            raise PipelineError(
                f"Failed to generate container SAS token: {type(e).__name__}",
                resource=endpoint.container_name
            ) from e

        return f"?{token}"

    # ==========================================
    # Retention
    # ==========================================

    async def cleanup_old_artifacts(self, retention_days: float = CONSTANTS.DEFAULT_RETENTION_DAYS) -> CleanupReport:
        """
        Delete blobs whose upload timestamp is older than now - retention_days.

        Blobs without an upload timestamp are left alone. A failure on one blob
        is logged and skipped; the scan always runs to the end.

        Returns:
            CleanupReport with deleted/skipped/failed blob names
        """
        container_client = self._require_container("cleanup_old_artifacts")
        cutoff = self._clock() - timedelta(days=retention_days)
        report = CleanupReport()

        logger.info(f"Cleaning up artifacts uploaded before {cutoff.isoformat()}")
        try:
            blobs: AsyncIterable = container_client.list_blobs(include=["metadata"])
            async for blob in blobs:
                report = await self._cleanup_blob(container_client, blob, cutoff, report)
        except AzureError as e:
            logger.error(f"Error listing artifacts for cleanup: {type(e).__name__}: {e}")

        if report.deleted:
            logger.info(f"✓ Cleaned up {len(report.deleted)} old artifacts")
        if report.failed:
            logger.warning(f"✗ {len(report.failed)} artifacts could not be cleaned up")
        return report

    async def _cleanup_blob(
        self,
        container_client: Any,
        blob: Any,
        cutoff: datetime,
        report: CleanupReport
    ) -> CleanupReport:
        uploaded_at = _metadata_value(blob.metadata, CONSTANTS.METADATA_UPLOADED_AT)
        if not uploaded_at:
            report.skipped.append(blob.name)
            return report

        try:
            if parse_timestamp(uploaded_at) >= cutoff:
                return report
            await container_client.delete_blob(blob.name)
        except (AzureError, ValueError) as e:
            failure = CleanupItemError(blob.name, e)
            logger.warning(str(failure))
            report.failed.append(blob.name)
            return report

        logger.debug(f"Deleted old artifact: {blob.name}")
        report.deleted.append(blob.name)
        return report

    # ==========================================
    # Accessors
    # ==========================================

    def get_artifacts_base_uri(self) -> str:
        """Base URI for artifacts (the _artifactsLocation template parameter)."""
        endpoint = self._require_endpoint("get_artifacts_base_uri")
        return f"{endpoint.account_url}/{endpoint.container_name}/{endpoint.deployment_id}"

    def get_deployment_id(self) -> str:
        return self._require_endpoint("get_deployment_id").deployment_id

    def get_storage_config(self) -> dict:
        """Storage configuration summary for manifest tracking."""
        endpoint = self._require_endpoint("get_storage_config")
        return {
            "account_name": endpoint.account_name,
            "resource_group_name": self._config.resource_group_name,
            "location": self._config.location,
            "container_name": endpoint.container_name,
            "endpoint": endpoint.account_url,
        }

    def _require_endpoint(self, operation: str) -> ProvisionedEndpoint:
        if self._endpoint is None:
            raise NotProvisionedError(operation)
        return self._endpoint

    def _require_container(self, operation: str) -> Any:
        if self._container_client is None:
            raise NotProvisionedError(operation)
        return self._container_client

    # ==========================================
    # Teardown
    # ==========================================

    async def close(self) -> None:
        """Close SDK clients and credentials this provisioner created itself."""
        if self._blob_service is not None:
            await self._blob_service.close()
        if self._owns_management_client and self._management_client is not None:
            await self._management_client.close()
        if self._owns_credential and self._credential is not None:
            close = getattr(self._credential, "close", None)
            if close is not None:
                await close()


def _metadata_value(metadata: Optional[dict], key: str) -> Optional[str]:
    """Case-insensitive metadata lookup (also accepts camelCase keys, e.g. uploadedAt)."""
    if not metadata:
        return None
    wanted = key.replace("_", "").lower()
    for name, value in metadata.items():
        if name.replace("_", "").lower() == wanted:
            return value
    return None

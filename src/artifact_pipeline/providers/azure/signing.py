"""
Signing and credential capabilities backed by the Azure SDK.

SharedKeySigner implements the KeySigner protocol with the storage account key
fetched during provisioning. The key stays inside the signer: it is never
logged and never part of repr().

AzureCredentialProvider (a CredentialProvider) hands out the async token
credential used for management and blob clients, resolved once by
resolve_credential():
    1. Explicit credential from StorageEndpointConfig
    2. ClientSecretCredential if tenant/client/secret settings are all present
    3. DefaultAzureCredential
"""

from datetime import datetime
from typing import Any, Optional

from azure.storage.blob import ContainerSasPermissions, generate_container_sas

from artifact_pipeline.config import PipelineSettings
from artifact_pipeline.core.context import StorageEndpointConfig


class SharedKeySigner:
    """
    KeySigner backed by a storage account shared key.

    Attributes:
        account_name: Storage account the key belongs to
    """

    def __init__(self, account_name: str, account_key: str):
        self._account_name = account_name
        self._account_key = account_key

    @property
    def account_name(self) -> str:
        return self._account_name

    def sign_container(
        self,
        container_name: str,
        permission: str,
        expiry: datetime,
        protocol: str = "https"
    ) -> str:
        """
        Create a container-scoped SAS token.

        Container scope (sr=c) lets a linked-template deployment fetch several
        blobs from the container with one token.

        Returns:
            Token query string without the leading "?"
        """
        return generate_container_sas(
            account_name=self._account_name,
            container_name=container_name,
            account_key=self._account_key,
            permission=ContainerSasPermissions.from_string(permission),
            expiry=expiry,
            protocol=protocol,
        )

    def __repr__(self) -> str:
        return f"SharedKeySigner(account_name={self._account_name!r})"


def resolve_credential(
    config: StorageEndpointConfig,
    settings: Optional[PipelineSettings] = None
) -> Any:
    """Get the async Azure credential for SDK clients."""
    if config.credential is not None:
        return config.credential

    from azure.identity.aio import ClientSecretCredential, DefaultAzureCredential

    settings = settings or PipelineSettings()
    client_id = settings.AZURE_CLIENT_ID
    client_secret = settings.AZURE_CLIENT_SECRET
    tenant_id = settings.AZURE_TENANT_ID

    if client_id and client_secret and tenant_id:
        return ClientSecretCredential(
            tenant_id=tenant_id,
            client_id=client_id,
            client_secret=client_secret
        )
    else:
        return DefaultAzureCredential()


class AzureCredentialProvider:
    """
    CredentialProvider that resolves the credential once and reuses it.

    Attributes:
        owns_credential: True when the credential was created here (and so
            should be closed by whoever closes the SDK clients)
    """

    def __init__(self, config: StorageEndpointConfig, settings: Optional[PipelineSettings] = None):
        self._config = config
        self._settings = settings
        self._credential: Optional[Any] = None

    @property
    def owns_credential(self) -> bool:
        return self._config.credential is None

    def get_credential(self) -> Any:
        if self._credential is None:
            self._credential = resolve_credential(self._config, self._settings)
        return self._credential

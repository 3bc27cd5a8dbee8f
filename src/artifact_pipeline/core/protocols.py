"""
Protocol definitions for the artifact pipeline.

Pipeline logic depends on these capabilities, never on a concrete platform
SDK type. Using Protocol (structural subtyping) lets tests hand in simple
fakes while production code plugs in the Azure SDK.

Capabilities:
    - KeySigner: turns a storage account key into scoped SAS tokens
    - CredentialProvider: hands out the async token credential for SDK clients
    - ArtifactStore: accepts templates and packages, returns signed URLs
"""

from datetime import datetime
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class KeySigner(Protocol):
    """
    Signs container-scoped access tokens.

    Implementations hold the account key; callers only ever see the
    resulting token string.
    """

    @property
    def account_name(self) -> str:
        """Storage account the signer belongs to."""
        ...

    def sign_container(
        self,
        container_name: str,
        permission: str,
        expiry: datetime,
        protocol: str = "https"
    ) -> str:
        """
        Create a SAS token for a whole container.

        Args:
            container_name: Container the token is scoped to
            permission: Permission string, e.g. "rl" (read + list)
            expiry: Absolute UTC expiry
            protocol: Allowed transport; always "https" in this pipeline

        Returns:
            The token query string WITHOUT a leading "?"
        """
        ...


@runtime_checkable
class CredentialProvider(Protocol):
    """Supplies the async Azure token credential used by SDK clients."""

    def get_credential(self) -> Any:
        ...


@runtime_checkable
class ArtifactStore(Protocol):
    """
    Destination for deployment artifacts.

    StorageProvisioner satisfies this once provision() has completed.
    """

    async def upload_template(self, template_name: str, template_content: str) -> Any:
        ...

    async def upload_package(self, package_name: str, package_content: bytes) -> Any:
        ...

    def get_artifacts_base_uri(self) -> str:
        ...

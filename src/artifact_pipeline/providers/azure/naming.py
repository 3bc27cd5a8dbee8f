"""
Azure artifact storage naming conventions.

This module generates the deterministic storage account name, the per-session
deployment ID and the blob keys used by the artifact pipeline.

Naming Convention:
    - Storage Account: {org}cdk{hash} (3-24 chars, lowercase alphanumeric only)
    - Deployment ID: deploy-YYYYMMDD-HHMMSS-{6 random hex}
    - Template blob: {deployment_id}/{template_name}
    - Package blob: {deployment_id}/packages/{package_name}

Storage account algorithm:
    1. Organization token from config, else extracted from the resource group
       ("rg-pl-acme-app" -> "acme"), else the fallback token
    2. Normalize to lowercase alphanumeric
    3. prefix = org + "cdk"; budget = 24 - len(prefix)
    4. If budget < 6 the org token is shortened so 6 hash chars always fit
    5. hash = md5("{subscription_id}-{resource_group_name}") truncated to budget

    The same (subscription, resource group) always yields the same name, so
    repeated runs reuse the existing account.

Usage:
    from artifact_pipeline.providers.azure.naming import ArtifactNaming

    naming = ArtifactNaming(config)
    account = naming.storage_account()  # "acmecdk" + 17 hash chars
"""

import hashlib
import re
import secrets
from datetime import datetime, timezone
from typing import Optional

from artifact_pipeline import constants as CONSTANTS
from artifact_pipeline.core.context import StorageEndpointConfig


def normalize_token(token: str) -> str:
    """Lowercase and strip everything that is not [a-z0-9]."""
    return re.sub(r"[^a-z0-9]", "", token.lower())


def extract_organization(resource_group_name: str) -> Optional[str]:
    """
    Extract the organization token from a resource group name.

    Pattern: rg-{org}-... or rg-pl-{org}-...
    """
    match = re.search(CONSTANTS.RESOURCE_GROUP_ORG_PATTERN, resource_group_name)
    return match.group(1) if match else None


def generate_storage_account_name(
    subscription_id: str,
    resource_group_name: str,
    organization: Optional[str] = None
) -> str:
    """
    Compute the deterministic storage account name.

    Args:
        subscription_id: Azure subscription ID
        resource_group_name: Resource group name
        organization: Explicit organization token (optional)

    Returns:
        Name of 3-24 lowercase alphanumeric characters ending in >= 6 hash chars
    """
    org_name = organization or extract_organization(resource_group_name)
    normalized_org = normalize_token(org_name) if org_name else ""
    if not normalized_org:
        normalized_org = CONSTANTS.DEFAULT_ORGANIZATION_TOKEN

    suffix = CONSTANTS.STORAGE_ACCOUNT_SUFFIX
    max_len = CONSTANTS.STORAGE_ACCOUNT_MAX_LENGTH
    min_hash = CONSTANTS.STORAGE_ACCOUNT_MIN_HASH_LENGTH

    prefix = f"{normalized_org}{suffix}"
    hash_budget = max_len - len(prefix)

    if hash_budget < min_hash:
        # Org token too long: shorten it so the hash keeps its minimum entropy
        max_org_length = max_len - len(suffix) - min_hash
        prefix = f"{normalized_org[:max_org_length]}{suffix}"
        hash_budget = min_hash

    digest = hashlib.md5(
        f"{subscription_id}-{resource_group_name}".encode("utf-8")
    ).hexdigest()

    return f"{prefix}{digest[:hash_budget]}"


def generate_deployment_id(now: Optional[datetime] = None) -> str:
    """
    Generate a per-session deployment ID.

    Pattern: deploy-YYYYMMDD-HHMMSS-{6 hex}; time-based plus a random
    suffix so concurrent sessions started in the same second differ.
    """
    now = now or datetime.now(timezone.utc)
    timestamp = now.strftime("%Y%m%d-%H%M%S")
    return f"{CONSTANTS.DEPLOYMENT_ID_PREFIX}-{timestamp}-{secrets.token_hex(3)}"


class ArtifactNaming:
    """
    Generates consistent names for the artifact storage of one configuration.

    Attributes:
        config: The StorageEndpointConfig the names are derived from
    """

    def __init__(self, config: StorageEndpointConfig):
        self._config = config

    @property
    def config(self) -> StorageEndpointConfig:
        return self._config

    # ==========================================
    # Storage Account
    # ==========================================

    def storage_account(self) -> str:
        """
        Storage account name: the explicit override, else the deterministic name.
        """
        if self._config.storage_account_name:
            return self._config.storage_account_name
        return generate_storage_account_name(
            self._config.subscription_id,
            self._config.resource_group_name,
            self._config.organization
        )

    def account_url(self, account_name: str) -> str:
        """Blob service endpoint for the account."""
        return CONSTANTS.BLOB_ENDPOINT_TEMPLATE.format(account_name=account_name)

    # ==========================================
    # Blob Keys
    # ==========================================

    @staticmethod
    def template_blob(deployment_id: str, template_name: str) -> str:
        """Blob key for a template, namespaced by the deployment ID."""
        return f"{deployment_id}/{template_name}"

    @staticmethod
    def package_blob(deployment_id: str, package_name: str) -> str:
        """Blob key for a function package, namespaced by the deployment ID."""
        return f"{deployment_id}/{CONSTANTS.PACKAGES_PREFIX}/{package_name}"

    # ==========================================
    # Tags
    # ==========================================

    def storage_account_tags(self, created_at: Optional[datetime] = None) -> dict:
        """Descriptive tags applied when the account is created."""
        created_at = created_at or datetime.now(timezone.utc)
        tags = dict(CONSTANTS.STORAGE_ACCOUNT_TAGS)
        tags["createdAt"] = created_at.isoformat()
        if self._config.project:
            tags["project"] = self._config.project
        if self._config.environment:
            tags["environment"] = self._config.environment
        return tags

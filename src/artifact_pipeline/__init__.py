"""
Deployment artifact pipeline for Azure.

Provisions artifact storage, builds Azure Functions packages, and uploads
templates and packages so an ARM deployment can fetch them with a SAS token.

Subpackages:
    providers.azure: StorageProvisioner, naming, SAS signing
    packaging: PackageBuilder, InlinePackager
    validation: Package structure checks
    deployment: ArtifactUploader
    core: Configuration, protocols, exceptions
"""

__version__ = "0.1.0"

"""
Deployment-time artifact upload.
"""

from .artifact_uploader import (
    ArtifactUploader,
    DeploymentUploadResult,
    FunctionPackageRef,
    StackArtifacts,
    TemplateArtifact,
    UploadedPackage,
    UploadProgress,
    extract_sas_token,
)

__all__ = [
    "ArtifactUploader",
    "DeploymentUploadResult",
    "FunctionPackageRef",
    "StackArtifacts",
    "TemplateArtifact",
    "UploadedPackage",
    "UploadProgress",
    "extract_sas_token",
]

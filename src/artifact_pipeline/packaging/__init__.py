"""
Function packaging: run-from-package ZIP archives and inline base64 code.
"""

from artifact_pipeline.packaging.inline_packager import (
    InlinePackager,
    InlinePackageResult,
    can_package_inline,
    decode_inline_package,
    estimate_encoded_size,
    package_inline,
)
from artifact_pipeline.packaging.models import (
    FunctionDefinition,
    FunctionPackageManifest,
    HttpTriggerConfig,
    PackageArtifact,
    PackageStructure,
    ValidationReport,
)
from artifact_pipeline.packaging.package_builder import (
    PackageAssembly,
    PackageBuilder,
    PackageState,
)

__all__ = [
    "FunctionDefinition",
    "FunctionPackageManifest",
    "HttpTriggerConfig",
    "InlinePackager",
    "InlinePackageResult",
    "PackageArtifact",
    "PackageAssembly",
    "PackageBuilder",
    "PackageState",
    "PackageStructure",
    "ValidationReport",
    "can_package_inline",
    "decode_inline_package",
    "estimate_encoded_size",
    "package_inline",
]

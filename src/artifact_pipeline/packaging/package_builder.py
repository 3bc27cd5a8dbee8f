"""
Function Package Builder - "run from package" ZIP packaging.

This module turns a FunctionPackageManifest into a ZIP package that the
Azure Functions host can run directly, keeping function code out of the
ARM templates.

Package structure:
    package.zip
    ├── host.json              # Function app configuration
    ├── {functionName}/
    │   ├── function.json      # Function triggers and bindings
    │   └── index.js           # Function code

Each package() call:
1. Assembles host.json and, per function, function.json + code file
2. Compresses the files into a single DEFLATE archive buffer
3. Persists the buffer and hashes the exact bytes written (sha256)

package() is permissive: it records what it is given. Structural problems
(no functions, missing code) are reported by validate_package().

Usage:
    from artifact_pipeline.packaging.package_builder import PackageBuilder

    builder = PackageBuilder(output_dir="build/packages")
    artifact = builder.package(manifest)
    report = builder.validate_package(artifact.package_path)
"""

import copy
import hashlib
import io
import json
import logging
import secrets
import tempfile
import time
import zipfile
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from artifact_pipeline import constants as CONSTANTS
from artifact_pipeline.config import PipelineSettings
from artifact_pipeline.core.exceptions import PackageStateError
from artifact_pipeline.packaging.minify import strip_code
from artifact_pipeline.packaging.models import (
    FunctionDefinition,
    FunctionPackageManifest,
    PackageArtifact,
    PackageStructure,
    ValidationReport,
)
from artifact_pipeline.validation.zip_validator import is_unsafe_member, validate_package_zip

logger = logging.getLogger(__name__)

# Fixed entry timestamp so identical input produces identical bytes
_ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)


class PackageState(Enum):
    EMPTY = "empty"
    ASSEMBLING = "assembling"
    COMPRESSED = "compressed"
    PERSISTED = "persisted"


class PackageAssembly:
    """
    One package in the making: EMPTY -> ASSEMBLING -> COMPRESSED -> PERSISTED.

    Files can only be added before compression; a persisted assembly is
    frozen. Build a new assembly for a new manifest.
    """

    def __init__(self, compression_level: int = CONSTANTS.DEFAULT_COMPRESSION_LEVEL):
        self._compression_level = compression_level
        self._files: Dict[str, bytes] = {}
        self._buffer: Optional[bytes] = None
        self.state = PackageState.EMPTY

    @property
    def buffer(self) -> Optional[bytes]:
        return self._buffer

    def add_file(self, path: str, content: Union[str, bytes]) -> None:
        if self.state not in (PackageState.EMPTY, PackageState.ASSEMBLING):
            raise PackageStateError(f"Cannot add '{path}': package is already {self.state.value}")
        if isinstance(content, str):
            content = content.encode("utf-8")
        self._files[path] = content
        self.state = PackageState.ASSEMBLING

    def compress(self) -> bytes:
        if self.state not in (PackageState.EMPTY, PackageState.ASSEMBLING):
            raise PackageStateError(f"Cannot compress: package is already {self.state.value}")

        stream = io.BytesIO()
        with zipfile.ZipFile(
            stream, "w",
            compression=zipfile.ZIP_DEFLATED,
            compresslevel=self._compression_level
        ) as zf:
            for path, content in self._files.items():
                info = zipfile.ZipInfo(path, date_time=_ZIP_EPOCH)
                info.compress_type = zipfile.ZIP_DEFLATED
                info.external_attr = 0o644 << 16
                zf.writestr(info, content, compresslevel=self._compression_level)

        self._buffer = stream.getvalue()
        self.state = PackageState.COMPRESSED
        return self._buffer

    def persist(self, package_path: Path) -> str:
        """
        Write the compressed buffer and return its "sha256:{hex}" hash.
        """
        if self.state != PackageState.COMPRESSED:
            raise PackageStateError(f"Cannot persist: package is {self.state.value}, expected compressed")

        package_path.parent.mkdir(parents=True, exist_ok=True)
        package_path.write_bytes(self._buffer)
        self.state = PackageState.PERSISTED
        return calculate_package_hash(self._buffer)


def calculate_package_hash(data: bytes) -> str:
    return f"sha256:{hashlib.sha256(data).hexdigest()}"


class PackageBuilder:
    """
    Builds Function App deployment packages.

    Holds configuration only; every package() call is independent.
    """

    def __init__(
        self,
        output_dir: Optional[Union[str, Path]] = None,
        minify: bool = False,
        compression_level: int = CONSTANTS.DEFAULT_COMPRESSION_LEVEL,
        code_file: str = CONSTANTS.FUNCTION_CODE_FILE,
    ):
        """
        Args:
            output_dir: Where packages are written (default: system temp directory)
            minify: Pass code through the lossy strip_code() transform
            compression_level: DEFLATE level 0-9
            code_file: Code file name inside each function directory
        """
        if not 0 <= compression_level <= 9:
            raise ValueError(f"compression_level must be between 0 and 9, got {compression_level}")

        self.output_dir = Path(output_dir) if output_dir else Path(tempfile.gettempdir())
        self.minify = minify
        self.compression_level = compression_level
        self.code_file = code_file

    @classmethod
    def from_settings(cls, settings: Optional[PipelineSettings] = None) -> "PackageBuilder":
        settings = settings or PipelineSettings()
        return cls(
            output_dir=settings.PACKAGE_OUTPUT_DIR or None,
            minify=settings.MINIFY,
            compression_level=settings.COMPRESSION_LEVEL,
        )

    # ==========================================
    # Packaging
    # ==========================================

    def package(self, manifest: FunctionPackageManifest) -> PackageArtifact:
        """
        Package all functions of a Function App into one ZIP file.

        Args:
            manifest: Function App manifest

        Returns:
            PackageArtifact with path, size, hash and structure
        """
        app_name = manifest.function_app_name
        logger.info(f"Packaging Function App: {app_name} ({len(manifest.functions)} functions)")

        assembly = PackageAssembly(self.compression_level)

        host_json = self.generate_host_config(manifest)
        assembly.add_file(CONSTANTS.HOST_JSON_FILE, json.dumps(host_json, indent=2))

        function_jsons: Dict[str, Dict[str, Any]] = {}
        code_files: Dict[str, str] = {}

        for func in manifest.functions:
            function_json = self.generate_function_descriptor(func)
            function_jsons[func.name] = function_json
            assembly.add_file(
                f"{func.name}/{CONSTANTS.FUNCTION_JSON_FILE}",
                json.dumps(function_json, indent=2)
            )

            code_path = f"{func.name}/{self.code_file}"
            code = strip_code(func.code) if self.minify else func.code
            assembly.add_file(code_path, code)
            code_files[func.name] = code_path

        assembly.compress()

        package_path = self.output_dir / self._package_filename(app_name)
        package_hash = assembly.persist(package_path)
        size = package_path.stat().st_size

        logger.info(f"✓ Package written: {package_path} ({size} bytes)")

        return PackageArtifact(
            package_path=str(package_path),
            function_app_name=app_name,
            functions=[f.name for f in manifest.functions],
            size=size,
            hash=package_hash,
            structure=PackageStructure(
                host_json=host_json,
                function_jsons=function_jsons,
                code_files=code_files,
            ),
        )

    @staticmethod
    def _package_filename(app_name: str) -> str:
        # Random suffix keeps concurrent builds of the same app apart
        return f"{app_name}-{int(time.time() * 1000)}-{secrets.token_hex(3)}.zip"

    def generate_host_config(self, manifest: FunctionPackageManifest) -> Dict[str, Any]:
        """
        Generate host.json for the Function App.

        The extension bundle lets bindings resolve without installing
        extensions per binding.
        """
        return {
            "version": CONSTANTS.HOST_JSON_VERSION,
            "logging": {
                "applicationInsights": {
                    "samplingSettings": {
                        "isEnabled": True,
                        "excludedTypes": "Request",
                    }
                }
            },
            "extensionBundle": copy.deepcopy(
                manifest.extension_bundle or CONSTANTS.DEFAULT_EXTENSION_BUNDLE
            ),
        }

    def generate_function_descriptor(self, func: FunctionDefinition) -> Dict[str, Any]:
        """
        Generate function.json for a function.

        An HTTP-triggered function gets an inbound httpTrigger plus an
        outbound http binding. Extra bindings are appended unmodified.
        """
        bindings: List[Dict[str, Any]] = []

        if func.http_trigger is not None:
            trigger: Dict[str, Any] = {
                "authLevel": func.http_trigger.auth_level or CONSTANTS.DEFAULT_AUTH_LEVEL,
                "type": "httpTrigger",
                "direction": "in",
                "name": "req",
                "methods": list(func.http_trigger.methods),
            }
            if func.http_trigger.route:
                trigger["route"] = func.http_trigger.route
            bindings.append(trigger)

            bindings.append({
                "type": "http",
                "direction": "out",
                "name": "res",
            })

        bindings.extend(copy.deepcopy(b) for b in func.bindings)

        return {"bindings": bindings}

    def create_zip_package(self, files: Mapping[str, Union[str, bytes]]) -> bytes:
        """
        Create a ZIP buffer from a path -> content map.

        Lower-level than package(): nothing is generated, hashed or written.
        """
        assembly = PackageAssembly(self.compression_level)
        for path, content in files.items():
            assembly.add_file(path, content)
        return assembly.compress()

    # ==========================================
    # Inspection
    # ==========================================

    def validate_package(self, package_path: Union[str, Path]) -> ValidationReport:
        """
        Check the structure of a persisted package.

        Checks that the package has:
        - exactly one host.json at the root
        - at least one function
        - a code file next to every function.json

        Violations are collected, never raised.
        """
        violations = validate_package_zip(Path(package_path), self.code_file)
        report = ValidationReport.from_errors([v.message for v in violations])

        if report.valid:
            logger.info(f"✓ Package valid: {package_path}")
        else:
            logger.warning(f"✗ Package invalid: {package_path} ({len(report.errors)} errors)")
            for error in report.errors:
                logger.warning(f"  - {error}")
        return report

    def extract_package(self, package_path: Union[str, Path], extract_dir: Union[str, Path]) -> List[Path]:
        """
        Extract a package to a directory (debugging aid).

        Returns:
            Paths of the extracted files

        Raises:
            ValueError: If the archive contains path traversal entries
        """
        extract_dir = Path(extract_dir)
        extracted = []

        with zipfile.ZipFile(package_path, "r") as zf:
            for member in zf.infolist():
                if is_unsafe_member(member.filename):
                    raise ValueError("Malicious file path detected in zip (Zip Slip Prevention).")

            for member in zf.infolist():
                if member.is_dir():
                    continue
                target = extract_dir / member.filename
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_bytes(zf.read(member))
                extracted.append(target)

        logger.debug(f"Extracted {len(extracted)} files to {extract_dir}")
        return extracted

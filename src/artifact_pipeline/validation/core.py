"""
Core Validation Logic - Source-agnostic package structure checks.

This module contains the structural checks for function packages. They work
with ANY file source (ZIP file, extracted directory) through the FileAccessor
protocol.

Checks never raise on a violation; each returns a list of
PackageStructureViolation and run_all_checks() concatenates them.

Usage:
    from artifact_pipeline.validation.core import run_all_checks
    from artifact_pipeline.validation.accessors import ZipFileAccessor

    violations = run_all_checks(ZipFileAccessor(zf))
"""

import json
import logging
import posixpath
from typing import List, Protocol

from artifact_pipeline import constants as CONSTANTS
from artifact_pipeline.core.exceptions import PackageStructureViolation

logger = logging.getLogger(__name__)


# ==========================================
# 1. File Accessor Protocol
# ==========================================

class FileAccessor(Protocol):
    """
    Protocol for accessing files from any source (ZIP, directory, etc.).
    """

    def list_files(self) -> List[str]:
        """Return list of all file paths (relative to the package root)."""
        ...

    def file_exists(self, path: str) -> bool:
        """Check if a file exists."""
        ...

    def read_text(self, path: str) -> str:
        """Read file contents as text. Raises FileNotFoundError if missing."""
        ...


# ==========================================
# 2. Individual Checks
# ==========================================

def find_function_descriptors(accessor: FileAccessor) -> List[str]:
    """All function.json paths, in archive order."""
    return [
        f for f in accessor.list_files()
        if posixpath.basename(f) == CONSTANTS.FUNCTION_JSON_FILE
    ]


def check_host_json(accessor: FileAccessor) -> List[PackageStructureViolation]:
    """Exactly one host.json at the package root."""
    count = accessor.list_files().count(CONSTANTS.HOST_JSON_FILE)
    if count == 0:
        return [PackageStructureViolation(f"Missing {CONSTANTS.HOST_JSON_FILE}")]
    if count > 1:
        return [PackageStructureViolation(
            f"Expected exactly one {CONSTANTS.HOST_JSON_FILE} at package root, found {count}"
        )]
    return []


def check_functions_present(accessor: FileAccessor) -> List[PackageStructureViolation]:
    """At least one function.json in the package."""
    if not find_function_descriptors(accessor):
        return [PackageStructureViolation("No functions found in package")]
    return []


def check_function_code(
    accessor: FileAccessor,
    code_file: str = CONSTANTS.FUNCTION_CODE_FILE
) -> List[PackageStructureViolation]:
    """Every function.json has its code file in the same directory."""
    violations = []
    for descriptor in find_function_descriptors(accessor):
        function_dir = posixpath.dirname(descriptor)
        code_path = posixpath.join(function_dir, code_file)
        if not accessor.file_exists(code_path):
            function_name = function_dir or "<root>"
            violations.append(PackageStructureViolation(
                f"Missing {code_file} for function: {function_name}",
                function_name=function_name
            ))
    return violations


def check_function_descriptors(accessor: FileAccessor) -> List[PackageStructureViolation]:
    """Every function.json is a JSON object with a bindings list."""
    violations = []
    for descriptor in find_function_descriptors(accessor):
        function_name = posixpath.dirname(descriptor) or "<root>"
        try:
            document = json.loads(accessor.read_text(descriptor))
        except (ValueError, UnicodeDecodeError) as e:
            violations.append(PackageStructureViolation(
                f"Invalid {CONSTANTS.FUNCTION_JSON_FILE} for function: {function_name} ({e})",
                function_name=function_name
            ))
            continue
        if not isinstance(document, dict) or not isinstance(document.get("bindings"), list):
            violations.append(PackageStructureViolation(
                f"{CONSTANTS.FUNCTION_JSON_FILE} for function {function_name} has no bindings list",
                function_name=function_name
            ))
    return violations


# ==========================================
# 3. Orchestration
# ==========================================

def run_all_checks(
    accessor: FileAccessor,
    code_file: str = CONSTANTS.FUNCTION_CODE_FILE
) -> List[PackageStructureViolation]:
    """
    Run every structural check and collect the violations.

    Returns:
        All violations found; empty when the package is valid
    """
    violations: List[PackageStructureViolation] = []
    violations.extend(check_host_json(accessor))
    violations.extend(check_functions_present(accessor))
    violations.extend(check_function_code(accessor, code_file))
    violations.extend(check_function_descriptors(accessor))

    for violation in violations:
        logger.debug(f"Package violation: {violation.message}")
    return violations

"""
Zip Validator - Function package archive validation.

This module is a thin adapter that delegates to artifact_pipeline.validation.core.
All structural checks are centralized in core.py for reuse across ZIP and directory sources.
"""

import io
import os
import zipfile
from pathlib import Path
from typing import List, Union

from artifact_pipeline import constants as CONSTANTS
from artifact_pipeline.core.exceptions import PackageStructureViolation
from artifact_pipeline.validation.accessors import ZipFileAccessor
from artifact_pipeline.validation.core import run_all_checks


def validate_package_zip(
    zip_source: Union[str, Path, bytes, io.BytesIO],
    code_file: str = CONSTANTS.FUNCTION_CODE_FILE
) -> List[PackageStructureViolation]:
    """
    Validates a function package ZIP.

    Args:
        zip_source: Path to zip file, raw bytes, or BytesIO object
        code_file: Code file expected next to every function.json

    Returns:
        Violations found; empty when the package is valid

    Raises:
        FileNotFoundError: If zip_source is a path that does not exist
    """
    if isinstance(zip_source, bytes):
        zip_source = io.BytesIO(zip_source)

    try:
        with zipfile.ZipFile(zip_source, 'r') as zf:
            # ZIP-specific security check (not applicable to directories)
            violations = check_zip_slip(zf)

            # Delegate to shared core
            accessor = ZipFileAccessor(zf)
            violations.extend(run_all_checks(accessor, code_file))
            return violations
    except zipfile.BadZipFile as e:
        return [PackageStructureViolation(f"Not a valid ZIP archive: {e}")]


def is_unsafe_member(name: str) -> bool:
    """Paths containing '..' segments or absolute paths escape the extraction root."""
    parts = name.replace("\\", "/").split("/")
    return ".." in parts or os.path.isabs(name) or name.startswith("/")


def check_zip_slip(zf: zipfile.ZipFile) -> List[PackageStructureViolation]:
    """
    Detect Zip Slip entries (path traversal).

    ZIP-only check that flags paths containing '..' or absolute paths.
    """
    violations = []
    for member in zf.infolist():
        if member.is_dir():
            continue
        if is_unsafe_member(member.filename):
            violations.append(PackageStructureViolation(
                f"Unsafe file path in package: {member.filename}"
            ))
    return violations

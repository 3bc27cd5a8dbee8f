"""
Function package structure validation.

Modules:
    accessors: ZipFileAccessor and DirectoryAccessor
    core: Source-agnostic structural checks
    zip_validator: ZIP entry point and Zip Slip detection
"""

from .accessors import ZipFileAccessor, DirectoryAccessor
from .core import run_all_checks
from .zip_validator import validate_package_zip, check_zip_slip

__all__ = [
    "ZipFileAccessor",
    "DirectoryAccessor",
    "run_all_checks",
    "validate_package_zip",
    "check_zip_slip",
]

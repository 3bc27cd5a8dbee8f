"""
File Accessor implementations for different sources.

Provides concrete implementations of the FileAccessor protocol
for ZIP files and directories, so an archive and its extracted
copy are validated by the same checks.
"""

import os
import zipfile
from pathlib import Path
from typing import List


class ZipFileAccessor:
    """FileAccessor implementation for ZIP files."""

    def __init__(self, zf: zipfile.ZipFile):
        self._zf = zf
        # Keep duplicates: a ZIP may hold the same name twice
        self._files = [info.filename for info in zf.infolist() if not info.is_dir()]

    def list_files(self) -> List[str]:
        return self._files

    def file_exists(self, path: str) -> bool:
        return path in self._files

    def read_text(self, path: str) -> str:
        with self._zf.open(path) as f:
            return f.read().decode('utf-8')


class DirectoryAccessor:
    """FileAccessor implementation for directories."""

    def __init__(self, package_path: Path):
        self._path = Path(package_path)
        self._files = self._scan_files()

    def _scan_files(self) -> List[str]:
        """Scan all files in the directory."""
        files = []
        for root, dirs, filenames in os.walk(self._path):
            # Skip hidden directories and __pycache__
            dirs[:] = [d for d in dirs if not d.startswith('.') and d != '__pycache__']
            for filename in filenames:
                full_path = os.path.join(root, filename)
                rel_path = os.path.relpath(full_path, self._path)
                # Normalize to forward slashes for consistency
                files.append(rel_path.replace('\\', '/'))
        return sorted(files)

    def list_files(self) -> List[str]:
        return self._files

    def file_exists(self, path: str) -> bool:
        return (self._path / path).is_file()

    def read_text(self, path: str) -> str:
        file_path = self._path / path
        if not file_path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        return file_path.read_text(encoding='utf-8')

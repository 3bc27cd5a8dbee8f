"""
Artifact Uploader - pushes a stack's templates and packages to artifact storage.

Runs after StorageProvisioner.provision(). Templates are uploaded first
(root + linked), then function packages. Each phase runs in batches of
max_concurrency parallel uploads; every upload is checked against a locally
computed SHA-256 before it is accepted.

The result carries exactly what an ARM deployment needs:
    - root_template_uri: signed URL of the root template
    - base_uri / sas_token: values for _artifactsLocation and
      _artifactsLocationSasToken
    - linked_templates / function_packages: name -> signed URL

Failed uploads are not retried; the first failure aborts upload_all().
"""

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, TypeVar, Union
from urllib.parse import urlsplit

from artifact_pipeline import constants as CONSTANTS
from artifact_pipeline.config import PipelineSettings
from artifact_pipeline.core.exceptions import UploadError
from artifact_pipeline.core.protocols import ArtifactStore
from artifact_pipeline.packaging.models import PackageArtifact
from artifact_pipeline.util import calculate_checksum, verify_checksum

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

PHASE_TEMPLATES = "templates"
PHASE_PACKAGES = "packages"


@dataclass(frozen=True)
class FunctionPackageRef:
    package_path: str
    function_app_name: str


@dataclass
class StackArtifacts:
    """
    Local files that make up one deployable stack.

    Attributes:
        base_dir: Directory template paths are relative to
        root_template: Root template path, relative to base_dir
        linked_templates: Linked template paths, relative to base_dir
        function_packages: Package files and the Function App each belongs to
    """

    base_dir: str
    root_template: str
    linked_templates: List[str] = field(default_factory=list)
    function_packages: List[FunctionPackageRef] = field(default_factory=list)

    def add_package(self, artifact: PackageArtifact) -> None:
        """Register a package produced by PackageBuilder.package()."""
        self.function_packages.append(
            FunctionPackageRef(artifact.package_path, artifact.function_app_name)
        )


@dataclass(frozen=True)
class TemplateArtifact:
    name: str
    local_path: str
    blob_url: str
    sas_url: str
    checksum: str
    size: int


@dataclass(frozen=True)
class UploadedPackage:
    name: str
    local_path: str
    blob_url: str
    sas_url: str
    checksum: str
    size: int
    function_app_name: str


@dataclass(frozen=True)
class UploadProgress:
    current: int
    total: int
    current_file: str
    phase: str


@dataclass(frozen=True)
class DeploymentUploadResult:
    root_template_uri: str
    linked_templates: Dict[str, str]
    function_packages: Dict[str, str]
    base_uri: str
    sas_token: str


ProgressCallback = Callable[[UploadProgress], None]


def extract_sas_token(sas_url: str) -> str:
    """Query string of a signed URL including the leading "?" ("" if unsigned)."""
    query = urlsplit(sas_url).query
    return f"?{query}" if query else ""


def create_batches(items: Sequence[T], batch_size: int) -> List[List[T]]:
    return [list(items[i:i + batch_size]) for i in range(0, len(items), batch_size)]


class ArtifactUploader:
    """
    Uploads deployment artifacts to a provisioned artifact store.

    Args:
        on_progress: Called before and after each file with an UploadProgress
        max_concurrency: Uploads running in parallel per batch
    """

    def __init__(
        self,
        on_progress: Optional[ProgressCallback] = None,
        max_concurrency: int = CONSTANTS.DEFAULT_UPLOAD_CONCURRENCY
    ):
        if max_concurrency < 1:
            raise ValueError(f"max_concurrency must be at least 1, got {max_concurrency}")
        self._on_progress = on_progress
        self.max_concurrency = max_concurrency

    @classmethod
    def from_settings(
        cls,
        settings: Optional[PipelineSettings] = None,
        on_progress: Optional[ProgressCallback] = None
    ) -> "ArtifactUploader":
        settings = settings or PipelineSettings()
        return cls(on_progress=on_progress, max_concurrency=settings.UPLOAD_CONCURRENCY)

    async def upload_all(self, stack: StackArtifacts, store: ArtifactStore) -> DeploymentUploadResult:
        """
        Upload every template and package of a stack.

        Raises:
            UploadError: On the first failed upload or checksum mismatch
        """
        base_dir = Path(stack.base_dir)
        root_name = Path(stack.root_template).as_posix()
        template_names = [root_name] + [Path(t).as_posix() for t in stack.linked_templates]

        logger.info(
            f"Uploading {len(template_names)} templates and "
            f"{len(stack.function_packages)} packages"
        )

        templates = await self._run_batches(
            template_names,
            PHASE_TEMPLATES,
            lambda name: name,
            lambda name: self.upload_template(base_dir / name, name, store),
        )
        packages = await self._run_batches(
            stack.function_packages,
            PHASE_PACKAGES,
            lambda ref: Path(ref.package_path).name,
            lambda ref: self.upload_package(
                ref.package_path,
                Path(ref.package_path).name,
                store,
                ref.function_app_name,
            ),
        )

        root = next(t for t in templates if t.name == root_name)
        linked = {t.name: t.sas_url for t in templates if t.name != root_name}

        logger.info(f"✓ All artifacts uploaded ({len(templates) + len(packages)} files)")

        return DeploymentUploadResult(
            root_template_uri=root.sas_url,
            linked_templates=linked,
            function_packages={p.name: p.sas_url for p in packages},
            base_uri=store.get_artifacts_base_uri(),
            sas_token=extract_sas_token(root.sas_url),
        )

    async def _run_batches(
        self,
        items: Sequence[T],
        phase: str,
        display_name: Callable[[T], str],
        upload: Callable[[T], Awaitable[R]]
    ) -> List[R]:
        results: List[R] = []
        total = len(items)
        processed = 0

        async def run_one(item: T) -> R:
            nonlocal processed
            name = display_name(item)
            self._report_progress(UploadProgress(processed, total, name, phase))
            result = await upload(item)
            processed += 1
            self._report_progress(UploadProgress(processed, total, name, phase))
            return result

        for batch in create_batches(items, self.max_concurrency):
            results.extend(await asyncio.gather(*(run_one(item) for item in batch)))

        return results

    async def upload_template(
        self,
        template_path: Union[str, Path],
        template_name: str,
        store: ArtifactStore
    ) -> TemplateArtifact:
        raw = self._read(template_path, template_name)
        try:
            content = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise UploadError(template_name, e, detail=f"{template_path} is not valid UTF-8") from e
        result = await store.upload_template(template_name, content)
        self._check_checksum(template_name, calculate_checksum(content), result.checksum)

        return TemplateArtifact(
            name=template_name,
            local_path=str(template_path),
            blob_url=result.blob_url,
            sas_url=result.sas_url,
            checksum=result.checksum,
            size=len(raw),
        )

    async def upload_package(
        self,
        package_path: Union[str, Path],
        package_name: str,
        store: ArtifactStore,
        function_app_name: str
    ) -> UploadedPackage:
        content = self._read(package_path, package_name)
        result = await store.upload_package(package_name, content)
        self._check_checksum(package_name, calculate_checksum(content), result.checksum)

        return UploadedPackage(
            name=package_name,
            local_path=str(package_path),
            blob_url=result.blob_url,
            sas_url=result.sas_url,
            checksum=result.checksum,
            size=len(content),
            function_app_name=function_app_name,
        )

    def validate_checksum(self, local_path: Union[str, Path], uploaded_checksum: str) -> bool:
        return verify_checksum(Path(local_path).read_bytes(), uploaded_checksum)

    @staticmethod
    def _read(path: Union[str, Path], name: str) -> bytes:
        try:
            return Path(path).read_bytes()
        except OSError as e:
            raise UploadError(name, e, detail=f"cannot read {path}") from e

    @staticmethod
    def _check_checksum(name: str, local: str, remote: str) -> None:
        if local != remote:
            logger.error(f"✗ Checksum mismatch for {name}")
            raise UploadError(name, detail=f"Checksum mismatch: expected {local}, got {remote}")

    def _report_progress(self, progress: UploadProgress) -> None:
        if self._on_progress:
            self._on_progress(progress)

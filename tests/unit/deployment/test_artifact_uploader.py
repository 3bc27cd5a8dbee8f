"""
Unit tests for ArtifactUploader.

The artifact store is a fake that signs URLs with a fixed token; one test
runs the uploader against a real (mock-backed) StorageProvisioner.
"""

import asyncio
import json
from unittest.mock import MagicMock

import pytest

from artifact_pipeline.config import PipelineSettings
from artifact_pipeline.core.context import UploadResult
from artifact_pipeline.core.exceptions import UploadError
from artifact_pipeline.deployment.artifact_uploader import (
    ArtifactUploader,
    StackArtifacts,
    create_batches,
    extract_sas_token,
)
from artifact_pipeline.packaging.models import FunctionDefinition, FunctionPackageManifest
from artifact_pipeline.packaging.package_builder import PackageBuilder
from artifact_pipeline.util import calculate_checksum

BASE = "https://acct.blob.core.windows.net/arm-templates/deploy-1"
TOKEN = "?sv=2023&sr=c&sp=rl&sig=abc"


class FakeStore:
    """In-memory artifact store tracking concurrency."""

    def __init__(self, corrupt=None):
        self.uploaded = {}
        self.corrupt = corrupt or set()
        self.active = 0
        self.max_active = 0

    async def _store(self, name, data):
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        await asyncio.sleep(0)
        self.active -= 1
        self.uploaded[name] = data
        checksum = "0" * 64 if name in self.corrupt else calculate_checksum(data)
        url = f"{BASE}/{name}"
        return UploadResult(blob_url=url, sas_url=url + TOKEN, checksum=checksum)

    async def upload_template(self, template_name, template_content):
        return await self._store(template_name, template_content.encode("utf-8"))

    async def upload_package(self, package_name, package_content):
        return await self._store(f"packages/{package_name}", package_content)

    def get_artifacts_base_uri(self):
        return BASE


@pytest.fixture
def stack_dir(tmp_path):
    (tmp_path / "main.json").write_text(json.dumps({"resources": []}))
    (tmp_path / "linked").mkdir()
    for i in range(3):
        (tmp_path / "linked" / f"part{i}.json").write_text(json.dumps({"part": i}))
    return tmp_path


@pytest.fixture
def stack(stack_dir):
    return StackArtifacts(
        base_dir=str(stack_dir),
        root_template="main.json",
        linked_templates=[f"linked/part{i}.json" for i in range(3)],
    )


def add_package(stack, tmp_path, app_name="func-acme"):
    builder = PackageBuilder(output_dir=tmp_path / "packages")
    manifest = FunctionPackageManifest(
        function_app_name=app_name,
        functions=[FunctionDefinition(name="hello", code="module.exports = 1;")],
    )
    artifact = builder.package(manifest)
    stack.add_package(artifact)
    return artifact


class TestUploadAll:
    """Tests for upload_all()."""

    @pytest.mark.asyncio
    async def test_templates_and_packages(self, stack, stack_dir):
        """Result should map every artifact to its signed URL."""
        artifact = add_package(stack, stack_dir)
        store = FakeStore()

        result = await ArtifactUploader().upload_all(stack, store)

        package_name = artifact.package_path.rsplit("/", 1)[-1]
        assert result.root_template_uri == f"{BASE}/main.json{TOKEN}"
        assert result.linked_templates == {
            f"linked/part{i}.json": f"{BASE}/linked/part{i}.json{TOKEN}" for i in range(3)
        }
        assert result.function_packages == {package_name: f"{BASE}/packages/{package_name}{TOKEN}"}
        assert result.base_uri == BASE
        assert result.sas_token == TOKEN

    @pytest.mark.asyncio
    async def test_uploads_exact_bytes(self, stack, stack_dir):
        """Stored content should equal the local files."""
        store = FakeStore()

        await ArtifactUploader().upload_all(stack, store)

        assert store.uploaded["main.json"] == (stack_dir / "main.json").read_bytes()

    @pytest.mark.asyncio
    async def test_checksum_mismatch_raises(self, stack):
        """A mismatching remote checksum raises UploadError."""
        store = FakeStore(corrupt={"linked/part1.json"})

        with pytest.raises(UploadError, match="Checksum mismatch"):
            await ArtifactUploader().upload_all(stack, store)

    @pytest.mark.asyncio
    async def test_missing_file_raises(self, stack):
        """A missing local file raises UploadError."""
        stack.linked_templates.append("linked/missing.json")

        with pytest.raises(UploadError, match="cannot read"):
            await ArtifactUploader().upload_all(stack, FakeStore())

    @pytest.mark.asyncio
    async def test_non_utf8_template_raises(self, stack, stack_dir):
        """A template that is not UTF-8 raises UploadError naming the template."""
        (stack_dir / "linked" / "part2.json").write_bytes(b'{"name": "\xff\xfe"}')

        with pytest.raises(UploadError, match="not valid UTF-8") as exc_info:
            await ArtifactUploader().upload_all(stack, FakeStore())

        assert exc_info.value.blob_name == "linked/part2.json"

    @pytest.mark.asyncio
    async def test_concurrency_bounded(self, stack):
        """No more than max_concurrency uploads run at once."""
        store = FakeStore()

        await ArtifactUploader(max_concurrency=2).upload_all(stack, store)

        assert 1 <= store.max_active <= 2
        assert len(store.uploaded) == 4

    @pytest.mark.asyncio
    async def test_progress_reported(self, stack):
        """Progress is reported before and after every file."""
        events = []

        await ArtifactUploader(on_progress=events.append).upload_all(stack, FakeStore())

        assert len(events) == 8
        assert all(e.phase == "templates" and e.total == 4 for e in events)
        assert events[-1].current == 4

    @pytest.mark.asyncio
    async def test_against_provisioner(self, provisioner, stack):
        """The uploader works against a provisioned StorageProvisioner."""
        endpoint = await provisioner.provision()

        result = await ArtifactUploader().upload_all(stack, provisioner)

        assert result.base_uri == provisioner.get_artifacts_base_uri()
        assert f"/{endpoint.deployment_id}/main.json?" in result.root_template_uri
        assert result.sas_token.startswith("?")
        assert "sp=rl" in result.sas_token


class TestSingleUploads:
    """Tests for upload_template() and upload_package()."""

    @pytest.mark.asyncio
    async def test_upload_template_record(self, stack_dir):
        """upload_template() returns a TemplateArtifact with size."""
        path = stack_dir / "main.json"

        artifact = await ArtifactUploader().upload_template(path, "main.json", FakeStore())

        assert artifact.name == "main.json"
        assert artifact.size == len(path.read_bytes())
        assert artifact.checksum == calculate_checksum(path.read_bytes())

    @pytest.mark.asyncio
    async def test_upload_package_record(self, stack, stack_dir):
        """upload_package() carries the Function App name."""
        package = add_package(stack, stack_dir, app_name="func-orders")

        uploaded = await ArtifactUploader().upload_package(
            package.package_path, "orders.zip", FakeStore(), "func-orders"
        )

        assert uploaded.function_app_name == "func-orders"
        assert uploaded.size == package.size

    def test_validate_checksum(self, stack_dir):
        """validate_checksum() compares against the local file."""
        path = stack_dir / "main.json"
        uploader = ArtifactUploader()

        assert uploader.validate_checksum(path, calculate_checksum(path.read_bytes()))
        assert not uploader.validate_checksum(path, "0" * 64)


class TestHelpers:
    """Tests for module helpers and configuration."""

    def test_extract_sas_token(self):
        """The query string is returned with its leading '?'."""
        assert extract_sas_token("https://a/b/c.json?sv=1&sig=x") == "?sv=1&sig=x"

    def test_extract_sas_token_unsigned(self):
        """Unsigned URLs yield an empty token."""
        assert extract_sas_token("https://a/b/c.json") == ""

    def test_create_batches(self):
        """Items are split into ordered batches."""
        assert create_batches([1, 2, 3, 4, 5], 2) == [[1, 2], [3, 4], [5]]

    def test_rejects_zero_concurrency(self):
        """max_concurrency must be positive."""
        with pytest.raises(ValueError):
            ArtifactUploader(max_concurrency=0)

    def test_from_settings(self):
        """from_settings() uses UPLOAD_CONCURRENCY."""
        callback = MagicMock()
        uploader = ArtifactUploader.from_settings(
            PipelineSettings(_env_file=None, UPLOAD_CONCURRENCY=3), on_progress=callback
        )
        assert uploader.max_concurrency == 3

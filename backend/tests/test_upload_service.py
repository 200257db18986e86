"""
Dog Spotter Backend — Upload Service Unit Tests
================================================

What:  Tests for image validation, storage, lookup and deletion.
Why:   Uploads are the only place user bytes reach the disk.
How:   Each test gets its own temporary storage root.

What we test:
    ✅ Content-type and size validation
    ✅ Date-organized storage with UUID filenames and public URLs
    ✅ Base64 uploads, with and without a data: URL prefix
    ✅ Deletion by URL; unknown and out-of-storage paths are refused
    ❌ Image decoding (only the declared content type is checked)
"""

import base64
import re

import pytest

from dogspotter.config import settings
from dogspotter.exceptions import ValidationError
from dogspotter.services.upload_service import UploadService

URL_PATTERN = re.compile(
    r"^http://test/api/files/(\d{4}/\d{2}/\d{2}/[0-9a-f-]{36}\.[a-z]+)$"
)


class TestValidation:

    @pytest.fixture(autouse=True)
    def _service(self, temp_storage):
        self.service = UploadService(storage_root=str(temp_storage), public_base_url="http://test")

    @pytest.mark.parametrize("content_type", ["image/jpeg", "image/png", "IMAGE/WEBP", "image/png; q=1"])
    def test_image_types_accepted(self, content_type):
        assert self.service.validate_content_type(content_type).startswith("image/")

    @pytest.mark.parametrize("content_type", ["application/pdf", "text/plain", "", None])
    def test_non_images_rejected(self, content_type):
        with pytest.raises(ValidationError) as exc_info:
            self.service.validate_content_type(content_type)
        assert exc_info.value.message == "Only image files are allowed"

    def test_empty_file_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            self.service.validate_size(0)
        assert exc_info.value.message == "No image provided"

    def test_size_at_limit_accepted(self):
        self.service.validate_size(settings.max_file_size)

    def test_size_over_limit_rejected(self):
        with pytest.raises(ValidationError, match="exceeds maximum"):
            self.service.validate_size(settings.max_file_size + 1)

    @pytest.mark.parametrize(
        "mime,filename,expected",
        [
            ("image/jpeg", "photo.png", ".jpg"),
            ("image/png", None, ".png"),
            ("image/x-custom", "shot.tiff", ".tiff"),
            ("image/bmp", None, ".bmp"),
            ("image/svg+xml", None, ".jpg"),
        ],
    )
    def test_extension_for(self, mime, filename, expected):
        assert self.service.extension_for(mime, filename) == expected


class TestStorage:

    @pytest.fixture(autouse=True)
    def _service(self, temp_storage):
        self.storage = temp_storage
        self.service = UploadService(storage_root=str(temp_storage), public_base_url="http://test")

    @pytest.mark.asyncio
    async def test_upload_file_stores_under_date_directory(self, sample_image_bytes):
        url = await self.service.upload_file("dog.jpg", "image/jpeg", sample_image_bytes)

        match = URL_PATTERN.match(url)
        assert match, url
        stored = self.storage / match.group(1)
        assert stored.read_bytes() == sample_image_bytes
        assert stored.suffix == ".jpg"

    @pytest.mark.asyncio
    async def test_upload_file_rejects_non_image(self, sample_image_bytes):
        with pytest.raises(ValidationError):
            await self.service.upload_file("doc.pdf", "application/pdf", sample_image_bytes)
        assert not any(p.is_file() for p in self.storage.rglob("*"))

    @pytest.mark.asyncio
    async def test_upload_base64_with_data_url(self, sample_image_bytes):
        encoded = "data:image/png;base64," + base64.b64encode(sample_image_bytes).decode()

        url = await self.service.upload_base64(encoded, "image/png")

        relative = URL_PATTERN.match(url).group(1)
        assert relative.endswith(".png")
        assert (self.storage / relative).read_bytes() == sample_image_bytes

    @pytest.mark.asyncio
    async def test_upload_base64_defaults_to_jpeg(self, sample_image_bytes):
        url = await self.service.upload_base64(base64.b64encode(sample_image_bytes).decode(), None)
        assert url.endswith(".jpg")

    @pytest.mark.asyncio
    async def test_upload_base64_invalid_data(self):
        with pytest.raises(ValidationError) as exc_info:
            await self.service.upload_base64("***not base64***")
        assert exc_info.value.message == "Invalid base64 image data"

    @pytest.mark.asyncio
    async def test_upload_base64_empty(self):
        with pytest.raises(ValidationError) as exc_info:
            await self.service.upload_base64("")
        assert exc_info.value.message == "No image provided"

    @pytest.mark.asyncio
    async def test_delete_file_by_url(self, sample_image_bytes):
        url = await self.service.upload_file("dog.jpg", "image/jpeg", sample_image_bytes)
        relative = URL_PATTERN.match(url).group(1)

        assert await self.service.delete_file(url) is True
        assert not (self.storage / relative).exists()
        assert await self.service.delete_file(url) is False

    @pytest.mark.asyncio
    async def test_delete_refuses_paths_outside_storage(self, tmp_path):
        outside = tmp_path / "secret.txt"
        outside.write_text("keep me")

        assert await self.service.delete_file("http://test/api/files/../secret.txt") is False
        assert outside.exists()

    @pytest.mark.asyncio
    async def test_delete_ignores_foreign_urls(self):
        assert await self.service.delete_file("https://elsewhere.example/pic.jpg") is False

    @pytest.mark.asyncio
    async def test_resolve_path(self, sample_image_bytes):
        url = await self.service.upload_file("dog.png", "image/png", sample_image_bytes)
        relative = URL_PATTERN.match(url).group(1)

        assert self.service.resolve_path(relative) == (self.storage / relative).resolve()
        assert self.service.resolve_path("2020/01/01/missing.jpg") is None
        assert self.service.resolve_path("../../etc/passwd") is None

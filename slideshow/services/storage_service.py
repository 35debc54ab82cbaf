import io
import logging
import os
import posixpath
import random
import shutil
import tempfile
import time
from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

from google.api_core.exceptions import GoogleAPIError, NotFound
from PIL import Image, ImageOps, UnidentifiedImageError

from slideshow.config import Settings
from slideshow.exceptions import AssetNotFoundError, StorageUnavailableError, ValidationError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024  # 1 MiB


@dataclass
class AssetDescriptor:
    """Result of a storage write."""

    key: str
    url: str
    size: int
    content_type: str
    thumbnail_key: str | None = None


def companion_key(key: str, prefix: str = "thumb_") -> str:
    """Thumbnail key for a primary key: same namespace, prefixed base filename."""
    directory, filename = posixpath.split(key)
    return posixpath.join(directory, f"{prefix}{filename}")


def optimize_image(raw: bytes, max_width: int, max_height: int, quality: int) -> bytes:
    """Fit the image inside max_width x max_height (never enlarging) and re-encode as JPEG."""
    with Image.open(io.BytesIO(raw)) as img:
        img = ImageOps.exif_transpose(img)
        img = img.convert("RGB")
        img.thumbnail((max_width, max_height))
        out = io.BytesIO()
        img.save(out, format="JPEG", quality=quality)
        return out.getvalue()


def make_thumbnail(raw: bytes, size: int, quality: int) -> bytes:
    """Square cover-cropped JPEG thumbnail."""
    with Image.open(io.BytesIO(raw)) as img:
        img = ImageOps.exif_transpose(img)
        img = img.convert("RGB")
        thumb = ImageOps.fit(img, (size, size))
        out = io.BytesIO()
        thumb.save(out, format="JPEG", quality=quality)
        return out.getvalue()


class StorageService(ABC):
    """Binary asset store shared by the filesystem and GCS variants."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def _generate_key(self, namespace: str, ext: str) -> str:
        unique_suffix = f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}"
        return f"{namespace.strip('/')}/image-{unique_suffix}{ext}"

    def companion_key(self, key: str) -> str:
        return companion_key(key, self.settings.thumbnail_prefix)

    def put(
        self,
        namespace: str,
        raw_bytes: bytes,
        content_hint: str,
        filename: str | None = None,
    ) -> AssetDescriptor:
        """Store raw bytes under a fresh key in ``namespace``.

        Images are optimised and get a companion thumbnail.
        """
        is_image = content_hint.startswith("image/")
        if is_image:
            try:
                body = optimize_image(
                    raw_bytes,
                    self.settings.image_max_width,
                    self.settings.image_max_height,
                    self.settings.image_jpeg_quality,
                )
                thumbnail = make_thumbnail(
                    raw_bytes,
                    self.settings.thumbnail_size,
                    self.settings.thumbnail_jpeg_quality,
                )
            except (UnidentifiedImageError, OSError) as e:
                raise ValidationError(f"Only image files are allowed: {e}")
            content_type = "image/jpeg"
            ext = ".jpg"
        else:
            body = raw_bytes
            thumbnail = None
            content_type = content_hint
            ext = os.path.splitext(filename)[1].lower() if filename else ""

        key = self._generate_key(namespace, ext)
        self._write(key, body, content_type)

        thumbnail_key = None
        if thumbnail is not None:
            thumbnail_key = self.companion_key(key)
            try:
                self._write(thumbnail_key, thumbnail, "image/jpeg")
            except StorageUnavailableError:
                self._remove(key)
                raise

        logger.info(f"Stored asset {key} ({len(body)} bytes, {content_type})")
        return AssetDescriptor(
            key=key,
            url=self.locate(key),
            size=len(body),
            content_type=content_type,
            thumbnail_key=thumbnail_key,
        )

    def delete(self, key: str) -> bool:
        """Delete an asset and its companion thumbnail.

        Returns False when the primary was already absent; deleting twice is not an error.
        """
        removed = self._remove(key)
        self._remove(self.companion_key(key))
        if removed:
            logger.info(f"Deleted asset {key}")
        return removed

    @abstractmethod
    def _write(self, key: str, data: bytes, content_type: str) -> None: ...

    @abstractmethod
    def _remove(self, key: str) -> bool: ...

    @abstractmethod
    def put_file(self, local_path: str | Path, key: str, content_type: str) -> AssetDescriptor:
        """Store an existing local file under an explicit key."""

    @abstractmethod
    def exists(self, key: str) -> bool: ...

    @abstractmethod
    def locate(self, key: str) -> str: ...

    @abstractmethod
    def size(self, key: str) -> int: ...

    @abstractmethod
    def iter_range(self, key: str, start: int, end: int, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
        """Yield bytes start..end (inclusive)."""

    @abstractmethod
    def fetch_to_local(self, key: str, dest_dir: str | Path) -> Path:
        """Return a local path holding the asset's bytes."""


class LocalStorageService(StorageService):
    """Local file storage rooted at a directory, served under a public URL prefix."""

    def __init__(self, settings: Settings) -> None:
        super().__init__(settings)
        self.base_path = Path(settings.local_storage_path).resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.public_url_prefix = settings.local_public_url_prefix.rstrip("/")

    def _get_full_path(self, storage_key: str) -> Path:
        full_path = (self.base_path / storage_key).resolve()
        if not full_path.is_relative_to(self.base_path):
            raise ValidationError(f"Invalid storage key: {storage_key}")
        return full_path

    def _write(self, key: str, data: bytes, content_type: str) -> None:
        full_path = self._get_full_path(key)
        try:
            full_path.parent.mkdir(parents=True, exist_ok=True)
            # Write beside the target and rename so readers never see partial files
            fd, tmp_path = tempfile.mkstemp(dir=full_path.parent, prefix=".upload-")
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp_path, full_path)
        except OSError as e:
            raise StorageUnavailableError(f"Failed to write {key}: {e}")

    def _remove(self, key: str) -> bool:
        try:
            self._get_full_path(key).unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageUnavailableError(f"Failed to delete {key}: {e}")

    def put_file(self, local_path: str | Path, key: str, content_type: str) -> AssetDescriptor:
        full_path = self._get_full_path(key)
        tmp_path = full_path.with_name(f".upload-{full_path.name}")
        try:
            full_path.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(local_path, tmp_path)
            os.replace(tmp_path, full_path)
            size = full_path.stat().st_size
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            raise StorageUnavailableError(f"Failed to store {key}: {e}")
        return AssetDescriptor(key=key, url=self.locate(key), size=size, content_type=content_type)

    def exists(self, key: str) -> bool:
        return self._get_full_path(key).is_file()

    def locate(self, key: str) -> str:
        return f"{self.public_url_prefix}/{key}"

    def size(self, key: str) -> int:
        try:
            return self._get_full_path(key).stat().st_size
        except FileNotFoundError:
            raise AssetNotFoundError(key)
        except OSError as e:
            raise StorageUnavailableError(f"Failed to stat {key}: {e}")

    def iter_range(self, key: str, start: int, end: int, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
        full_path = self._get_full_path(key)
        remaining = end - start + 1
        with open(full_path, "rb") as f:
            f.seek(start)
            while remaining > 0:
                chunk = f.read(min(chunk_size, remaining))
                if not chunk:
                    break
                remaining -= len(chunk)
                yield chunk

    def fetch_to_local(self, key: str, dest_dir: str | Path) -> Path:
        # Already local; the renderer checks readability before starting ffmpeg
        return self._get_full_path(key)

    def get_file_path(self, storage_key: str) -> Path:
        """Get the actual file path for serving."""
        return self._get_full_path(storage_key)


class GCSStorageService(StorageService):
    """Google Cloud Storage service with public-read URLs."""

    def __init__(self, settings: Settings) -> None:
        from google.cloud import storage

        super().__init__(settings)
        self._storage = storage
        self._client: storage.Client | None = None
        self._bucket: storage.Bucket | None = None

    @property
    def client(self):
        if self._client is None:
            if self.settings.gcs_project_id:
                self._client = self._storage.Client(project=self.settings.gcs_project_id)
            else:
                self._client = self._storage.Client()
        return self._client

    @property
    def bucket(self):
        if self._bucket is None:
            self._bucket = self.client.bucket(self.settings.gcs_bucket_name)
        return self._bucket

    def _write(self, key: str, data: bytes, content_type: str) -> None:
        blob = self.bucket.blob(key)
        try:
            blob.upload_from_string(data, content_type=content_type)
        except GoogleAPIError as e:
            raise StorageUnavailableError(f"Failed to upload {key}: {e}")

    def _remove(self, key: str) -> bool:
        blob = self.bucket.blob(key)
        try:
            blob.delete()
            return True
        except NotFound:
            return False
        except GoogleAPIError as e:
            raise StorageUnavailableError(f"Failed to delete {key}: {e}")

    def put_file(self, local_path: str | Path, key: str, content_type: str) -> AssetDescriptor:
        blob = self.bucket.blob(key)
        try:
            blob.upload_from_filename(str(local_path), content_type=content_type)
        except GoogleAPIError as e:
            raise StorageUnavailableError(f"Failed to upload {key}: {e}")
        size = os.path.getsize(local_path)
        return AssetDescriptor(key=key, url=self.locate(key), size=size, content_type=content_type)

    def exists(self, key: str) -> bool:
        try:
            return self.bucket.blob(key).exists()
        except GoogleAPIError as e:
            raise StorageUnavailableError(f"Failed to check {key}: {e}")

    def locate(self, key: str) -> str:
        return f"https://storage.googleapis.com/{self.settings.gcs_bucket_name}/{key}"

    def size(self, key: str) -> int:
        try:
            blob = self.bucket.get_blob(key)
        except GoogleAPIError as e:
            raise StorageUnavailableError(f"Failed to stat {key}: {e}")
        if blob is None:
            raise AssetNotFoundError(key)
        return blob.size

    def iter_range(self, key: str, start: int, end: int, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
        blob = self.bucket.blob(key)
        position = start
        while position <= end:
            chunk_end = min(position + chunk_size - 1, end)
            try:
                chunk = blob.download_as_bytes(start=position, end=chunk_end)
            except NotFound:
                raise AssetNotFoundError(key)
            except GoogleAPIError as e:
                raise StorageUnavailableError(f"Failed to read {key}: {e}")
            if not chunk:
                break
            position += len(chunk)
            yield chunk

    def fetch_to_local(self, key: str, dest_dir: str | Path) -> Path:
        local_path = Path(dest_dir) / key.replace("/", "_")
        blob = self.bucket.blob(key)
        try:
            blob.download_to_filename(str(local_path))
        except NotFound:
            raise AssetNotFoundError(key)
        except GoogleAPIError as e:
            raise StorageUnavailableError(f"Failed to download {key}: {e}")
        return local_path


def create_storage_service(settings: Settings) -> StorageService:
    """Use LocalStorageService or GCSStorageService based on config."""
    if settings.use_local_storage:
        return LocalStorageService(settings)
    return GCSStorageService(settings)

"""Image storage for post uploads: validation, thumbnails and removal."""

import logging
import uuid
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from fastapi import UploadFile, status
from PIL import Image, ImageOps
from pydantic import BaseModel

from app.config import settings
from app.core.exceptions import ServiceError, UploadRejectedException

# Setup logging
logger = logging.getLogger(__name__)

# ============================================
# FILE TYPE DEFINITIONS
# ============================================

ALLOWED_MIME_TYPES: Tuple[str, ...] = (
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/gif",
    "image/webp",
    "image/bmp",
)

MIME_TO_EXTENSION: Dict[str, str] = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "image/bmp": ".bmp",
}

# Magic bytes signatures, checked against the declared MIME type
MAGIC_BYTES: Dict[str, List[bytes]] = {
    "image/jpeg": [b"\xff\xd8\xff"],
    "image/jpg": [b"\xff\xd8\xff"],
    "image/png": [b"\x89PNG\r\n\x1a\n"],
    "image/gif": [b"GIF87a", b"GIF89a"],
    "image/bmp": [b"BM"],
}

THUMBNAIL_PREFIX = "thumb_"
THUMBNAIL_EXTENSION = ".jpg"
THUMBNAIL_SUBDIR = "thumbnails"
MAX_FILENAME_LENGTH = 255
DEFAULT_EXTENSION = ".jpg"


class ImageDimensions(BaseModel):
    width: int
    height: int


class StoredFile(BaseModel):
    """What ``FileStore.save`` wrote to disk."""
    original_name: str
    file_name: str
    thumbnail_name: Optional[str] = None
    size: int
    mime_type: str
    path: str
    thumbnail_path: Optional[str] = None
    dimensions: Optional[ImageDimensions] = None


def validate_magic_bytes(file_content: bytes, mime_type: str) -> bool:
    """
    Check the file signature against the declared MIME type.

    WebP is checked separately because its signature is split around the
    chunk size (``RIFF????WEBP``). Types without a known signature pass.
    """
    if mime_type == "image/webp":
        return file_content[:4] == b"RIFF" and file_content[8:12] == b"WEBP"
    signatures = MAGIC_BYTES.get(mime_type)
    if not signatures:
        return True
    return any(file_content.startswith(signature) for signature in signatures)


def thumbnail_name_for(file_name: str) -> str:
    """Thumbnails are always JPEG: ``photo.png`` -> ``thumb_photo.jpg``."""
    return f"{THUMBNAIL_PREFIX}{Path(file_name).stem}{THUMBNAIL_EXTENSION}"


def get_file_extension(filename: str) -> str:
    """Safely get file extension in lowercase."""
    if not filename:
        return ""
    return Path(filename).suffix.lower()


class FileStore:
    """
    Stores uploaded images under ``upload_dir`` with a ``thumbnails/``
    companion folder.

    Files are written directly with no cross-file transaction: callers that
    fail after ``save`` must call ``delete`` themselves.
    """

    def __init__(
        self,
        upload_dir: str,
        *,
        max_size: int = settings.MAX_UPLOAD_SIZE,
        allowed_mime_types: Iterable[str] = ALLOWED_MIME_TYPES,
        thumbnail_size: Tuple[int, int] = (settings.THUMBNAIL_WIDTH, settings.THUMBNAIL_HEIGHT),
        public_prefix: str = f"{settings.API_PREFIX}/static",
    ):
        self.upload_dir = Path(upload_dir)
        self.thumbnail_dir = self.upload_dir / THUMBNAIL_SUBDIR
        self.max_size = max_size
        self.allowed_mime_types = tuple(allowed_mime_types)
        self.thumbnail_size = thumbnail_size
        self.public_prefix = public_prefix.rstrip("/")

    # ----- Paths -----
    def public_path(self, file_name: str) -> str:
        return f"{self.public_prefix}/{file_name}"

    def thumbnail_public_path(self, thumbnail_name: str) -> str:
        return f"{self.public_prefix}/{THUMBNAIL_SUBDIR}/{thumbnail_name}"

    def ensure_directories(self) -> None:
        self.thumbnail_dir.mkdir(parents=True, exist_ok=True)

    # ----- Validation -----
    def _too_large(self) -> UploadRejectedException:
        return UploadRejectedException(
            f"File too large. Maximum size: {self.max_size / (1024 * 1024):g}MB",
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
        )

    def validate(self, upload: Optional[UploadFile]) -> bytes:
        """
        Validate name, MIME type, size and signature of an upload.

        Returns:
            The file content

        Raises:
            UploadRejectedException: 400 for type/name problems, 413 for size
        """
        if upload is None or not upload.filename:
            raise UploadRejectedException("File is required")

        if len(upload.filename) > MAX_FILENAME_LENGTH:
            raise UploadRejectedException("Invalid file name")

        mime_type = (upload.content_type or "").lower()
        if mime_type not in self.allowed_mime_types:
            raise UploadRejectedException(
                f"Invalid file type. Allowed types: {', '.join(self.allowed_mime_types)}"
            )

        # Declared size first, so oversized uploads are never read into memory
        declared_size = getattr(upload, "size", None)
        if declared_size is not None and declared_size > self.max_size:
            raise self._too_large()

        upload.file.seek(0)
        content = upload.file.read(self.max_size + 1)
        upload.file.seek(0)

        if len(content) > self.max_size:
            raise self._too_large()

        if not content:
            raise UploadRejectedException("Empty files are not allowed")

        if not validate_magic_bytes(content, mime_type):
            logger.warning(
                f"[FILE] Magic bytes mismatch - filename: {upload.filename}, declared: {mime_type}"
            )
            raise UploadRejectedException(
                "File content does not match its declared type"
            )

        return content

    def extension_for(self, mime_type: Optional[str], filename: Optional[str]) -> str:
        """MIME map first, then the original extension, then ``.jpg``."""
        if mime_type and mime_type.lower() in MIME_TO_EXTENSION:
            return MIME_TO_EXTENSION[mime_type.lower()]
        return get_file_extension(filename or "") or DEFAULT_EXTENSION

    # ----- Save -----
    def save(
        self,
        upload: UploadFile,
        thumbnail_size: Optional[Tuple[int, int]] = None,
    ) -> StoredFile:
        """
        Validate and persist an upload, generating a thumbnail for images.

        Args:
            upload: FastAPI UploadFile object
            thumbnail_size: (width, height) of the cover-cropped thumbnail,
                defaults to the store's configured size

        Returns:
            StoredFile describing the stored original and thumbnail

        Raises:
            UploadRejectedException: If validation fails
            ServiceError: If the file cannot be written
        """
        content = self.validate(upload)
        mime_type = (upload.content_type or "").lower()

        file_name = f"{uuid.uuid4().hex}{self.extension_for(mime_type, upload.filename)}"
        file_path = self.upload_dir / file_name

        try:
            self.ensure_directories()
            with open(file_path, "wb") as f:
                f.write(content)
        except OSError as e:
            logger.error(f"[FILE] Failed to save file {file_name}: {e}")
            raise ServiceError("Error saving file", e) from e

        logger.info(f"[FILE] File saved: {file_path} ({len(content)} bytes)")

        thumbnail_name = None
        if mime_type.startswith("image/"):
            thumbnail_name = self._generate_thumbnail(
                file_path, file_name, thumbnail_size or self.thumbnail_size
            )

        return StoredFile(
            original_name=upload.filename,
            file_name=file_name,
            thumbnail_name=thumbnail_name,
            size=file_path.stat().st_size,
            mime_type=mime_type,
            path=self.public_path(file_name),
            thumbnail_path=self.thumbnail_public_path(thumbnail_name) if thumbnail_name else None,
            dimensions=self._read_dimensions(file_path),
        )

    def _generate_thumbnail(
        self, source: Path, file_name: str, size: Tuple[int, int]
    ) -> Optional[str]:
        """Cover-fit, center-cropped JPEG thumbnail. Failure yields None."""
        thumbnail_name = thumbnail_name_for(file_name)
        try:
            with Image.open(source) as img:
                thumb = ImageOps.fit(
                    img.convert("RGB"),
                    size,
                    method=Image.Resampling.LANCZOS,
                    centering=(0.5, 0.5),
                )
                thumb.save(self.thumbnail_dir / thumbnail_name, format="JPEG", quality=80)
        except (OSError, ValueError) as e:
            logger.warning(f"[FILE] Thumbnail generation failed for {file_name}: {e}")
            return None
        return thumbnail_name

    @staticmethod
    def _read_dimensions(file_path: Path) -> Optional[ImageDimensions]:
        try:
            with Image.open(file_path) as img:
                width, height = img.size
        except (OSError, ValueError) as e:
            logger.warning(f"[FILE] Could not read image dimensions of {file_path.name}: {e}")
            return None
        return ImageDimensions(width=width, height=height)

    # ----- Delete -----
    def delete(self, file_name: str) -> bool:
        """
        Remove a stored file and its thumbnail.

        Returns:
            True if the original existed. A missing thumbnail is not an error.

        Raises:
            ValueError: If ``file_name`` is empty or contains path components
        """
        if not file_name:
            raise ValueError("File name is required")
        if Path(file_name).name != file_name or file_name in (".", ".."):
            logger.warning(f"[FILE] Unsafe file name rejected: {file_name}")
            raise ValueError(f"Invalid file name: {file_name}")

        original = self.upload_dir / file_name
        thumbnail = self.thumbnail_dir / thumbnail_name_for(file_name)

        existed = original.is_file()
        if existed:
            original.unlink()
            logger.info(f"[FILE] File deleted: {file_name}")

        if thumbnail.is_file():
            thumbnail.unlink(missing_ok=True)
            logger.info(f"[FILE] Thumbnail deleted: {thumbnail.name}")

        return existed

    def stats(self) -> Dict[str, float]:
        """Count and size of stored originals and thumbnails."""
        if not self.upload_dir.is_dir():
            return {"total_files": 0, "total_thumbnails": 0, "total_size": 0, "total_size_mb": 0.0}

        files = [p for p in self.upload_dir.iterdir() if p.is_file()]
        thumbnails = [p for p in self.thumbnail_dir.iterdir() if p.is_file()] if self.thumbnail_dir.is_dir() else []
        total_size = sum(p.stat().st_size for p in files)
        return {
            "total_files": len(files),
            "total_thumbnails": len(thumbnails),
            "total_size": total_size,
            "total_size_mb": round(total_size / (1024 * 1024), 2),
        }


# Singleton instance
file_store = FileStore(settings.UPLOAD_DIR)

"""
Media Provider Classes

Uploaded video files and images live outside the database. Services talk to a
`MediaStore`, which stores raw bytes and returns where they ended up; the
entity rows only keep the resulting `{url, storageKey}` reference.
"""

import asyncio
import os
import struct
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from core.exceptions import DependencyError, ValidationError
from core.logging_config import get_logger
from core.validation import InputValidator

logger = get_logger(__name__)

MEDIA_KINDS = ("video", "image")


@dataclass(frozen=True)
class MediaUpload:
    """An uploaded file as received from the client"""

    data: bytes
    content_type: Optional[str] = None
    filename: Optional[str] = None


@dataclass(frozen=True)
class StoredMedia:
    url: str
    storage_key: str
    duration: float = 0.0

    def reference(self) -> Dict[str, Any]:
        """The `{url, storageKey}` value persisted on the owning entity"""
        return {"url": self.url, "storageKey": self.storage_key}


class MediaStore(ABC):
    """Abstract base class for media backends"""

    @abstractmethod
    async def store(self, data: bytes, kind: str, filename: Optional[str] = None) -> StoredMedia:
        """Persist the bytes. Raises DependencyError when the backend fails."""
        pass

    @abstractmethod
    async def remove(self, storage_key: str, kind: str) -> bool:
        """Delete stored media. Returns False when nothing was removed."""
        pass

    async def store_upload(self, upload: MediaUpload, kind: str, field: str) -> StoredMedia:
        """Check the upload's content type, then store it"""
        InputValidator.validate_upload(upload.content_type, kind, field)
        return await self.store(upload.data, kind, upload.filename)

    @property
    @abstractmethod
    def source_name(self) -> str:
        pass

    async def remove_quietly(self, reference: Optional[Dict[str, Any]], kind: str) -> bool:
        """Best-effort removal used for cleanup; failures are logged, never raised"""
        if not reference or not reference.get("storageKey"):
            return False
        try:
            return await self.remove(reference["storageKey"], kind)
        except DependencyError as e:
            logger.warning(
                f"Failed to remove {kind} {reference['storageKey']}: {e.message}",
                extra={"storage_key": reference["storageKey"], "kind": kind},
            )
            return False


class LocalMediaStore(MediaStore):
    """Store media on the local filesystem under MEDIA_ROOT"""

    def __init__(self, root: Optional[str] = None, base_url: Optional[str] = None):
        self.root = Path(root or os.getenv("MEDIA_ROOT", "./media"))
        self.base_url = (base_url or os.getenv("MEDIA_BASE_URL", "/media")).rstrip("/")

    @property
    def source_name(self) -> str:
        return "local"

    async def store(self, data: bytes, kind: str, filename: Optional[str] = None) -> StoredMedia:
        self._check_kind(kind)
        if not data:
            raise ValidationError(f"Uploaded {kind} file is empty.", field=kind)

        suffix = Path(filename).suffix.lower() if filename else ""
        storage_key = f"{kind}s/{uuid.uuid4().hex}{suffix}"
        target = self.root / storage_key

        try:
            await asyncio.to_thread(self._write, target, data)
        except OSError as e:
            logger.error(f"Failed to store {kind}: {e}", extra={"storage_key": storage_key})
            raise DependencyError(self.source_name, str(e), f"Failed to upload {kind} file.")

        duration = read_mp4_duration(data) if kind == "video" else 0.0
        logger.info(
            f"Stored {kind} {storage_key}",
            extra={"storage_key": storage_key, "size": len(data), "duration": duration},
        )
        return StoredMedia(url=f"{self.base_url}/{storage_key}", storage_key=storage_key, duration=duration)

    async def remove(self, storage_key: str, kind: str) -> bool:
        self._check_kind(kind)
        target = (self.root / storage_key).resolve()
        if self.root.resolve() not in target.parents:
            logger.warning(f"Refusing to remove media outside root: {storage_key}")
            return False

        try:
            removed = await asyncio.to_thread(self._unlink, target)
        except OSError as e:
            raise DependencyError(self.source_name, str(e), f"Failed to remove {kind} file.")

        logger.info(f"Removed {kind} {storage_key}", extra={"removed": removed})
        return removed

    def _check_kind(self, kind: str) -> None:
        if kind not in MEDIA_KINDS:
            raise ValueError(f"Unsupported media kind: {kind}")

    @staticmethod
    def _write(target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)

    @staticmethod
    def _unlink(target: Path) -> bool:
        if not target.exists():
            return False
        target.unlink()
        return True


def _iter_boxes(data: bytes, start: int, end: int):
    offset = start
    while offset + 8 <= end:
        size, box_type = struct.unpack(">I4s", data[offset : offset + 8])
        header = 8
        if size == 1:
            if offset + 16 > end:
                return
            size = struct.unpack(">Q", data[offset + 8 : offset + 16])[0]
            header = 16
        elif size == 0:
            size = end - offset
        if size < header:
            return
        yield box_type, offset + header, min(offset + size, end)
        offset += size


def read_mp4_duration(data: bytes) -> float:
    """Read the duration in seconds from an MP4/QuickTime `moov/mvhd` box, or 0.0"""
    for box_type, body_start, body_end in _iter_boxes(data, 0, len(data)):
        if box_type != b"moov":
            continue
        for inner_type, inner_start, inner_end in _iter_boxes(data, body_start, body_end):
            if inner_type != b"mvhd" or inner_end - inner_start < 20:
                continue
            version = data[inner_start]
            if version == 1:
                if inner_end - inner_start < 32:
                    return 0.0
                timescale, duration = struct.unpack(">IQ", data[inner_start + 20 : inner_start + 32])
            else:
                timescale, duration = struct.unpack(">II", data[inner_start + 12 : inner_start + 20])
            return round(duration / timescale, 3) if timescale else 0.0
    return 0.0


# Global media store
_media_store: Optional[MediaStore] = None


def get_media_store() -> MediaStore:
    global _media_store
    if _media_store is None:
        _media_store = LocalMediaStore()
    return _media_store

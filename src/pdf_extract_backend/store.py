"""
Filesystem-backed result store.

Each processed upload is one directory under the store root:

    {root}/{id}/original.pdf
    {root}/{id}/extracted_text.txt
    {root}/{id}/images/page{N}_image{M}.{ext}

There is no index; every call scans or reads the live directory tree, so the
filesystem is always the source of truth. Directories whose names start with
a dot are in-flight (being written or being deleted) and are never reported.

Concurrency:
    A delete racing with a get or list on the same id is not excluded. The
    reader may find the upload gone mid-request and gets NotFound.
"""

from __future__ import annotations

import logging
import mimetypes
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import List
from uuid import uuid4

from .errors import NotFound, StorageFailure
from .models import UploadSummary
from .utils import ensure_directory, is_safe_segment, resolve_inside

logger = logging.getLogger(__name__)

ORIGINAL_FILENAME = "original.pdf"
TEXT_FILENAME = "extracted_text.txt"
IMAGES_DIRNAME = "images"

STAGING_PREFIX = ".staging-"
DELETING_PREFIX = ".deleting-"

DEFAULT_MEDIA_TYPE = "application/octet-stream"
PDF_MEDIA_TYPE = "application/pdf"


@dataclass(frozen=True)
class StoredFile:
    path: Path
    media_type: str

    @property
    def filename(self) -> str:
        return self.path.name


class ResultStore:
    """
    Read and delete access to persisted uploads.

    Attributes:
        root: The store root directory; created on construction
    """

    def __init__(self, root: Path) -> None:
        self.root = ensure_directory(root)

    def list_uploads(self) -> List[UploadSummary]:
        """
        Summarize every upload directory, newest first.

        Ordering uses the directory's modification time, ties broken by id so
        the result is reproducible.
        """
        summaries: List[UploadSummary] = []
        for entry in self.root.iterdir():
            if entry.name.startswith(".") or not entry.is_dir():
                continue
            try:
                summaries.append(self._summarize(entry))
            except FileNotFoundError:
                # Deleted between iterdir() and stat()
                continue

        summaries.sort(key=lambda s: s.id)
        summaries.sort(key=lambda s: s.created_at, reverse=True)
        return summaries

    def _summarize(self, upload_dir: Path) -> UploadSummary:
        images = self._image_names(upload_dir / IMAGES_DIRNAME)
        return UploadSummary(
            id=upload_dir.name,
            has_text=(upload_dir / TEXT_FILENAME).is_file(),
            has_pdf=(upload_dir / ORIGINAL_FILENAME).is_file(),
            image_count=len(images),
            images=images,
            created_at=int(upload_dir.stat().st_mtime * 1000),
        )

    @staticmethod
    def _image_names(images_dir: Path) -> List[str]:
        if not images_dir.is_dir():
            return []
        return sorted(path.name for path in images_dir.iterdir() if path.is_file())

    def upload_dir(self, upload_id: str) -> Path:
        """
        Resolve an upload directory, rejecting ids that could escape the root.

        Raises:
            NotFound: If the id is unsafe or no such upload exists
        """
        path = self._safe_path(upload_id)
        if not path.is_dir():
            raise NotFound("Upload not found")
        return path

    def _safe_path(self, *segments: str) -> Path:
        if not all(is_safe_segment(segment) for segment in segments):
            raise NotFound("Upload not found")
        path = resolve_inside(self.root, *segments)
        if path is None:
            raise NotFound("Upload not found")
        return path

    def get_text(self, upload_id: str) -> str:
        path = self._safe_path(upload_id, TEXT_FILENAME)
        try:
            return path.read_bytes().decode("utf-8")
        except FileNotFoundError as exc:
            raise NotFound("Text file not found") from exc
        except (OSError, UnicodeDecodeError) as exc:
            logger.error(f"Failed to read text for upload {upload_id}: {exc}")
            raise StorageFailure("Failed to read text") from exc

    def get_image(self, upload_id: str, image_name: str) -> StoredFile:
        path = self._safe_path(upload_id, IMAGES_DIRNAME, image_name)
        if not path.is_file():
            raise NotFound("Image not found")
        media_type, _ = mimetypes.guess_type(path.name)
        return StoredFile(path=path, media_type=media_type or DEFAULT_MEDIA_TYPE)

    def get_original(self, upload_id: str) -> StoredFile:
        path = self._safe_path(upload_id, ORIGINAL_FILENAME)
        if not path.is_file():
            raise NotFound("PDF not found")
        return StoredFile(path=path, media_type=PDF_MEDIA_TYPE)

    def delete(self, upload_id: str) -> None:
        """
        Remove an upload's whole directory tree.

        The directory is first renamed to a hidden sibling, so once this call
        starts the upload is no longer visible under its id even if the
        recursive removal is interrupted.

        Raises:
            NotFound: If the id is unsafe or no such upload exists
            StorageFailure: If the directory could not be removed
        """
        path = self.upload_dir(upload_id)
        doomed = self.root / f"{DELETING_PREFIX}{upload_id}-{uuid4().hex[:8]}"
        try:
            path.rename(doomed)
        except FileNotFoundError as exc:
            raise NotFound("Upload not found") from exc
        except OSError as exc:
            logger.error(f"Failed to delete upload {upload_id}: {exc}")
            raise StorageFailure("Failed to delete upload") from exc

        try:
            shutil.rmtree(doomed)
        except OSError as exc:
            logger.error(f"Upload {upload_id} hidden but not fully removed from {doomed}: {exc}")
            raise StorageFailure("Failed to delete upload") from exc
        logger.info(f"Deleted upload {upload_id}")

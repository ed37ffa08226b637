"""
Upload processing: turn one PDF byte stream into a populated upload directory.

The UploadProcessor opens the document through the extraction capability,
writes every embedded page image, the extracted text and a verbatim copy of
the original, and only then makes the directory visible under its id. A
failed upload leaves nothing behind that the result store would report.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List

from .errors import ImageDecodeError, StorageFailure, ValidationFailure
from .extractor import DEFAULT_IMAGE_EXTENSION, PdfDocument, open_document
from .store import IMAGES_DIRNAME, ORIGINAL_FILENAME, STAGING_PREFIX, TEXT_FILENAME
from .utils import ensure_directory, is_safe_segment

logger = logging.getLogger(__name__)

# PyMuPDF extension -> file suffix used in the store layout
SUFFIX_ALIASES = {
    "jpeg": "jpg",
    "jbig2": "jb2",
    "tif": "tiff",
}


@dataclass
class UploadResult:
    """
    Outcome of processing one upload.

    Attributes:
        id: The upload identifier, also the directory name
        extracted_text: Full document text in page order
        image_names: Names of the image files written, in extraction order
        text_path: Location of extracted_text.txt
        pdf_path: Location of original.pdf
    """

    id: str
    extracted_text: str
    image_names: List[str]
    text_path: Path
    pdf_path: Path

    @property
    def image_count(self) -> int:
        return len(self.image_names)


def image_file_name(page_number: int, image_number: int, extension: str) -> str:
    """
    Name an extracted image file.

    image_number is a running counter across the whole document, not per page.

    Example:
        >>> image_file_name(2, 3, "png")
        "page2_image3.png"
        >>> image_file_name(1, 1, "jpeg")
        "page1_image1.jpg"
    """
    suffix = extension.lower() if extension and extension.isalnum() else DEFAULT_IMAGE_EXTENSION
    suffix = SUFFIX_ALIASES.get(suffix, suffix)
    return f"page{page_number}_image{image_number}.{suffix}"


class UploadProcessor:
    """
    Synchronous, single-attempt PDF processor.

    Processing happens in a hidden staging directory that is renamed to
    {root}/{id} once every file is written. No state is shared between
    calls, so concurrent uploads need no locking.

    Attributes:
        root: Store root under which upload directories are created
    """

    def __init__(self, root: Path, opener: Callable[[bytes], PdfDocument] = open_document) -> None:
        self.root = ensure_directory(root)
        self._opener = opener

    def process(self, pdf_bytes: bytes, upload_id: str) -> UploadResult:
        """
        Extract text and images from a PDF and persist the result bundle.

        Args:
            pdf_bytes: Raw PDF file bytes
            upload_id: Caller-generated identifier for the new upload

        Returns:
            UploadResult describing exactly what was written to disk

        Raises:
            ValidationFailure: If upload_id is not a safe path segment
            ParseFailure: If the document cannot be opened or read
            StorageFailure: On disk errors, or if the id is already in use
        """
        if not is_safe_segment(upload_id):
            raise ValidationFailure(f"Invalid upload id: {upload_id!r}")

        target = self.root / upload_id
        if target.exists():
            raise StorageFailure(f"Upload {upload_id} already exists")

        staging = self.root / f"{STAGING_PREFIX}{upload_id}"
        try:
            staging.mkdir()
        except FileExistsError as exc:
            raise StorageFailure(f"Upload {upload_id} is already being processed") from exc
        except OSError as exc:
            logger.error(f"Failed to create staging directory for upload {upload_id}: {exc}")
            raise StorageFailure("Failed to store upload") from exc

        try:
            text, image_names = self._populate(staging, pdf_bytes)
            self._publish(staging, target, upload_id)
        except OSError as exc:
            shutil.rmtree(staging, ignore_errors=True)
            logger.error(f"Failed to store upload {upload_id}: {exc}")
            raise StorageFailure("Failed to store upload") from exc
        except Exception:
            shutil.rmtree(staging, ignore_errors=True)
            raise

        logger.info(f"Processed upload {upload_id}: {len(text)} characters, {len(image_names)} images")
        return UploadResult(
            id=upload_id,
            extracted_text=text,
            image_names=image_names,
            text_path=target / TEXT_FILENAME,
            pdf_path=target / ORIGINAL_FILENAME,
        )

    def _populate(self, staging: Path, pdf_bytes: bytes) -> tuple[str, List[str]]:
        images_dir = staging / IMAGES_DIRNAME
        images_dir.mkdir()

        document = self._opener(pdf_bytes)
        try:
            text = self.extract_text(document)
            image_names = self.extract_images(document, images_dir)
        finally:
            document.close()

        # Text and original go last so a partial bundle never looks complete
        (staging / TEXT_FILENAME).write_bytes(text.encode("utf-8"))
        (staging / ORIGINAL_FILENAME).write_bytes(pdf_bytes)
        return text, image_names

    def _publish(self, staging: Path, target: Path, upload_id: str) -> None:
        if target.exists():
            raise StorageFailure(f"Upload {upload_id} already exists")
        staging.rename(target)

    @staticmethod
    def extract_text(document: PdfDocument) -> str:
        return "".join(document.page_text(page_number) for page_number in range(1, document.page_count + 1))

    @staticmethod
    def extract_images(document: PdfDocument, images_dir: Path) -> List[str]:
        """
        Write every page image to images_dir and return the names written.

        The counter advances on every attempt, so an image that fails to
        decode keeps its number and later images are not renumbered.
        """
        written: List[str] = []
        image_number = 0
        for page_number in range(1, document.page_count + 1):
            for ref in document.page_images(page_number):
                image_number += 1
                try:
                    decoded = document.decode_image(ref)
                except ImageDecodeError as exc:
                    logger.warning(f"Skipping image {image_number} on page {page_number}: {exc}")
                    continue

                name = image_file_name(page_number, image_number, decoded.extension)
                (images_dir / name).write_bytes(decoded.data)
                written.append(name)
        return written

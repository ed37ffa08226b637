"""
PDF extraction capability.

The processor only depends on the small `PdfDocument` protocol defined here:
page count, per-page text and per-page embedded images. `open_document`
provides the PyMuPDF-backed implementation; any other PDF library can be
plugged in by supplying an opener that returns an object of the same shape.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Protocol

import fitz  # PyMuPDF

from .errors import ImageDecodeError, ParseFailure

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_EXTENSION = "png"


@dataclass(frozen=True)
class ImageRef:
    """An image XObject referenced directly by a page's resources."""

    page_number: int
    xref: int
    name: str


@dataclass(frozen=True)
class DecodedImage:
    data: bytes
    extension: str


class PdfDocument(Protocol):
    @property
    def page_count(self) -> int: ...

    def page_text(self, page_number: int) -> str: ...

    def page_images(self, page_number: int) -> List[ImageRef]: ...

    def decode_image(self, ref: ImageRef) -> DecodedImage: ...

    def close(self) -> None: ...


class PyMuPdfDocument:
    """
    PdfDocument backed by a PyMuPDF document.

    Page numbers are 1-based throughout, matching the names written to disk.
    """

    def __init__(self, doc: fitz.Document) -> None:
        self._doc = doc

    @property
    def page_count(self) -> int:
        return len(self._doc)

    def page_text(self, page_number: int) -> str:
        """
        Extract one page's text in visual reading order.

        sort=True orders blocks by position rather than content-stream order,
        so multi-column or reordered streams come out top-left to bottom-right.
        """
        try:
            return self._doc[page_number - 1].get_text("text", sort=True)
        except (RuntimeError, ValueError) as exc:
            raise ParseFailure(f"Failed to read text on page {page_number}: {exc}") from exc

    def page_images(self, page_number: int) -> List[ImageRef]:
        try:
            entries = self._doc[page_number - 1].get_images(full=True)
        except (RuntimeError, ValueError) as exc:
            raise ParseFailure(f"Failed to read resources on page {page_number}: {exc}") from exc

        refs: List[ImageRef] = []
        for entry in entries:
            # (xref, smask, width, height, bpc, colorspace, alt_colorspace, name, filter, referencer)
            xref, name, referencer = entry[0], entry[7], entry[9]
            if referencer:
                # Image lives inside a form XObject, not the page's own resources
                continue
            refs.append(ImageRef(page_number=page_number, xref=xref, name=name))
        return refs

    def decode_image(self, ref: ImageRef) -> DecodedImage:
        try:
            base_image = self._doc.extract_image(ref.xref)
        except (RuntimeError, ValueError) as exc:
            raise ImageDecodeError(f"Could not extract image xref {ref.xref}: {exc}") from exc

        if base_image and base_image.get("image"):
            extension = (base_image.get("ext") or "").lower() or DEFAULT_IMAGE_EXTENSION
            return DecodedImage(data=base_image["image"], extension=extension)

        # No native stream available; rasterize and encode as PNG instead
        try:
            pixmap = fitz.Pixmap(self._doc, ref.xref)
            if pixmap.n - pixmap.alpha > 3:
                pixmap = fitz.Pixmap(fitz.csRGB, pixmap)
            return DecodedImage(data=pixmap.tobytes("png"), extension=DEFAULT_IMAGE_EXTENSION)
        except (RuntimeError, ValueError) as exc:
            raise ImageDecodeError(f"Could not rasterize image xref {ref.xref}: {exc}") from exc

    def close(self) -> None:
        self._doc.close()


def open_document(data: bytes) -> PyMuPdfDocument:
    """
    Open PDF bytes with PyMuPDF.

    Args:
        data: Raw PDF file bytes

    Returns:
        A PyMuPdfDocument; callers must close() it

    Raises:
        ParseFailure: If the bytes cannot be parsed as a PDF with at least one page
    """
    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except (RuntimeError, ValueError) as exc:
        raise ParseFailure(f"Failed to open PDF: {exc}") from exc

    try:
        if doc.needs_pass:
            raise ParseFailure("PDF is encrypted and requires a password")
        page_count = len(doc)
    except (RuntimeError, ValueError) as exc:
        doc.close()
        raise ParseFailure(f"Failed to read PDF page tree: {exc}") from exc
    except ParseFailure:
        doc.close()
        raise

    if page_count == 0:
        doc.close()
        raise ParseFailure("PDF contains no pages")

    logger.debug(f"Opened PDF with {page_count} pages")
    return PyMuPdfDocument(doc)

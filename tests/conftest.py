"""
Pytest configuration and fixtures for PDF Extract Backend tests.
"""

import os
import shutil
import tempfile

import fitz
import pytest
from fastapi.testclient import TestClient

# Set test environment variables before importing the app
os.environ["UPLOADS_DIR"] = tempfile.mkdtemp(prefix="pdf_extract_test_uploads_")
os.environ["LOG_LEVEL"] = "DEBUG"

from pdf_extract_backend.main import app  # noqa: E402


@pytest.fixture(scope="session")
def uploads_dir():
    """The store root used by the app under test; removed after the session."""
    path = os.environ["UPLOADS_DIR"]
    yield path
    shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def client(uploads_dir):
    """Create a test client for the FastAPI app."""
    return TestClient(app)


def make_png(width, height, fill):
    """Encode a solid-colour RGB image as PNG bytes."""
    pixmap = fitz.Pixmap(fitz.csRGB, fitz.IRect(0, 0, width, height), False)
    pixmap.clear_with(fill)
    return pixmap.tobytes("png")


def build_pdf(pages):
    """
    Build a PDF from a list of (text, [png_bytes, ...]) tuples, one per page.
    """
    doc = fitz.open()
    for text, images in pages:
        page = doc.new_page()
        if text:
            page.insert_text((72, 72), text)
        for index, png in enumerate(images):
            top = 100 + index * 120
            page.insert_image(fitz.Rect(72, top, 172, top + 100), stream=png)
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def text_pdf():
    """Two pages of text, no images."""
    return build_pdf([("First page text", []), ("Second page text", [])])


@pytest.fixture
def image_pdf():
    """Two images on page 1 and one image on page 2."""
    return build_pdf(
        [
            ("Page with two pictures", [make_png(8, 8, 10), make_png(12, 6, 200)]),
            ("Page with one picture", [make_png(5, 9, 120)]),
        ]
    )


@pytest.fixture
def jpeg_pdf():
    """One page holding a single JPEG (DCTDecode) image."""
    pixmap = fitz.Pixmap(fitz.csRGB, fitz.IRect(0, 0, 16, 16), False)
    pixmap.clear_with(90)
    return build_pdf([("Photo page", [pixmap.tobytes("jpg")])])


@pytest.fixture
def invalid_pdf():
    return b"This is plain text pretending to be a PDF document."

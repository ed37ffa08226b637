"""
Tests for PDF Extract Backend API endpoints.

Tests cover:
- Health check
- Upload validation and processing
- Listing uploads
- Fetching text, images and the original PDF
- Deleting uploads
- CORS
"""

import os
from io import BytesIO

import pytest

from pdf_extract_backend.main import app, get_max_upload_bytes


def upload(client, data, filename="document.pdf", content_type="application/pdf"):
    return client.post("/api/upload", files={"file": (filename, BytesIO(data), content_type)})


def store_entries(uploads_dir):
    return set(os.listdir(uploads_dir))


class TestHealthCheck:
    """Tests for the /healthz endpoint."""

    def test_health_check_returns_ok(self, client):
        response = client.get("/healthz")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestUpload:
    """Tests for POST /api/upload."""

    def test_upload_pdf_with_images(self, client, image_pdf):
        response = upload(client, image_pdf, filename="report.pdf")
        assert response.status_code == 200

        data = response.json()
        assert data["success"] is True
        assert data["originalFileName"] == "report.pdf"
        assert data["imageCount"] == 3
        assert data["images"] == ["page1_image1.png", "page1_image2.png", "page2_image3.png"]
        assert "Page with two pictures" in data["extractedText"]
        assert len(data["id"]) == 32

    def test_upload_pdf_without_images(self, client, text_pdf):
        response = upload(client, text_pdf)
        assert response.status_code == 200
        data = response.json()
        assert data["imageCount"] == 0
        assert data["images"] == []

    def test_content_type_parameters_ignored(self, client, text_pdf):
        response = upload(client, text_pdf, content_type="application/pdf; charset=binary")
        assert response.status_code == 200

    def test_non_pdf_rejected_without_side_effects(self, client, uploads_dir):
        before = store_entries(uploads_dir)
        response = upload(client, b"not a pdf", filename="notes.txt", content_type="text/plain")
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Only PDF files are allowed"}
        assert store_entries(uploads_dir) == before

    def test_empty_file_rejected(self, client, uploads_dir):
        before = store_entries(uploads_dir)
        response = upload(client, b"")
        assert response.status_code == 400
        assert response.json()["error"] == "Please select a PDF file to upload"
        assert store_entries(uploads_dir) == before

    def test_file_over_limit_rejected_while_reading(self, client, uploads_dir, image_pdf):
        app.dependency_overrides[get_max_upload_bytes] = lambda: len(image_pdf) - 1
        try:
            before = store_entries(uploads_dir)
            response = upload(client, image_pdf)
        finally:
            app.dependency_overrides.pop(get_max_upload_bytes, None)

        assert response.status_code == 413
        assert response.json() == {"success": False, "error": f"Upload exceeds the {len(image_pdf) - 1} byte limit"}
        assert store_entries(uploads_dir) == before

    def test_file_at_limit_accepted(self, client, text_pdf):
        app.dependency_overrides[get_max_upload_bytes] = lambda: len(text_pdf)
        try:
            response = upload(client, text_pdf)
        finally:
            app.dependency_overrides.pop(get_max_upload_bytes, None)
        assert response.status_code == 200

    def test_missing_file_field(self, client):
        response = client.post("/api/upload", data={"other": "value"})
        assert response.status_code == 422

    def test_unparseable_pdf(self, client, uploads_dir, invalid_pdf):
        before = store_entries(uploads_dir)
        response = upload(client, invalid_pdf)
        assert response.status_code == 500
        data = response.json()
        assert data["success"] is False
        assert data["error"].startswith("Failed to process PDF")
        assert store_entries(uploads_dir) == before


class TestListUploads:
    """Tests for GET /api/uploads."""

    def test_lists_new_upload(self, client, image_pdf):
        upload_id = upload(client, image_pdf).json()["id"]

        response = client.get("/api/uploads")
        assert response.status_code == 200
        entries = {entry["id"]: entry for entry in response.json()}
        assert upload_id in entries

        entry = entries[upload_id]
        assert entry["hasText"] is True
        assert entry["hasPdf"] is True
        assert entry["imageCount"] == 3
        assert sorted(entry["images"]) == ["page1_image1.png", "page1_image2.png", "page2_image3.png"]
        assert isinstance(entry["createdAt"], int)

    def test_newest_first(self, client, text_pdf, uploads_dir):
        ids = [upload(client, text_pdf).json()["id"] for _ in range(3)]
        # Pin timestamps so ordering does not depend on filesystem resolution
        for offset, upload_id in enumerate(ids):
            stamp = 2_000_000_000 + offset
            os.utime(os.path.join(uploads_dir, upload_id), (stamp, stamp))

        listed = [entry["id"] for entry in client.get("/api/uploads").json()]
        positions = [listed.index(upload_id) for upload_id in ids]
        assert positions[2] < positions[1] < positions[0]


class TestFetch:
    """Tests for text, image and PDF retrieval."""

    @pytest.fixture
    def uploaded(self, client, image_pdf):
        return upload(client, image_pdf).json()

    def test_get_text(self, client, uploaded):
        response = client.get(f"/api/uploads/{uploaded['id']}/text")
        assert response.status_code == 200
        assert response.json() == {"success": True, "text": uploaded["extractedText"]}

    def test_get_image(self, client, uploaded):
        response = client.get(f"/api/uploads/{uploaded['id']}/images/page1_image1.png")
        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"
        assert response.headers["content-disposition"] == 'inline; filename="page1_image1.png"'
        assert response.content.startswith(b"\x89PNG")

    def test_get_pdf(self, client, uploaded, image_pdf):
        response = client.get(f"/api/uploads/{uploaded['id']}/pdf")
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.content == image_pdf

    def test_unknown_upload_not_found(self, client):
        assert client.get("/api/uploads/does-not-exist/text").status_code == 404
        assert client.get("/api/uploads/does-not-exist/pdf").status_code == 404
        assert client.get("/api/uploads/does-not-exist/images/page1_image1.png").status_code == 404

    def test_unknown_image_not_found(self, client, uploaded):
        response = client.get(f"/api/uploads/{uploaded['id']}/images/page9_image9.png")
        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Image not found"}

    @pytest.mark.parametrize(
        "path",
        [
            "/api/uploads/%2E%2E/text",
            "/api/uploads/..%2F..%2Fetc/text",
            "/api/uploads/.staging-x/pdf",
        ],
    )
    def test_traversal_ids_not_found(self, client, path):
        assert client.get(path).status_code == 404

    def test_traversal_image_name_not_found(self, client, uploaded):
        response = client.get(f"/api/uploads/{uploaded['id']}/images/%2E%2E")
        assert response.status_code == 404


class TestDelete:
    """Tests for DELETE /api/uploads/{id}."""

    def test_delete_twice(self, client, text_pdf, uploads_dir):
        upload_id = upload(client, text_pdf).json()["id"]

        response = client.delete(f"/api/uploads/{upload_id}")
        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Upload deleted successfully"}
        assert not os.path.exists(os.path.join(uploads_dir, upload_id))

        listed = [entry["id"] for entry in client.get("/api/uploads").json()]
        assert upload_id not in listed

        response = client.delete(f"/api/uploads/{upload_id}")
        assert response.status_code == 404
        assert client.get(f"/api/uploads/{upload_id}/text").status_code == 404

    def test_delete_traversal_rejected(self, client, uploads_dir):
        before = store_entries(uploads_dir)
        response = client.delete("/api/uploads/%2E%2E")
        assert response.status_code == 404
        assert store_entries(uploads_dir) == before


class TestCORS:
    """Tests for CORS configuration."""

    def test_cors_preflight(self, client):
        response = client.options(
            "/api/uploads",
            headers={
                "Origin": "http://localhost:3000",
                "Access-Control-Request-Method": "GET",
            },
        )
        assert response.status_code == 200
        assert "access-control-allow-origin" in response.headers

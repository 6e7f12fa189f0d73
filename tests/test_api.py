"""Tests for FastAPI endpoints."""

import errno
import tempfile
from unittest.mock import MagicMock, patch

from fastapi.testclient import TestClient

from app.docintel.config import get_settings
from app.docintel.main import app
from app.docintel.services.extraction_service import (
    LOCAL_ONLY_MESSAGE,
    ExtractionService,
    get_extraction_service,
)
from app.docintel.services.output_service import OutputWriter
from app.docintel.services.pdf_service import PDFService

from .conftest import make_settings


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    def test_root_endpoint(self, client: TestClient):
        """Test root endpoint returns health status."""
        response = client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "version" in data
        assert data["ai_configured"] is False

    def test_health_endpoint(self, client: TestClient):
        """Test /health endpoint returns health status."""
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"


class TestUploadEndpoint:
    """Tests for POST /api/documents/upload."""

    def test_upload_extracts_fields(self, client: TestClient, local_settings):
        """Test a successful upload returns the camelCase result envelope."""
        response = client.post(
            "/api/documents/upload",
            files={"file": ("order.pdf", b"%PDF-1.4 content", "application/pdf")},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["message"] == LOCAL_ONLY_MESSAGE
        assert data["outputFile"].startswith("extracted_")
        assert "aiErrorDetails" not in data

        extracted = data["data"]["extractedFields"]
        assert len(extracted["keyValuePairs"]) == 11
        assert extracted["metadata"]["processingMethod"] == "Local Pattern Matching"
        assert extracted["tables"][0]["lineItems"][0]["itemNumber"] == "10"

        assert (local_settings.output_dir / data["outputFile"]).exists()
        # The staged upload is gone once the response is sent
        assert list(local_settings.upload_dir.iterdir()) == []

    def test_upload_without_file(self, client: TestClient):
        """Test that a request without a file is rejected."""
        response = client.post("/api/documents/upload")
        assert response.status_code == 400
        assert response.json()["detail"] == "No file uploaded"

    def test_upload_rejects_non_pdf(self, client: TestClient):
        """Test that non-PDF files are rejected."""
        response = client.post(
            "/api/documents/upload",
            files={"file": ("test.txt", b"not a pdf", "text/plain")},
        )
        assert response.status_code == 400
        assert "PDF" in response.json()["detail"]

    def test_upload_rejects_empty_file(self, client: TestClient):
        """Test that empty files are rejected."""
        response = client.post(
            "/api/documents/upload",
            files={"file": ("test.pdf", b"", "application/pdf")},
        )
        assert response.status_code == 400
        assert "Empty" in response.json()["detail"]

    def test_upload_rejects_oversized_file(self, client: TestClient, tmp_path):
        """Test that files over the size limit are rejected."""
        settings = make_settings(tmp_path, max_upload_size_mb=1)
        app.dependency_overrides[get_settings] = lambda: settings
        content = b"%PDF" + b"0" * settings.max_upload_size_bytes
        response = client.post(
            "/api/documents/upload",
            files={"file": ("big.pdf", content, "application/pdf")},
        )
        assert response.status_code == 413

    def test_failed_staging_write_leaves_no_file(self, client: TestClient, local_settings):
        """Test that a disk-full write is a 500 and the partial file is removed."""
        real_named_temporary_file = tempfile.NamedTemporaryFile

        def disk_full(*args, **kwargs):
            staged = real_named_temporary_file(*args, **kwargs)
            staged.write = MagicMock(
                side_effect=OSError(errno.ENOSPC, "No space left on device")
            )
            return staged

        with patch("app.docintel.routers.upload.tempfile.NamedTemporaryFile", disk_full):
            response = client.post(
                "/api/documents/upload",
                files={"file": ("order.pdf", b"%PDF-1.4 content", "application/pdf")},
            )

        assert response.status_code == 500
        assert response.json()["detail"] == "Could not store uploaded file"
        assert list(local_settings.upload_dir.iterdir()) == []

    def test_upload_rejects_invalid_pdf(self, tmp_path, invalid_file_bytes: bytes):
        """Test that content that is not a PDF is a 422."""
        settings = make_settings(tmp_path)
        service = ExtractionService(
            settings=settings,
            pdf_service=PDFService(),
            output_writer=OutputWriter(settings.output_dir),
        )
        app.dependency_overrides[get_settings] = lambda: settings
        app.dependency_overrides[get_extraction_service] = lambda: service
        try:
            with TestClient(app) as client:
                response = client.post(
                    "/api/documents/upload",
                    files={"file": ("test.pdf", invalid_file_bytes, "application/pdf")},
                )
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 422
        assert "does not start with PDF header" in response.json()["detail"]
        assert list(settings.upload_dir.iterdir()) == []

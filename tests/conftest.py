"""Pytest configuration and fixtures."""

import json
from pathlib import Path
from types import SimpleNamespace
from typing import Generator
from unittest.mock import MagicMock

import httpx
import pytest
from fastapi.testclient import TestClient

from app.docintel.config import Settings, get_settings
from app.docintel.main import app
from app.docintel.services.extraction_service import (
    ExtractionService,
    StagedUpload,
    get_extraction_service,
)
from app.docintel.services.output_service import OutputWriter
from app.docintel.services.pdf_service import Document, PDFService

AI_ENDPOINT = "https://example-resource.openai.azure.com"
AI_REPLY = json.dumps({"vendorName": "Barkman Honey, LLC", "poNumber": "PR028561"})


# Purchase order text laid out the way pdfplumber emits the supported layout:
# the line-item header and every cell of an item on a line of its own.
SAMPLE_PO_TEXT = """PURCHASE ORDER
PO No.: PR028561
Order Date: 2024-06-15
Phone: (555) 123-4567
ITEM
UNIT
QTY
PART NO
DESCRIPTION
DUE DATE
PRICE
TAX%
DISC
LINE TOTAL
10
EA
5

1234567890
Honey Jar Label
Amber Gloss
2024-07-01
$ 12.50
8
0%
$ 62.50
SUBTOTAL
Sub Total: 62.50
Order Total: $689.25"""


def make_settings(tmp_path: Path, **overrides) -> Settings:
    """Settings isolated from the environment and the .env file."""
    values = {
        "aifoundry_api_key": None,
        "aifoundry_api_url": None,
        "aifoundry_deployment_name": None,
        "aifoundry_api_version": None,
        "output_dir": tmp_path / "outputs",
        "upload_dir": tmp_path / "uploads",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_completion(content: str | None) -> SimpleNamespace:
    """Shape of a chat completion response as far as the client reads it."""
    message = SimpleNamespace(content=content)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def make_status_error(error_cls, status_code: int):
    """Build an openai APIStatusError subclass for a given HTTP status."""
    request = httpx.Request("POST", f"{AI_ENDPOINT}/openai/deployments/x/chat/completions")
    response = httpx.Response(status_code, request=request)
    return error_cls(f"Error code: {status_code}", response=response, body=None)


@pytest.fixture
def local_settings(tmp_path: Path) -> Settings:
    """Settings without AI Foundry credentials."""
    return make_settings(tmp_path)


@pytest.fixture
def ai_settings(tmp_path: Path) -> Settings:
    """Settings with AI Foundry credentials and no fixed deployment."""
    return make_settings(
        tmp_path,
        aifoundry_api_key="test-key",
        aifoundry_api_url=AI_ENDPOINT,
    )


@pytest.fixture
def sample_document() -> Document:
    """A document as produced by PDFService for the sample purchase order."""
    return Document(
        name="order.pdf",
        size=2048,
        text=SAMPLE_PO_TEXT,
        page_count=1,
    )


@pytest.fixture
def fake_pdf_service(sample_document: Document) -> MagicMock:
    """PDFService that returns the sample document for any input."""
    service = MagicMock(spec=PDFService)
    service.load_document.return_value = sample_document
    return service


@pytest.fixture
def staged_upload(tmp_path: Path) -> StagedUpload:
    """A staged upload file on disk."""
    upload_dir = tmp_path / "uploads"
    upload_dir.mkdir()
    path = upload_dir / "staged.pdf"
    path.write_bytes(b"%PDF-1.4 staged content")
    return StagedUpload(path=path, original_name="order.pdf", size=2048)


@pytest.fixture
def local_service(local_settings: Settings, fake_pdf_service: MagicMock) -> ExtractionService:
    """Extraction service that only processes locally."""
    return ExtractionService(
        settings=local_settings,
        pdf_service=fake_pdf_service,
        output_writer=OutputWriter(local_settings.output_dir),
    )


@pytest.fixture
def invalid_file_bytes() -> bytes:
    """Create invalid (non-PDF) file bytes for testing."""
    return b"This is not a PDF file"


@pytest.fixture
def client(
    local_settings: Settings, local_service: ExtractionService
) -> Generator[TestClient, None, None]:
    """Create a test client wired to the local-only extraction service."""
    app.dependency_overrides[get_settings] = lambda: local_settings
    app.dependency_overrides[get_extraction_service] = lambda: local_service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()

"""
Extraction orchestration: AI first, local pattern matching as fallback.

Every request ends in exactly one of three ways:
- local only, when AI Foundry is not configured
- AI, when the AI Foundry call succeeds
- local fallback, when the AI Foundry call fails for any reason

In all three the result is written to the output directory once and the
staged upload is deleted, also when processing fails.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from ..config import Settings, get_settings
from ..models import (
    AIErrorDetails,
    ApiConfiguration,
    ExtractedField,
    ExtractedFields,
    ExtractionResponse,
    ExtractionResult,
    GenericTable,
    LineItemTable,
    ProcessingMetadata,
    ProcessingMethod,
)
from .ai import AIExtraction, AIFoundryClient, AIServiceError
from .output_service import OutputWriter
from .patterns import detect_document_type, parse_document_fields
from .pdf_service import Document, EmptyDocumentError, PDFService, get_pdf_service
from .tables import extract_tables

logger = logging.getLogger(__name__)

LOCAL_ONLY_MESSAGE = (
    "Document processed successfully with local processing (AI not configured)"
)
AI_SUCCESS_MESSAGE = "Document processed successfully with AI Foundry"
FALLBACK_MESSAGE = (
    "Document processed successfully with local processing (AI Foundry failed: {error})"
)


class ExtractionError(Exception):
    """Raised when a document could not be processed at all."""

    pass


@dataclass(frozen=True)
class StagedUpload:
    """An uploaded file saved to a temporary location."""

    path: Path
    original_name: str
    size: int


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def summarize_confidence(
    fields: list[ExtractedField],
    tables: list[LineItemTable | GenericTable],
) -> str:
    """
    Average of all non-zero field and table cell confidences.

    Returns:
        A percentage such as "87%", or "Unknown" when nothing was scored.
    """
    scores = [f.confidence for f in fields if f.confidence]
    for table in tables:
        scores.extend(cell.confidence for cell in table.cells if cell.confidence)

    if not scores:
        return "Unknown"
    average = sum(scores) / len(scores)
    return f"{int(average * 100 + 0.5)}%"


class ExtractionService:
    """Runs the extraction pipeline for one uploaded document at a time."""

    def __init__(
        self,
        settings: Settings | None = None,
        pdf_service: PDFService | None = None,
        ai_client: AIFoundryClient | None = None,
        output_writer: OutputWriter | None = None,
    ):
        self.settings = settings or get_settings()
        self.pdf_service = pdf_service or get_pdf_service()
        self.ai_client = ai_client or AIFoundryClient(self.settings)
        self.output_writer = output_writer or OutputWriter(self.settings.output_dir)

    async def extract_data(self, upload: StagedUpload) -> ExtractionResponse:
        """
        Extract fields and tables from a staged PDF upload.

        Args:
            upload: The staged file. It is deleted before this returns.

        Returns:
            ExtractionResponse naming the method used and the saved artifact.

        Raises:
            ExtractionError: If the document could not be read or the result
                could not be saved.
        """
        start = time.perf_counter()
        logger.info(
            "Processing file: %s (%.1f KB)", upload.original_name, upload.size / 1024
        )

        ai_error_details: AIErrorDetails | None = None
        try:
            document = await asyncio.to_thread(self._load_document, upload)

            if not self.settings.ai_configured:
                logger.warning(
                    "AI Foundry API configuration is missing, using local processing only"
                )
                result = await asyncio.to_thread(self._process_locally, document, start)
                message = LOCAL_ONLY_MESSAGE
            else:
                try:
                    extraction = await asyncio.to_thread(self.ai_client.extract, document)
                    result = self._build_ai_result(document, extraction, start)
                    message = AI_SUCCESS_MESSAGE
                    logger.info("AI Foundry extraction successful")
                except (AIServiceError, EmptyDocumentError) as ai_error:
                    logger.warning("AI Foundry API failed: %s", ai_error)
                    logger.info("Falling back to local processing")
                    result = await asyncio.to_thread(self._process_locally, document, start)
                    message = FALLBACK_MESSAGE.format(error=ai_error)
                    ai_error_details = AIErrorDetails(
                        error=str(ai_error),
                        timestamp=_now_iso(),
                        fallback_used=True,
                    )

            output_file = await asyncio.to_thread(
                self.output_writer.save, result, upload.original_name
            )
        except Exception as e:
            logger.error("Error extracting data from %s: %s", upload.original_name, e)
            raise ExtractionError(f"Error extracting data: {e}") from e
        finally:
            self._remove_staged_file(upload.path)

        return ExtractionResponse(
            success=True,
            message=message,
            output_file=output_file,
            data=result,
            ai_error_details=ai_error_details,
        )

    def _load_document(self, upload: StagedUpload) -> Document:
        pdf_bytes = upload.path.read_bytes()
        return self.pdf_service.load_document(pdf_bytes, upload.original_name, upload.size)

    def _remove_staged_file(self, path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not remove staged upload %s: %s", path, e)

    def _process_locally(self, document: Document, start: float) -> ExtractionResult:
        """Run the pattern matcher and table reconstruction."""
        fields = parse_document_fields(document.text)
        tables = extract_tables(document.text)

        metadata = ProcessingMetadata(
            processing_time=self._elapsed(start),
            confidence=summarize_confidence(fields, tables),
            status="Processed with local PDF text extraction",
            text_length=len(document.text),
            pages_processed=document.page_count,
            processing_method=ProcessingMethod.LOCAL,
        )
        api_configuration = ApiConfiguration(
            api_url=self.settings.aifoundry_api_url,
            has_api_key=bool(self.settings.aifoundry_api_key),
            note="Local PDF content extracted and parsed for key fields",
        )
        return self._build_result(document, fields, tables, metadata, api_configuration)

    def _build_ai_result(
        self, document: Document, extraction: AIExtraction, start: float
    ) -> ExtractionResult:
        tables = extract_tables(document.text)
        target = extraction.target

        metadata = ProcessingMetadata(
            processing_time=self._elapsed(start),
            confidence=summarize_confidence(extraction.fields, tables),
            status="Processed with AI Foundry Azure OpenAI",
            text_length=len(document.text),
            pages_processed=document.page_count,
            processing_method=ProcessingMethod.AI,
            api_version=target.api_version,
            deployment=target.deployment,
            ai_model=target.deployment,
        )
        api_configuration = ApiConfiguration(
            api_url=self.settings.aifoundry_api_url,
            has_api_key=bool(self.settings.aifoundry_api_key),
            deployment=target.deployment,
            api_version=target.api_version,
            note="AI Foundry Document Intelligence with Azure OpenAI",
        )
        return self._build_result(
            document,
            extraction.fields,
            tables,
            metadata,
            api_configuration,
            ai_response=extraction.raw_content,
            ai_parsed_data=extraction.parsed_data,
        )

    @staticmethod
    def _build_result(
        document: Document,
        fields: list[ExtractedField],
        tables: list[LineItemTable | GenericTable],
        metadata: ProcessingMetadata,
        api_configuration: ApiConfiguration,
        ai_response: str | None = None,
        ai_parsed_data: dict | None = None,
    ) -> ExtractionResult:
        return ExtractionResult(
            file_name=document.name,
            file_size=document.size,
            upload_time=_now_iso(),
            extracted_fields=ExtractedFields(
                document_type=detect_document_type(document.text),
                page_count=document.page_count,
                text=document.text,
                key_value_pairs=fields,
                tables=tables,
                ai_response=ai_response,
                ai_parsed_data=ai_parsed_data,
                metadata=metadata,
            ),
            api_configuration=api_configuration,
        )

    @staticmethod
    def _elapsed(start: float) -> str:
        return f"{time.perf_counter() - start:.1f} seconds"


# Singleton instance for convenience
_extraction_service: ExtractionService | None = None


def get_extraction_service() -> ExtractionService:
    """Get or create the extraction service singleton."""
    global _extraction_service
    if _extraction_service is None:
        _extraction_service = ExtractionService()
    return _extraction_service

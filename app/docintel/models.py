"""
Pydantic models for the document extraction pipeline.

Defines the extracted field, line-item and table types, the extraction
result written to disk, and the HTTP response envelope. All models serialize
with camelCase keys.
"""

from enum import Enum
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SerializerFunctionWrapHandler,
    model_serializer,
)
from pydantic.alias_generators import to_camel

NOT_FOUND_VALUE = "Not found in document"


class CamelModel(BaseModel):
    """Base model that reads snake_case or camelCase and writes camelCase."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class ProcessingMethod(str, Enum):
    """How the key-value pairs of a result were produced."""

    AI = "Azure OpenAI"
    LOCAL = "Local Pattern Matching"


class ExtractedField(CamelModel):
    """
    A single extracted key-value pair.

    Attributes:
        key: Canonical field name (e.g. "PO Number").
        value: Extracted text value.
        confidence: Heuristic certainty between 0.0 and 1.0.
    """

    key: str
    value: str
    confidence: float = Field(..., ge=0.0, le=1.0)

    @property
    def found(self) -> bool:
        return self.value != NOT_FOUND_VALUE


# =============================================================================
# Tables
# =============================================================================


class LineItem(CamelModel):
    """One row of the purchase-order line-item table."""

    item_number: str
    unit: str = ""
    quantity: str = ""
    part_number: str = ""
    description: str = ""
    due_date: str = ""
    price: str = ""
    tax_percent: str = ""
    discount: str = ""
    line_total: str = ""


class LineItemCell(CamelModel):
    """Cell wrapper for a line item (row 0 is the header row)."""

    row_index: int = Field(..., ge=1)
    item: LineItem
    confidence: float = Field(default=0.90, ge=0.0, le=1.0)


class LineItemTable(CamelModel):
    """Line-item table reconstructed from the known document layout."""

    table_name: str = "Line Items"
    row_count: int = Field(..., ge=1)
    column_count: int = Field(..., ge=1)
    headers: list[str] = Field(default_factory=list)
    cells: list[LineItemCell] = Field(default_factory=list)
    line_items: list[LineItem] = Field(default_factory=list)


class TableCell(CamelModel):
    """One row of a generic whitespace-delimited table."""

    content: str
    row_index: int = Field(..., ge=0)
    column_index: int = 0
    confidence: float = Field(default=0.80, ge=0.0, le=1.0)


class GenericTable(CamelModel):
    """Table detected from consecutive multi-column text lines."""

    table_name: str = "Generic Table"
    row_count: int = Field(..., ge=2)
    column_count: int = Field(..., ge=2)
    cells: list[TableCell] = Field(default_factory=list)


# =============================================================================
# Extraction Result
# =============================================================================


class ProcessingMetadata(CamelModel):
    """Details about how and how fast a document was processed."""

    processing_time: str
    confidence: str = Field(
        ...,
        description="Average confidence as a percentage, or 'Unknown'",
    )
    status: str
    text_length: int = Field(..., ge=0)
    pages_processed: int = Field(..., ge=0)
    processing_method: ProcessingMethod
    api_version: str | None = None
    deployment: str | None = None
    ai_model: str | None = None


class ExtractedFields(CamelModel):
    """Everything extracted from a single document."""

    document_type: str
    page_count: int = Field(..., ge=0)
    text: str
    key_value_pairs: list[ExtractedField] = Field(default_factory=list)
    tables: list[LineItemTable | GenericTable] = Field(default_factory=list)
    ai_response: str | None = None
    ai_parsed_data: dict[str, Any] | None = None
    metadata: ProcessingMetadata


class ApiConfiguration(CamelModel):
    """Description of the AI endpoint in use. Never carries the key itself."""

    api_url: str | None = None
    has_api_key: bool = False
    deployment: str | None = None
    api_version: str | None = None
    note: str


class ExtractionResult(CamelModel):
    """
    Complete result of a document extraction, as persisted to disk.

    Exactly one processing method is recorded in
    ``extracted_fields.metadata.processing_method``.
    """

    file_name: str
    file_size: int = Field(..., ge=0)
    upload_time: str
    extracted_fields: ExtractedFields
    api_configuration: ApiConfiguration
    output_file: str | None = None


class AIErrorDetails(CamelModel):
    """Why the AI path was abandoned in favour of local processing."""

    error: str
    timestamp: str
    fallback_used: bool = True


class ExtractionResponse(CamelModel):
    """Response envelope for the upload endpoint."""

    success: bool = True
    message: str
    output_file: str
    data: ExtractionResult
    ai_error_details: AIErrorDetails | None = None

    @model_serializer(mode="wrap")
    def _omit_absent_ai_error(self, handler: SerializerFunctionWrapHandler):
        # aiErrorDetails only appears when the AI path failed
        data = handler(self)
        if self.ai_error_details is None:
            data.pop("aiErrorDetails", None)
            data.pop("ai_error_details", None)
        return data


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(default="healthy")
    version: str = Field(default="1.0.0")
    message: str = Field(default="")
    ai_configured: bool = Field(default=False)

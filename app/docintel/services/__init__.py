"""
Services package for the document extraction application.

Contains:
- pdf_service: PDF text extraction
- patterns: Local regex field extraction and document classification
- tables: Line-item and generic table reconstruction
- ai: AI Foundry (Azure OpenAI) field extraction
- output_service: JSON result persistence
- extraction_service: Orchestration of the above with AI fallback
"""

from .ai import AIFoundryClient
from .extraction_service import ExtractionService
from .pdf_service import PDFService

__all__ = ["AIFoundryClient", "ExtractionService", "PDFService"]

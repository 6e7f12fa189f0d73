"""
Document Intelligence Backend Application.

A FastAPI service that extracts key business fields (vendor, PO number,
totals, addresses, dates) and line items from uploaded PDF documents using
Azure OpenAI (AI Foundry) with a local pattern-matching fallback.
"""

__version__ = "1.0.0"

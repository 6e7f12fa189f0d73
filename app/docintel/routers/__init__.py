"""
Routers package for FastAPI endpoints.

Organized by domain:
- upload: Document upload and extraction
"""

from . import upload

__all__ = ["upload"]

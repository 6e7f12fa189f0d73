"""
AI service package for extracting business fields from document text.

This package provides modular AI functionality split into:
- probing: Deployment/API version discovery with fail-fast on auth errors
- extraction: Prompt construction and the chat completion call
- parsing: JSON/text reply normalization into extracted fields

The AIFoundryClient class ties these together for the extraction service.
"""

import logging
from collections.abc import Callable
from typing import Any

from ...config import Settings, get_settings
from ..pdf_service import Document
from .exceptions import (
    AIServiceError,
    AuthenticationFailure,
    MissingConfigurationError,
    ProbeExhausted,
)
from .extraction import AIExtraction, build_messages, request_extraction
from .parsing import FIELD_MAPPINGS, parse_ai_response
from .probing import (
    DEFAULT_API_VERSIONS,
    DEFAULT_DEPLOYMENTS,
    ProbeTarget,
    candidate_targets,
    run_probes,
)

logger = logging.getLogger(__name__)

__all__ = [
    "AIExtraction",
    "AIFoundryClient",
    "AIServiceError",
    "AuthenticationFailure",
    "DEFAULT_API_VERSIONS",
    "DEFAULT_DEPLOYMENTS",
    "FIELD_MAPPINGS",
    "MissingConfigurationError",
    "ProbeExhausted",
    "ProbeTarget",
    "parse_ai_response",
]


class AIFoundryClient:
    """
    Client for AI Foundry (Azure OpenAI) field extraction.

    Uses the openai SDK's AzureOpenAI client, which calls
    {api_url}/openai/deployments/{deployment}/chat/completions with the
    api-key header. One SDK client is created per API version.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        client_factory: Callable[[str], Any] | None = None,
    ):
        """
        Initialize the AI Foundry client.

        Args:
            settings: Application settings. If None, reads from config/environment.
            client_factory: Builds an SDK client for an API version. Defaults
                to AzureOpenAI; tests pass a factory returning mocks.
        """
        self.settings = settings or get_settings()
        self._client_factory = client_factory or self._create_sdk_client
        self._clients: dict[str, Any] = {}

    @property
    def configured(self) -> bool:
        return self.settings.ai_configured

    def _create_sdk_client(self, api_version: str) -> Any:
        from openai import AzureOpenAI

        # Retries are handled by the probe loop, not the SDK
        return AzureOpenAI(
            api_key=self.settings.aifoundry_api_key,
            azure_endpoint=self.settings.aifoundry_api_url,
            api_version=api_version,
            timeout=self.settings.ai_timeout_seconds,
            max_retries=0,
        )

    def client_for(self, api_version: str) -> Any:
        """Lazy-load the SDK client for an API version."""
        if api_version not in self._clients:
            self._clients[api_version] = self._client_factory(api_version)
        return self._clients[api_version]

    def extract(self, document: Document) -> AIExtraction:
        """
        Extract fields from a document with the first deployment that answers.

        Args:
            document: Document with extracted text.

        Returns:
            AIExtraction with the model's fields and the pair that answered.

        Raises:
            EmptyDocumentError: If the document has no text.
            AuthenticationFailure: On 401/403 from the endpoint.
            ProbeExhausted: If every deployment/API version pair failed.
            MissingConfigurationError: If the API key or URL is not set.
        """
        if not self.configured:
            raise MissingConfigurationError(
                "AI Foundry API key or URL not configured. "
                "Set AIFOUNDRY_API_KEY and AIFOUNDRY_API_URL."
            )

        text = document.require_text()
        messages = build_messages(text, self.settings.ai_max_text_chars)

        targets = list(
            candidate_targets(
                self.settings.aifoundry_deployment_name,
                self.settings.aifoundry_api_version,
            )
        )
        logger.info(
            "Testing %d deployment/API version combination(s) for '%s'",
            len(targets),
            document.name,
        )

        result = run_probes(
            targets,
            lambda target: request_extraction(
                self.client_for(target.api_version), target, messages
            ),
        )

        return result.value

"""
Field extraction from document text via an Azure OpenAI chat completion.

Builds the fixed extraction prompt, sends it to one deployment/API version
pair and normalizes the reply into extracted fields.
"""

import logging
from dataclasses import dataclass
from typing import Any

from ...models import ExtractedField
from .exceptions import AIServiceError
from .parsing import parse_ai_response
from .probing import ProbeTarget

logger = logging.getLogger(__name__)


# =============================================================================
# Extraction Prompt
# =============================================================================

EXTRACTION_SYSTEM_PROMPT = """You are a document intelligence assistant specialized in extracting structured data from business documents.

Extract the following information from the document and return it in JSON format:
{
    "vendorName": "string",
    "vendorAddress": "string",
    "shipToAddress": "string",
    "poNumber": "string",
    "orderDate": "string",
    "requiredDate": "string",
    "totalAmount": "string",
    "subtotal": "string",
    "phoneNumber": "string",
    "faxNumber": "string",
    "documentType": "string"
}

Return ONLY valid JSON with these exact field names. Use "Not found" for missing information. Do not include any explanatory text outside the JSON."""

USER_PROMPT_PREFIX = (
    "Please analyze this document text and extract all relevant business "
    "information into the specified JSON format:\n\n"
)

TEMPERATURE = 0.1
MAX_TOKENS = 2000


@dataclass(frozen=True)
class AIExtraction:
    """
    Fields returned by the model for one document.

    Attributes:
        fields: Extracted key-value pairs.
        raw_content: The model's reply, verbatim.
        parsed_data: The reply as JSON, or None if it was not JSON.
        target: Deployment/API version pair that answered.
    """

    fields: list[ExtractedField]
    raw_content: str
    parsed_data: dict[str, Any] | None
    target: ProbeTarget


def build_messages(text: str, max_chars: int = 8000) -> list[dict[str, str]]:
    """Build the two-message chat payload, keeping the first max_chars of text."""
    return [
        {"role": "system", "content": EXTRACTION_SYSTEM_PROMPT},
        {"role": "user", "content": USER_PROMPT_PREFIX + text[:max_chars]},
    ]


def request_extraction(
    client: Any,  # AzureOpenAI client bound to target.api_version
    target: ProbeTarget,
    messages: list[dict[str, str]],
) -> AIExtraction:
    """
    Send one chat completion request and parse the reply.

    Args:
        client: AzureOpenAI client for the target's API version.
        target: Deployment to call.
        messages: Chat payload from build_messages.

    Returns:
        AIExtraction with the parsed fields.

    Raises:
        openai.OpenAIError: On transport or HTTP errors.
        AIServiceError: If the reply has no content.
    """
    response = client.chat.completions.create(
        model=target.deployment,
        messages=messages,
        max_tokens=MAX_TOKENS,
        temperature=TEMPERATURE,
    )

    content = response.choices[0].message.content if response.choices else None
    if not content:
        raise AIServiceError("Empty response from AI Foundry")

    fields, parsed_data = parse_ai_response(content)
    logger.info("AI returned %d field(s) from %s", len(fields), target.deployment)

    return AIExtraction(
        fields=fields,
        raw_content=content,
        parsed_data=parsed_data,
        target=target,
    )

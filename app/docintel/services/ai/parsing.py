"""
Normalization of chat completion replies into extracted fields.

The model is asked for JSON but sometimes wraps it in code fences or answers
in plain "Key: value" lines; both are handled here.
"""

import json
import logging
import re
from typing import Any

from ...models import ExtractedField

logger = logging.getLogger(__name__)

JSON_FIELD_CONFIDENCE = 0.90
TEXT_FIELD_CONFIDENCE = 0.85

# Key variants the model uses, mapped to canonical field names
FIELD_MAPPINGS: dict[str, str] = {
    "vendor": "Vendor Name",
    "vendorName": "Vendor Name",
    "vendor_name": "Vendor Name",
    "vendorAddress": "Vendor Address",
    "vendor_address": "Vendor Address",
    "shipToAddress": "Ship To Address",
    "ship_to_address": "Ship To Address",
    "shipping_address": "Ship To Address",
    "poNumber": "PO Number",
    "po_number": "PO Number",
    "purchaseOrder": "PO Number",
    "invoiceNumber": "Invoice Number",
    "invoice_number": "Invoice Number",
    "orderDate": "Order Date",
    "order_date": "Order Date",
    "date": "Order Date",
    "requiredDate": "Required Date",
    "required_date": "Required Date",
    "totalAmount": "Total Amount",
    "total_amount": "Total Amount",
    "total": "Total Amount",
    "subtotal": "Subtotal",
    "sub_total": "Subtotal",
    "phone": "Phone Number",
    "phoneNumber": "Phone Number",
    "phone_number": "Phone Number",
    "fax": "Fax Number",
    "faxNumber": "Fax Number",
    "fax_number": "Fax Number",
    "shipVia": "Ship Via",
    "ship_via": "Ship Via",
}

MISSING_VALUES = frozenset({"N/A", "Not found"})

_CODE_FENCE = re.compile(r"```json\n?|\n?```")
_KEY_VALUE_LINE = re.compile(r"^([^:\-]+)[:\-]\s*(.+)$")


def strip_code_fences(content: str) -> str:
    """Remove ```json fences around a reply."""
    return _CODE_FENCE.sub("", content).strip()


def flatten_response(data: dict[str, Any]) -> list[tuple[str, str, Any]]:
    """
    Flatten a nested JSON object into (path, key, value) leaves.

    Nested objects contribute their keys joined with "_" (e.g.
    "vendor_name"). Uses an explicit stack so deeply nested replies cannot
    exhaust the recursion limit. Leaves keep document order.
    """
    leaves: list[tuple[str, str, Any]] = []
    stack = [("", iter(data.items()))]

    while stack:
        prefix, items = stack[-1]
        entry = next(items, None)
        if entry is None:
            stack.pop()
            continue

        key, value = entry
        path = f"{prefix}_{key}" if prefix else key
        if isinstance(value, dict):
            stack.append((path, iter(value.items())))
        else:
            leaves.append((path, key, value))

    return leaves


def convert_response_to_fields(data: dict[str, Any]) -> list[ExtractedField]:
    """
    Convert parsed JSON from the model into extracted fields.

    Only string and numeric leaves become fields; nulls, booleans and
    arrays are skipped.
    """
    fields: list[ExtractedField] = []
    for path, key, value in flatten_response(data):
        if isinstance(value, bool) or not isinstance(value, (str, int, float)):
            continue
        mapped_key = FIELD_MAPPINGS.get(path) or FIELD_MAPPINGS.get(key) or key
        fields.append(
            ExtractedField(
                key=mapped_key,
                value=str(value),
                confidence=JSON_FIELD_CONFIDENCE,
            )
        )
    return fields


def parse_text_response(content: str) -> list[ExtractedField]:
    """Parse "Key: value" or "Key - value" lines from a non-JSON reply."""
    fields: list[ExtractedField] = []
    for line in content.split("\n"):
        match = _KEY_VALUE_LINE.match(line)
        if not match:
            continue

        key = match.group(1).strip()
        value = match.group(2).strip()
        if key and value and value not in MISSING_VALUES:
            fields.append(
                ExtractedField(key=key, value=value, confidence=TEXT_FIELD_CONFIDENCE)
            )
    return fields


def parse_ai_response(content: str) -> tuple[list[ExtractedField], dict[str, Any] | None]:
    """
    Turn a model reply into fields.

    Args:
        content: Raw message content from the chat completion.

    Returns:
        (fields, parsed_json). parsed_json is None when the reply was not a
        JSON object and the text parser was used instead.
    """
    try:
        parsed = json.loads(strip_code_fences(content))
    except (ValueError, RecursionError):
        # JSONDecodeError, oversized integers and runaway nesting
        parsed = None

    if isinstance(parsed, dict):
        logger.info("Successfully parsed AI response as JSON")
        return convert_response_to_fields(parsed), parsed

    logger.warning("AI response not in JSON format, parsing manually")
    return parse_text_response(content), None

"""Instruction prompt and JSON schema shared by all vision backends."""

from __future__ import annotations

RECEIPT_PROMPT = """\
You are an expert receipt parser. Read the receipt in the image and extract
structured data from what is actually printed on it.

Rules:
- storeName: the store or merchant name exactly as printed near the top
- date: the purchase date as YYYY-MM-DD
- items: EVERY purchased line item with its unit price and quantity
- quantity defaults to 1 when it is not shown
- total: the final amount paid, including tax, from the bottom of the receipt
- currency: ISO 4217 code such as USD, EUR or CHF
- copy numbers exactly; do not round
- use null for anything that is missing or unreadable
- confidence: 0 to 1, lower it when the image is blurry or cut off

Do not invent data. Return ONLY a JSON object of this shape:
{
  "storeName": "string or null",
  "date": "YYYY-MM-DD or null",
  "items": [{"name": "string", "price": number, "quantity": number}],
  "total": number or null,
  "currency": "USD",
  "confidence": number
}
"""

RESPONSE_SCHEMA: dict = {
    "type": "object",
    "properties": {
        "storeName": {"type": ["string", "null"]},
        "date": {"type": ["string", "null"]},
        "items": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "price": {"type": "number"},
                    "quantity": {"type": "number", "default": 1},
                },
                "required": ["name", "price"],
            },
        },
        "total": {"type": ["number", "null"]},
        "currency": {"type": "string", "default": "USD"},
        "confidence": {"type": "number", "minimum": 0, "maximum": 1},
    },
    "required": ["storeName", "date", "items", "total", "currency", "confidence"],
}

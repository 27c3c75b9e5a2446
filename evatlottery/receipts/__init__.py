"""Receipt QR code parsing and demo code generation."""

from .generator import (
    FORMAT_V1,
    FORMAT_V2,
    GeneratedReceipt,
    generate_codes,
    generate_signed_url,
    generate_token,
)
from .parser import (
    SIGNED_URL,
    TOKEN,
    ParsedReceipt,
    ReceiptPatterns,
    get_unique_id,
    parse,
)

__all__ = [
    "FORMAT_V1",
    "FORMAT_V2",
    "GeneratedReceipt",
    "ParsedReceipt",
    "ReceiptPatterns",
    "SIGNED_URL",
    "TOKEN",
    "generate_codes",
    "generate_signed_url",
    "generate_token",
    "get_unique_id",
    "parse",
]

"""
CATTO Parsing Layer

Recovery of structured objects from untrusted model output.
"""

from catto.parsing.json_extractor import (
    ParseFailure,
    Parsed,
    ParseResult,
    extract_json,
    parse_model_response,
)

__all__ = [
    "extract_json",
    "parse_model_response",
    "Parsed",
    "ParseFailure",
    "ParseResult",
]

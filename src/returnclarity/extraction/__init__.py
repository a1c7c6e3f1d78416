"""Field extraction: five policy fields with per-field confidence."""

from returnclarity.extraction.local import extract_fields
from returnclarity.extraction.schemas import (
    ExtractionResult,
    FieldResult,
    PolicyConfidence,
    PolicyFields,
    PolicySummary,
)

__all__ = [
    "ExtractionResult",
    "FieldResult",
    "PolicyConfidence",
    "PolicyFields",
    "PolicySummary",
    "extract_fields",
]

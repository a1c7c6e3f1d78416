"""Local heuristic extraction of all five policy fields."""

from __future__ import annotations

import logging

from returnclarity.extraction.condition import extract_condition_requirements
from returnclarity.extraction.confidence import enforce_invariants
from returnclarity.extraction.exclusions import extract_exclusions
from returnclarity.extraction.fees import extract_fees
from returnclarity.extraction.schemas import (
    ExtractionResult,
    PolicyConfidence,
    PolicyFields,
)
from returnclarity.extraction.shipping import extract_return_shipping
from returnclarity.extraction.window import extract_return_window

logger = logging.getLogger(__name__)


def extract_fields(text: str) -> ExtractionResult:
    """Run every field extractor over normalized policy text.

    Extractors are pure and independent of each other, so the order
    below only fixes the display order of the resulting models.
    """
    lowered = text.lower()

    window = extract_return_window(lowered)
    condition = extract_condition_requirements(lowered)
    fees = extract_fees(lowered)
    shipping = extract_return_shipping(lowered)
    exclusions = extract_exclusions(lowered)

    fields = PolicyFields(
        return_window=window.value,
        condition_requirements=condition.value,
        fees=fees.value,
        return_shipping=shipping.value,
        exclusions=exclusions.value,
    )
    confidence = enforce_invariants(
        fields,
        PolicyConfidence(
            return_window=window.confidence,
            condition_requirements=condition.confidence,
            fees=fees.confidence,
            return_shipping=shipping.confidence,
            exclusions=exclusions.confidence,
        ),
    )
    result = ExtractionResult(fields=fields, confidence=confidence)

    logger.debug(
        "event=local_extraction chars=%d found=%d",
        len(text),
        sum(1 for v in fields.model_dump().values() if v is not None),
    )
    return result

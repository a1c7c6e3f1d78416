"""Return-shipping payer extractor."""

from __future__ import annotations

import re

from returnclarity.constants import ConfidenceLevel, ShippingPayer
from returnclarity.extraction.schemas import FieldResult

FREE_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p)
    for p in (
        r"\bfree returns?\b",
        r"\bfree return shipping\b",
        r"\breturn shipping is free\b",
        r"\bprepaid (?:return )?(?:shipping )?label\b",
        r"\bfree (?:return )?label\b",
    )
)

SELLER_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p)
    for p in (
        r"\bwe (?:will )?(?:pay|cover) (?:for )?(?:the )?(?:return )?shipping\b",
        r"\bwe (?:will )?(?:provide|send) (?:you )?a (?:return )?(?:shipping )?label\b",
        r"\breturn shipping (?:is|will be) (?:covered|paid) by us\b",
        r"\bat (?:our|no) (?:cost|expense)\b",
    )
)

CUSTOMER_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p)
    for p in (
        r"\bcustomers? (?:pays?|is responsible for|are responsible for)"
        r"[^.\n]{0,20}shipping\b",
        r"\byou (?:will )?(?:pay|be responsible for|are responsible for)"
        r"[^.\n]{0,20}shipping\b",
        r"\b(?:buyer|customer|you) (?:covers?|bears?)[^.\n]{0,20}shipping\b",
        r"\bshipping costs? (?:are|is) (?:non[- ]?refundable|"
        r"the (?:customer|buyer)'?s? responsibility)\b",
        r"\bat (?:your|the customer'?s?|the buyer'?s?) (?:own )?"
        r"(?:cost|expense)\b",
        r"\breturn shipping (?:fees?|costs?|charges?) (?:will be |are |is )?"
        r"deducted\b",
    )
)

DEFECT_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p)
    for p in (
        r"\bdefective\b",
        r"\bdamaged\b",
        r"\bfaulty\b",
        r"\b(?:incorrect|wrong) (?:item|product|size|order)s?\b",
        r"\bour (?:error|mistake)\b",
    )
)

SPLIT_PAYER_VALUE = (
    "Customer pays; free for defective, damaged or incorrect items"
)


def _any(patterns: tuple[re.Pattern[str], ...], text: str) -> bool:
    return any(p.search(text) for p in patterns)


def extract_return_shipping(text: str) -> FieldResult:
    """Classify who pays return shipping."""
    waived = _any(FREE_PATTERNS, text) or _any(SELLER_PATTERNS, text)
    customer = _any(CUSTOMER_PATTERNS, text)

    if waived and customer:
        if _any(DEFECT_PATTERNS, text):
            return FieldResult(
                value=SPLIT_PAYER_VALUE, confidence=ConfidenceLevel.HIGH
            )
        return FieldResult(
            value=ShippingPayer.VARIES.value,
            confidence=ConfidenceLevel.MEDIUM,
        )

    if _any(FREE_PATTERNS, text):
        return FieldResult(
            value=ShippingPayer.FREE.value, confidence=ConfidenceLevel.HIGH
        )
    if _any(SELLER_PATTERNS, text):
        return FieldResult(
            value=ShippingPayer.SELLER.value, confidence=ConfidenceLevel.HIGH
        )
    if customer:
        return FieldResult(
            value=ShippingPayer.CUSTOMER.value,
            confidence=ConfidenceLevel.HIGH,
        )
    return FieldResult.empty()

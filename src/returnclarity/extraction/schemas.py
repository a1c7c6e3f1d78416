"""Pydantic models for extracted policy fields and summaries."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from returnclarity.constants import (
    RAW_SNIPPET_CHARS,
    ConfidenceLevel,
    ExtractionSource,
)


class WireModel(BaseModel):
    """Frozen model serialized with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_wire(self) -> dict[str, object]:
        """JSON-ready dict with wire (camelCase) keys."""
        return self.model_dump(mode="json", by_alias=True)


class FieldResult(BaseModel):
    """Outcome of a single field extractor."""

    model_config = ConfigDict(frozen=True)

    value: str | None = None
    confidence: ConfidenceLevel = ConfidenceLevel.LOW

    @classmethod
    def empty(cls) -> FieldResult:
        return cls(value=None, confidence=ConfidenceLevel.LOW)


class PolicyFields(WireModel):
    """Five optional policy fields; None means not determined."""

    return_window: str | None = None
    condition_requirements: str | None = None
    fees: str | None = None
    return_shipping: str | None = None
    exclusions: str | None = None


class PolicyConfidence(WireModel):
    """Per-field confidence, parallel to PolicyFields."""

    return_window: ConfidenceLevel = ConfidenceLevel.LOW
    condition_requirements: ConfidenceLevel = ConfidenceLevel.LOW
    fees: ConfidenceLevel = ConfidenceLevel.LOW
    return_shipping: ConfidenceLevel = ConfidenceLevel.LOW
    exclusions: ConfidenceLevel = ConfidenceLevel.LOW


# Python attribute names, same order as FIELD_NAMES
FIELD_ATTRS: tuple[str, ...] = tuple(
    PolicyFields.model_fields.keys()
)


class ExtractionResult(WireModel):
    """Fields plus matching confidence from one extractor run."""

    fields: PolicyFields = Field(default_factory=PolicyFields)
    confidence: PolicyConfidence = Field(
        default_factory=PolicyConfidence
    )

    @model_validator(mode="after")
    def _no_confident_nulls(self) -> ExtractionResult:
        for attr in FIELD_ATTRS:
            if (
                getattr(self.fields, attr) is None
                and getattr(self.confidence, attr) == ConfidenceLevel.HIGH
            ):
                raise ValueError(
                    f"{attr} is null but confidence is high"
                )
        return self

    @property
    def has_any_value(self) -> bool:
        """True when at least one field holds a non-blank string."""
        return any(
            (getattr(self.fields, attr) or "").strip()
            for attr in FIELD_ATTRS
        )


class PolicySummary(WireModel):
    """Structured, immutable summary of one store's return policy."""

    domain: str
    policy_url: str
    page_url: str | None = None
    extracted_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC)
    )
    fields: PolicyFields = Field(default_factory=PolicyFields)
    confidence: PolicyConfidence = Field(
        default_factory=PolicyConfidence
    )
    raw_text_snippet: str = ""
    source: ExtractionSource = ExtractionSource.LOCAL

    @field_validator("raw_text_snippet")
    @classmethod
    def _cap_snippet(cls, v: str) -> str:
        return v[:RAW_SNIPPET_CHARS]

"""Return-policy summaries for storefronts, without a language model."""

__version__ = "1.0.0"

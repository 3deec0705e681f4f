"""
Deterministic anonymization of customer records.

Replaces personal string fields with stable 8-character tokens so the
mirrored collection keeps realistic shapes without exposing PII.
"""

from anonymization.transformers import (
    AnonymizationPipeline,
    EmailTokenTransformer,
    TokenTransformer,
    Transformer,
    create_customer_pipeline,
    tokenize,
)

__all__ = [
    "Transformer",
    "TokenTransformer",
    "EmailTokenTransformer",
    "AnonymizationPipeline",
    "create_customer_pipeline",
    "tokenize",
]

"""
Field transformers and the anonymization pipeline.

Supports:
- Deterministic base62 tokens derived from an MD5 digest
- Email tokenization that keeps the domain
- Path-based pipelines over nested records
"""

from .base import Transformer
from .pipeline import AnonymizationPipeline
from .rules import create_customer_pipeline
from .tokens import (
    ALPHABET,
    TOKEN_LENGTH,
    EmailTokenTransformer,
    TokenTransformer,
    encode_digest,
    tokenize,
)

__all__ = [
    "Transformer",
    "TokenTransformer",
    "EmailTokenTransformer",
    "AnonymizationPipeline",
    "create_customer_pipeline",
    "tokenize",
    "encode_digest",
    "ALPHABET",
    "TOKEN_LENGTH",
]

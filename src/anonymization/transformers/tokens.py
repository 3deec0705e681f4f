"""
Deterministic token generation.

A token is the MD5 digest of the UTF-8 input, read as an unsigned
big-endian integer and written out in base62 least-significant digit
first, truncated to 8 characters. Already mirrored data depends on this
exact encoding, so it must not change.
"""

import hashlib
import logging
import string
from typing import Any

from .base import TRANSFORMATIONS_APPLIED, Transformer

logger = logging.getLogger(__name__)

ALPHABET = string.ascii_lowercase + string.ascii_uppercase + string.digits
TOKEN_LENGTH = 8


def encode_digest(digest: bytes, length: int = TOKEN_LENGTH) -> str:
    """
    Encode a digest as base62, least-significant digit first.

    Stops after ``length`` characters or when the value is exhausted, so
    a digest below 62**(length - 1) yields a shorter token. Tokens are not
    padded.
    """
    value = int.from_bytes(digest, "big")
    base = len(ALPHABET)
    chars = []

    while value > 0 and len(chars) < length:
        value, index = divmod(value, base)
        chars.append(ALPHABET[index])

    return "".join(chars)


def tokenize(value: str, length: int = TOKEN_LENGTH) -> str:
    """Return the deterministic token for ``value``."""
    # MD5 here is a fixed encoding, not a security boundary
    digest = hashlib.md5(value.encode("utf-8"), usedforsecurity=False).digest()
    return encode_digest(digest, length)


class TokenTransformer(Transformer):
    """
    Replace a string with its deterministic token.

    Empty strings and non-string values carry no PII and pass through.
    """

    def __init__(self, length: int = TOKEN_LENGTH):
        self.length = length

    def transform(self, value: Any, context: dict[str, Any]) -> Any:
        if not isinstance(value, str) or not value:
            return value
        return self._token(value, context)

    def _token(self, value: str, context: dict[str, Any]) -> str:
        TRANSFORMATIONS_APPLIED.labels(
            transformer_type=self.get_type(),
            field_path=context.get("field_path", "unknown"),
        ).inc()
        return tokenize(value, self.length)


class EmailTokenTransformer(TokenTransformer):
    """
    Tokenize the local part of an email address, keeping the domain.

    Examples:
        jane.doe@example.com -> <token>@example.com
        a@b@c.org            -> <token of "a">@b@c.org
    """

    def transform(self, value: Any, context: dict[str, Any]) -> Any:
        if not isinstance(value, str) or not value:
            return value

        local, sep, domain = value.partition("@")
        if not sep:
            logger.debug("Email value without '@', tokenizing whole value")
            return self._token(value, context)

        return f"{self._token(local, context)}@{domain}"

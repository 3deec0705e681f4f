"""
Anonymization policy for customer records.
"""

import logging

from .pipeline import AnonymizationPipeline
from .tokens import EmailTokenTransformer, TokenTransformer

logger = logging.getLogger(__name__)

# address.city, address.state and address.country are copied untouched
ADDRESS_TOKEN_FIELDS = ("line1", "line2", "postcode")


def create_customer_pipeline() -> AnonymizationPipeline:
    """
    Create the customer anonymization pipeline.

    - firstName, lastName: 8-character tokens
    - email: tokenized local part, domain kept verbatim
    - address.line1, address.line2, address.postcode: tokens

    Returns:
        Configured AnonymizationPipeline
    """
    pipeline = AnonymizationPipeline()

    token = TokenTransformer()
    pipeline.add_transformer("firstName", token)
    pipeline.add_transformer("lastName", token)
    pipeline.add_transformer("email", EmailTokenTransformer())

    for field in ADDRESS_TOKEN_FIELDS:
        pipeline.add_transformer(f"address.{field}", token)

    logger.debug(
        f"Created customer pipeline with {pipeline.get_transformer_count()} transformers"
    )

    return pipeline

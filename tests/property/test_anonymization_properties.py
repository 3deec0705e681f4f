"""
Property-based tests for anonymization and update reconstruction.

Tests properties related to:
- Token determinism and alphabet
- Base62 encoding correctness
- Email domain preservation
- Equivalence of dotted and whole-group update deltas
"""

from hypothesis import given, strategies as st

from anonymization import create_customer_pipeline, tokenize
from anonymization.transformers import ALPHABET, EmailTokenTransformer, encode_digest
from replication import reconstruct_delta


pipeline = create_customer_pipeline()

address_fields = st.dictionaries(
    keys=st.sampled_from(["line1", "line2", "postcode", "city", "state", "country"]),
    values=st.one_of(st.none(), st.text(max_size=40)),
    min_size=1,
)


# Property: tokens are deterministic and drawn from the base62 alphabet
@given(value=st.text())
def test_token_determinism_and_alphabet(value: str):
    """Same input, same token; at most 8 alphanumeric characters."""
    token = tokenize(value)

    assert token == tokenize(value)
    assert len(token) <= 8
    assert set(token) <= set(ALPHABET)


# Property: short digests decode back to their value
@given(value=st.integers(min_value=0, max_value=62 ** 8 - 1))
def test_encode_digest_is_base62_lsd_first(value: int):
    """Reading the token least-significant digit first recovers the value."""
    token = encode_digest(value.to_bytes(16, "big"))

    decoded = sum(ALPHABET.index(char) * 62 ** i for i, char in enumerate(token))

    assert decoded == value
    assert not token or token[-1] != "a"


# Property: email domains survive anonymization verbatim
@given(
    local=st.text(alphabet=st.characters(exclude_characters="@"), max_size=30),
    domain=st.text(max_size=30),
)
def test_email_domain_preserved(local: str, domain: str):
    """Everything after the first '@' is kept; the local part is tokenized."""
    result = EmailTokenTransformer().transform(f"{local}@{domain}", {})

    token, _, kept = result.partition("@")
    assert kept == domain
    assert token == tokenize(local)


# Property: both delta forms reconstruct the same record content
@given(address=address_fields)
def test_dotted_and_bare_deltas_agree(address: dict):
    """Dotted and whole-group deltas fold into identical records."""
    dotted = reconstruct_delta({f"address.{key}": value for key, value in address.items()})
    bare = reconstruct_delta({"address": address})

    assert dotted.record == bare.record
    assert pipeline.anonymize(dotted.record) == pipeline.anonymize(bare.record)


# Property: untouched address fields and unmirrored fields
@given(
    address=address_fields,
    extra=st.dictionaries(
        keys=st.sampled_from(["_id", "createdAt", "updatedAt", "loyaltyTier"]),
        values=st.text(max_size=10),
    ),
)
def test_anonymized_record_shape(address: dict, extra: dict):
    """Identifiers never leak; city, state and country pass through."""
    result = pipeline.anonymize({**extra, "address": address})

    assert set(result) == {"address"}
    for key in ("city", "state", "country"):
        if key in address:
            assert result["address"][key] == address[key]
    for key in ("line1", "line2", "postcode"):
        if address.get(key):
            assert result["address"][key] == tokenize(address[key])

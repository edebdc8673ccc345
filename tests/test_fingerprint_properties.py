"""Property-based tests for snapshot fingerprinting.

**Property: equal content yields equal fingerprints in any computation**
**Property: order and shape are significant**
"""

import copy
import hashlib

import pytest
from hypothesis import assume, given, settings
from hypothesis import strategies as st

from sheetsync.sync.fingerprint import FingerprintError, canonical_bytes, fingerprint

cell_values = st.one_of(
    st.none(),
    st.booleans(),
    st.integers(min_value=-(10**12), max_value=10**12),
    st.floats(allow_nan=False, allow_infinity=False),
    st.text(max_size=20),
)

snapshots = st.lists(st.lists(cell_values, max_size=6), max_size=8)


@given(snapshot=snapshots)
@settings(max_examples=200)
def test_fingerprint_is_deterministic(snapshot) -> None:
    """Computing the fingerprint twice, or over a copy, yields the same digest."""
    first = fingerprint(snapshot)

    assert fingerprint(snapshot) == first
    assert fingerprint(copy.deepcopy(snapshot)) == first
    assert len(first) == 64
    assert all(c in "0123456789abcdef" for c in first)


@given(snapshot=snapshots)
@settings(max_examples=200)
def test_row_order_is_significant(snapshot) -> None:
    """Reversing rows changes the digest whenever it changes the serialization."""
    reversed_rows = list(reversed(snapshot))
    assume(canonical_bytes(reversed_rows) != canonical_bytes(snapshot))

    assert fingerprint(reversed_rows) != fingerprint(snapshot)


@given(rows=st.lists(st.lists(st.integers(), min_size=1, max_size=4), min_size=2, max_size=5))
def test_shape_is_significant(rows) -> None:
    """Flattening rows into one row keeps the values but changes the digest."""
    flattened = [[value for row in rows for value in row]]

    assert fingerprint(flattened) != fingerprint(rows)


def test_swapped_rows_differ() -> None:
    assert fingerprint([[1, 2], [3, 4]]) != fingerprint([[3, 4], [1, 2]])


def test_types_are_significant() -> None:
    assert fingerprint([["1"]]) != fingerprint([[1]])
    assert fingerprint([[1]]) != fingerprint([[True]])
    assert fingerprint([[None]]) != fingerprint([[""]])


def test_digest_matches_compact_json_sha256() -> None:
    """The digest is stable across processes: SHA-256 of compact UTF-8 JSON."""
    assert fingerprint([[1, 2], [3, 4]]) == hashlib.sha256(b"[[1,2],[3,4]]").hexdigest()
    assert fingerprint([]) == hashlib.sha256(b"[]").hexdigest()
    assert fingerprint([["é"]]) == hashlib.sha256('[["é"]]'.encode("utf-8")).hexdigest()


@pytest.mark.parametrize("bad_value", [float("nan"), float("inf"), object()])
def test_unserializable_values_raise(bad_value) -> None:
    with pytest.raises(FingerprintError):
        fingerprint([[bad_value]])

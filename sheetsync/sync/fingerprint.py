"""Content fingerprinting for snapshots.

The serialization keeps the literal row/column structure. Two snapshots with
the same values in a different order or shape hash differently; nothing is
sorted or normalized.
"""

import hashlib
import json

from sheetsync.models.snapshot import Snapshot


class FingerprintError(ValueError):
    """Raised when a snapshot contains values that cannot be serialized."""


def canonical_bytes(snapshot: Snapshot) -> bytes:
    """Serialize a snapshot to byte-stable UTF-8 JSON."""
    try:
        text = json.dumps(
            snapshot,
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        )
    except (TypeError, ValueError) as e:
        raise FingerprintError(f"Snapshot is not serializable: {e}") from e
    return text.encode("utf-8")


def fingerprint(snapshot: Snapshot) -> str:
    """Return the SHA-256 hex digest of a snapshot's canonical serialization."""
    return hashlib.sha256(canonical_bytes(snapshot)).hexdigest()

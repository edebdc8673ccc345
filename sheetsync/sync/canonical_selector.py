"""Selection of the canonical snapshot among all checkpoints."""

from typing import Iterable

from sheetsync.errors import NotFoundError
from sheetsync.models.snapshot import Checkpoint


def select_canonical(checkpoints: Iterable[Checkpoint]) -> Checkpoint:
    """
    Pick the checkpoint whose snapshot every source should hold.

    The most recent timestamp wins. Equal timestamps resolve to the
    lexicographically smallest source id, independent of input order.

    Args:
        checkpoints: All current checkpoints

    Returns:
        The winning checkpoint

    Raises:
        NotFoundError: If there are no checkpoints
    """
    candidates = list(checkpoints)
    if not candidates:
        raise NotFoundError("No checkpoint exists yet")

    latest = max(checkpoint.timestamp for checkpoint in candidates)
    return min(
        (checkpoint for checkpoint in candidates if checkpoint.timestamp == latest),
        key=lambda checkpoint: checkpoint.source_id,
    )

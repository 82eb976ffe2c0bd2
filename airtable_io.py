"""
Batch helpers for Airtable bulk writes.

Airtable accepts at most 10 records per write request, so bulk operations
are split into ordered chunks before being sent.
"""

from typing import List, Sequence, TypeVar

T = TypeVar("T")

MAX_BATCH_SIZE = 10


def plan_batches(rows: Sequence[T], chunk: int = MAX_BATCH_SIZE) -> List[List[T]]:
    """
    Split rows into consecutive chunks.

    Args:
        rows: Records to split. Order is preserved.
        chunk: Maximum number of records per chunk (default: 10).

    Returns:
        A list of chunks. Every chunk but the last holds exactly ``chunk``
        rows; empty input gives an empty list.
    """
    if chunk < 1:
        raise ValueError(f"chunk must be at least 1, got {chunk}")

    if not rows:
        return []

    return [list(rows[i:i + chunk]) for i in range(0, len(rows), chunk)]

"""Result Formatting - pure builders for stored points and ranked search hits.

Invariants:
    - Every stored payload is {information, metadata, timestamp}
    - timestamp is set once, at build time, in UTC ISO-8601 with millisecond precision
    - Vectors pair with items by position; a count mismatch is rejected
    - rank_hits sorts by descending score before truncating, so truncation
      never drops a higher-scoring hit in favour of a lower-scoring one
    - Hits without a score (filter-only retrieval) keep store order, after scored hits
"""

import uuid
from collections.abc import Callable, Iterable, Sequence
from datetime import datetime, timezone
from typing import Any

from qdrant_mcp.core.domain_types import PointId, SearchHit


def utc_timestamp(now: datetime | None = None) -> str:
    """ISO-8601 UTC timestamp with a trailing Z, e.g. 2024-05-01T12:00:00.000Z."""
    moment = now or datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(
        timespec="milliseconds",
    ).replace("+00:00", "Z")


def new_point_id() -> PointId:
    return PointId(str(uuid.uuid4()))


def build_point(
    information: str,
    vector: Sequence[float],
    metadata: dict[str, Any] | None = None,
    point_id: PointId | int | None = None,
    timestamp: str | None = None,
    id_factory: Callable[[], PointId] = new_point_id,
) -> dict[str, Any]:
    """One vector-store point for a piece of information."""
    return {
        "id": point_id if point_id is not None else id_factory(),
        "vector": list(vector),
        "payload": {
            "information": information,
            "metadata": metadata or {},
            "timestamp": timestamp or utc_timestamp(),
        },
    }


def build_points(
    items: Sequence[dict[str, Any]],
    vectors: Sequence[Sequence[float]],
    timestamp: str | None = None,
    id_factory: Callable[[], PointId] = new_point_id,
) -> list[dict[str, Any]]:
    """Pair items with their embeddings by position.

    Items are dicts with `information` and optional `metadata` / `id`.
    Identical information texts still yield distinct points.
    """
    if len(items) != len(vectors):
        raise ValueError(
            f"Got {len(vectors)} embeddings for {len(items)} items",
        )
    stamp = timestamp or utc_timestamp()
    return [
        build_point(
            item["information"], vector,
            metadata=item.get("metadata"),
            point_id=item.get("id"),
            timestamp=stamp,
            id_factory=id_factory,
        )
        for item, vector in zip(items, vectors)
    ]


def to_search_hit(raw: dict[str, Any]) -> SearchHit:
    """Vector-store point (scored or not) -> SearchHit."""
    payload = raw.get("payload") or {}
    return SearchHit(
        information=payload.get("information"),
        metadata=payload.get("metadata") or {},
        score=raw.get("score"),
        timestamp=payload.get("timestamp"),
    )


def rank_hits(
    raw_points: Iterable[dict[str, Any]], limit: int | None = None,
) -> list[dict[str, Any]]:
    """Format, order by descending score, then truncate to limit."""
    hits = [to_search_hit(p) for p in raw_points]
    hits.sort(key=_score_key)
    if limit is not None:
        hits = hits[:limit]
    return [h.to_dict() for h in hits]


def _score_key(hit: SearchHit) -> tuple[int, float]:
    if hit.score is None:
        return (1, 0.0)
    return (0, -hit.score)

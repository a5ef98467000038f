"""Tool Scenarios - end-to-end behaviour of every tool over in-memory collaborators.

Tests cover:
    - store returns a fresh id that find can retrieve
    - Identical texts stored twice yield distinct ids
    - find ranks the exact text above unrelated items and honours limit/filter
    - hybrid-search: 2 x limit candidates, weights forwarded, keyword_weight 0 is plain vector
    - filtered-search with and without a vector
    - batch-store grows points_count by the item count and honours client ids
    - collection-stats / list-collections pass store responses through
    - Closing a session mid-store neither raises nor delivers
"""

import asyncio
import json

import pytest

from qdrant_mcp.services.mcp_protocol import McpProtocol
from qdrant_mcp.services.session_manager import SessionManager
from tests.services.fakes import COLLECTION, DIMENSIONS


def _payload(result):
    assert not result.is_error, result.message
    return json.loads(result.to_wire()["content"][0]["text"])


@pytest.mark.asyncio
async def test_store_then_find_single_item(dispatch):
    stored = _payload(await dispatch.execute(
        "qdrant-store",
        {"information": "The sky is blue", "metadata": {"topic": "weather"}},
    ))
    assert stored["success"] is True
    assert isinstance(stored["id"], str)

    hits = _payload(await dispatch.execute(
        "qdrant-find", {"query": "weather color", "limit": 1},
    ))
    assert len(hits) == 1
    assert hits[0]["information"] == "The sky is blue"
    assert hits[0]["metadata"] == {"topic": "weather"}
    assert hits[0]["timestamp"].endswith("Z")


@pytest.mark.asyncio
async def test_identical_information_gets_distinct_ids(dispatch):
    first = _payload(await dispatch.execute("qdrant-store", {"information": "same"}))
    second = _payload(await dispatch.execute("qdrant-store", {"information": "same"}))
    assert first["id"] != second["id"]


@pytest.mark.asyncio
async def test_find_ranks_exact_text_first(dispatch, store):
    for text in ["bananas are yellow", "the train leaves at noon", "The sky is blue"]:
        await dispatch.execute("qdrant-store", {"information": text})

    hits = _payload(await dispatch.execute(
        "qdrant-find", {"query": "The sky is blue", "limit": 3},
    ))
    assert hits[0]["information"] == "The sky is blue"
    assert hits[0]["score"] == pytest.approx(1.0)
    assert all(h["score"] < hits[0]["score"] for h in hits[1:])
    scores = [h["score"] for h in hits]
    assert scores == sorted(scores, reverse=True)


@pytest.mark.asyncio
async def test_find_default_limit_and_filter(dispatch, store):
    for i in range(7):
        await dispatch.execute(
            "qdrant-store",
            {"information": f"note {i}", "metadata": {"topic": "a" if i < 2 else "b"}},
        )
    hits = _payload(await dispatch.execute("qdrant-find", {"query": "note"}))
    assert len(hits) == 5

    topic_filter = {"must": [{"key": "metadata.topic", "match": {"value": "a"}}]}
    hits = _payload(await dispatch.execute(
        "qdrant-find", {"query": "note", "filter": topic_filter},
    ))
    assert {h["metadata"]["topic"] for h in hits} == {"a"}
    assert store.search_calls[-1]["filter"] == topic_filter


@pytest.mark.asyncio
async def test_find_on_empty_collection(dispatch):
    assert _payload(await dispatch.execute("qdrant-find", {"query": "anything"})) == []


@pytest.mark.asyncio
async def test_hybrid_search_requests_double_candidates(dispatch, store):
    for i in range(10):
        await dispatch.execute("qdrant-store", {"information": f"doc number {i}"})

    hits = _payload(await dispatch.execute(
        "qdrant-hybrid-search", {"query": "doc number 3", "limit": 3},
    ))
    call = store.search_calls[-1]
    assert call["limit"] == 6
    assert call["scoring"] == {
        "text": "doc number 3", "vector_weight": 0.7, "keyword_weight": 0.3,
    }
    assert len(hits) == 3
    assert hits[0]["information"] == "doc number 3"


@pytest.mark.asyncio
async def test_hybrid_search_zero_keyword_weight_is_plain_vector(dispatch, store):
    await dispatch.execute("qdrant-store", {"information": "The sky is blue"})
    await dispatch.execute(
        "qdrant-hybrid-search",
        {"query": "sky", "vector_weight": 1.0, "keyword_weight": 0.0, "limit": 4},
    )
    call = store.search_calls[-1]
    assert call["scoring"] is None
    assert call["limit"] == 8


@pytest.mark.asyncio
async def test_hybrid_search_forwards_filters(dispatch, store):
    filters = {"must": [{"key": "metadata.lang", "match": {"value": "en"}}]}
    await dispatch.execute("qdrant-store", {"information": "x", "metadata": {"lang": "en"}})
    await dispatch.execute("qdrant-store", {"information": "x", "metadata": {"lang": "fr"}})
    hits = _payload(await dispatch.execute(
        "qdrant-hybrid-search", {"query": "x", "filters": filters},
    ))
    assert [h["metadata"]["lang"] for h in hits] == ["en"]


@pytest.mark.asyncio
async def test_filtered_search_without_vector(dispatch, store, embedder):
    await dispatch.execute("qdrant-store", {"information": "a", "metadata": {"kind": "x"}})
    await dispatch.execute("qdrant-store", {"information": "b", "metadata": {"kind": "y"}})
    calls_before = len(embedder.calls)

    hits = _payload(await dispatch.execute(
        "qdrant-filtered-search",
        {
            "filters": {"must": [{"key": "metadata.kind", "match": {"value": "y"}}]},
            "use_vector": False,
            "query": "ignored",
        },
    ))
    assert [h["information"] for h in hits] == ["b"]
    assert hits[0]["score"] is None
    assert len(embedder.calls) == calls_before
    assert store.search_calls[-1]["vector"] is None


@pytest.mark.asyncio
async def test_filtered_search_with_vector(dispatch, store):
    await dispatch.execute("qdrant-store", {"information": "red apple", "metadata": {"k": 1}})
    await dispatch.execute("qdrant-store", {"information": "green pear", "metadata": {"k": 1}})
    hits = _payload(await dispatch.execute(
        "qdrant-filtered-search",
        {
            "filters": {"must": [{"key": "metadata.k", "match": {"value": 1}}]},
            "query": "green pear",
            "limit": 1,
        },
    ))
    assert [h["information"] for h in hits] == ["green pear"]
    assert store.search_calls[-1]["vector"] is not None


@pytest.mark.asyncio
async def test_filtered_search_requires_filters(dispatch):
    result = await dispatch.execute("qdrant-filtered-search", {"query": "x"})
    assert result.is_error
    assert result.error_code == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_batch_store_grows_points_count(dispatch, embedder):
    before = _payload(await dispatch.execute(
        "qdrant-collection-stats", {"collection_name": COLLECTION},
    ))["points_count"]

    stored = _payload(await dispatch.execute(
        "qdrant-batch-store",
        {"items": [{"information": "one"}, {"information": "two", "metadata": {"n": 2}}]},
    ))
    assert stored["success"] is True
    assert stored["message"] == "Successfully stored 2 items"
    assert len(set(stored["ids"])) == 2
    assert embedder.calls[-1] == ["one", "two"]

    after = _payload(await dispatch.execute(
        "qdrant-collection-stats", {"collection_name": COLLECTION},
    ))["points_count"]
    assert after == before + 2


@pytest.mark.asyncio
async def test_batch_store_keeps_client_ids_and_shares_timestamp(dispatch, store):
    stored = _payload(await dispatch.execute(
        "qdrant-batch-store",
        {"items": [{"information": "a", "id": 11}, {"information": "b", "id": 12}]},
    ))
    assert stored["ids"] == [11, 12]
    _, points = store.upsert_calls[-1]
    assert points[0]["payload"]["timestamp"] == points[1]["payload"]["timestamp"]


@pytest.mark.asyncio
async def test_batch_store_into_other_collection(dispatch, store):
    await store.create_collection("other", size=DIMENSIONS)
    await dispatch.execute(
        "qdrant-batch-store",
        {"items": [{"information": "a"}], "collectionName": "other"},
    )
    assert store.upsert_calls[-1][0] == "other"


@pytest.mark.asyncio
async def test_list_collections_passes_through(dispatch, store):
    await store.create_collection("second", size=DIMENSIONS)
    listing = _payload(await dispatch.execute("qdrant-list-collections", {}))
    assert listing == {"collections": [{"name": COLLECTION}, {"name": "second"}]}


@pytest.mark.asyncio
async def test_collection_stats_passes_through(dispatch):
    stats = _payload(await dispatch.execute(
        "qdrant-collection-stats", {"collectionName": COLLECTION},
    ))
    assert stats["config"]["params"]["vectors"] == {"size": DIMENSIONS, "distance": "Cosine"}


@pytest.mark.asyncio
async def test_hybrid_zero_keyword_weight_ranks_like_find(dispatch):
    for text in ["sky is blue", "blue whales swim", "grass is green", "the sky at night"]:
        await dispatch.execute("qdrant-store", {"information": text})

    found = _payload(await dispatch.execute("qdrant-find", {"query": "blue sky", "limit": 3}))
    hybrid = _payload(await dispatch.execute(
        "qdrant-hybrid-search",
        {"query": "blue sky", "vectorWeight": 1.0, "keywordWeight": 0.0, "limit": 3},
    ))
    assert [h["information"] for h in hybrid] == [h["information"] for h in found]


@pytest.mark.asyncio
async def test_batch_store_pairs_vectors_by_position_for_identical_texts(dispatch, store, embedder):
    stored = _payload(await dispatch.execute(
        "qdrant-batch-store",
        {"items": [
            {"information": "dup", "metadata": {"n": 1}},
            {"information": "dup", "metadata": {"n": 2}},
            {"information": "other"},
        ]},
    ))
    assert len(stored["ids"]) == 3
    assert len(set(stored["ids"])) == 3
    _, points = store.upsert_calls[-1]
    assert [p["id"] for p in points] == stored["ids"]
    assert [p["payload"]["metadata"] for p in points] == [{"n": 1}, {"n": 2}, {}]
    assert points[2]["vector"] == embedder.vector_for("other")


@pytest.mark.asyncio
async def test_close_session_during_store_discards_result(dispatch, embedder, store):
    protocol = McpProtocol(dispatch, "qdrant-http-mcp", "1.0.0", tool_prefix="qdrant-")
    manager = SessionManager(protocol.handle)
    session = manager.open_session()
    embedder.gate = asyncio.Event()

    task = manager.dispatch(session.id, {
        "jsonrpc": "2.0", "id": 1, "method": "tools/call",
        "params": {"name": "qdrant-store", "arguments": {"information": "late"}},
    })
    await asyncio.wait_for(embedder.entered.wait(), timeout=1.0)
    manager.close_session(session.id)
    embedder.gate.set()
    await task

    assert task.exception() is None
    assert [chunk async for chunk in session.stream()] == []

import pytest

from services.rag_indexing.IndexingService import IndexingService
from services.rag_query.QueryService import NO_RESULTS_ANSWER, QueryService, strip_code_fences
from shared.exceptions import GraphQueryFailed
from shared.models.chunking import ChunkingStrategy
from tests.conftest import FakeEmbedClient, FakeGraphClient, FakeLLMClient

VECTORS = {
    "alpha beta": [1.0, 0.1, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0],
    "gamma delta": [0.0, 1.0, 0.1, 0.0, 0.0, 0.0, 0.0, 0.0],
    "epsilon zeta": [0.0, 0.0, 1.0, 0.1, 0.0, 0.0, 0.0, 0.0],
    "what is alpha?": [0.9, 0.2, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0],
    "list everything about alpha": [0.9, 0.2, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0],
}


async def _indexed_store(helper_config, rag_store, embed):
    indexing = IndexingService(helper_config=helper_config, embed_client=embed, rag_store=rag_store)
    await indexing.do_index_texts(["alpha beta", "gamma delta", "epsilon zeta"], ChunkingStrategy.SENTENCE)
    return rag_store


def _service(helper_config, rag_store, embed=None, llm=None, graph=None) -> QueryService:
    return QueryService(
        helper_config=helper_config,
        embed_client=embed or FakeEmbedClient(vectors=VECTORS),
        rag_store=rag_store,
        llm_client=llm or FakeLLMClient(),
        graph_client=graph,
    )


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("```cypher\nMATCH (n) RETURN n\n```", "MATCH (n) RETURN n"),
        ("```MATCH (n) RETURN n```", "MATCH (n) RETURN n"),
        ("  MATCH (n) RETURN n  ", "MATCH (n) RETURN n"),
    ],
)
def test_strip_code_fences(raw, expected):
    assert strip_code_fences(raw) == expected


@pytest.mark.asyncio
async def test_empty_index_skips_generation(helper_config, rag_store):
    llm = FakeLLMClient()
    answer = await _service(helper_config, rag_store, llm=llm).do_rag_query("what is alpha?")
    assert answer == NO_RESULTS_ANSWER
    assert llm.prompts == []


@pytest.mark.asyncio
async def test_answer_contains_trace_contexts_and_response(helper_config, rag_store):
    embed = FakeEmbedClient(vectors=VECTORS)
    await _indexed_store(helper_config, rag_store, embed)
    llm = FakeLLMClient(replies=["Alpha is the first letter."])

    answer = await _service(helper_config, rag_store, embed, llm).do_rag_query("what is alpha?", top_k=2)

    assert answer.startswith("=== SIMILARITY SCORES (Chunking: WordChunking) ===\nResult 1: ")
    assert "Result 2: " in answer
    first_context = answer.index("--- Context 1 ")
    assert answer[first_context:].split("\n")[1] == "alpha beta"
    assert "--- Context 3 " not in answer
    assert answer.endswith("\n=== AI RESPONSE ===\nAlpha is the first letter.")
    assert len(llm.prompts) == 1
    assert "alpha beta" in llm.prompts[0]
    assert "Question: what is alpha?" in llm.prompts[0]


@pytest.mark.asyncio
async def test_search_returns_best_match_first(helper_config, rag_store):
    embed = FakeEmbedClient(vectors=VECTORS)
    await _indexed_store(helper_config, rag_store, embed)
    results = await _service(helper_config, rag_store, embed).do_search("what is alpha?", top_k=3)
    assert [result.text for result in results][0] == "alpha beta"
    assert results[0].score > results[1].score


@pytest.mark.asyncio
async def test_graph_branch_needs_graph_and_keyword(helper_config, rag_store):
    assert not _service(helper_config, rag_store).should_run_structured_query("list all people")
    service = _service(helper_config, rag_store, graph=FakeGraphClient())
    assert service.should_run_structured_query("Show me the cities")
    assert service.should_run_structured_query("HOW MANY dogs are there")
    assert not service.should_run_structured_query("what is alpha?")


@pytest.mark.asyncio
async def test_graph_results_are_appended_to_context(helper_config, rag_store):
    embed = FakeEmbedClient(vectors=VECTORS)
    await _indexed_store(helper_config, rag_store, embed)
    graph = FakeGraphClient(rows=[{"name": "alpha", "rank": 1}])
    llm = FakeLLMClient(replies=["```cypher\nMATCH (n) RETURN n.name AS name\n```", "final"])

    answer = await _service(helper_config, rag_store, embed, llm, graph).do_rag_query("list everything about alpha", top_k=1)

    assert graph.queries == ["MATCH (n) RETURN n.name AS name"]
    assert "\n--- Graph Query Results ---\nResult 1: {name=alpha, rank=1}\n\n\n" in answer
    assert "Node Labels:" in llm.prompts[0]
    assert "--- Graph Query Results ---" in llm.prompts[1]
    assert answer.endswith("=== AI RESPONSE ===\nfinal")


@pytest.mark.asyncio
async def test_empty_graph_result_is_reported(helper_config, rag_store):
    embed = FakeEmbedClient(vectors=VECTORS)
    await _indexed_store(helper_config, rag_store, embed)
    llm = FakeLLMClient(replies=["MATCH (n) RETURN n", "final"])
    answer = await _service(helper_config, rag_store, embed, llm, FakeGraphClient()).do_rag_query("list everything about alpha", top_k=1)
    assert "\n--- Graph Query Results ---\nNo results found.\n\n" in answer


@pytest.mark.asyncio
async def test_graph_failure_degrades_to_note(helper_config, rag_store):
    embed = FakeEmbedClient(vectors=VECTORS)
    await _indexed_store(helper_config, rag_store, embed)
    llm = FakeLLMClient(replies=["MATCH (n RETURN n", "still answered"])
    answer = await _service(helper_config, rag_store, embed, llm, FakeGraphClient(fail=True)).do_rag_query(
        "list everything about alpha", top_k=1,
    )
    assert "\n[structured query failed]\n\n" in answer
    assert answer.endswith("=== AI RESPONSE ===\nstill answered")


@pytest.mark.asyncio
async def test_structured_query_failure_is_returned_not_raised(helper_config, rag_store):
    service = _service(helper_config, rag_store, llm=FakeLLMClient(fail=True), graph=FakeGraphClient())
    result = await service.do_structured_query("list people")
    assert not result.ok
    assert result.query is None


@pytest.mark.asyncio
async def test_describe_schema_without_graph_raises(helper_config, rag_store):
    with pytest.raises(GraphQueryFailed):
        await _service(helper_config, rag_store).do_describe_schema()


@pytest.mark.asyncio
async def test_stats_and_clear(helper_config, rag_store):
    embed = FakeEmbedClient(vectors=VECTORS)
    await _indexed_store(helper_config, rag_store, embed)
    service = _service(helper_config, rag_store, embed)
    assert service.do_get_stats().document_count == 3
    service.do_clear()
    assert service.do_get_stats().document_count == 0

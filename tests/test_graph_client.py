import base64
import json

import httpx
import pytest

from shared.clients.graph.neo4j.GraphClientNeo4j import GraphClientNeo4j, render_node
from shared.exceptions import GraphQueryFailed


def _tx_response(columns: list[str], rows: list[list], errors: list[dict] | None = None) -> dict:
    return {
        "results": [{"columns": columns, "data": [{"row": row, "meta": []} for row in rows]}],
        "errors": errors or [],
    }


async def _client(helper_config, handler) -> GraphClientNeo4j:
    client = GraphClientNeo4j(helper_config)
    client.use_transport(httpx.MockTransport(handler))
    await client.boot()
    return client


@pytest.mark.asyncio
async def test_execute_query_posts_to_commit_endpoint(helper_config, monkeypatch):
    monkeypatch.setenv("GRAPH_NEO4J_PASSWORD", "secret")
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=_tx_response(["name", "age"], [["Ada", 36], ["Alan", 41]]))

    client = await _client(helper_config, handler)
    try:
        rows = await client.do_execute_query("MATCH (p:Person) RETURN p.name AS name, p.age AS age", {"x": 1})
    finally:
        await client.close()

    assert rows == [{"name": "Ada", "age": 36}, {"name": "Alan", "age": 41}]
    request = seen[0]
    assert request.url == httpx.URL("http://localhost:7474/db/neo4j/tx/commit")
    expected_token = base64.b64encode(b"neo4j:secret").decode("ascii")
    assert request.headers["Authorization"] == f"Basic {expected_token}"
    assert json.loads(request.content)["statements"][0]["parameters"] == {"x": 1}


@pytest.mark.asyncio
async def test_query_errors_raise_graph_query_failed(helper_config):
    def handler(request):
        return httpx.Response(200, json=_tx_response([], [], errors=[{"code": "Neo.ClientError", "message": "Invalid input"}]))

    client = await _client(helper_config, handler)
    try:
        with pytest.raises(GraphQueryFailed) as info:
            await client.do_execute_query("MATC (n) RETURN n")
    finally:
        await client.close()
    assert "Invalid input" in info.value.reason
    assert info.value.query == "MATC (n) RETURN n"


@pytest.mark.asyncio
async def test_unreachable_graph_raises_graph_query_failed(helper_config):
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    client = await _client(helper_config, handler)
    try:
        with pytest.raises(GraphQueryFailed):
            await client.do_verify_connectivity()
    finally:
        await client.close()


@pytest.mark.asyncio
async def test_describe_schema_lists_labels_and_relationship_types(helper_config):
    def handler(request):
        statement = json.loads(request.content)["statements"][0]["statement"]
        if "labels" in statement:
            return httpx.Response(200, json=_tx_response(["label"], [["Person"], ["City"]]))
        return httpx.Response(200, json=_tx_response(["relationshipType"], [["LIVES_IN"]]))

    client = await _client(helper_config, handler)
    try:
        schema = await client.do_describe_schema()
    finally:
        await client.close()
    assert schema == "Node Labels:\n  - Person\n  - City\n\nRelationship Types:\n  - LIVES_IN\n"


@pytest.mark.asyncio
async def test_fetch_chunk_candidates_renders_nodes(helper_config):
    node = {"name": "Ada"}
    relationships = [{"type": "LIVES_IN", "target": {"name": "London"}, "targetLabels": ["City"]}]

    def handler(request):
        body = json.loads(request.content)["statements"][0]
        assert body["parameters"] == {"limit": 10}
        return httpx.Response(200, json=_tx_response(["n", "nodeLabels", "relationships"], [[node, ["Person"], relationships]]))

    client = await _client(helper_config, handler)
    try:
        chunks = await client.do_fetch_chunk_candidates(limit=10)
    finally:
        await client.close()
    assert len(chunks) == 1
    assert chunks[0].metadata == {"name": "Ada"}
    assert chunks[0].text.startswith("Node Type: [Person]\nProperties: {name=Ada}\n")


def test_render_node_skips_untyped_relationships():
    text = render_node({"name": "Rex"}, ["Dog", "Animal"], [{"type": None, "target": None, "targetLabels": []}])
    assert text == "Node Type: [Dog, Animal]\nProperties: {name=Rex}\n"

    text = render_node({}, ["Dog"], [{"type": "CHASES", "targetLabels": ["Cat"]}])
    assert text == "Node Type: [Dog]\nProperties: {}\nRelationships:\n  - CHASES -> [Cat]\n"

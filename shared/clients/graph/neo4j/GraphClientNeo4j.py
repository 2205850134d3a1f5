import base64
from typing import Any

import httpx

from shared.clients.graph.GraphClientInterface import DEFAULT_CHUNK_LIMIT, GraphClientInterface
from shared.exceptions import GraphQueryFailed
from shared.helper.HelperConfig import HelperConfig
from shared.models.chunking import GraphChunk
from shared.models.config import EnvConfig

_CHUNK_QUERY = (
    "MATCH (n) "
    "OPTIONAL MATCH (n)-[r]->(m) "
    "RETURN n, labels(n) as nodeLabels, "
    "collect({type: type(r), target: m, targetLabels: labels(m)}) as relationships "
    "LIMIT $limit"
)


def _format_labels(labels: list | None) -> str:
    return "[" + ", ".join(str(label) for label in labels or []) + "]"


def _format_properties(properties: dict) -> str:
    return "{" + ", ".join(f"{key}={value}" for key, value in properties.items()) + "}"


def render_node(properties: dict, labels: list, relationships: list[dict]) -> str:
    """
    Renders a node as "Node Type / Properties / Relationships" text.
    Relationship entries without a type (nodes without outgoing edges) are left out.
    """
    lines = [f"Node Type: {_format_labels(labels)}", f"Properties: {_format_properties(properties)}"]
    edges = [rel for rel in relationships if isinstance(rel, dict) and rel.get("type")]
    if edges:
        lines.append("Relationships:")
        lines.extend(f"  - {rel['type']} -> {_format_labels(rel.get('targetLabels'))}" for rel in edges)
    return "\n".join(lines) + "\n"


class GraphClientNeo4j(GraphClientInterface):
    """Neo4j over the HTTP transactional endpoint."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="http://localhost:7474", val_type="string")
        self._username = self.get_config_val("USERNAME", default="neo4j", val_type="string")
        self._password = self.get_config_val("PASSWORD", default="", val_type="string")
        self._database = self.get_config_val("DATABASE", default="neo4j", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Neo4j"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="http://localhost:7474"),
            EnvConfig(env_key="USERNAME", val_type="string", default="neo4j"),
            EnvConfig(env_key="PASSWORD", val_type="string", default=""),
            EnvConfig(env_key="DATABASE", val_type="string", default="neo4j"),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        token = base64.b64encode(f"{self._username}:{self._password}".encode("utf-8")).decode("ascii")
        return {"Authorization": f"Basic {token}"}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        # discovery document
        return ""

    def _get_endpoint_commit(self) -> str:
        return f"/db/{self._database}/tx/commit"

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_execute_query(self, query: str, parameters: dict | None = None) -> list[dict[str, Any]]:
        body = {"statements": [{"statement": query, "parameters": parameters or {}}]}
        try:
            response = await self.do_request(method="POST", endpoint=self._get_endpoint_commit(), json=body)
        except httpx.HTTPError as e:
            raise GraphQueryFailed(query, f"transport error: {e}") from e

        if not response.is_success:
            raise GraphQueryFailed(query, f"status {response.status_code}: {response.text[:200]}")
        payload = response.json()
        errors = payload.get("errors") or []
        if errors:
            raise GraphQueryFailed(query, "; ".join(e.get("message", str(e)) for e in errors))

        rows: list[dict[str, Any]] = []
        for result in payload.get("results", []):
            columns = result.get("columns", [])
            for entry in result.get("data", []):
                rows.append(dict(zip(columns, entry.get("row", []))))
        self.logging.info("Graph query returned %d results", len(rows))
        return rows

    async def do_describe_schema(self) -> str:
        labels = await self.do_execute_query("CALL db.labels()")
        relationship_types = await self.do_execute_query("CALL db.relationshipTypes()")
        lines = ["Node Labels:"]
        lines.extend(f"  - {row.get('label')}" for row in labels)
        lines.append("")
        lines.append("Relationship Types:")
        lines.extend(f"  - {row.get('relationshipType')}" for row in relationship_types)
        return "\n".join(lines) + "\n"

    async def do_fetch_chunk_candidates(self, limit: int = DEFAULT_CHUNK_LIMIT) -> list[GraphChunk]:
        rows = await self.do_execute_query(_CHUNK_QUERY, {"limit": limit})
        chunks = []
        for row in rows:
            properties = row.get("n") or {}
            chunks.append(GraphChunk(
                text=render_node(properties, row.get("nodeLabels") or [], row.get("relationships") or []),
                metadata=properties,
            ))
        self.logging.info("Retrieved %d graph chunks from Neo4j", len(chunks))
        return chunks

import hashlib
import logging
import os
import tempfile

import numpy as np
import pytest

# logs of the app module go to a scratch directory
os.environ.setdefault("ROOT_DIR", tempfile.mkdtemp(prefix="rag-bridge-tests-"))

from shared.clients.rag.chroma.RAGStoreChroma import RAGStoreChroma
from shared.exceptions import EmbeddingRequestFailed, GenerationRequestFailed, GraphQueryFailed
from shared.helper.HelperConfig import HelperConfig
from shared.models.chunking import GraphChunk
from shared.models.ontology import Annotation, EntityKind, OntologyEntity, OntologySnapshot, PropertyAssertion

TEST_DIMENSION = 8

ZOO = "http://example.org/zoo#"
FLORA = "http://example.org/flora#"


def text_vector(text: str, dimension: int = TEST_DIMENSION) -> list[float]:
    """Deterministic, non-negative pseudo embedding of a text."""
    seed = int.from_bytes(hashlib.sha256(text.encode("utf-8")).digest()[:4], "big")
    return np.random.default_rng(seed).random(dimension).astype(float).tolist()


class FakeEmbedClient:
    """Stands in for an embedding provider. Texts containing a fail marker raise."""

    def __init__(self, dimension: int = TEST_DIMENSION, fail_marker: str | None = None, vectors: dict | None = None):
        self.dimension = dimension
        self.fail_marker = fail_marker
        self.vectors = vectors or {}
        self.calls: list[str] = []

    def get_dimension(self) -> int:
        return self.dimension

    async def do_embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.fail_marker and self.fail_marker in text:
            raise EmbeddingRequestFailed("fake", 500, "instrumented failure")
        return self.vectors.get(text) or text_vector(text, self.dimension)

    async def do_embed_batch(self, texts: list[str]) -> list[list[float]]:
        return [await self.do_embed(text) for text in texts]


class FakeLLMClient:
    """Returns scripted replies in order and records every prompt."""

    def __init__(self, replies: list[str] | None = None, fail: bool = False):
        self.replies = list(replies or ["fake answer"])
        self.fail = fail
        self.prompts: list[str] = []

    async def do_complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.fail:
            raise GenerationRequestFailed("fake", 503, "unavailable")
        return self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]


class FakeGraphClient:
    def __init__(self, rows: list[dict] | None = None, fail: bool = False, candidates: list[GraphChunk] | None = None):
        self.rows = rows or []
        self.fail = fail
        self.candidates = candidates or []
        self.queries: list[str] = []

    async def do_execute_query(self, query: str, parameters: dict | None = None) -> list[dict]:
        self.queries.append(query)
        if self.fail:
            raise GraphQueryFailed(query, "syntax error")
        return self.rows

    async def do_describe_schema(self) -> str:
        return "Node Labels:\n  - Person\n\nRelationship Types:\n  - KNOWS\n"

    async def do_fetch_chunk_candidates(self, limit: int = 1000) -> list[GraphChunk]:
        return self.candidates


@pytest.fixture
def logger() -> logging.Logger:
    return logging.getLogger("ontology_rag_bridge.tests")


@pytest.fixture
def helper_config(logger, monkeypatch) -> HelperConfig:
    for key in list(os.environ):
        if key.startswith(("EMBED_", "LLM_", "GRAPH_", "RAG_", "INDEX_", "CHUNKING_")):
            monkeypatch.delenv(key, raising=False)
    return HelperConfig(logger=logger)


@pytest.fixture
def rag_store(helper_config, tmp_path):
    store = RAGStoreChroma(helper_config=helper_config, dimension=TEST_DIMENSION, index_path=str(tmp_path / "index"))
    yield store
    store.close()


@pytest.fixture
def zoo_snapshot() -> OntologySnapshot:
    """Animal > Mammal > Dog and Plant, an object property, and two individuals."""
    label = "rdfs:label"
    return OntologySnapshot(
        iri="http://example.org/zoo",
        entities=[
            OntologyEntity(iri=f"{ZOO}Animal", kind=EntityKind.CLASS, annotations=[Annotation(property=label, value="Animal")]),
            OntologyEntity(iri=f"{ZOO}Mammal", kind=EntityKind.CLASS, super_classes=[f"{ZOO}Animal"],
                           annotations=[Annotation(property="skos:definition", value="Warm-blooded animal")]),
            OntologyEntity(iri=f"{ZOO}Dog", kind=EntityKind.CLASS, super_classes=[f"{ZOO}Mammal"]),
            OntologyEntity(iri=f"{FLORA}Plant", kind=EntityKind.CLASS, annotations=[Annotation(property=label, value="Plant")]),
            OntologyEntity(iri=f"{ZOO}eats", kind=EntityKind.OBJECT_PROPERTY, domains=[f"{ZOO}Animal"], ranges=[f"{FLORA}Plant"]),
            OntologyEntity(iri=f"{ZOO}weight", kind=EntityKind.DATA_PROPERTY, domains=[f"{ZOO}Animal"]),
            OntologyEntity(
                iri=f"{ZOO}rex", kind=EntityKind.INDIVIDUAL, types=[f"{ZOO}Dog"],
                annotations=[Annotation(property=label, value="Rex")],
                data_assertions=[PropertyAssertion(property=f"{ZOO}weight", value="31")],
            ),
            OntologyEntity(iri=f"{ZOO}rock", kind=EntityKind.INDIVIDUAL),
        ],
    )


@pytest.fixture
def clashing_snapshot() -> OntologySnapshot:
    """Two unrelated ontologies reusing the same local names, plus names that differ only in punctuation."""
    entities = []
    for base in ("http://a.org/onto#", "http://b.org/onto#"):
        entities += [
            OntologyEntity(iri=f"{base}Person", kind=EntityKind.CLASS,
                           annotations=[Annotation(property=f"{base}note", value="a person")]),
            OntologyEntity(iri=f"{base}Student", kind=EntityKind.CLASS, super_classes=[f"{base}Person"],
                           annotations=[Annotation(property="rdfs:label", value="Student")]),
        ]
    entities.append(OntologyEntity(iri="urn:x:Foo_Bar", kind=EntityKind.CLASS))
    entities.append(OntologyEntity(iri="urn:x:Foo-Bar", kind=EntityKind.CLASS))
    return OntologySnapshot(entities=entities)

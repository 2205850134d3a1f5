"""Query service.

Answers a question from the vector index: embed the question, retrieve the
closest chunks, optionally add rows from a generated graph query, and ask the
LLM for an answer grounded in that context. The returned text carries a
trace of similarity scores and contexts ahead of the answer.
"""

import asyncio
import re

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.graph.GraphClientInterface import GraphClientInterface
from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.clients.rag.RAGStoreInterface import RAGStoreInterface
from shared.exceptions import GraphQueryFailed
from shared.helper.HelperConfig import HelperConfig
from shared.models.chunking import ChunkingStrategy
from shared.models.search import StructuredQueryResult
from shared.models.vector import IndexStats, SearchResult

NO_RESULTS_ANSWER = "No relevant information found in the knowledge base."
STRUCTURED_QUERY_FAILED_NOTE = "[structured query failed]"
DEFAULT_TOP_K = 5

# lexical gate for the graph branch; false positives are acceptable
GRAPH_QUERY_KEYWORDS = ("find", "show", "list", "get", "how many", "count")

CYPHER_PROMPT = (
    "Given this Neo4j graph schema:\n{schema}\n\n"
    "Generate a Cypher query to answer: {question}\n\n"
    "Return ONLY the Cypher query without explanation."
)

ANSWER_PROMPT = (
    "Answer the following question based on the provided context. "
    "If the context doesn't contain enough information, say so.\n\n"
    "Context:\n{context}\n\n"
    "Question: {question}\n\n"
    "Answer:"
)

_CODE_FENCE = re.compile(r"```(?:cypher)?", re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    return _CODE_FENCE.sub("", text.strip()).strip()


def _format_row(row: dict) -> str:
    return "{" + ", ".join(f"{key}={value}" for key, value in row.items()) + "}"


class QueryService:
    """Orchestrates embedding, vector retrieval, the optional graph query and answer generation."""

    def __init__(
        self,
        helper_config: HelperConfig,
        embed_client: EmbedClientInterface,
        rag_store: RAGStoreInterface,
        llm_client: LLMClientInterface,
        graph_client: GraphClientInterface | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._embed_client = embed_client
        self._rag_store = rag_store
        self._llm_client = llm_client
        self._graph_client = graph_client

    ##########################################
    ################ CORE ####################
    ##########################################

    async def do_rag_query(
        self,
        question: str,
        top_k: int = DEFAULT_TOP_K,
        strategy: ChunkingStrategy = ChunkingStrategy.WORD,
    ) -> str:
        """Answer a question from the indexed knowledge.

        Args:
            question (str): The natural language question.
            top_k (int): Number of chunks to retrieve.
            strategy (ChunkingStrategy): Strategy the index was built with; shown in the trace.

        Returns:
            str: Score trace, contexts, optional graph results and the generated answer,
                or NO_RESULTS_ANSWER if nothing was retrieved.

        Raises:
            EmbeddingRequestFailed: If the question cannot be embedded.
            IndexIOError: If the index cannot be searched.
            GenerationRequestFailed: If the final answer cannot be generated.
        """
        self.logging.info("Executing RAG query: %r (top_k=%d)", question[:80], top_k)
        results = await self.do_search(question, top_k)
        if not results:
            self.logging.info("No results for query, skipping generation")
            return NO_RESULTS_ANSWER

        trace = self._build_score_trace(results, strategy)
        context = self._build_context(results)

        graph_context = ""
        if self.should_run_structured_query(question):
            graph_context = self._format_structured_result(await self.do_structured_query(question))

        answer = await self._llm_client.do_complete(
            ANSWER_PROMPT.format(context=context + graph_context, question=question)
        )
        return trace + context + graph_context + "\n=== AI RESPONSE ===\n" + answer

    async def do_search(self, question: str, top_k: int = DEFAULT_TOP_K) -> list[SearchResult]:
        """Embed the question and return the closest chunks, best first."""
        vector = await self._embed_client.do_embed(question)
        # store calls block
        return await asyncio.to_thread(self._rag_store.search, vector, top_k)

    ##########################################
    ############# GRAPH BRANCH ###############
    ##########################################

    def should_run_structured_query(self, question: str) -> bool:
        """True if a graph is configured and the question contains one of GRAPH_QUERY_KEYWORDS."""
        if self._graph_client is None:
            return False
        lowered = question.lower()
        return any(keyword in lowered for keyword in GRAPH_QUERY_KEYWORDS)

    async def do_generate_structured_query(self, question: str) -> str:
        """Ask the LLM to translate the question into Cypher for the current graph schema.

        Raises:
            GraphQueryFailed: If the schema cannot be read.
            GenerationRequestFailed: If the LLM call fails.
        """
        schema = await self.do_describe_schema()
        reply = await self._llm_client.do_complete(CYPHER_PROMPT.format(schema=schema, question=question))
        return strip_code_fences(reply)

    async def do_structured_query(self, question: str) -> StructuredQueryResult:
        """Generate and run a graph query. Failures are returned, never raised."""
        query = None
        try:
            query = await self.do_generate_structured_query(question)
            self.logging.info("Generated Cypher: %s", query)
            rows = await self._graph_client.do_execute_query(query)
        except Exception as e:
            self.logging.warning("Failed to execute structured query: %s", e)
            return StructuredQueryResult.failure(str(e), query=query)
        return StructuredQueryResult(query=query, rows=rows)

    ##########################################
    ############# PASS-THROUGHS ##############
    ##########################################

    async def do_describe_schema(self) -> str:
        if self._graph_client is None:
            raise GraphQueryFailed("", "no graph configured")
        return await self._graph_client.do_describe_schema()

    def do_get_stats(self) -> IndexStats:
        return self._rag_store.stats()

    def do_clear(self) -> None:
        self._rag_store.clear()
        self.logging.info("Vector store cleared")

    ##########################################
    ############### HELPERS ##################
    ##########################################

    def _build_score_trace(self, results: list[SearchResult], strategy: ChunkingStrategy) -> str:
        lines = [f"=== SIMILARITY SCORES (Chunking: {strategy.value}) ==="]
        lines.extend(f"Result {i}: {result.score:.4f}" for i, result in enumerate(results, start=1))
        return "\n".join(lines) + "\n\n"

    def _build_context(self, results: list[SearchResult]) -> str:
        return "".join(
            f"--- Context {i} (Similarity: {result.score:.4f}) ---\n{result.text}\n\n"
            for i, result in enumerate(results, start=1)
        )

    def _format_structured_result(self, result: StructuredQueryResult) -> str:
        if not result.ok:
            return f"\n{STRUCTURED_QUERY_FAILED_NOTE}\n\n"
        if not result.rows:
            rows = "No results found."
        else:
            rows = "".join(f"Result {i}: {_format_row(row)}\n" for i, row in enumerate(result.rows, start=1))
        return "\n--- Graph Query Results ---\n" + rows + "\n\n"

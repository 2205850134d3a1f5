"""Indexing service.

Turns chunk candidates from text, the graph or an ontology into embedded
VectorRecords and writes them to the vector store in a single batch.

Chunks are processed by concurrent workers bounded by a semaphore. Every
worker returns a tagged outcome instead of raising; one aggregator tallies
the outcomes into an IndexingReport. A chunk that fails never stops its
siblings.
"""

import asyncio
import hashlib
import os
import uuid
from typing import Any

from shared.chunking.ChunkSizePolicer import police_chunk
from shared.chunking.StructuredChunker import select_structured_chunker
from shared.chunking.TextChunker import chunk_text
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.graph.GraphClientInterface import GraphClientInterface
from shared.clients.rag.RAGStoreInterface import RAGStoreInterface
from shared.exceptions import ChunkTooLarge
from shared.helper.HelperConfig import HelperConfig
from shared.models.chunking import Chunk, ChunkingStrategy
from shared.models.indexing import (
    ChunkFailed,
    ChunkOutcome,
    ChunkSkipped,
    ChunkSplit,
    ChunkSucceeded,
    IndexingReport,
)
from shared.models.ontology import OntologySnapshot, OWLChunk
from shared.models.vector import VectorRecord
from shared.ontology.OntologyRenderer import render_entity_texts

MAX_WORKERS = 10
DEFAULT_DRAIN_TIMEOUT = 900  # seconds
PROGRESS_EVERY = 100         # chunks between progress log lines


def _parent_id(text: str) -> str:
    return hashlib.sha1(text.encode("utf-8")).hexdigest()[:16]


def _stringify(metadata: dict[str, Any]) -> dict[str, str]:
    return {str(key): str(value) for key, value in metadata.items()}


class IndexingService:
    """Bulk indexing of text, graph and ontology sources into one vector store."""

    def __init__(
        self,
        helper_config: HelperConfig,
        embed_client: EmbedClientInterface,
        rag_store: RAGStoreInterface,
        max_workers: int | None = None,
        drain_timeout: float | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._embed_client = embed_client
        self._rag_store = rag_store
        if max_workers is None:
            max_workers = helper_config.get_number_val("INDEX_WORKERS", default=min(MAX_WORKERS, os.cpu_count() or 1))
        if drain_timeout is None:
            drain_timeout = helper_config.get_number_val("INDEX_DRAIN_TIMEOUT", default=DEFAULT_DRAIN_TIMEOUT)
        self.max_workers = max(1, min(MAX_WORKERS, int(max_workers)))
        self.drain_timeout = float(drain_timeout)

    ##########################################
    ############## ENTRY POINTS ##############
    ##########################################

    async def do_index_texts(
        self,
        texts: list[str],
        strategy: ChunkingStrategy = ChunkingStrategy.WORD,
        source: str = "text",
        parent_metadata: dict[str, Any] | None = None,
    ) -> IndexingReport:
        """Chunk raw texts with a text strategy and index every chunk.

        Args:
            texts (list[str]): Source documents.
            strategy (ChunkingStrategy): Text strategy. Structured strategies fall back to word chunking.
            source (str): Value of the "source" metadata field.
            parent_metadata (dict | None): Extra metadata copied onto every record.

        Returns:
            IndexingReport: Tally of the run; ``records_written`` is the number of stored records.
        """
        strategy = self._text_strategy(strategy)
        extra = _stringify(parent_metadata or {})
        items = self._build_text_items(
            [(text, extra) for text in texts],
            strategy=strategy, source=source, chunk_type=f"{source}_chunk",
        )
        return await self._run(items, label=f"{source} texts")

    async def do_index_graph(self, graph_client: GraphClientInterface, strategy: ChunkingStrategy = ChunkingStrategy.WORD) -> IndexingReport:
        """Index the graph's chunk candidates; node properties are kept as metadata.

        Raises:
            GraphQueryFailed: If the candidates cannot be fetched.
        """
        strategy = self._text_strategy(strategy)
        self.logging.info("Starting graph to vector store indexing with chunking strategy: %s", strategy.value)
        candidates = await graph_client.do_fetch_chunk_candidates()
        if not candidates:
            self.logging.warning("No graph chunks to index")
            return IndexingReport()
        items = self._build_text_items(
            [(candidate.text, _stringify(candidate.metadata)) for candidate in candidates],
            strategy=strategy, source="neo4j", chunk_type="graph_chunk",
        )
        return await self._run(items, label="graph chunks")

    async def do_index_ontology(self, snapshot: OntologySnapshot, strategy: ChunkingStrategy = ChunkingStrategy.CLASS_BASED) -> IndexingReport:
        """Index an ontology.

        Structured strategies group axioms with the matching chunker and go
        through size policing. Text strategies render one description per
        entity and chunk it like plain text.
        """
        self.logging.info("Starting ontology indexing with chunking strategy: %s", strategy.value)
        if strategy.is_structured:
            chunker = select_structured_chunker(strategy, logger=self.logging)
            owl_chunks = chunker.chunk(snapshot)
            self.logging.info("OWL chunker created %d chunks", len(owl_chunks))
            return await self.do_index_structured_chunks(owl_chunks, strategy)

        texts = render_entity_texts(snapshot)
        if not texts:
            self.logging.warning("No ontology content to index")
            return IndexingReport()
        items = self._build_text_items(
            [(text, {}) for text in texts],
            strategy=strategy, source="ontology", chunk_type="owl_chunk",
        )
        return await self._run(items, label="ontology chunks")

    async def do_index_structured_chunks(self, chunks: list[OWLChunk], strategy: ChunkingStrategy) -> IndexingReport:
        """Index structured chunks. Record ids derive from the chunk ids, so re-indexing overwrites."""
        items = [
            Chunk(
                id=chunk.id,
                text=chunk.rendered_text(),
                source_metadata={
                    "source": "ontology",
                    "type": "owl_chunk",
                    "chunking_strategy": strategy.value,
                    "axiom_count": str(chunk.axiom_count),
                    "strategy_used": chunk.strategy,
                },
            )
            for chunk in chunks
        ]
        return await self._run(items, label="structured chunks", structured=True)

    ##########################################
    ############## PREPARATION ###############
    ##########################################

    def _text_strategy(self, strategy: ChunkingStrategy) -> ChunkingStrategy:
        if strategy.is_structured:
            self.logging.warning(
                "Strategy %s needs an ontology; using %s for text sources",
                strategy.value, ChunkingStrategy.WORD.value,
            )
            return ChunkingStrategy.WORD
        return strategy

    def _build_text_items(
        self,
        texts: list[tuple[str, dict[str, str]]],
        strategy: ChunkingStrategy,
        source: str,
        chunk_type: str,
    ) -> list[Chunk]:
        items = []
        for text, extra in texts:
            parent_id = _parent_id(text)
            for index, sub_chunk in enumerate(chunk_text(text, strategy)):
                sub_chunk = sub_chunk.strip()
                if not sub_chunk:
                    continue
                metadata = {
                    **extra,
                    "source": source,
                    "type": chunk_type,
                    "chunking_strategy": strategy.value,
                    "parent_chunk_id": parent_id,
                    "sub_chunk_index": str(index),
                }
                items.append(Chunk(id=str(uuid.uuid4()), text=sub_chunk, source_metadata=metadata))
        return items

    ##########################################
    ################ WORKERS #################
    ##########################################

    async def _process_chunk(self, item: Chunk, sem: asyncio.Semaphore, structured: bool) -> ChunkOutcome:
        async with sem:
            try:
                pieces = police_chunk(item.id, item.text) if structured else [(item.id, item.text)]
                if len(pieces) > 1:
                    self.logging.warning(
                        "Chunk %s exceeds token limit, split into %d parts", item.id, len(pieces)
                    )
                records = []
                for record_id, text in pieces:
                    vector = await self._embed_client.do_embed(text)
                    metadata = dict(item.source_metadata)
                    if structured:
                        metadata["chunk_id"] = record_id
                    records.append(VectorRecord(id=record_id, vector=vector, text=text, metadata=metadata))
            except ChunkTooLarge as e:
                self.logging.warning(
                    "Chunk %s is too large (%d tokens, %d chars). Skipping.",
                    e.chunk_id, e.estimated_tokens, e.char_count,
                )
                return ChunkSkipped(chunk_id=item.id, reason=str(e), estimated_tokens=e.estimated_tokens)
            except Exception as e:
                preview = item.text[:200].replace("\n", " ")
                self.logging.warning("Failed to index chunk %s: %s", item.id, e)
                self.logging.warning("  Chunk size: %d characters. Preview: %s", len(item.text), preview)
                return ChunkFailed(chunk_id=item.id, reason=str(e))

            if not records:
                self.logging.warning("Chunk %s produced no text to embed", item.id)
                return ChunkFailed(chunk_id=item.id, reason="no text left to embed")
            if len(records) > 1:
                return ChunkSplit(chunk_id=item.id, records=records, parts=len(records))
            return ChunkSucceeded(chunk_id=item.id, records=records)

    ##########################################
    ############### AGGREGATION ##############
    ##########################################

    def _log_progress(self, report: IndexingReport) -> None:
        self.logging.info(
            "Progress: %d/%d chunks processed (%.1f%%). Success: %d, Failed: %d, Skipped: %d, Split: %d",
            report.processed, report.total, report.processed * 100.0 / report.total,
            report.succeeded, report.failed, report.skipped, report.split_parts,
        )

    async def _run(self, items: list[Chunk], label: str, structured: bool = False) -> IndexingReport:
        report = IndexingReport(total=len(items))
        if not items:
            self.logging.warning("No %s to index", label)
            return report

        self.logging.info("Indexing %d %s with %d workers", len(items), label, self.max_workers)
        sem = asyncio.Semaphore(self.max_workers)
        tasks = {asyncio.create_task(self._process_chunk(item, sem, structured)): index for index, item in enumerate(items)}
        records_by_index: dict[int, list[VectorRecord]] = {}

        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.drain_timeout
        pending = set(tasks)
        while pending:
            remaining = deadline - loop.time()
            if remaining <= 0:
                break
            done, pending = await asyncio.wait(pending, timeout=remaining, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                records_by_index[tasks[task]] = report.record(task.result())
                if report.processed % PROGRESS_EVERY == 0:
                    self._log_progress(report)

        if pending:
            self.logging.error("%d indexing tasks still running after %.0fs; cancelling them", len(pending), self.drain_timeout)
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            for task in pending:
                report.record(ChunkFailed(chunk_id=items[tasks[task]].id, reason="cancelled after drain timeout"))

        records = [record for index in sorted(records_by_index) for record in records_by_index[index]]
        if records:
            report.records_written = await asyncio.to_thread(self._rag_store.upsert, records)

        self.logging.info(
            "Indexing complete: %d success, %d failed, %d skipped (too large), %d split into parts (total %d vectors)",
            report.succeeded, report.failed, report.skipped, report.split_parts, report.records_written,
        )
        if report.failed_chunk_ids:
            self.logging.warning("Failed/skipped chunks: %s", ", ".join(report.failed_chunk_ids))
        return report

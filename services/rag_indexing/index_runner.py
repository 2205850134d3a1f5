"""Indexing runner entry point.

One-shot indexing of a source into the local vector index, using the
chunking strategy from CHUNKING_STRATEGY.

Usage:
    python -m services.rag_indexing.index_runner graph
    python -m services.rag_indexing.index_runner ontology path/to/snapshot.json
    python -m services.rag_indexing.index_runner text notes.txt more_notes.txt
"""

import argparse
import asyncio
from pathlib import Path

from services.rag_indexing.IndexingService import IndexingService
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.graph.neo4j.GraphClientNeo4j import GraphClientNeo4j
from shared.clients.rag.chroma.RAGStoreChroma import RAGStoreChroma
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging
from shared.models.chunking import ChunkingStrategy
from shared.models.indexing import IndexingReport
from shared.ontology.OntologySource import load_ontology


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Index a source into the local vector index.")
    sub = parser.add_subparsers(dest="source", required=True)
    sub.add_parser("graph", help="index the nodes of the configured Neo4j graph")
    ontology = sub.add_parser("ontology", help="index an ontology snapshot (JSON)")
    ontology.add_argument("path")
    text = sub.add_parser("text", help="index plain text files")
    text.add_argument("files", nargs="+")
    return parser.parse_args(argv)


async def main(argv: list[str] | None = None) -> IndexingReport | None:
    """Run one indexing pass. Returns the report, or None if the run was aborted."""
    args = _parse_args(argv)
    logger = setup_logging()
    config = HelperConfig(logger=logger)
    strategy = ChunkingStrategy.resolve(config.get_string_val("CHUNKING_STRATEGY", default=""), logger=logger)

    embed_client = EmbedClientManager(helper_config=config).get_client()
    graph_client = GraphClientNeo4j(helper_config=config) if args.source == "graph" else None

    try:
        # embed client is required, without embeddings there is nothing to index
        try:
            await embed_client.boot()
            response = await embed_client.do_healthcheck()
            response.raise_for_status()
        except Exception as e:
            logger.error(f"Error booting Embed client {embed_client.get_engine_name()}: {e}. Aborting.")
            return None

        if graph_client:
            await graph_client.boot()
            await graph_client.do_verify_connectivity()

        with RAGStoreChroma(helper_config=config, dimension=embed_client.get_dimension()) as rag_store:
            service = IndexingService(helper_config=config, embed_client=embed_client, rag_store=rag_store)
            if args.source == "graph":
                report = await service.do_index_graph(graph_client, strategy)
            elif args.source == "ontology":
                report = await service.do_index_ontology(load_ontology(args.path), strategy)
            else:
                texts = [Path(f).read_text(encoding="utf-8") for f in args.files]
                report = await service.do_index_texts(texts, strategy, source="text")
            logger.info(
                "Indexed %d records (%d chunks, %d failed, %d skipped)",
                report.records_written, report.total, report.failed, report.skipped, color="green",
            )
            return report
    finally:
        await embed_client.close()
        if graph_client:
            await graph_client.close()


if __name__ == "__main__":
    asyncio.run(main())

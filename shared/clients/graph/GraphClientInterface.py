from abc import abstractmethod
from typing import Any

from shared.clients.ClientInterface import ClientInterface
from shared.models.chunking import GraphChunk

DEFAULT_CHUNK_LIMIT = 1000


class GraphClientInterface(ClientInterface):
    """Read access to a property graph: schema, structured queries and chunk candidates."""

    DEFAULT_TIMEOUT = 60.0

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "graph"

    ##########################################
    ############### REQUESTS #################
    ##########################################

    @abstractmethod
    async def do_execute_query(self, query: str, parameters: dict | None = None) -> list[dict[str, Any]]:
        """Run a read query and return its rows.

        Args:
            query (str): The query text, e.g. Cypher.
            parameters (dict | None): Query parameters.

        Returns:
            list[dict[str, Any]]: One dict per row, keyed by column name.

        Raises:
            GraphQueryFailed: If the backend cannot be reached or rejects the query.
        """
        pass

    @abstractmethod
    async def do_describe_schema(self) -> str:
        """Return a human-readable list of node labels and relationship types."""
        pass

    @abstractmethod
    async def do_fetch_chunk_candidates(self, limit: int = DEFAULT_CHUNK_LIMIT) -> list[GraphChunk]:
        """Return one text rendering per node, with the node properties as metadata."""
        pass

    async def do_verify_connectivity(self) -> None:
        """Run a trivial query; raises GraphQueryFailed if the graph is unreachable."""
        await self.do_execute_query("RETURN 1")

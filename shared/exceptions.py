"""Exception taxonomy shared by clients, the vector store and the pipelines."""


class RAGBridgeError(Exception):
    """Base class for all errors raised by the bridge."""


##########################################
############ CONFIGURATION ###############
##########################################

class ConfigurationError(RAGBridgeError):
    """Invalid configuration that cannot be degraded to a fallback."""


class DimensionTooLarge(ConfigurationError):
    """Requested vector dimension exceeds the hard cap of the index."""

    def __init__(self, requested: int, maximum: int):
        self.requested = requested
        self.maximum = maximum
        super().__init__(
            f"Vector dimension cannot exceed {maximum}. Got: {requested}"
        )


##########################################
############### PROVIDERS ################
##########################################

class ProviderRequestFailed(RAGBridgeError):
    """An embedding or generation provider answered with a non-2xx status."""

    def __init__(self, provider: str, status_code: int, body: str = ""):
        self.provider = provider
        self.status_code = status_code
        self.body = body
        super().__init__(
            f"{self._request_kind()} request to '{provider}' failed with status {status_code}"
        )

    def _request_kind(self) -> str:
        return "Provider"


class EmbeddingRequestFailed(ProviderRequestFailed):
    def _request_kind(self) -> str:
        return "Embedding"


class GenerationRequestFailed(ProviderRequestFailed):
    def _request_kind(self) -> str:
        return "Generation"


##########################################
############### INDEXING #################
##########################################

class ChunkTooLarge(RAGBridgeError):
    """Raised by the size policer; recorded as a skipped chunk, never propagated."""

    def __init__(self, chunk_id: str, estimated_tokens: int, char_count: int):
        self.chunk_id = chunk_id
        self.estimated_tokens = estimated_tokens
        self.char_count = char_count
        super().__init__(
            f"Chunk {chunk_id} is too large ({estimated_tokens} tokens, {char_count} chars)"
        )


class IndexIOError(RAGBridgeError):
    """Opening, committing to or reading from the vector index failed."""

    def __init__(self, location: str, reason: str):
        self.location = location
        self.reason = reason
        super().__init__(f"Vector index at '{location}': {reason}")


##########################################
################# GRAPH ##################
##########################################

class GraphQueryFailed(RAGBridgeError):
    """A structured query against the graph backend could not be executed."""

    def __init__(self, query: str, reason: str):
        self.query = query
        self.reason = reason
        super().__init__(f"Graph query failed: {reason}")

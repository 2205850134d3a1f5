import fcntl
import os

import chromadb
from chromadb.config import Settings
from chromadb.errors import ChromaError

from shared.clients.rag.RAGStoreInterface import RAGStoreInterface
from shared.exceptions import IndexIOError
from shared.helper.HelperConfig import HelperConfig
from shared.models.vector import IndexStats, SearchResult, VectorRecord

LOCK_FILE_NAME = ".writer.lock"
DEFAULT_INDEX_PATH = "./vector_index"
DEFAULT_COLLECTION = "rag_chunks"
# stays below the sqlite variable limit of the default Chroma backend
UPSERT_BATCH_SIZE = 5000
# Chroma rejects empty metadata dicts, so every record carries its own id
_ID_KEY = "_record_id"


class RAGStoreChroma(RAGStoreInterface):
    """Persistent Chroma collection (HNSW, cosine space) in a local directory.

    Scores are ``1 - cosine distance``. The directory is guarded by an
    exclusive lock file; a second store on the same directory fails with
    IndexIOError until the first one is closed.
    """

    def __init__(self, helper_config: HelperConfig, dimension: int, index_path: str | None = None, collection_name: str | None = None):
        super().__init__(helper_config=helper_config, dimension=dimension)
        self.index_path = index_path or helper_config.get_path_val("RAG_INDEX_PATH", default=DEFAULT_INDEX_PATH)
        self.collection_name = collection_name or helper_config.get_string_val("RAG_COLLECTION", default=DEFAULT_COLLECTION)
        self._lock_file = None
        self._client = None
        self._collection = None
        self._open()

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    def _acquire_lock(self) -> None:
        lock_path = os.path.join(self.index_path, LOCK_FILE_NAME)
        lock_file = open(lock_path, "a+")
        try:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError as e:
            lock_file.close()
            raise IndexIOError(self.index_path, "index is locked by another writer") from e
        self._lock_file = lock_file

    def _release_lock(self) -> None:
        if self._lock_file is None:
            return
        try:
            fcntl.flock(self._lock_file.fileno(), fcntl.LOCK_UN)
        finally:
            self._lock_file.close()
            self._lock_file = None

    def _open(self) -> None:
        try:
            os.makedirs(self.index_path, exist_ok=True)
        except OSError as e:
            raise IndexIOError(self.index_path, f"cannot create index directory: {e}") from e
        self._acquire_lock()
        try:
            self._client = chromadb.PersistentClient(
                path=self.index_path,
                settings=Settings(anonymized_telemetry=False),
            )
            self._collection = self._get_or_create_collection()
        except (ChromaError, ValueError, OSError) as e:
            self._release_lock()
            raise IndexIOError(self.index_path, f"cannot open index: {e}") from e

        stored_dimension = self._stored_dimension()
        if stored_dimension is not None and stored_dimension != self.dimension:
            self.close()
            raise IndexIOError(
                self.index_path,
                f"index was built with dimension {stored_dimension}, store opened with {self.dimension}",
            )
        self.logging.info(
            "Vector index opened at %s (collection '%s', %d dimensions, %d records)",
            self.index_path, self.collection_name, self.dimension, self._collection.count(),
        )

    def _get_or_create_collection(self):
        return self._client.get_or_create_collection(
            name=self.collection_name,
            metadata={"hnsw:space": "cosine", "dimension": self.dimension},
        )

    def _stored_dimension(self) -> int | None:
        # read from a stored vector; collection metadata is not rewritten on reopen
        try:
            if self._collection.count() == 0:
                return None
            embeddings = self._collection.peek(limit=1)["embeddings"]
        except (ChromaError, ValueError, OSError) as e:
            self.close()
            raise IndexIOError(self.index_path, f"cannot read index: {e}") from e
        return len(embeddings[0]) if embeddings is not None and len(embeddings) else None

    def close(self) -> None:
        if self._lock_file is None and self._collection is None:
            return
        self._collection = None
        self._client = None
        self._release_lock()
        self.logging.debug("Vector index at %s closed", self.index_path)

    def _require_open(self):
        if self._collection is None:
            raise IndexIOError(self.index_path, "store is closed")
        return self._collection

    ##########################################
    ############### OPERATIONS ###############
    ##########################################

    def get_index_location(self) -> str:
        return self.index_path

    def upsert(self, records: list[VectorRecord]) -> int:
        collection = self._require_open()
        if not records:
            return 0
        # duplicate ids within one batch: the last occurrence wins
        latest = {record.id: record for record in records}
        ids = list(latest)
        embeddings = [self.reconcile_vector(latest[i].vector).tolist() for i in ids]
        documents = [latest[i].text for i in ids]
        metadatas = [
            {**{key: str(value) for key, value in latest[i].metadata.items()}, _ID_KEY: i}
            for i in ids
        ]
        try:
            for start in range(0, len(ids), UPSERT_BATCH_SIZE):
                end = start + UPSERT_BATCH_SIZE
                collection.upsert(
                    ids=ids[start:end],
                    embeddings=embeddings[start:end],
                    documents=documents[start:end],
                    metadatas=metadatas[start:end],
                )
        except (ChromaError, ValueError, OSError) as e:
            raise IndexIOError(self.index_path, f"upsert failed: {e}") from e
        self.logging.debug("Upserted %d records into %s", len(ids), self.index_path)
        return len(ids)

    def search(self, vector: list[float], top_k: int) -> list[SearchResult]:
        collection = self._require_open()
        query = self.reconcile_vector(vector).tolist()
        try:
            count = collection.count()
            if count == 0 or top_k <= 0:
                return []
            response = collection.query(
                query_embeddings=[query],
                n_results=min(top_k, count),
                include=["documents", "metadatas", "distances"],
            )
        except (ChromaError, ValueError, OSError) as e:
            raise IndexIOError(self.index_path, f"search failed: {e}") from e

        results = []
        for record_id, document, metadata, distance in zip(
            response["ids"][0],
            response["documents"][0],
            response["metadatas"][0],
            response["distances"][0],
        ):
            metadata = {key: str(value) for key, value in (metadata or {}).items() if key != _ID_KEY}
            results.append(SearchResult(id=record_id, text=document or "", score=1.0 - float(distance), metadata=metadata))
        results.sort(key=lambda result: result.score, reverse=True)
        return results

    def stats(self) -> IndexStats:
        collection = self._require_open()
        try:
            count = collection.count()
        except (ChromaError, ValueError, OSError) as e:
            raise IndexIOError(self.index_path, f"cannot read index: {e}") from e
        return IndexStats(document_count=count, vector_dimension=self.dimension, index_location=self.index_path)

    def clear(self) -> None:
        self._require_open()
        try:
            self._client.delete_collection(name=self.collection_name)
            self._collection = self._get_or_create_collection()
        except (ChromaError, ValueError, OSError) as e:
            raise IndexIOError(self.index_path, f"clear failed: {e}") from e
        self.logging.info("Vector index at %s cleared", self.index_path)

from abc import ABC, abstractmethod

import numpy as np

from shared.exceptions import DimensionTooLarge
from shared.helper.HelperConfig import HelperConfig
from shared.models.vector import IndexStats, SearchResult, VectorRecord

MAX_DIMENSION = 1024


class RAGStoreInterface(ABC):
    """Local, persistent vector index with approximate nearest-neighbour search.

    At most one writer may hold an index location at a time. Stores are
    context managers; leaving the block closes the store and releases the
    location.
    """

    def __init__(self, helper_config: HelperConfig, dimension: int):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        if dimension > MAX_DIMENSION:
            raise DimensionTooLarge(dimension, MAX_DIMENSION)
        if dimension < 1:
            raise ValueError(f"Vector dimension must be positive. Got: {dimension}")
        self.dimension = dimension

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    ##########################################
    ################ VECTORS #################
    ##########################################

    def reconcile_vector(self, vector: list[float] | np.ndarray) -> np.ndarray:
        """Bring a vector to the store dimension.

        Longer vectors are truncated, shorter ones zero-padded. A warning is
        logged whenever the length differs.

        Returns:
            np.ndarray: float32 vector of length ``self.dimension``.
        """
        arr = np.asarray(vector, dtype=np.float32).ravel()
        if arr.shape[0] == self.dimension:
            return arr
        self.logging.warning(
            "Vector dimension mismatch: got %d, expected %d. %s.",
            arr.shape[0], self.dimension,
            "Truncating" if arr.shape[0] > self.dimension else "Zero-padding",
        )
        if arr.shape[0] > self.dimension:
            return arr[:self.dimension].copy()
        padded = np.zeros(self.dimension, dtype=np.float32)
        padded[:arr.shape[0]] = arr
        return padded

    ##########################################
    ############### OPERATIONS ###############
    ##########################################

    @abstractmethod
    def get_index_location(self) -> str:
        """Returns where the index lives, e.g. its directory."""
        pass

    @abstractmethod
    def upsert(self, records: list[VectorRecord]) -> int:
        """Insert or replace records by id, committing the whole batch at once.

        Returns:
            int: Number of records written.

        Raises:
            IndexIOError: If the batch cannot be committed.
        """
        pass

    @abstractmethod
    def search(self, vector: list[float], top_k: int) -> list[SearchResult]:
        """Return up to ``top_k`` hits ordered by descending similarity.

        An empty index yields an empty list.

        Raises:
            IndexIOError: If the index cannot be read.
        """
        pass

    @abstractmethod
    def stats(self) -> IndexStats:
        pass

    @abstractmethod
    def clear(self) -> None:
        """Remove every record. The store stays usable."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Release the index location. Safe to call more than once."""
        pass


from abc import abstractmethod
from enum import Enum

from shared.clients.ClientInterface import ClientInterface, extract_model_name
from shared.exceptions import EmbeddingRequestFailed
from shared.helper.HelperConfig import HelperConfig

DEFAULT_EMBED_MODEL = "text-embedding-3-small (OpenAI)"
DEFAULT_DIMENSION = 1024


class EmbedProvider(str, Enum):
    OPENAI = "OpenAI"
    COHERE = "Cohere"
    LOCAL = "Local"


class EmbedClientInterface(ClientInterface):
    DEFAULT_TIMEOUT = 60.0

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        # model and embedding config
        self.model_selection = helper_config.get_string_val("EMBED_MODEL", default=DEFAULT_EMBED_MODEL)
        self.embed_model = extract_model_name(self.model_selection)
        self.dimension = int(helper_config.get_number_val("EMBED_DIMENSION", default=DEFAULT_DIMENSION))
        self._api_key = helper_config.get_string_val("EMBED_API_KEY", default="")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "embed"

    def get_dimension(self) -> int:
        """
        Returns the dimension of the vectors handed to the store. Longer provider vectors are truncated to it.
        """
        return self.dimension

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"Authorization": f"Bearer {self._api_key}"}
        return {}

    ################ ENDPOINTS ##################
    @abstractmethod
    def get_endpoint_embedding(self) -> str:
        """
        Returns the endpoint path for embedding requests.

        Returns:
            str: The endpoint path for embedding requests (e.g. "/embeddings")
        """
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_embed_payload(self, texts: list[str]) -> dict:
        """Build the backend-specific request body for an embedding request.

        Args:
            texts (list[str]): The texts to embed.

        Returns:
            dict: JSON-serialisable request body (e.g. {"model": "...", "input": [...]}).
        """
        pass

    ################ ERRORS ##################
    def _build_request_error(self, status_code: int, body: str) -> Exception:
        return EmbeddingRequestFailed(self.get_engine_name(), status_code, body)

    ##########################################
    ################# OTHER ##################
    ##########################################

    @abstractmethod
    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """Extract embedding vectors from a raw embedding API response.

        Args:
            response_data (dict): The parsed JSON response body.

        Returns:
            list[list[float]]: Embedding vectors in the same order as the input texts.

        Raises:
            ValueError: If the response format is invalid or embeddings are empty.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_embed(self, text: str) -> list[float]:
        """Embed a single text.

        Args:
            text (str): The text to embed.

        Returns:
            list[float]: The embedding, at most get_dimension() long.

        Raises:
            EmbeddingRequestFailed: If the provider cannot be reached or returns a non-2xx status.
        """
        vectors = await self.do_embed_batch([text])
        return vectors[0]

    async def do_embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Embed several texts in one request.

        The i-th vector belongs to the i-th text. No retries are made.

        Args:
            texts (list[str]): The texts to embed.

        Returns:
            list[list[float]]: Embedding vectors in input order, each at most get_dimension() long.

        Raises:
            EmbeddingRequestFailed: If the provider cannot be reached or returns a non-2xx status.
            ValueError: If the response does not hold one vector per text.
        """
        if not texts:
            return []
        body = self.get_embed_payload(texts)
        response = await self.do_request(
            method="POST",
            endpoint=self.get_endpoint_embedding(),
            json=body,
            raise_on_error=True,
        )
        vectors = self.extract_embeddings_from_response(response.json())
        if len(vectors) != len(texts):
            raise ValueError(
                f"{self.get_engine_name()} returned {len(vectors)} embeddings for {len(texts)} texts"
            )
        return [vector[:self.dimension] for vector in vectors]

from abc import abstractmethod
from enum import Enum

from shared.clients.ClientInterface import ClientInterface, extract_model_name
from shared.exceptions import GenerationRequestFailed
from shared.helper.HelperConfig import HelperConfig

DEFAULT_LLM_MODEL = "gpt-4o-mini (OpenAI)"


class LLMProvider(str, Enum):
    OPENAI = "OpenAI"
    LOCAL = "Local"


class LLMClientInterface(ClientInterface):
    DEFAULT_TIMEOUT = 120.0

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        # chat / completion config
        self.model_selection = helper_config.get_string_val("LLM_MODEL", default=DEFAULT_LLM_MODEL)
        self.chat_model = extract_model_name(self.model_selection)
        self._api_key = helper_config.get_string_val("LLM_API_KEY", default="")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "llm"

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"Authorization": f"Bearer {self._api_key}"}
        return {}

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_chat(self) -> str:
        """Returns the endpoint path for chat/completion requests (e.g. "/chat/completions")."""
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_chat_payload(self, messages: list[dict]) -> dict:
        """Build the backend-specific request body for a chat/completion request.

        Args:
            messages (list[dict]): OpenAI-format messages
                (e.g. [{"role": "user", "content": "..."}]).

        Returns:
            dict: JSON-serialisable request body.
        """
        pass

    ################ ERRORS ##################
    def _build_request_error(self, status_code: int, body: str) -> Exception:
        return GenerationRequestFailed(self.get_engine_name(), status_code, body)

    ##########################################
    ################# OTHER ##################
    ##########################################

    @abstractmethod
    def extract_chat_response(self, response_data: dict) -> str:
        """Extract the assistant reply text from a raw chat API response.

        Args:
            response_data (dict): The parsed JSON response body.

        Returns:
            str: The assistant reply text.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_chat(self, messages: list[dict]) -> str:
        """Send a chat/completion request and return the assistant reply text.

        Args:
            messages (list[dict]): OpenAI-format messages
                (e.g. [{"role": "user", "content": "..."}]).

        Returns:
            str: The assistant reply text.

        Raises:
            GenerationRequestFailed: If the provider cannot be reached or returns a non-2xx status.
            ValueError: If the response does not contain a valid reply.
        """
        body = self.get_chat_payload(messages)
        response = await self.do_request(
            method="POST",
            endpoint=self._get_endpoint_chat(),
            json=body,
            raise_on_error=True,
        )
        return self.extract_chat_response(response.json())

    async def do_complete(self, prompt: str) -> str:
        """Send a single user prompt and return the reply text."""
        return await self.do_chat([{"role": "user", "content": prompt}])

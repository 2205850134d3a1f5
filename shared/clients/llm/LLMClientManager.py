from shared.clients.ClientInterface import match_provider
from shared.clients.llm.LLMClientInterface import DEFAULT_LLM_MODEL, LLMClientInterface, LLMProvider
from shared.clients.llm.local.LLMClientLocal import LLMClientLocal
from shared.clients.llm.openai.LLMClientOpenai import LLMClientOpenai
from shared.helper.HelperConfig import HelperConfig

_CLIENTS: dict[LLMProvider, type[LLMClientInterface]] = {
    LLMProvider.OPENAI: LLMClientOpenai,
    LLMProvider.LOCAL: LLMClientLocal,
}


class LLMClientManager:
    """Manager class to instantiate the configured LLM client."""

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.client = self._initialize_client()

    def _get_provider_from_env(self) -> LLMProvider:
        """Read the provider from the LLM_MODEL selection, e.g. "llama3 (Local)"."""
        selection = self.helper_config.get_string_val("LLM_MODEL", default=DEFAULT_LLM_MODEL)
        return match_provider(selection, LLMProvider, LLMProvider.OPENAI, logger=self.logging)

    def _initialize_client(self) -> LLMClientInterface:
        provider = self._get_provider_from_env()
        client = _CLIENTS[provider](helper_config=self.helper_config)
        self.logging.debug("Instantiated LLM client for provider: %s", provider.value)
        return client

    def get_client(self) -> LLMClientInterface:
        """Return the instantiated LLM client."""
        return self.client

from shared.clients.ClientInterface import match_provider
from shared.clients.embed.EmbedClientInterface import DEFAULT_EMBED_MODEL, EmbedClientInterface, EmbedProvider
from shared.clients.embed.cohere.EmbedClientCohere import EmbedClientCohere
from shared.clients.embed.local.EmbedClientLocal import EmbedClientLocal
from shared.clients.embed.openai.EmbedClientOpenai import EmbedClientOpenai
from shared.helper.HelperConfig import HelperConfig

_CLIENTS: dict[EmbedProvider, type[EmbedClientInterface]] = {
    EmbedProvider.OPENAI: EmbedClientOpenai,
    EmbedProvider.COHERE: EmbedClientCohere,
    EmbedProvider.LOCAL: EmbedClientLocal,
}


class EmbedClientManager:
    """
    Manager class to handle Embed client based on configuration.
    """

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.client = self._initialize_client()

    def _get_provider_from_env(self) -> EmbedProvider:
        """
        Reads the provider from the EMBED_MODEL selection, e.g. "embed-english-v3.0 (Cohere)".

        Returns:
            EmbedProvider: The provider named in the selection, OpenAI if none is recognised.
        """
        selection = self.helper_config.get_string_val("EMBED_MODEL", default=DEFAULT_EMBED_MODEL)
        return match_provider(selection, EmbedProvider, EmbedProvider.OPENAI, logger=self.logging)

    def _initialize_client(self) -> EmbedClientInterface:
        """
        Initializes the Embed client for the configured provider.

        Returns:
            EmbedClientInterface: An instance of the Embed client that implements the EmbedClientInterface.
        """
        provider = self._get_provider_from_env()
        client = _CLIENTS[provider](helper_config=self.helper_config)
        self.logging.debug("Instantiated Embed client for provider: %s", provider.value)
        return client

    def get_client(self) -> EmbedClientInterface:
        """
        Returns the instantiated Embed client.
        """
        return self.client

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, TypeVar

import httpx
from httpx._types import QueryParamTypes
from shared.exceptions import ProviderRequestFailed
from shared.models.config import EnvConfig

from shared.helper.HelperConfig import HelperConfig

ProviderT = TypeVar("ProviderT", bound=Enum)


def extract_model_name(selection: str) -> str:
    """
    Strips the provider suffix from a model selection. E.g. "gpt-4o-mini (OpenAI)" -> "gpt-4o-mini"
    """
    selection = selection.strip()
    if " (" in selection:
        return selection[:selection.index(" (")].strip()
    return selection


def match_provider(selection: str, providers: type[ProviderT], default: ProviderT, logger=None) -> ProviderT:
    """
    Finds the provider whose name is contained in the selection string (case-sensitive).
    Falls back to the default provider, logging a warning, if none matches.
    """
    for provider in providers:
        if provider.value in selection:
            return provider
    if logger is not None:
        logger.warning("No provider recognised in model selection '%s', falling back to %s", selection, default.value)
    return default


class ClientInterface(ABC):
    # read/write timeout in seconds if <TYPE>_TIMEOUT is not set
    DEFAULT_TIMEOUT: float = 60.0
    DEFAULT_CONNECT_TIMEOUT: float = 30.0

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        client_type = self.get_client_type().upper()
        self.timeout = httpx.Timeout(
            helper_config.get_number_val(f"{client_type}_TIMEOUT", default=self.DEFAULT_TIMEOUT),
            connect=helper_config.get_number_val(f"{client_type}_CONNECT_TIMEOUT", default=self.DEFAULT_CONNECT_TIMEOUT),
        )

        # client and config
        self._client: httpx.AsyncClient | None = None
        self._transport: httpx.AsyncBaseTransport | None = None
        self.validate_full_configuration()

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def validate_full_configuration(self) -> None:
        """
        Validates that all required configuration values for the client are set and valid.

        Raises:
            ValueError: If any required configuration value is missing or invalid.
        """
        for config in self._get_required_config():
            _ = self.get_config_val(raw_key=config.env_key, default=config.default, val_type=config.val_type)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def get_client_type(self) -> str:
        """
        Returns the type of the client in lowercase. E.g. "embed"
        """
        return self._get_client_type().lower()

    @abstractmethod
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "embed"
        """
        pass

    def get_engine_name(self) -> str:
        """
        Returns the name of the engine used by the client in lowercase. E.g. "openai"
        """
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_engine_name(self) -> str:
        """
        Returns the name of the engine used by the client. E.g. "OpenAI"
        """
        pass

    ################ CONFIG ##################
    @abstractmethod
    def _get_required_config(self) -> list[EnvConfig]:
        """
        Returns all required configurations for the client.

        Returns:
            list[EnvConfig]: A list containing the details of each required configuration key.
        """
        pass

    def _get_config_key_name(self, raw_key: str) -> str:
        """
        Returns:
            str: The full configuration key name for the client. E.g. "EMBED_OPENAI_BASE_URL"
        """
        key_prefix = f"{self.get_client_type().upper()}_{self.get_engine_name().upper()}"
        return f"{key_prefix}_{raw_key.upper()}"

    def get_config_val(self, raw_key: str, default: Any = None, val_type: str = "string") -> Any:
        """
        Retrieves the value of a configuration key for the client.

        Args:
            raw_key (str): The raw configuration key name
            default (Any): The default value to return if the configuration key is not set
            val_type (str): The type of the configuration value ("string", "number", "bool", "path")
        """
        getters = {
            "string": self._helper_config.get_string_val,
            "number": self._helper_config.get_number_val,
            "bool": self._helper_config.get_bool_val,
            "path": self._helper_config.get_path_val,
        }
        if val_type not in getters:
            raise ValueError(f"Unsupported config value type '{val_type}' for env key '{raw_key}' in {self.get_client_type().upper()} client '{self.get_engine_name()}'.")
        return getters[val_type](self._get_config_key_name(raw_key), default=default)

    ################ AUTH ##################
    @abstractmethod
    def _get_auth_header(self) -> dict:
        """
        Returns the authentication header for the client backend server, if a credential is set.

        Returns:
            dict: A dictionary containing the auth data
        """
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_base_url(self) -> str:
        """
        Returns the base URL of the client backend server

        Returns:
            str: The base URL of the client backend server (e.g. "https://api.openai.com/v1")
        """
        pass

    @abstractmethod
    def _get_endpoint_healthcheck(self) -> str:
        """
        Returns the endpoint path for healthcheck requests.

        Returns:
            str: The endpoint path for healthcheck requests (e.g. "/models")
        """
        pass

    ################ ERRORS ##################
    def _build_request_error(self, status_code: int, body: str) -> Exception:
        """
        Builds the exception raised for a failed request. Status code 0 marks a transport failure.
        """
        return ProviderRequestFailed(self.get_engine_name(), status_code, body)

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_healthcheck(self) -> httpx.Response:
        """Check if the client backend is healthy by sending a test request.

        Returns:
            httpx.Response: The response from the healthcheck request.
        """
        return await self.do_request(method="GET", endpoint=self._get_endpoint_healthcheck())

    ##########################################
    ############ CORE REQUESTS ###############
    ##########################################

    def use_transport(self, transport: httpx.AsyncBaseTransport) -> None:
        """Route all requests through the given transport. Must be called before boot()."""
        self._transport = transport

    async def boot(self) -> None:
        """Initialise the HTTP client."""
        self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def do_request(
        self,
        method: str = "GET",
        json: dict | None = None,
        params: QueryParamTypes | None = None,
        endpoint: str = "",
        additional_headers: dict | None = None,
        raise_on_error: bool = False,
    ) -> httpx.Response:
        """Send an HTTP request to the client backend.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE, ...).
            json: JSON-serialisable body (sets Content-Type automatically).
            params: URL query parameters.
            endpoint: Path to append to the base URL (leading slash optional).
            additional_headers: Extra headers that override the defaults.
            raise_on_error: Raise on transport errors and non-2xx statuses.

        Returns:
            The raw httpx.Response.

        Raises:
            RuntimeError: If the client is not initialised.
            Exception: The error built by _build_request_error() if raise_on_error is True
                and the request fails or returns a non-2xx status.
        """
        if self._client is None:
            raise RuntimeError("HTTP client not initialised. Call boot() before making requests.")

        endpoint = "/" + endpoint.strip().lstrip("/") if endpoint.strip() else ""

        headers: dict = {}
        headers.update(self._get_auth_header())
        if additional_headers:
            headers.update(additional_headers)

        url = f"{self._get_base_url().rstrip('/')}{endpoint}"
        try:
            response = await self._client.request(method, url, headers=headers, json=json, params=params)
        except httpx.HTTPError as e:
            if not raise_on_error:
                raise
            self.logging.error("Request to %s failed: %s", url, e)
            raise self._build_request_error(0, str(e)) from e

        if raise_on_error and not response.is_success:
            self.logging.error(
                "Request to %s failed with status %d: %s",
                url,
                response.status_code,
                response.text[:200],
            )
            raise self._build_request_error(response.status_code, response.text[:200])

        return response

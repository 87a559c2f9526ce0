from abc import ABC, abstractmethod

import httpx
from httpx._types import QueryParamTypes
from typing import Any, Callable, TypeVar

from shared.exceptions.errors import ServiceError
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig

T = TypeVar("T")


class ClientInterface(ABC):
    """Base class for all backend clients (embedding engines and vector stores).

    HTTP backends override the ENDPOINTS / AUTH getters and talk through
    do_request(). In-process backends leave the base URL empty; boot() then
    creates no HTTP client and they override the request methods directly.
    """

    # error type raised for transport failures and non-2xx responses
    request_error_class: type[ServiceError] = ServiceError

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self.timeout = helper_config.get_number_val(f"{self.get_client_type().upper()}_TIMEOUT", default=30.0)

        # client and config
        self._client: httpx.AsyncClient | None = None
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

    def is_remote(self) -> bool:
        """Returns True if the backend is reached over HTTP."""
        return bool(self._get_base_url())

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def get_client_type(self) -> str:
        """
        Returns the type of the client in lowercase. E.g. "rag"
        """
        return self._get_client_type().lower()

    @abstractmethod
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "rag"
        """
        pass

    def get_engine_name(self) -> str:
        """
        Returns the name of the engine used by the client. E.g. "qdrant"
        """
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_engine_name(self) -> str:
        """
        Returns the name of the engine used by the client. E.g. "qdrant"
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
            str: The full configuration key name for the client. E.g. "RAG_QDRANT_API_KEY"
        """
        key_prefix = f"{self.get_client_type().upper()}_{self.get_engine_name().upper()}"
        return f"{key_prefix}_{raw_key.upper()}"

    def get_config_val(self, raw_key: str, default: Any = None, val_type: str = "string") -> Any:
        """
        Retrieves the value of a configuration key for the client.

        Args:
            raw_key (str): The raw configuration key name
            default (Any): The default value to return if the configuration key is not set
            val_type (str): The type of the configuration value ("string", "number", "bool", "list")
        """
        key = self._get_config_key_name(raw_key)
        if val_type == "string":
            return self._helper_config.get_string_val(key, default=default)
        elif val_type == "number":
            return self._helper_config.get_number_val(key, default=default)
        elif val_type == "bool":
            return self._helper_config.get_bool_val(key, default=default)
        elif val_type == "list":
            return self._helper_config.get_list_val(key, default=default)
        else:
            raise ValueError(f"Unsupported config value type '{val_type}' for env key '{raw_key}' in {self.get_client_type().upper()} client '{self.get_engine_name()}'.")

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        """
        Returns the authentication header for the client backend server, if an API key is set.
        """
        return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        """
        Returns the base URL of the client backend server (e.g. "http://localhost:6333"),
        or an empty string for in-process backends.
        """
        return ""

    def _get_endpoint_healthcheck(self) -> str:
        """
        Returns the endpoint path for healthcheck requests (e.g. "/healthz").
        """
        return ""

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_healthcheck(self) -> bool:
        """Check if the client backend is healthy.

        In-process backends are always healthy once constructed.

        Returns:
            bool: True if the backend answered with a 2xx status.
        """
        if not self.is_remote():
            return True
        response = await self.do_request(method="GET", endpoint=self._get_endpoint_healthcheck())
        return response.is_success

    ##########################################
    ############ CORE REQUESTS ###############
    ##########################################

    async def boot(self) -> None:
        """Initialise the HTTP client (remote backends only)."""
        if self.is_remote() and self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
            self.logging.info(
                "%s client '%s' initialised for %r",
                self.get_client_type().upper(), self.get_engine_name(), self._get_base_url(),
            )

    async def close(self) -> None:
        """Close the HTTP client and any other resources."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def do_request(
        self,
        method: str = "GET",
        json: dict | None = None,
        params: QueryParamTypes | None = None,
        endpoint: str = "",
        raise_on_error: bool = False,
    ) -> httpx.Response:
        """Send an HTTP request to the client backend.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE, …).
            json: JSON-serialisable body (sets Content-Type automatically).
            params: URL query parameters.
            endpoint: Path to append to the base URL (leading slash optional).
            raise_on_error: Raise on non-2xx status instead of returning the response.

        Returns:
            The raw httpx.Response.

        Raises:
            ServiceError: (as request_error_class) if the client is not initialised,
                the backend is unreachable, or, when raise_on_error is True, the
                response status is not 2xx.
        """
        if self._client is None:
            raise self.request_error_class(
                f"{self.get_client_type().upper()} client '{self.get_engine_name()}' not initialised. Call boot() before making requests."
            )

        endpoint = "/" + endpoint.strip().lstrip("/") if endpoint.strip() else ""

        headers: dict = {}
        headers.update(self._get_auth_header())

        kwargs: dict = {
            "url": f"{self._get_base_url().rstrip('/')}{endpoint}",
            "headers": headers,
            "timeout": self.timeout,
            "params": params,
        }

        if json is not None:
            kwargs["json"] = json

        try:
            response = await self._client.request(method, **kwargs)
        except httpx.HTTPError as exc:
            self.logging.error("Request to %s failed: %s", kwargs["url"], exc)
            raise self.request_error_class(f"Request to {kwargs['url']} failed: {exc}") from exc

        # Log and raise on error if requested
        if raise_on_error and not response.is_success:
            self.logging.error(
                "Request to %s failed with status %d: %s",
                kwargs["url"],
                response.status_code,
                response.text[:500],
            )
            raise self.request_error_class(
                f"Request to {kwargs['url']} failed with status {response.status_code}: {response.text[:200]}"
            )

        return response

    def parse_response(self, response: httpx.Response, parser: Callable[[Any], T]) -> T:
        """Decode a JSON response body and run it through a parser.

        Args:
            response: The response returned by do_request().
            parser: Turns the decoded body into the caller's result.

        Returns:
            The parser's result.

        Raises:
            ServiceError: (as request_error_class) if the body is not JSON or
                does not have the shape the parser expects.
        """
        try:
            return parser(response.json())
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            self.logging.error(
                "Unexpected response from %s (status %d): %s",
                response.request.url, response.status_code, response.text[:500],
            )
            raise self.request_error_class(
                f"Unexpected response from {self.get_engine_name()} (status {response.status_code}): {exc}"
            ) from exc

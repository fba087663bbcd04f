from abc import ABC, abstractmethod
from typing import Any, Callable

import httpx
from httpx._types import QueryParamTypes, RequestContent

from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class ClientRequestError(Exception):
    """Raised when a backend request returns a non-2xx status and the caller asked to raise."""

    def __init__(self, url: str, status_code: int, detail: str = ""):
        super().__init__(f"Request to {url} failed with status {status_code}")
        self.url = url
        self.status_code = status_code
        self.detail = detail


class ClientInterface(ABC):
    """Base of every backend client: per-engine configuration plus one async HTTP session.

    Lifecycle: construct (validates configuration), boot() once, issue requests,
    close() once. The instance also works as an async context manager.
    """

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self.timeout = helper_config.get_number_val(f"{self.get_client_type().upper()}_TIMEOUT", default=30.0)

        self._client: httpx.AsyncClient | None = None
        self.validate_full_configuration()

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def validate_full_configuration(self) -> None:
        """
        Reads every setting the client declares, so missing required values fail at construction.

        Raises:
            ValueError: If a required setting is unset or a value does not parse.
        """
        for setting in self._get_required_config():
            self.get_config_val(raw_key=setting.env_key, default=setting.default, val_type=setting.val_type)

    def is_booted(self) -> bool:
        """Returns True once boot() has been called and close() has not."""
        return self._client is not None

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def get_client_type(self) -> str:
        """
        Returns the client type in lowercase, e.g. "docstore".
        """
        return self._get_client_type().lower()

    @abstractmethod
    def _get_client_type(self) -> str:
        pass

    def get_engine_name(self) -> str:
        """
        Returns the engine name in lowercase, e.g. "firestore".
        """
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_engine_name(self) -> str:
        pass

    ################ CONFIG ##################
    @abstractmethod
    def _get_required_config(self) -> list[EnvConfig]:
        """
        Declares the settings of the client.

        Returns:
            list[EnvConfig]: One entry per setting; a None default marks it as required.
        """
        pass

    def _get_config_key_name(self, raw_key: str) -> str:
        """
        Returns:
            str: The environment variable name, e.g. "DOCSTORE_FIRESTORE_PROJECT_ID" for "PROJECT_ID".
        """
        return f"{self.get_client_type().upper()}_{self.get_engine_name().upper()}_{raw_key.upper()}"

    def _get_config_getters(self) -> dict[str, Callable[..., Any]]:
        return {
            "string": self._helper_config.get_string_val,
            "number": self._helper_config.get_number_val,
            "bool": self._helper_config.get_bool_val,
            "list": self._helper_config.get_list_val,
        }

    def get_config_val(self, raw_key: str, default: Any = None, val_type: str = "string") -> Any:
        """
        Reads one client setting.

        Args:
            raw_key (str): Setting name without the client prefix, e.g. "PROJECT_ID".
            default (Any): Value used when the variable is unset. None makes it required.
            val_type (str): "string", "number", "bool" or "list".

        Raises:
            ValueError: If the setting is required and unset, or val_type is unknown.
        """
        getter = self._get_config_getters().get(val_type)
        if getter is None:
            raise ValueError(f"Unsupported config value type '{val_type}' for '{raw_key}' of the {self.get_client_type()} client '{self.get_engine_name()}'.")
        return getter(self._get_config_key_name(raw_key), default=default)

    ################ AUTH ##################
    @abstractmethod
    def _get_auth_header(self) -> dict:
        """
        Returns the headers authenticating against the backend, empty when no credential is configured.
        """
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_base_url(self) -> str:
        """
        Returns the root URL every endpoint path is appended to, e.g. "https://firestore.googleapis.com/v1".
        """
        pass

    @abstractmethod
    def _get_endpoint_healthcheck(self) -> str:
        """
        Returns the path requested by do_healthcheck().
        """
        pass

    def _build_url(self, endpoint: str) -> str:
        path = endpoint.strip().lstrip("/")
        base = self._get_base_url().rstrip("/")
        return f"{base}/{path}" if path else base

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_healthcheck(self) -> httpx.Response:
        """Request the healthcheck endpoint.

        Raises:
            ClientRequestError: If the backend answers with a non-2xx status.
        """
        return await self.do_request(method="GET", endpoint=self._get_endpoint_healthcheck(), raise_on_error=True)

    ##########################################
    ############ CORE REQUESTS ###############
    ##########################################

    async def boot(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        """Open the HTTP session. Call once before the first request.

        Args:
            transport (httpx.AsyncBaseTransport | None): Transport override, e.g. httpx.MockTransport in tests.
        """
        self._client = httpx.AsyncClient(timeout=self.timeout, transport=transport)

    async def close(self) -> None:
        """Close the HTTP session. Safe to call when not booted."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self):
        if not self.is_booted():
            await self.boot()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def do_request(
        self,
        method: str = "GET",
        content: RequestContent | None = None,
        json: dict | None = None,
        params: QueryParamTypes | None = None,
        endpoint: str = "",
        additional_headers: dict | None = None,
        raise_on_error: bool = False,
    ) -> httpx.Response:
        """Send one request to the backend. Each call is attempted exactly once.

        Args:
            method: HTTP verb.
            content: Raw body, takes precedence over json.
            json: JSON body.
            params: Query string parameters.
            endpoint: Path below the base URL.
            additional_headers: Headers merged over the auth header.
            raise_on_error: Turn a non-2xx status into ClientRequestError.

        Raises:
            RuntimeError: If boot() has not been called.
            ClientRequestError: On a non-2xx status when raise_on_error is set.
            httpx.HTTPError: On transport failures such as timeouts or refused connections.
        """
        if self._client is None:
            raise RuntimeError(f"{self.get_engine_name()} client is not booted. Call boot() before making requests.")

        url = self._build_url(endpoint)
        headers = {**self._get_auth_header(), **(additional_headers or {})}
        body: dict = {}
        if content is not None:
            body["content"] = content
        elif json is not None:
            body["json"] = json

        response = await self._client.request(method, url, headers=headers, params=params, timeout=self.timeout, **body)

        if raise_on_error and response.status_code >= 300:
            self.logging.error("%s %s failed with status %d: %s", method, url, response.status_code, response.text)
            raise ClientRequestError(url=url, status_code=response.status_code, detail=response.text)

        return response

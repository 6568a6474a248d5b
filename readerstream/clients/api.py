"""Async REST client for the reader service API."""
from __future__ import annotations

import logging
from typing import Any, Mapping, Type, TypeVar

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from ..config import Settings, get_settings
from .accounts import AdminApi, ProfileApi
from .library import BooksApi, NewsApi, ShelvesApi
from .messaging import GroupsApi, MessagesApi
from .stream import StreamApi
from .tokens import TokenStore

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class ApiError(RuntimeError):
    """Base class for every failure raised by the REST client."""


class ApiTransportError(ApiError):
    """Raised when the request never produced an HTTP response."""


class ApiResponseError(ApiError):
    """Raised for non-2xx responses; carries the server's error message."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message

    @property
    def is_unauthorized(self) -> bool:
        return self.status_code in (401, 403)

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


class MalformedResponseError(ApiError):
    """Raised when a response body is not the JSON shape the client expects."""


class AuthRequiredError(ApiError):
    """Raised before any I/O when an authenticated endpoint is called without a token."""


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("error", "message", "detail"):
            value = body.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    text = (response.text or "").strip()
    if text and len(text) <= 200:
        return text
    return response.reason_phrase or f"HTTP {response.status_code}"


def describe_error(exc: ApiError, fallback: str) -> str:
    """Text to show the viewer: the server's own message when it sent one."""

    if isinstance(exc, ApiResponseError) and exc.message:
        return exc.message
    return fallback


class ApiClient:
    """Thin wrapper over ``httpx.AsyncClient`` with bearer auth and error mapping.

    Endpoint groups hang off the client (``client.books``, ``client.stream``,
    ``client.messages`` ...) and all go through :meth:`request`.
    """

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        token_store: TokenStore | None = None,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self.tokens = token_store or TokenStore(self._settings.token_path, override=self._settings.auth_token)
        self._http = httpx.AsyncClient(
            base_url=(base_url or self._settings.api_base_url).rstrip("/"),
            timeout=self._settings.request_timeout,
            transport=transport,
        )

        self.books = BooksApi(self)
        self.news = NewsApi(self)
        self.shelves = ShelvesApi(self)
        self.stream = StreamApi(self)
        self.messages = MessagesApi(self)
        self.groups = GroupsApi(self)
        self.profile = ProfileApi(self)
        self.admin = AdminApi(self)

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def is_authenticated(self) -> bool:
        return bool(self.tokens.get())

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def _headers(self, *, require_auth: bool) -> dict[str, str]:
        headers: dict[str, str] = {}
        token = self.tokens.get()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        elif require_auth:
            raise AuthRequiredError("Sign in required")
        return headers

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        json: Any = None,
        files: Mapping[str, Any] | None = None,
        require_auth: bool = False,
    ) -> Any:
        """Send one request and return the decoded JSON body (``None`` when empty)."""

        headers = self._headers(require_auth=require_auth)
        clean_params = {key: value for key, value in (params or {}).items() if value is not None}
        try:
            response = await self._http.request(
                method,
                path,
                params=clean_params or None,
                json=json,
                files=files,
                headers=headers,
            )
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise ApiTransportError(f"{method} {path} failed") from exc

        if response.is_error:
            message = _error_message(response)
            logger.info("%s %s -> %s (%s)", method, path, response.status_code, message)
            raise ApiResponseError(response.status_code, message)

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise MalformedResponseError(f"{method} {path} returned a non-JSON body") from exc

    async def request_model(self, model: Type[ModelT], method: str, path: str, **kwargs: Any) -> ModelT:
        data = await self.request(method, path, **kwargs)
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            logger.warning("Unexpected %s payload from %s %s", model.__name__, method, path)
            raise MalformedResponseError(f"Invalid {model.__name__} payload") from exc

    async def request_models(self, model: Type[ModelT], method: str, path: str, **kwargs: Any) -> list[ModelT]:
        data = await self.request(method, path, **kwargs)
        try:
            return TypeAdapter(list[model]).validate_python(data)  # type: ignore[valid-type]
        except ValidationError as exc:
            logger.warning("Unexpected %s list from %s %s", model.__name__, method, path)
            raise MalformedResponseError(f"Invalid {model.__name__} list payload") from exc


__all__ = [
    "ApiClient",
    "ApiError",
    "ApiTransportError",
    "ApiResponseError",
    "MalformedResponseError",
    "AuthRequiredError",
    "describe_error",
]

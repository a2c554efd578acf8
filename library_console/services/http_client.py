import logging
from enum import Enum
from typing import Any, Optional

import httpx
from pydantic import TypeAdapter, ValidationError

from library_console.config import settings

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    CONNECTIVITY = "connectivity"
    TIMEOUT = "timeout"
    SERVER = "server"


class ApiError(Exception):
    """Normalized failure of a single API call.

    ``kind`` tells connectivity problems (no response at all) apart from timeouts and
    from errors the server reported itself. ``server_message`` is only set when the
    error body carried a ``message`` field.
    """

    def __init__(self, kind: ErrorKind, message: str, *, status_code: Optional[int] = None,
                 server_message: Optional[str] = None, base_url: str = "") -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status_code = status_code
        self.server_message = server_message
        self.base_url = base_url

    @property
    def is_connectivity(self) -> bool:
        return self.kind is ErrorKind.CONNECTIVITY

    def __repr__(self) -> str:
        return f"ApiError(kind={self.kind.value!r}, status_code={self.status_code!r}, message={self.message!r})"


def connection_error_message(base_url: str) -> str:
    return f"No se puede conectar con el servidor. Asegúrate de que la API esté corriendo en {base_url}"


INVALID_RESPONSE = "Respuesta no válida del servidor"


def parse_response(model: Any, data: Any) -> Any:
    """Validate a decoded body as ``model``; a body of the wrong shape is a server error."""
    try:
        return TypeAdapter(model).validate_python(data)
    except ValidationError as e:
        logger.warning("Unexpected response shape for %s: %s", model, e)
        raise ApiError(ErrorKind.SERVER, INVALID_RESPONSE) from e


class ApiClient:
    """JSON client for the library API. One attempt per call, no retries."""

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.api_timeout

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout),
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            transport=transport,
        )

    async def request(self, method: str, path: str, json: Any = None) -> Any:
        """Send one request and return the decoded JSON body (``None`` when empty)."""
        logger.debug("%s %s%s", method, self.base_url, path)
        try:
            response = await self._client.request(method, path, json=json)
        except httpx.TimeoutException as e:
            logger.warning("%s %s timed out after %ss", method, path, self.timeout)
            raise ApiError(
                ErrorKind.TIMEOUT,
                f"Tiempo de espera agotado ({self.timeout:g}s)",
                base_url=self.base_url,
            ) from e
        except httpx.TransportError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise ApiError(
                ErrorKind.CONNECTIVITY,
                connection_error_message(self.base_url),
                base_url=self.base_url,
            ) from e

        if response.is_error:
            server_message = _extract_message(response)
            logger.warning("%s %s -> %s %s", method, path, response.status_code, server_message or "")
            raise ApiError(
                ErrorKind.SERVER,
                server_message or f"Request failed with status code {response.status_code}",
                status_code=response.status_code,
                server_message=server_message,
                base_url=self.base_url,
            )

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            logger.warning("%s %s returned a non-JSON body", method, path)
            raise ApiError(
                ErrorKind.SERVER,
                INVALID_RESPONSE,
                status_code=response.status_code,
                base_url=self.base_url,
            ) from e

    async def get(self, path: str) -> Any:
        return await self.request("GET", path)

    async def post(self, path: str, json: Any = None) -> Any:
        return await self.request("POST", path, json=json)

    async def put(self, path: str, json: Any = None) -> Any:
        return await self.request("PUT", path, json=json)

    async def delete(self, path: str) -> Any:
        return await self.request("DELETE", path)

    async def close(self):
        """Close the underlying HTTP client"""
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


def _extract_message(response: httpx.Response) -> Optional[str]:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        message = body.get("message")
        if isinstance(message, str) and message:
            return message
    return None

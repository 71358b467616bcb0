"""
HTTP Command Gateway implementation.

Uses httpx for async HTTP communication with the CloudStack API.
"""

import logging
from typing import Any, Mapping, Optional

import httpx

from .contracts import CloudStackConfig, SignedRequest
from .envelope import is_error_payload, normalize_error, unwrap_envelope
from .errors import ProtocolError, TransportError
from .gateway import BaseCommandGateway
from .signing import build_signed_request

logger = logging.getLogger(__name__)

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


class HttpCommandGateway(BaseCommandGateway):
    """
    HTTP implementation of CommandGateway.

    Features:
    - Signed GET (query string) or POST (form body) requests
    - Exactly one HTTP call per command, never retried here
    - Envelope unwrapping on success and failure paths
    - Structured error mapping
    - Connection pooling via httpx
    """

    def __init__(
        self,
        config: CloudStackConfig,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """
        Initialize HTTP gateway.

        Args:
            config: Endpoint, credentials, timeout and HTTP method
            http_client: Optional custom httpx.AsyncClient
        """
        self.config = config
        self.api_url = config.api_url
        self.timeout = config.timeout
        self.http_method = config.http_method

        if http_client:
            self._http_client = http_client
            self._own_client = False
        else:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
            self._own_client = True

    def build_request(self, command: str, params: Optional[Mapping[str, Any]] = None) -> SignedRequest:
        """Sign ``command`` with this gateway's credentials."""
        return build_signed_request(
            command,
            params,
            api_key=self.config.api_key,
            secret_key=self.config.secret_key,
        )

    async def send(self, command: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        """Send one signed command and return its unwrapped payload."""
        request = self.build_request(command, params)

        logger.info(f"CloudStack request: command={command}, method={self.http_method}")

        try:
            response = await self._transmit(request)

        except httpx.TimeoutException as e:
            logger.warning(f"{command} request timeout: {e}")
            raise TransportError(
                f"Request timeout: {e}", details={"command": command, "timeout": self.timeout}
            ) from e

        except httpx.ConnectError as e:
            logger.warning(f"{command} connection error: {e}")
            raise TransportError(f"Connection error: {e}", details={"command": command}) from e

        except httpx.TransportError as e:
            logger.error(f"{command} HTTP transport error: {e}")
            raise TransportError(f"HTTP error: {e}", details={"command": command}) from e

        payload = self._handle_response(response, command)

        logger.info(f"CloudStack response: command={command}, status={response.status_code}")

        return payload

    async def _transmit(self, request: SignedRequest) -> httpx.Response:
        query = request.to_query_string()

        if self.http_method == "POST":
            return await self._http_client.post(
                self.api_url,
                content=query.encode("ascii"),
                headers={"Content-Type": FORM_CONTENT_TYPE},
                timeout=self.timeout,
            )

        separator = "&" if "?" in self.api_url else "?"
        return await self._http_client.get(f"{self.api_url}{separator}{query}", timeout=self.timeout)

    def _handle_response(self, response: httpx.Response, command: str) -> Any:
        """
        Map an HTTP response to the unwrapped payload or a typed error.

        Args:
            response: HTTP response
            command: Command the response belongs to

        Returns:
            Unwrapped success payload

        Raises:
            RemoteError: Error payload (any HTTP status, including 200)
            ProtocolError: Body missing, not JSON, or not an object
        """
        status_code = response.status_code

        try:
            body = response.json()
        except ValueError as e:
            if response.is_success:
                raise ProtocolError(
                    f"Failed to parse response for {command}: {e}",
                    status_code=status_code,
                    details={"body": response.text[:200]},
                ) from e
            raise ProtocolError(
                f"CloudStack API error: HTTP {status_code} {response.reason_phrase} (unparseable body)",
                status_code=status_code,
                details={"body": response.text[:200]},
            ) from e

        if not isinstance(body, Mapping):
            raise ProtocolError(
                f"Unexpected response body for {command}: {type(body).__name__}",
                status_code=status_code,
            )

        if not response.is_success:
            error = normalize_error(command, body, status_code, response.reason_phrase)
            logger.warning(f"{command} failed: HTTP {status_code}, upstream_code={error.upstream_code}")
            raise error

        node = unwrap_envelope(body, command)
        if is_error_payload(node):
            error = normalize_error(command, body, status_code, response.reason_phrase)
            logger.warning(f"{command} failed: upstream_code={error.upstream_code}")
            raise error

        return node

    async def close(self) -> None:
        """Close HTTP client if we own it."""
        if self._own_client:
            await self._http_client.aclose()

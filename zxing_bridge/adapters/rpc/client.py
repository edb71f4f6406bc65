"""Remote decoder client.

Transparent proxy for the decoder server: every call opens one connection,
sends one request and returns the server's result unchanged. No retries
happen here; lost connections surface as LostConnectionError.
"""

import itertools
import logging
from typing import Any

from zxing_bridge.adapters.rpc.network import server_connection
from zxing_bridge.adapters.rpc.protocol import (
    ERROR_UNDECODABLE,
    METHOD_DECODE,
    METHOD_DECODE_ALL,
    METHOD_DECODE_ALL_STRICT,
    METHOD_DECODE_STRICT,
    METHOD_HEALTH,
    METHOD_QRCODE_DECODE,
    ConnectionClosedError,
    ProtocolError,
    Request,
    Response,
    receive_message,
    send_message,
)
from zxing_bridge.domain.exceptions import (
    CallTimeoutError,
    LostConnectionError,
    RemoteCallError,
    UndecodableError,
)
from zxing_bridge.domain.value_objects import Endpoint

logger = logging.getLogger(__name__)


class RemoteDecoderClient:
    """Client handle for a decoder server endpoint.

    Implements the RemoteDecoder protocol.
    """

    def __init__(self, endpoint: Endpoint, timeout: float | None = None):
        """Initialize the client.

        Args:
            endpoint: Decoder server endpoint
            timeout: Socket timeout for each call in seconds (None = block)
        """
        self.endpoint = endpoint
        self.timeout = timeout
        self._ids = itertools.count(1)

    def call(self, method: str, params: dict[str, Any]) -> Any:
        """Invoke ``method`` on the decoder server.

        Returns:
            The ``result`` field of the response

        Raises:
            UndecodableError: If the server reports the image undecodable
            RemoteCallError: For any other error response
            CallTimeoutError: If the server does not answer within the timeout
            LostConnectionError: If the server cannot be reached or hangs up
        """
        request = Request(method=method, params=params, request_id=next(self._ids))
        try:
            with server_connection(self.endpoint, timeout=self.timeout) as sock:
                send_message(sock, request)
                response = receive_message(sock, Response)
        except ConnectionClosedError as e:
            raise LostConnectionError(
                f"Decoder server at {self.endpoint} closed the connection"
            ) from e
        except ProtocolError as e:
            raise RemoteCallError(0, f"Malformed response: {e}") from e
        except TimeoutError as e:
            raise CallTimeoutError(
                f"Decoder server at {self.endpoint} did not answer within {self.timeout}s",
                timeout=self.timeout,
            ) from e
        except OSError as e:
            raise LostConnectionError(
                f"Lost connection to decoder server at {self.endpoint}: {e}"
            ) from e

        if response.is_error():
            code = response.error_code or 0
            message = str(response.error.get("message", "Unknown error"))
            logger.debug(f"{method} failed remotely ({code}): {message}")
            if code == ERROR_UNDECODABLE:
                raise UndecodableError(params.get("path"))
            raise RemoteCallError(code, message)

        return response.result

    def health(self) -> dict[str, Any]:
        return self.call(METHOD_HEALTH, {})

    def decode(self, path: str) -> str | None:
        return self.call(METHOD_DECODE, {"path": path})

    def decode_strict(self, path: str) -> str:
        return self.call(METHOD_DECODE_STRICT, {"path": path})

    def decode_all(self, path: str) -> list[str] | None:
        return self.call(METHOD_DECODE_ALL, {"path": path})

    def decode_all_strict(self, path: str) -> list[str]:
        return self.call(METHOD_DECODE_ALL_STRICT, {"path": path})

    def qrcode_decode(self, path: str) -> str | None:
        return self.call(METHOD_QRCODE_DECODE, {"path": path})

    def __repr__(self) -> str:
        return f"RemoteDecoderClient({self.endpoint.uri})"

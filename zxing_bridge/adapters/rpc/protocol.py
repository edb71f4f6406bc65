"""JSON-RPC protocol for decoder server communication.

Newline-delimited JSON messages over a loopback TCP connection, one request
and one response per connection. The method set is fixed: client and server
agree on the names and parameter shapes below.
"""

import json
import logging
from typing import Any

logger = logging.getLogger(__name__)

METHOD_HEALTH = "health"
METHOD_DECODE = "decode"
METHOD_DECODE_STRICT = "decode!"
METHOD_DECODE_ALL = "decode_all"
METHOD_DECODE_ALL_STRICT = "decode_all!"
METHOD_QRCODE_DECODE = "qrcode_decode"

DECODE_METHODS = (
    METHOD_DECODE,
    METHOD_DECODE_STRICT,
    METHOD_DECODE_ALL,
    METHOD_DECODE_ALL_STRICT,
    METHOD_QRCODE_DECODE,
)
METHODS = (METHOD_HEALTH, *DECODE_METHODS)

ERROR_BAD_REQUEST = 400
ERROR_UNKNOWN_METHOD = 404
ERROR_UNDECODABLE = 422
ERROR_INTERNAL = 500


class ProtocolError(Exception):
    """Base exception for protocol errors."""

    pass


class ConnectionClosedError(ProtocolError):
    """Raised when the peer hangs up before sending a complete message."""

    pass


class Request:
    """JSON-RPC request message."""

    def __init__(self, method: str, params: dict[str, Any], request_id: int = 1):
        """Create a request.

        Args:
            method: Method name (e.g., "decode")
            params: Method parameters
            request_id: Request ID for matching responses
        """
        self.method = method
        self.params = params
        self.id = request_id

    def to_json(self) -> str:
        """Serialize to JSON string with newline."""
        data = {"method": self.method, "params": self.params, "id": self.id}
        return json.dumps(data) + "\n"

    @classmethod
    def from_json(cls, line: str) -> "Request":
        """Deserialize from JSON string.

        Args:
            line: JSON string (with or without newline)

        Returns:
            Request object

        Raises:
            ProtocolError: If JSON is invalid or missing required fields
        """
        try:
            data = json.loads(line.strip())
        except json.JSONDecodeError as e:
            raise ProtocolError(f"Invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise ProtocolError("Request must be a JSON object")

        if "method" not in data:
            raise ProtocolError("Request missing 'method' field")

        params = data.get("params", {})
        if not isinstance(params, dict):
            raise ProtocolError("Request 'params' must be a JSON object")

        return cls(
            method=data["method"],
            params=params,
            request_id=data.get("id", 1),
        )


class Response:
    """JSON-RPC response message."""

    def __init__(
        self,
        result: Any = None,
        error: dict[str, Any] | None = None,
        request_id: int = 1,
    ):
        """Create a response.

        Args:
            result: Result value (if success)
            error: Error dict with 'code' and 'message' (if failure)
            request_id: Request ID for matching requests
        """
        self.result = result
        self.error = error
        self.id = request_id

    def to_json(self) -> str:
        """Serialize to JSON string with newline."""
        data = {"result": self.result, "error": self.error, "id": self.id}
        return json.dumps(data) + "\n"

    @classmethod
    def from_json(cls, line: str) -> "Response":
        """Deserialize from JSON string.

        Args:
            line: JSON string (with or without newline)

        Returns:
            Response object

        Raises:
            ProtocolError: If JSON is invalid
        """
        try:
            data = json.loads(line.strip())
        except json.JSONDecodeError as e:
            raise ProtocolError(f"Invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise ProtocolError("Response must be a JSON object")

        error = data.get("error")
        if error is not None and not isinstance(error, dict):
            raise ProtocolError("Response 'error' must be a JSON object or null")

        return cls(
            result=data.get("result"),
            error=error,
            request_id=data.get("id", 1),
        )

    @classmethod
    def success(cls, result: Any, request_id: int = 1) -> "Response":
        """Create a success response."""
        return cls(result=result, error=None, request_id=request_id)

    @classmethod
    def failure(cls, code: int, message: str, request_id: int = 1) -> "Response":
        """Create an error response."""
        return cls(result=None, error={"code": code, "message": message}, request_id=request_id)

    def is_error(self) -> bool:
        """Check if this response is an error."""
        return self.error is not None

    @property
    def error_code(self) -> int | None:
        if self.error is None:
            return None
        return self.error.get("code")


def send_message(sock, message: Request | Response) -> None:
    """Send a message over a socket.

    Args:
        sock: Socket to send on
        message: Request or Response to send

    Raises:
        ProtocolError: If the message cannot be serialized
        OSError: If the socket write fails
    """
    try:
        data = message.to_json().encode("utf-8")
    except (TypeError, ValueError) as e:
        raise ProtocolError(f"Failed to encode message: {e}") from e
    sock.sendall(data)


def receive_message(sock, message_type: type[Request] | type[Response]) -> Request | Response:
    """Receive a message from a socket.

    Reads one newline-delimited message. The peer is expected to send exactly
    one message per connection; trailing data is logged and discarded.

    Args:
        sock: Socket to receive from
        message_type: Type of message to expect (Request or Response)

    Returns:
        Received message

    Raises:
        ConnectionClosedError: If the peer closed the connection before
            sending a complete message
        ProtocolError: If the message is invalid
        OSError: If the socket read fails
    """
    buffer = b""
    while b"\n" not in buffer:
        chunk = sock.recv(4096)
        if not chunk:
            raise ConnectionClosedError("Connection closed")
        buffer += chunk

    message_bytes, _, rest = buffer.partition(b"\n")
    if rest:
        logger.warning(
            f"Received {len(rest)} bytes after first message delimiter. "
            "Protocol expects one message per connection. Data may be lost."
        )

    try:
        line = message_bytes.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ProtocolError(f"Invalid UTF-8 in message: {e}") from e
    return message_type.from_json(line)

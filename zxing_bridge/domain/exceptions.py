"""Domain exceptions for zxing-bridge.

These exceptions represent the fault kinds a caller of the decoder session
can observe. They should be caught at the application boundary (CLI, host
application) and converted to appropriate user-facing error messages.

Spawn failures (missing or unlaunchable decoder executable) are deliberately
absent: they propagate as the original OSError.
"""


class ZxingBridgeError(Exception):
    """Base exception for all zxing-bridge errors.

    Attributes:
        message: User-facing error message.
        hint: Optional actionable suggestion.
    """

    def __init__(self, message: str, hint: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint


class UndecodableError(ZxingBridgeError):
    """Raised by the strict decode variants when an image holds no barcode."""

    MESSAGE = "Image not decodable"

    def __init__(self, path: str | None = None) -> None:
        super().__init__(self.MESSAGE)
        self.path = path


class ServerStartError(ZxingBridgeError):
    """Raised when a spawned decoder server never becomes responsive.

    Attributes:
        port: Port the server was expected to listen on.
        exit_code: Exit code if the process died during startup, else None.
    """

    def __init__(
        self,
        message: str,
        port: int,
        exit_code: int | None = None,
        hint: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.port = port
        self.exit_code = exit_code


class RemoteCallError(ZxingBridgeError):
    """Raised when the decoder server answers a call with an error."""

    def __init__(self, code: int, message: str) -> None:
        super().__init__(f"Decoder server error ({code}): {message}")
        self.code = code
        self.remote_message = message


class LostConnectionError(ZxingBridgeError, ConnectionError):
    """Raised when the decoder server cannot be reached during a call.

    This is the fault that ``retry_once`` recovers from.
    """

    def __init__(self, message: str) -> None:
        super().__init__(
            message,
            hint="The decoder server may have died; retry with retry_once=True",
        )


class CallTimeoutError(ZxingBridgeError):
    """Raised when the decoder server does not answer within the RPC timeout.

    The server is still reachable, so ``retry_once`` does not rebuild it.

    Attributes:
        timeout: The socket timeout in seconds that expired.
    """

    def __init__(self, message: str, timeout: float | None = None) -> None:
        super().__init__(
            message,
            hint="Increase client.rpc_timeout for large or slow images",
        )
        self.timeout = timeout

"""Reference decoder server.

The server:
1. Binds the loopback port given as its only positional argument
2. Answers decode requests using a DecoderBackend (zxing-cpp by default)
3. Runs until SIGINT/SIGTERM, then closes its socket and exits

Usage:
    python -m zxing_bridge.adapters.rpc.server PORT [--log-level LEVEL]
"""

import logging
import os
import signal
import socket
import sys
import time
from typing import TYPE_CHECKING

from zxing_bridge.adapters.rpc.protocol import (
    ERROR_BAD_REQUEST,
    ERROR_INTERNAL,
    ERROR_UNDECODABLE,
    ERROR_UNKNOWN_METHOD,
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
from zxing_bridge.adapters.rpc.timeouts import ServerTimeouts
from zxing_bridge.domain.config import LOG_LEVEL_ENV, LOOPBACK_HOST
from zxing_bridge.domain.exceptions import UndecodableError

if TYPE_CHECKING:
    from zxing_bridge.ports.decoder import DecoderBackend

logger = logging.getLogger(__name__)


class DecoderServer:
    """Decoder server answering JSON-RPC requests on a loopback port."""

    def __init__(
        self,
        port: int,
        backend: "DecoderBackend",
        host: str = LOOPBACK_HOST,
    ):
        """Initialize decoder server.

        Args:
            port: TCP port to listen on
            backend: Barcode reading backend
            host: Bind address (loopback only)
        """
        self.port = port
        self.host = host
        self.backend = backend

        self.server_socket: socket.socket | None = None
        self.started_at = time.time()
        self.running = False
        self.requests_served = 0

    def setup_signal_handlers(self) -> None:
        """Set up signal handlers for graceful shutdown."""

        def signal_handler(signum, frame):
            logger.info(f"Received signal {signum}, shutting down...")
            self.running = False

        signal.signal(signal.SIGTERM, signal_handler)
        signal.signal(signal.SIGINT, signal_handler)

    def create_socket(self) -> None:
        """Create, bind and listen on the TCP socket.

        Raises:
            OSError: If the port cannot be bound
        """
        self.server_socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        if os.name != "nt":
            self.server_socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self.server_socket.bind((self.host, self.port))
        self.server_socket.listen(16)
        self.server_socket.settimeout(ServerTimeouts.SERVER_POLL)

        logger.info(f"Listening on {self.host}:{self.port}")

    def handle_request(self, request: Request) -> Response:
        """Handle a single request.

        Args:
            request: Request to handle

        Returns:
            Response with result or error
        """
        try:
            if request.method == METHOD_HEALTH:
                return self._handle_health(request)
            if request.method in _DECODERS:
                return self._handle_decode(request)
            return Response.failure(
                code=ERROR_UNKNOWN_METHOD,
                message=f"Unknown method: {request.method}",
                request_id=request.id,
            )
        except Exception as e:
            logger.exception(f"Error handling request: {e}")
            return Response.failure(
                code=ERROR_INTERNAL, message=f"Internal error: {e}", request_id=request.id
            )

    def _handle_health(self, request: Request) -> Response:
        return Response.success(
            {
                "status": "ok",
                "pid": os.getpid(),
                "backend": self.backend.name,
                "uptime": time.time() - self.started_at,
                "requests_served": self.requests_served,
            },
            request_id=request.id,
        )

    def _handle_decode(self, request: Request) -> Response:
        path = request.params.get("path")
        if not path or not isinstance(path, str):
            return Response.failure(
                code=ERROR_BAD_REQUEST,
                message="Missing or invalid 'path' parameter",
                request_id=request.id,
            )

        qr_only = request.method == METHOD_QRCODE_DECODE
        try:
            texts = self.backend.read_barcodes(path, qr_only=qr_only)
        except FileNotFoundError as e:
            return Response.failure(code=ERROR_BAD_REQUEST, message=str(e), request_id=request.id)
        except ValueError as e:
            logger.debug(f"Unreadable image {path}: {e}")
            texts = []

        try:
            result = _DECODERS[request.method](texts)
        except UndecodableError as e:
            return Response.failure(
                code=ERROR_UNDECODABLE, message=e.message, request_id=request.id
            )
        return Response.success(result, request_id=request.id)

    def handle_client(self, client_socket: socket.socket) -> None:
        """Handle a single client connection.

        Args:
            client_socket: Connected client socket
        """
        try:
            client_socket.settimeout(ServerTimeouts.SERVER_REQUEST)
            request = receive_message(client_socket, Request)
            logger.debug(f"Received request: {request.method}")

            self.requests_served += 1
            response = self.handle_request(request)

            send_message(client_socket, response)
            logger.debug(f"Sent response: {'error' if response.is_error() else 'success'}")

        except ConnectionClosedError:
            # Liveness probes connect and hang up without a request
            logger.debug("Client closed connection without a request")
        except ProtocolError as e:
            logger.error(f"Protocol error: {e}")
            try:
                send_message(client_socket, Response.failure(code=ERROR_BAD_REQUEST, message=str(e)))
            except OSError:
                logger.debug("Failed to send protocol error response")
        except OSError as e:
            logger.warning(f"Client connection error: {e}")
        finally:
            client_socket.close()

    def serve_forever(self) -> None:
        """Main server loop.

        Accepts one connection at a time until a shutdown signal arrives.
        """
        logger.info("Decoder server started")
        self.running = True

        while self.running:
            try:
                try:
                    client_socket, _ = self.server_socket.accept()
                except TimeoutError:
                    continue
                self.handle_client(client_socket)
            except Exception as e:
                if self.running:
                    logger.exception(f"Error in server loop: {e}")
                    time.sleep(0.1)

        logger.info("Decoder server stopped")

    def cleanup(self) -> None:
        """Clean up resources."""
        if self.server_socket:
            self.server_socket.close()
            self.server_socket = None
        logger.info(f"Closed {self.host}:{self.port}")

    def run(self) -> None:
        """Run the decoder server.

        This is the main entry point for the server process.
        """
        try:
            self.setup_signal_handlers()
            self.create_socket()
            self.serve_forever()
        except Exception as e:
            logger.exception(f"Fatal error: {e}")
            sys.exit(1)
        finally:
            self.cleanup()


def _first(texts: list[str]) -> str | None:
    return texts[0] if texts else None


def _first_strict(texts: list[str]) -> str:
    if not texts:
        raise UndecodableError()
    return texts[0]


def _all(texts: list[str]) -> list[str] | None:
    return list(texts) if texts else None


def _all_strict(texts: list[str]) -> list[str]:
    if not texts:
        raise UndecodableError()
    return list(texts)


_DECODERS = {
    METHOD_DECODE: _first,
    METHOD_DECODE_STRICT: _first_strict,
    METHOD_DECODE_ALL: _all,
    METHOD_DECODE_ALL_STRICT: _all_strict,
    METHOD_QRCODE_DECODE: _first,
}


def main(argv: list[str] | None = None, backend: "DecoderBackend | None" = None) -> None:
    """Main entry point for the decoder server process.

    Args:
        argv: Command-line arguments (default: sys.argv[1:])
        backend: Decoding backend (default: zxing-cpp)
    """
    import argparse

    parser = argparse.ArgumentParser(description="zxing-bridge decoder server")
    parser.add_argument("port", type=int, help="Loopback port to listen on")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=os.environ.get(LOG_LEVEL_ENV, "WARNING").upper(),
        help="Log level",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level, logging.WARNING),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if backend is None:
        from zxing_bridge.adapters.decoding.zxingcpp_backend import ZxingCppBackend

        backend = ZxingCppBackend()

    server = DecoderServer(port=args.port, backend=backend)
    server.run()


if __name__ == "__main__":
    main()

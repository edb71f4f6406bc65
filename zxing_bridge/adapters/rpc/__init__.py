"""Out-of-process decoder server and its client.

The decoder runs in a separate process listening on a loopback TCP port.
The host process talks to it through a small line-delimited JSON protocol.

Architecture:
- protocol.py: JSON request/response messages and framing
- network.py: port allocation, liveness probe and connections
- supervisor.py: Server spawn, readiness wait and teardown
- client.py: Client handle (implements RemoteDecoder protocol)
- server.py: Reference decoder server process
"""

from zxing_bridge.adapters.rpc.client import RemoteDecoderClient
from zxing_bridge.adapters.rpc.supervisor import ServerProcess, ServerSupervisor

__all__ = ["RemoteDecoderClient", "ServerProcess", "ServerSupervisor"]

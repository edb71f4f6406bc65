"""Entry point for running the decoder server as a module.

Usage:
    python -m zxing_bridge.adapters.rpc PORT [--log-level LEVEL]
"""

from zxing_bridge.adapters.rpc.server import main

if __name__ == "__main__":
    main()

"""Test fixtures module."""

from tests.fixtures.fake_decoder_server import FAKE_SERVER_SCRIPT, TextFileBackend

__all__ = ["FAKE_SERVER_SCRIPT", "TextFileBackend"]

"""Unit tests for the module-level decode functions."""

from unittest.mock import MagicMock, patch

import pytest

import zxing_bridge


@pytest.fixture
def default_session():
    session = MagicMock()
    with patch("zxing_bridge.get_default_session", return_value=session):
        yield session


@pytest.mark.parametrize(
    "name", ["decode", "decode_strict", "decode_all", "decode_all_strict", "qrcode_decode"]
)
def test_functions_delegate_to_default_session(default_session, name: str) -> None:
    getattr(default_session, name).return_value = "result"

    assert getattr(zxing_bridge, name)("label.png", retry_once=True) == "result"
    getattr(default_session, name).assert_called_once_with("label.png", retry_once=True)


def test_retry_once_defaults_to_false(default_session) -> None:
    zxing_bridge.decode("label.png")
    default_session.decode.assert_called_once_with("label.png", retry_once=False)


def test_public_names() -> None:
    for name in zxing_bridge.__all__:
        assert hasattr(zxing_bridge, name)

import logging

import pytest
import requests
from unittest.mock import MagicMock, patch

from cvm_attest.client import (
    CLIENT_FACTORY_ENV,
    ClientParameters,
    DEFAULT_TIMEOUT,
    ErrorCode,
    HttpAttestationClient,
    attestation_session,
    initialize,
    load_client_factory,
    resolve_client_factory,
    uninitialize,
)
from cvm_attest.types import ClientInitializationError

logger = logging.getLogger("test")


def make_response(status_code=200, json_data=None, json_error=None):
    response = MagicMock()
    response.status_code = status_code
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status_code} Client Error")
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = json_data
    return response


def params(url="https://attest.example"):
    return ClientParameters(attestation_endpoint_url=url, client_payload='{"nonce":"abc"}')


class TestHttpAttestationClient:
    """Tests for the HTTP attestation client with a mocked session."""

    def test_success_returns_token_buffer(self):
        session = MagicMock()
        session.post.return_value = make_response(json_data={"token": "a.b.c"})
        client = HttpAttestationClient(logger, session=session)

        result, buffer = client.attest(params())

        assert result.ok
        assert buffer.read() == b"a.b.c"

    def test_posts_payload_to_attest_path(self):
        session = MagicMock()
        session.post.return_value = make_response(json_data={"token": "a.b.c"})
        client = HttpAttestationClient(logger, session=session, timeout=5)

        client.attest(params("https://attest.example"))

        url = session.post.call_args.args[0]
        kwargs = session.post.call_args.kwargs
        assert url == "https://attest.example/attest/AzureGuest?api-version=2020-10-01"
        assert kwargs["json"] == {"version": 1, "client_payload": '{"nonce":"abc"}'}
        assert kwargs["timeout"] == 5

    def test_default_timeout_is_finite(self):
        session = MagicMock()
        session.post.return_value = make_response(json_data={"token": "a.b.c"})
        client = HttpAttestationClient(logger, session=session)

        client.attest(params())

        assert session.post.call_args.kwargs["timeout"] == DEFAULT_TIMEOUT
        assert DEFAULT_TIMEOUT > 0

    def test_http_error_is_service_error(self):
        session = MagicMock()
        session.post.return_value = make_response(status_code=503)
        client = HttpAttestationClient(logger, session=session)

        result, buffer = client.attest(params())

        assert result.code == ErrorCode.SERVICE_ERROR
        assert "503" in result.description
        assert buffer is None

    def test_connection_error_is_transport_failure(self):
        session = MagicMock()
        session.post.side_effect = requests.ConnectionError("refused")
        client = HttpAttestationClient(logger, session=session)

        result, buffer = client.attest(params())

        assert result.code == ErrorCode.TRANSPORT_FAILURE
        assert "refused" in result.description
        assert buffer is None

    def test_non_json_body_is_invalid_response(self):
        session = MagicMock()
        session.post.return_value = make_response(json_error=ValueError("Expecting value"))
        client = HttpAttestationClient(logger, session=session)

        result, buffer = client.attest(params())

        assert result.code == ErrorCode.INVALID_RESPONSE
        assert buffer is None

    @pytest.mark.parametrize("body", [{}, {"token": ""}, {"token": 5}, ["a.b.c"]])
    def test_missing_token_is_invalid_response(self, body):
        session = MagicMock()
        session.post.return_value = make_response(json_data=body)
        client = HttpAttestationClient(logger, session=session)

        result, buffer = client.attest(params())

        assert result.code == ErrorCode.INVALID_RESPONSE
        assert "does not contain a token" in result.description
        assert buffer is None

    def test_close_leaves_borrowed_session_open(self):
        session = MagicMock()
        HttpAttestationClient(logger, session=session).close()
        session.close.assert_not_called()

    @patch('cvm_attest.client.requests.Session')
    def test_close_closes_owned_session(self, mock_session_cls):
        HttpAttestationClient(logger).close()
        mock_session_cls.return_value.close.assert_called_once()


class TestClientLifecycle:
    """Tests for client initialization and teardown."""

    def test_initialize_uses_factory(self):
        factory = MagicMock()
        client = initialize(logger, factory)
        factory.assert_called_once_with(logger)
        assert client is factory.return_value

    def test_initialize_failure_returns_none(self):
        factory = MagicMock(side_effect=RuntimeError("no device"))
        assert initialize(logger, factory) is None

    def test_uninitialize_tolerates_none(self):
        uninitialize(None)

    def test_session_closes_client_on_exit(self):
        factory = MagicMock()
        with attestation_session(logger, factory) as client:
            assert client is factory.return_value
        client.close.assert_called_once()

    def test_session_closes_client_on_error(self):
        factory = MagicMock()
        with pytest.raises(ValueError):
            with attestation_session(logger, factory):
                raise ValueError("parse failure")
        factory.return_value.close.assert_called_once()

    def test_session_raises_when_initialization_fails(self):
        factory = MagicMock(side_effect=RuntimeError("no device"))
        with pytest.raises(ClientInitializationError):
            with attestation_session(logger, factory):
                pass


class TestClientFactoryResolution:
    """Tests for selecting the client implementation."""

    def test_default_is_http_client(self, monkeypatch):
        monkeypatch.delenv(CLIENT_FACTORY_ENV, raising=False)
        assert resolve_client_factory() is HttpAttestationClient

    def test_environment_selects_factory(self, monkeypatch):
        monkeypatch.setenv(CLIENT_FACTORY_ENV, "cvm_attest.client:HttpAttestationClient")
        assert resolve_client_factory() is HttpAttestationClient

    @pytest.mark.parametrize("path", ["cvm_attest.client", ":x", "cvm_attest.client:"])
    def test_invalid_path_raises(self, path):
        with pytest.raises(ValueError):
            load_client_factory(path)

    def test_missing_attribute_raises(self):
        with pytest.raises(ValueError, match="no attribute"):
            load_client_factory("cvm_attest.client:DoesNotExist")

    def test_bad_environment_factory_fails_initialization(self, monkeypatch):
        monkeypatch.setenv(CLIENT_FACTORY_ENV, "cvm_attest_missing_module:factory")
        assert initialize(logger) is None

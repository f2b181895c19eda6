"""
Attestation client interface and the default HTTP implementation.

The client is the external collaborator that produces a signed attestation
token. Callers acquire it through attestation_session(), which pairs
initialize() with uninitialize(), and hand it explicitly to the invoker.
Tokens come back in a TokenBuffer owned by the client; the receiver copies
the token out and returns the buffer through client.free() exactly once.
"""

import importlib
import logging
import os
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterator, Optional, Tuple
from urllib.parse import urljoin

import requests

from .types import BufferReleasedError, ClientInitializationError, CLIENT_PARAMS_VERSION

CLIENT_FACTORY_ENV = "CVM_ATTEST_CLIENT"
ATTEST_PATH = "attest/AzureGuest?api-version=2020-10-01"
DEFAULT_TIMEOUT = 15  # seconds


class ErrorCode(Enum):
    """Result codes reported by an attestation client"""
    SUCCESS = 0
    TRANSPORT_FAILURE = 1
    SERVICE_ERROR = 2
    INVALID_RESPONSE = 3


@dataclass
class ClientParameters:
    """Parameters for a single attest call"""
    attestation_endpoint_url: str
    client_payload: str
    version: int = CLIENT_PARAMS_VERSION


@dataclass
class AttestationResult:
    """Represents the status of an attest call"""
    code: ErrorCode
    description: str = ""

    @property
    def ok(self) -> bool:
        return self.code == ErrorCode.SUCCESS


class TokenBuffer:
    """A client-owned buffer holding a raw attestation token"""

    def __init__(self, data: bytes):
        self._data = bytearray(data)
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def read(self) -> bytes:
        if self._released:
            raise BufferReleasedError("Token buffer was already released")
        return bytes(self._data)

    def release(self) -> None:
        if self._released:
            raise BufferReleasedError("Token buffer released twice")
        for i in range(len(self._data)):
            self._data[i] = 0
        self._released = True


class AttestationClient(ABC):
    """Base class for attestation collaborators"""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    @abstractmethod
    def attest(self, params: ClientParameters) -> Tuple[AttestationResult, Optional[TokenBuffer]]:
        """
        Requests an attestation token for the given client payload.

        Returns the call status and, on success, a buffer holding the token.
        Failures are reported through the result, never raised.
        """

    def free(self, buffer: TokenBuffer) -> None:
        """Releases a buffer returned by attest()"""
        buffer.release()

    def close(self) -> None:
        """Releases any resources held by the client"""
        pass


class HttpAttestationClient(AttestationClient):
    """
    Attestation client that relays the client payload to the attestation service over HTTP.

    The request carries no TEE evidence, so a real attestation service will
    reject it and the run reports a failed attestation. Use a platform client
    that gathers guest evidence, selected through CVM_ATTEST_CLIENT, against
    a real endpoint.
    """

    def __init__(self, logger: logging.Logger, session: Optional[requests.Session] = None,
                 timeout: Optional[float] = DEFAULT_TIMEOUT):
        super().__init__(logger)
        self._owns_session = session is None
        self._session = session if session is not None else requests.Session()
        self._timeout = timeout

    def attest(self, params: ClientParameters) -> Tuple[AttestationResult, Optional[TokenBuffer]]:
        base = params.attestation_endpoint_url
        if not base.endswith("/"):
            base += "/"
        url = urljoin(base, ATTEST_PATH)
        body = {"version": params.version, "client_payload": params.client_payload}

        self.logger.debug(f"Posting attestation request to {url}")
        try:
            response = self._session.post(url, json=body, timeout=self._timeout)
            response.raise_for_status()
        except requests.HTTPError as e:
            return AttestationResult(ErrorCode.SERVICE_ERROR, f"Attestation service returned an error: {e}"), None
        except requests.RequestException as e:
            return AttestationResult(ErrorCode.TRANSPORT_FAILURE, f"Error contacting attestation service at {url}: {e}"), None

        try:
            response_data = response.json()
        except ValueError as e:
            return AttestationResult(ErrorCode.INVALID_RESPONSE, f"Error decoding JSON response from {url}: {e}"), None

        token = response_data.get("token") if isinstance(response_data, dict) else None
        if not isinstance(token, str) or not token:
            return AttestationResult(ErrorCode.INVALID_RESPONSE, f"Attestation response from {url} does not contain a token"), None

        return AttestationResult(ErrorCode.SUCCESS), TokenBuffer(token.encode("utf-8"))

    def close(self) -> None:
        if self._owns_session:
            self._session.close()


ClientFactory = Callable[[logging.Logger], AttestationClient]


def load_client_factory(path: str) -> ClientFactory:
    """Loads a client factory from a "module:callable" path"""
    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"Invalid client factory path: {path!r} (expected 'module:callable')")
    module = importlib.import_module(module_name)
    try:
        return getattr(module, attr)
    except AttributeError:
        raise ValueError(f"Module {module_name!r} has no attribute {attr!r}") from None


def resolve_client_factory() -> ClientFactory:
    """Returns the factory named by CVM_ATTEST_CLIENT, or the HTTP client"""
    path = os.environ.get(CLIENT_FACTORY_ENV)
    if path:
        return load_client_factory(path)
    return HttpAttestationClient


def initialize(logger: logging.Logger, factory: Optional[ClientFactory] = None) -> Optional[AttestationClient]:
    """
    Creates the attestation client.

    Returns None if the client could not be created; the cause is logged.
    """
    try:
        if factory is None:
            factory = resolve_client_factory()
        return factory(logger)
    except Exception as e:
        logger.error(f"Failed to initialize attestation client: {e}")
        return None


def uninitialize(client: Optional[AttestationClient]) -> None:
    """Tears down a client created by initialize()"""
    if client is not None:
        client.close()


@contextmanager
def attestation_session(logger: logging.Logger, factory: Optional[ClientFactory] = None) -> Iterator[AttestationClient]:
    """
    Yields an initialized attestation client and tears it down on exit.

    Raises:
        ClientInitializationError: If the client could not be created
    """
    client = initialize(logger, factory)
    try:
        if client is None:
            raise ClientInitializationError("Failed to create attestation client object")
        yield client
    finally:
        uninitialize(client)

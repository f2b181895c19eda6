import logging

from .client import AttestationClient, ClientParameters
from .types import AttestationOutcome, CLIENT_PARAMS_VERSION

logger = logging.getLogger(__name__)


def invoke_attestation(client: AttestationClient, endpoint_url: str, payload: str,
                       version: int = CLIENT_PARAMS_VERSION) -> AttestationOutcome:
    """
    Requests an attestation token from the client for the serialized payload.

    The token is copied out of the client's buffer and the buffer is freed
    before returning, whatever the outcome. Failures reported by the client
    are returned as a failed outcome rather than raised.
    """
    params = ClientParameters(
        attestation_endpoint_url=endpoint_url,
        client_payload=payload,
        version=version,
    )
    logger.debug(f"Requesting attestation from {endpoint_url} ({len(payload)} byte payload)")

    result, buffer = client.attest(params)
    try:
        if not result.ok:
            logger.warning(f"Attestation failed: {result.description}")
            return AttestationOutcome.failed(result.description)
        if buffer is None:
            return AttestationOutcome.failed("Attestation client returned no token")
        token = buffer.read().decode("utf-8")
    finally:
        if buffer is not None:
            client.free(buffer)

    return AttestationOutcome.succeeded(token)

from .client import (
    AttestationClient,
    AttestationResult,
    ClientParameters,
    ErrorCode,
    HttpAttestationClient,
    TokenBuffer,
    attestation_session,
)
from .compliance import is_compliant_cvm, lookup_claim
from .invoke import invoke_attestation
from .output import render_output
from .request import build_request, serialize_request
from .token import decode_claims
from .types import (
    AttestationError,
    AttestationOutcome,
    AttestationRequest,
    ConfigurationError,
    MalformedTokenError,
    OutputMode,
    ValueFormatError,
)

__all__ = [
    'AttestationClient',
    'AttestationResult',
    'ClientParameters',
    'ErrorCode',
    'HttpAttestationClient',
    'TokenBuffer',
    'attestation_session',
    'is_compliant_cvm',
    'lookup_claim',
    'invoke_attestation',
    'render_output',
    'build_request',
    'serialize_request',
    'decode_claims',
    'AttestationError',
    'AttestationOutcome',
    'AttestationRequest',
    'ConfigurationError',
    'MalformedTokenError',
    'OutputMode',
    'ValueFormatError',
]

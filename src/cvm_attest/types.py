"""
Shared types, errors, and protocol constants for guest attestation.

This module has no intra-package dependencies, so any module
can import from it without risk of circular imports.
"""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict, Optional


# =============================================================================
# Protocol-level constants
# =============================================================================

# Shared regional attestation endpoint used when none is configured
DEFAULT_ATTESTATION_URL = "https://sharedeus2.eus2.attest.azure.net/"

CLIENT_PARAMS_VERSION = 1

# Claim names inside the attestation token payload
ISOLATION_TEE_CLAIM = "x-ms-isolation-tee"
ATTESTATION_TYPE_CLAIM = "x-ms-attestation-type"
COMPLIANCE_STATUS_CLAIM = "x-ms-compliance-status"

# Expected values, compared case-insensitively
SEVSNP_ATTESTATION_TYPE = "sevsnpvm"
AZURE_COMPLIANT_CVM = "azure-compliant-cvm"

TOKEN_SEGMENT_COUNT = 3  # header.payload.signature


class OutputMode(str, Enum):
    """Output modes for the attestation result"""
    TOKEN = "TOKEN"
    BOOL = "BOOL"

    @classmethod
    def parse(cls, value: str) -> "OutputMode":
        """Parses an output mode name, ignoring case"""
        try:
            return cls(value.strip().upper())
        except ValueError:
            choices = ", ".join(m.value for m in cls)
            raise ConfigurationError(
                f"Invalid output type: {value!r} (expected one of {choices})"
            ) from None


# =============================================================================
# Errors
# =============================================================================

class AttestationError(Exception):
    """Base class for attestation errors"""
    pass

class ConfigurationError(AttestationError):
    """Raised when command-line options or settings are invalid"""
    pass

class ValueFormatError(AttestationError, ValueError):
    """Raised when a numeric option cannot be parsed"""
    pass

class ClientInitializationError(AttestationError):
    """Raised when the attestation client cannot be created"""
    pass

class MalformedTokenError(AttestationError, ValueError):
    """Raised when an attestation token cannot be structurally decoded"""
    pass

class BufferReleasedError(AttestationError):
    """Raised when a token buffer is used after it was released"""
    pass


# =============================================================================
# Data types
# =============================================================================

@dataclass(frozen=True)
class AttestationRequest:
    """Represents the client payload sent along with an attestation request"""
    nonce: str
    price: Optional[float]
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class AttestationOutcome:
    """Represents the result of a single attestation invocation"""
    success: bool
    token: Optional[str] = None
    description: str = ""

    @classmethod
    def succeeded(cls, token: str) -> "AttestationOutcome":
        return cls(success=True, token=token)

    @classmethod
    def failed(cls, description: str) -> "AttestationOutcome":
        return cls(success=False, description=description)

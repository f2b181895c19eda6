import logging
from collections.abc import Mapping
from typing import Any, Optional

from .types import (
    ISOLATION_TEE_CLAIM,
    ATTESTATION_TYPE_CLAIM,
    COMPLIANCE_STATUS_CLAIM,
    SEVSNP_ATTESTATION_TYPE,
    AZURE_COMPLIANT_CVM,
)

logger = logging.getLogger(__name__)


def lookup_claim(claims: Any, *path: str) -> Optional[Any]:
    """Follows path through nested claim objects, returning None if any step is missing"""
    node = claims
    for key in path:
        if not isinstance(node, Mapping) or key not in node:
            return None
        node = node[key]
    return node


def lookup_string_claim(claims: Any, *path: str) -> Optional[str]:
    value = lookup_claim(claims, *path)
    return value if isinstance(value, str) else None


def _ascii_iequals(value: str, expected: str) -> bool:
    return value.isascii() and value.lower() == expected


def is_compliant_cvm(claims: Any) -> bool:
    """
    Returns True if the claims describe an Azure-compliant SEV-SNP confidential VM.

    Both the attestation type and the compliance status under the isolation
    TEE claim must match, ignoring ASCII case only. Missing or non-string claims yield
    False.
    """
    attestation_type = lookup_string_claim(claims, ISOLATION_TEE_CLAIM, ATTESTATION_TYPE_CLAIM)
    compliance_status = lookup_string_claim(claims, ISOLATION_TEE_CLAIM, COMPLIANCE_STATUS_CLAIM)

    if attestation_type is None or compliance_status is None:
        logger.debug(f"Token has no usable {ISOLATION_TEE_CLAIM} claims")
        return False

    return (_ascii_iequals(attestation_type, SEVSNP_ATTESTATION_TYPE)
            and _ascii_iequals(compliance_status, AZURE_COMPLIANT_CVM))

"""
Structural decoding of compact attestation tokens.

Only the claims segment is decoded. The header and signature segments are
left untouched; signature validity is the attestation service's concern.
"""

import base64
import binascii
import json
import re
from typing import Any, Dict, List

from .types import MalformedTokenError, TOKEN_SEGMENT_COUNT

_B64URL_RE = re.compile(r"[A-Za-z0-9_-]*")


def split_token(token: str) -> List[str]:
    """
    Splits a compact token into its dot-separated segments.

    Raises:
        MalformedTokenError: If the token has fewer than three segments
    """
    segments = token.split(".")
    if len(segments) < TOKEN_SEGMENT_COUNT:
        raise MalformedTokenError(
            f"Expected {TOKEN_SEGMENT_COUNT} token segments, got {len(segments)}"
        )
    return segments


def b64url_decode(segment: str) -> bytes:
    """Decodes a base64url segment, restoring any stripped padding"""
    if not _B64URL_RE.fullmatch(segment):
        raise MalformedTokenError("Token segment contains characters outside the base64url alphabet")
    padded = segment + "=" * (-len(segment) % 4)
    try:
        return base64.urlsafe_b64decode(padded)
    except (binascii.Error, ValueError) as e:
        raise MalformedTokenError(f"Failed to decode base64url: {e}") from e


def decode_claims(token: str) -> Dict[str, Any]:
    """
    Returns the claims carried in the payload segment of a compact token.

    Raises:
        MalformedTokenError: If the token is not three segments or its
            payload is not a base64url-encoded JSON object
    """
    payload = b64url_decode(split_token(token)[1])
    try:
        claims = json.loads(payload.decode("utf-8"))
    except UnicodeDecodeError as e:
        raise MalformedTokenError(f"Token claims are not valid UTF-8: {e}") from e
    except json.JSONDecodeError as e:
        raise MalformedTokenError(f"Failed to parse token claims: {e}") from e

    if not isinstance(claims, dict):
        raise MalformedTokenError(f"Token claims must be a JSON object, got {type(claims).__name__}")
    return claims

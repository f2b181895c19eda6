import json
import math
import re
import time
from typing import Callable, Optional

from .types import AttestationRequest, ValueFormatError

# Plain base-10 number: sign, digits, optional fraction, optional exponent
_DECIMAL_RE = re.compile(r'^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$')


def parse_price(price: Optional[str]) -> Optional[float]:
    """
    Parses the optional price option.

    Returns None when the price is absent or empty so it is encoded as
    null rather than zero.

    Raises:
        ValueFormatError: If the price is not a finite decimal number
    """
    if price is None or price == "":
        return None

    text = price.strip()
    if not _DECIMAL_RE.match(text):
        raise ValueFormatError(f"Invalid price value: {price!r}")

    value = float(text)
    if not math.isfinite(value):
        raise ValueFormatError(f"Price out of range: {price!r}")
    return value


def build_request(nonce: str, price: Optional[str] = None,
                  now: Optional[Callable[[], float]] = None) -> AttestationRequest:
    """Builds the attestation request payload, stamped with the current time"""
    clock = now if now is not None else time.time
    return AttestationRequest(
        nonce=nonce or "",
        price=parse_price(price),
        timestamp=int(clock()),
    )


def serialize_request(request: AttestationRequest) -> str:
    """Returns the compact JSON form passed to the attestation client"""
    return json.dumps(request.to_dict(), separators=(",", ":"), sort_keys=True)

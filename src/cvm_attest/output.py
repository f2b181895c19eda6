import sys
from typing import Optional, TextIO

from .types import AttestationOutcome, OutputMode


def render_output(mode: OutputMode, outcome: AttestationOutcome, verdict: Optional[bool] = None) -> str:
    """Renders the single result line for the selected output mode"""
    if mode == OutputMode.TOKEN:
        return outcome.token if outcome.success else outcome.description

    # Failed attestation skips evaluation entirely
    return "true" if outcome.success and verdict else "false"


def emit(line: str, stream: Optional[TextIO] = None) -> None:
    out = stream if stream is not None else sys.stdout
    out.write(line + "\n")
    out.flush()

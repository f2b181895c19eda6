import argparse
import logging
import os
import sys
from typing import List, Optional

from .client import ClientFactory, attestation_session
from .compliance import is_compliant_cvm
from .invoke import invoke_attestation
from .output import emit, render_output
from .request import build_request, serialize_request
from .token import decode_claims
from .types import (
    ClientInitializationError,
    ConfigurationError,
    DEFAULT_ATTESTATION_URL,
    MalformedTokenError,
    OutputMode,
    ValueFormatError,
)

URL_ENV = "CVM_ATTEST_URL"
LOG_LEVEL_ENV = "CVM_ATTEST_LOG_LEVEL"


def _output_mode(value: str) -> OutputMode:
    try:
        return OutputMode.parse(value)
    except ConfigurationError as e:
        raise argparse.ArgumentTypeError(str(e))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cvm-attest",
        usage="%(prog)s -a <attestation-endpoint> -n <nonce> -p <price> -o TOKEN|BOOL",
        description="Attest this confidential VM and report whether it is an Azure-compliant SEV-SNP CVM.",
    )
    parser.add_argument('-a', dest='attestation_url',
                        default=os.environ.get(URL_ENV, DEFAULT_ATTESTATION_URL),
                        help='Attestation service endpoint. The built-in client sends no TEE evidence; '
                             'set CVM_ATTEST_CLIENT=module:callable to use a platform attestation client')
    parser.add_argument('-n', dest='nonce', default="",
                        help='Nonce included in the attestation payload')
    parser.add_argument('-p', dest='price', default=None,
                        help='Decimal value included in the attestation payload')
    parser.add_argument('-o', dest='output_type', type=_output_mode, default=OutputMode.BOOL,
                        help='Output the raw token (TOKEN) or the compliance verdict (BOOL)')
    return parser


def configure_logging() -> logging.Logger:
    level_name = os.environ.get(LOG_LEVEL_ENV, "WARNING").upper()
    level = getattr(logging, level_name, None)
    if not isinstance(level, int):
        level = logging.WARNING

    # stdout is reserved for the result line
    logging.basicConfig(
        format='%(message)s',
        level=level,
        stream=sys.stderr,
    )
    return logging.getLogger("cvm_attest")


def main(argv: Optional[List[str]] = None, factory: Optional[ClientFactory] = None) -> int:
    args = build_parser().parse_args(argv)
    log = configure_logging()

    attestation_url = args.attestation_url or DEFAULT_ATTESTATION_URL

    try:
        request = build_request(args.nonce, args.price)
    except ValueFormatError as e:
        print(f"Error converting price: {e}", file=sys.stderr)
        return 1
    payload = serialize_request(request)

    try:
        with attestation_session(log, factory) as client:
            outcome = invoke_attestation(client, attestation_url, payload)

            verdict = False
            if outcome.success:
                verdict = is_compliant_cvm(decode_claims(outcome.token))

            emit(render_output(args.output_type, outcome, verdict))
    except ClientInitializationError as e:
        print(str(e), file=sys.stderr)
        return 1
    except MalformedTokenError as e:
        print(f"Invalid JWT token: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        log.debug("Unhandled exception", exc_info=True)
        print(f"Exception occurred. Details - {e}", file=sys.stderr)
        return 1

    return 0

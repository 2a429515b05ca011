"""
ctguard command line.

Commands:
    ctguard serve [--host H] [--port P]          Run the HTTP gateway
    ctguard fingerprint <file|->                 Fingerprint a certificate (PEM, DER or base64)
    ctguard fetch <host> [--port] [--timeout]    Fingerprint the certificate a host presents
    ctguard check <domain> [--url] [--cert F]    Ask a running gateway for a verdict
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from ctguard.core.fingerprint import display_fingerprint, fingerprint
from ctguard.core.settings import get_settings
from ctguard.protocol.errors import CTGuardError


def _configure_logging() -> None:
    logging.basicConfig(
        level=get_settings().runtime.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _read_certificate(path: str) -> bytes:
    if path == "-":
        return sys.stdin.buffer.read()
    with open(path, "rb") as f:
        return f.read()


def _print_json(data: Dict[str, Any]) -> None:
    print(json.dumps(data, indent=2))


def cmd_serve(args) -> None:
    """Start the gateway under uvicorn."""
    import uvicorn

    from ctguard.core.runtime import CTGuardRuntime
    from ctguard.gateway.app import create_app

    settings = get_settings()
    app = create_app(CTGuardRuntime.from_settings(settings))
    uvicorn.run(
        app,
        host=args.host or settings.gateway.host,
        port=args.port or settings.gateway.port,
        log_level=settings.runtime.log_level.lower(),
    )


def cmd_fingerprint(args) -> None:
    try:
        fp = fingerprint(_read_certificate(args.path))
    except (OSError, CTGuardError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    print(display_fingerprint(fp))


def cmd_fetch(args) -> None:
    from ctguard.transport.tls import fetch_certificate

    timeout = args.timeout or get_settings().gateway.fetch_timeout
    try:
        der = fetch_certificate(args.host, timeout, port=args.port)
    except CTGuardError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    print(display_fingerprint(fingerprint(der)))


def cmd_check(args) -> None:
    import requests

    from ctguard.transport.http import CTServiceClient

    client = CTServiceClient(args.url)
    certificate = None
    if args.cert:
        try:
            certificate = _read_certificate(args.cert)
        except OSError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)

    try:
        result = client.check(args.domain, certificate=certificate, fingerprint=args.fingerprint)
    except requests.RequestException as e:
        print(f"Gateway error: {e}", file=sys.stderr)
        sys.exit(1)

    _print_json(result)
    if result.get("verdict") != "VALID":
        sys.exit(2)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ctguard",
        description="Certificate transparency log and MitM check",
    )
    sub = parser.add_subparsers(dest="command")

    p_serve = sub.add_parser("serve", help="Run the HTTP gateway")
    p_serve.add_argument("--host", default=None, help="Bind host (default from settings)")
    p_serve.add_argument("--port", type=int, default=None, help="Bind port (default from settings)")
    p_serve.set_defaults(func=cmd_serve)

    p_fp = sub.add_parser("fingerprint", help="Fingerprint a certificate file")
    p_fp.add_argument("path", help="Certificate file, or - for stdin")
    p_fp.set_defaults(func=cmd_fingerprint)

    p_fetch = sub.add_parser("fetch", help="Fingerprint the certificate a host presents")
    p_fetch.add_argument("host")
    p_fetch.add_argument("--port", type=int, default=443)
    p_fetch.add_argument("--timeout", type=float, default=None, help="Seconds")
    p_fetch.set_defaults(func=cmd_fetch)

    p_check = sub.add_parser("check", help="Ask a gateway for a verdict")
    p_check.add_argument("domain")
    p_check.add_argument("--url", default="http://127.0.0.1:4000", help="Gateway base URL")
    p_check.add_argument("--cert", default=None, help="Certificate file to check")
    p_check.add_argument("--fingerprint", default=None, help="Observed fingerprint")
    p_check.set_defaults(func=cmd_check)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        sys.exit(1)

    _configure_logging()
    args.func(args)


if __name__ == "__main__":
    main()

"""Command-line interface for remotepad.

Provides the main entry point for running the host, rendering pairing
codes, decoding a scanned code on the client side, and generating the
shared pairing key.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import secrets
import sys
from pathlib import Path

logger = logging.getLogger(__name__)

EXIT_INVALID_CODE = 2


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="remotepad",
        description="Drive this machine's pointer and keyboard from a paired handheld device",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file (default: config/remotepad.yaml)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    serve_parser = subparsers.add_parser("serve", help="Run the host and print its pairing code")
    serve_parser.add_argument(
        "--no-qr", action="store_true",
        help="Print the pairing code as text only",
    )
    serve_parser.add_argument(
        "--dry-run", action="store_true",
        help="Log commands instead of performing them",
    )

    pair_parser = subparsers.add_parser("pair", help="Print a pairing code for a given host")
    pair_parser.add_argument("--address", type=str, default=None, help="Host address (default: LAN IPv4)")
    pair_parser.add_argument("--port", type=int, required=True, help="Host event-stream port")
    pair_parser.add_argument("--secret", type=str, default=None, help="Secret (default: random)")
    pair_parser.add_argument("--qr", action="store_true", help="Also render the code as a QR code")

    decode_parser = subparsers.add_parser("decode", help="Decode a scanned pairing code")
    decode_parser.add_argument("code", type=str, help="The pairing code text")
    decode_parser.add_argument("--key", type=str, default=None, help="Pairing key (default: from config)")
    decode_parser.add_argument(
        "--status", action="store_true",
        help="Also query the host's /status endpoint",
    )

    subparsers.add_parser("keygen", help="Generate a new pairing key")

    return parser.parse_args(argv)


def print_qr(data: str) -> None:
    """Render ``data`` as a QR code on the terminal."""
    import qrcode

    qr = qrcode.QRCode(version=1, box_size=10, border=2)
    qr.add_data(data)
    qr.make(fit=True)
    qr.print_ascii(invert=True)


def _pairing_key(settings, override: str | None = None) -> str:
    return override or settings.pairing.key.get_secret_value()


def _serve(settings, args) -> None:
    """Build the host components and serve until interrupted."""
    from remotepad.actuator import create_actuator
    from remotepad.host.runner import HostRunner
    from remotepad.pairing.crypto import PairingCrypto, generate_key
    from remotepad.pairing.session import PortBindError, SessionManager
    from remotepad.utils.network import get_local_ip

    key = _pairing_key(settings)
    if not key:
        key = generate_key()
        logger.warning(
            "pairing.key is not configured; using an ephemeral key for this run. "
            "Give it to the client to decode codes: %s", key,
        )
    crypto = PairingCrypto.from_encoded_key(key)

    if args.dry_run:
        settings.actuator.backend = "log"
    actuator = create_actuator(settings.actuator)

    srv = settings.server
    manager = SessionManager(
        address=srv.advertise_address or get_local_ip(),
        host=srv.host,
        base_port=srv.base_port,
        max_port_attempts=srv.max_port_attempts,
        secret_bytes=settings.pairing.secret_bytes,
    )

    def show(session, code: str) -> None:
        print(f"\nPairing code (epoch {session.epoch}, {session.address}:{session.port}):")
        print(code)
        if not args.no_qr:
            print_qr(code)
        sys.stdout.flush()

    runner = HostRunner(settings, manager, crypto, actuator, on_session=show)
    try:
        asyncio.run(runner.run())
    except PortBindError as e:
        logger.error("Cannot start host: %s", e)
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Interrupted")


def _pair(settings, args) -> None:
    """Issue a pairing code without running a host."""
    from remotepad.domain.models import PairingPayload
    from remotepad.pairing.crypto import PairingCrypto
    from remotepad.utils.network import get_local_ip

    key = _pairing_key(settings)
    if not key:
        print("pairing.key is not configured; run 'remotepad keygen' first", file=sys.stderr)
        sys.exit(1)

    payload = PairingPayload(
        address=args.address or get_local_ip(),
        port=args.port,
        secret=args.secret or secrets.token_hex(settings.pairing.secret_bytes),
    )
    code = PairingCrypto.from_encoded_key(key).issue(payload)
    print(code)
    if args.qr:
        print_qr(code)


def _decode(settings, args) -> None:
    """Client-side read of a scanned pairing code."""
    from remotepad.client import ClientError, RemoteClient
    from remotepad.pairing.crypto import PairingDecodeError

    key = _pairing_key(settings, args.key)
    if not key:
        print("No pairing key: pass --key or set pairing.key", file=sys.stderr)
        sys.exit(1)

    try:
        client = RemoteClient.from_code(args.code, key)
    except PairingDecodeError as e:
        print(f"Invalid pairing code: {e}", file=sys.stderr)
        sys.exit(EXIT_INVALID_CODE)
    except ValueError as e:
        print(f"Invalid pairing key: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"Host:   {client.payload.address}")
    print(f"Port:   {client.payload.port}")
    print(f"Secret: {client.payload.secret[:4]}...")

    if args.status:
        try:
            status = asyncio.run(client.status())
        except ClientError as e:
            print(f"Host unreachable: {e}", file=sys.stderr)
            sys.exit(1)
        print(json.dumps(status, indent=2))


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the remotepad CLI."""
    args = parse_args(argv)

    if args.command is None:
        parse_args(["--help"])
        return

    if args.command == "keygen":
        from remotepad.pairing.crypto import generate_key
        print(generate_key())
        return

    from remotepad.config.settings import load_settings
    from remotepad.utils.logging import setup_logging

    settings = load_settings(args.config)

    if args.verbose:
        settings.logging.level = "DEBUG"

    setup_logging(settings.logging)

    if args.command == "serve":
        logger.info("Starting remotepad host")
        _serve(settings, args)

    elif args.command == "pair":
        _pair(settings, args)

    elif args.command == "decode":
        _decode(settings, args)


if __name__ == "__main__":
    main()

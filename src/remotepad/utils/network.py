"""LAN address discovery for the address advertised in pairing codes."""

from __future__ import annotations

import logging
import socket

logger = logging.getLogger(__name__)


def _lan_preference(ip: str) -> int:
    """Rank private ranges: home/office LANs before 10.x (often VPNs)."""
    if ip.startswith("192.168.") or ip.startswith("172."):
        return 2
    if ip.startswith("10."):
        return 1
    return 0


def get_local_ip() -> str:
    """Best-effort IPv4 address of this host on the local network.

    Uses the routing table (a connected UDP socket sends nothing), then
    falls back to resolving the hostname. Returns 127.0.0.1 when neither
    yields a non-loopback address.
    """
    primary_ip = None
    try:
        s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            s.connect(("8.8.8.8", 80))
            primary_ip = s.getsockname()[0]
        finally:
            s.close()
    except OSError as e:
        logger.debug("Routing-table address lookup failed: %s", e)

    if primary_ip and not primary_ip.startswith("127."):
        return primary_ip

    try:
        addrs = socket.getaddrinfo(socket.gethostname(), None, socket.AF_INET)
        candidates = [a[4][0] for a in addrs if not a[4][0].startswith("127.")]
        if candidates:
            candidates.sort(key=_lan_preference, reverse=True)
            return candidates[0]
    except OSError as e:
        logger.debug("Hostname address lookup failed: %s", e)

    return primary_ip or "127.0.0.1"

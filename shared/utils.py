from __future__ import annotations
import re
from typing import Tuple

# ========================================
#           IDENTIFIER NORMALIZATION
# ========================================
"""
Showdown compares users and rooms by a canonical identifier rather than by
display name. These helpers are pure and idempotent so they can be used for
equality and lookups anywhere.
"""

_NON_ID_RE = re.compile(r'[^a-z0-9]')
_NON_ROOM_ID_RE = re.compile(r'[^a-z0-9-]')


def to_id(name: str) -> str:
    """
    Convert a user name (or format, species, ...) to its identifier form.

    to_id("Pokémon Black-2") == "pokmonblack2"
    """
    return _NON_ID_RE.sub('', name.lower())


def to_room_id(name: str) -> str:
    """
    Convert a room name to its room identifier form. Hyphens are kept.

    to_room_id("Pokémon Black-2") == "pokmonblack-2"
    """
    return _NON_ROOM_ID_RE.sub('', name.lower())


# ========================================
#           ADDRESS HELPERS
# ========================================

def is_hostport(s: str) -> bool:
    """
    Accepts 'hostname:port' or 'A.B.C.D:port'.

    Validates that:
    - String contains a colon
    - Port is a valid integer between 1 and 65535
    - Hostname is non-empty

    Examples: "localhost:8000", "192.168.1.5:8080", "sim.example.com:443"
    """
    try:
        if ':' not in s:
            return False
        host, port_s = s.rsplit(':', 1)
        if not host:
            return False
        port = int(port_s)
        return 0 < port <= 65535
    except ValueError:
        return False


def split_hostport(s: str) -> Tuple[str, int]:
    """Split a value accepted by is_hostport into (host, port)."""
    if not is_hostport(s):
        raise ValueError(f"Not a host:port value: {s!r}")
    host, port_s = s.rsplit(':', 1)
    return host, int(port_s)

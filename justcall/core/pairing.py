"""
Pairing code generation and room id derivation.

A pairing code is a shared secret exchanged out-of-band between two people.
Both sides derive the same public room id from it, so they meet in the same
room on the conferencing service without any coordination server.
"""

from __future__ import annotations

import base64
import hashlib
import re
import secrets

from justcall.core.exceptions import RandomSourceUnavailableError

PAIRING_CODE_BYTES = 16
PAIRING_CODE_SYMBOLS = 20  # 20 base32 symbols * 5 bits = 100 bits
PAIRING_CODE_GROUP = 4
PAIRING_CODE_ALPHABET = "abcdefghijklmnopqrstuvwxyz234567"

ROOM_ID_PREFIX = "jc-"
ROOM_ID_SYMBOLS = 16
_ROOM_DOMAIN_SEPARATOR = b"justcall-v1|"

_STRIPPED_CODE_RE = re.compile(rf"^[{PAIRING_CODE_ALPHABET}]{{{PAIRING_CODE_SYMBOLS}}}$")


def _b32(data: bytes) -> str:
    return base64.b32encode(data).decode("ascii").rstrip("=").lower()


def generate_pairing_code() -> str:
    """
    Generate a human-shareable pairing code with 100 bits of entropy.

    Returns:
        24-char code formatted as "xxxx-xxxx-xxxx-xxxx-xxxx"

    Raises:
        RandomSourceUnavailableError: If the OS CSPRNG cannot be used
    """
    try:
        raw = secrets.token_bytes(PAIRING_CODE_BYTES)
    except (NotImplementedError, OSError) as e:
        raise RandomSourceUnavailableError(f"Secure random source unavailable: {e}") from e

    return format_pairing_code(_b32(raw)[:PAIRING_CODE_SYMBOLS])


def format_pairing_code(code: str) -> str:
    """Group a code into dash-separated blocks of four symbols."""
    symbols = normalize_pairing_code(code)
    return "-".join(
        symbols[i : i + PAIRING_CODE_GROUP] for i in range(0, len(symbols), PAIRING_CODE_GROUP)
    )


def normalize_pairing_code(code: str) -> str:
    """Strip whitespace and dashes and lowercase a code pasted by a user."""
    return re.sub(r"[\s-]", "", code or "").lower()


def is_valid_pairing_code(code: str) -> bool:
    """Check whether a code has the shape produced by generate_pairing_code()."""
    return bool(_STRIPPED_CODE_RE.match(normalize_pairing_code(code)))


def derive_room_id(code: str) -> str:
    """
    Derive the public room id for a pairing code.

    Only dashes are removed before hashing; case and whitespace are
    significant. Output is always "jc-" followed by 16 base32 symbols.
    """
    stripped = code.replace("-", "")
    digest = hashlib.sha256(_ROOM_DOMAIN_SEPARATOR + stripped.encode("utf-8")).digest()
    return f"{ROOM_ID_PREFIX}{_b32(digest)[:ROOM_ID_SYMBOLS]}"


def build_meeting_url(room_id: str, host: str) -> str:
    """Build the conferencing URL for a room."""
    host = host.strip().rstrip("/")
    if host.startswith("https://"):
        host = host[len("https://") :]
    elif host.startswith("http://"):
        host = host[len("http://") :]
    return f"https://{host}/{room_id}"

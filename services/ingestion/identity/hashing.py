"""Pseudonymous user id derivation."""

from __future__ import annotations

import hashlib

IDENTITY_SEPARATOR = "|"


def hash_identity(*, client_ip: str, user_agent: str, salt: bytes) -> bytes:
    """Return the SHA-256 digest of ``ip|user_agent`` followed by ``salt``."""
    if not salt:
        raise ValueError("salt is required")
    material = f"{client_ip}{IDENTITY_SEPARATOR}{user_agent}".encode("utf-8")
    return hashlib.sha256(material + salt).digest()


def user_id_hex(*, client_ip: str, user_agent: str, salt: bytes) -> str:
    """Return the digest as 64 uppercase hexadecimal characters."""
    digest = hash_identity(client_ip=client_ip, user_agent=user_agent, salt=salt)
    return digest.hex().upper()

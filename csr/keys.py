"""
RSA key-pair generation and canonical DER export.

Private keys leave this module as PKCS#8, public keys as SubjectPublicKeyInfo.
Generation at 4096 bits routinely takes hundreds of milliseconds to a few
seconds; callers may time it but must not abort it.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from csr.errors import KeyGenerationError
from csr.pem import PRIVATE_KEY, PUBLIC_KEY

logger = logging.getLogger(__name__)

DEFAULT_KEY_SIZE = 4096
DEFAULT_PUBLIC_EXPONENT = 65537


@dataclass(frozen=True)
class KeyPair:
    """Both halves of one RSA key; only ``generate_key_pair`` builds these."""

    private_key: rsa.RSAPrivateKey
    public_key: rsa.RSAPublicKey


@dataclass(frozen=True)
class EncodedKey:
    label: str
    der: bytes


def generate_key_pair(
    key_size: int = DEFAULT_KEY_SIZE,
    public_exponent: int = DEFAULT_PUBLIC_EXPONENT,
) -> KeyPair:
    """Generate an RSA key pair from the OS CSPRNG."""
    logger.info("Generating RSA-%d key pair (e=%d)", key_size, public_exponent)
    start = time.perf_counter()
    try:
        private_key = rsa.generate_private_key(
            public_exponent=public_exponent,
            key_size=key_size,
            backend=default_backend(),
        )
    except (UnsupportedAlgorithm, ValueError) as exc:
        raise KeyGenerationError(f"RSA-{key_size} key generation failed: {exc}") from exc
    logger.info("RSA-%d key pair ready in %.0f ms", key_size, (time.perf_counter() - start) * 1000)
    return KeyPair(private_key=private_key, public_key=private_key.public_key())


def export_private(key_pair: KeyPair) -> EncodedKey:
    """Unencrypted PKCS#8 DER of the private key."""
    der = key_pair.private_key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    return EncodedKey(label=PRIVATE_KEY, der=der)


def export_public(key_pair: KeyPair) -> EncodedKey:
    """SubjectPublicKeyInfo DER of the public key."""
    der = key_pair.public_key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return EncodedKey(label=PUBLIC_KEY, der=der)

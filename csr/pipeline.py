"""
End-to-end CSR generation: the one entry point the outside world calls.

  validate subject → generate key pair → export + PEM-encode keys
  → build request info → sign → self-verify → PEM-encode request

Each call owns its key pair; nothing is cached or reused between calls.
A request that fails self-verification is never returned.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass

from csr import pem
from csr.errors import SelfVerificationError
from csr.keys import (
    DEFAULT_KEY_SIZE,
    DEFAULT_PUBLIC_EXPONENT,
    KeyPair,
    export_private,
    export_public,
    generate_key_pair,
)
from csr.request import SubjectInfo, build_unsigned_request_info, validate_subject
from csr.signing import sign, verify

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CsrArtifacts:
    private_key_pem: str
    public_key_pem: str
    csr_pem: str
    elapsed_keygen_ms: float


def generate_csr(
    subject: SubjectInfo,
    key_size: int = DEFAULT_KEY_SIZE,
    public_exponent: int = DEFAULT_PUBLIC_EXPONENT,
) -> CsrArtifacts:
    """Generate a key pair and a self-verified CSR for *subject*."""
    validate_subject(subject)
    start = time.perf_counter()
    key_pair = generate_key_pair(key_size=key_size, public_exponent=public_exponent)
    elapsed_ms = (time.perf_counter() - start) * 1000
    return _assemble(subject, key_pair, elapsed_ms)


async def generate_csr_async(
    subject: SubjectInfo,
    key_size: int = DEFAULT_KEY_SIZE,
    public_exponent: int = DEFAULT_PUBLIC_EXPONENT,
) -> CsrArtifacts:
    """
    Async variant of ``generate_csr``.

    Key generation runs in a worker thread so the event loop keeps serving
    other tasks.  If the awaiting task is cancelled the generation finishes
    in the background and its result is dropped.
    """
    validate_subject(subject)
    start = time.perf_counter()
    key_pair = await asyncio.to_thread(generate_key_pair, key_size, public_exponent)
    elapsed_ms = (time.perf_counter() - start) * 1000
    return _assemble(subject, key_pair, elapsed_ms)


def _assemble(subject: SubjectInfo, key_pair: KeyPair, elapsed_ms: float) -> CsrArtifacts:
    private_key = export_private(key_pair)
    public_key = export_public(key_pair)

    info = build_unsigned_request_info(public_key, subject)
    request = sign(info, key_pair.private_key)
    if not verify(request):
        logger.error("Self-verification failed for %r", subject.common_name)
        raise SelfVerificationError(subject.common_name, "signature does not match embedded public key")

    logger.info("CSR for %r signed and verified (key generation %.0f ms)", subject.common_name, elapsed_ms)
    return CsrArtifacts(
        private_key_pem=pem.encode(private_key.label, private_key.der),
        public_key_pem=pem.encode(public_key.label, public_key.der),
        csr_pem=request.to_pem(),
        elapsed_keygen_ms=elapsed_ms,
    )

"""
Error taxonomy for the CSR pipeline.

Every failure leaves the pipeline as one of these; no partial artifacts are
ever returned alongside an error.
"""
from __future__ import annotations


class CsrError(Exception):
    """Base class for all CSR pipeline failures."""


class KeyGenerationError(CsrError):
    """The RSA key pair could not be generated (entropy or algorithm unavailable)."""


class EncodingError(CsrError):
    """Malformed input handed to the DER encoder."""


class InvalidSubjectError(CsrError, ValueError):
    """The subject common name is empty or unusable."""


class InvalidAltNameError(CsrError, ValueError):
    """A subjectAltName value is empty or not representable as IA5String."""


class MalformedPemError(CsrError):
    """A PEM block is missing its delimiters, has the wrong label or bad base64."""


class SelfVerificationError(CsrError):
    """A freshly signed request did not verify against its own public key."""

    def __init__(self, common_name: str, detail: str = "") -> None:
        self.common_name = common_name
        self.detail = detail
        message = f"signature over request info for {common_name!r} failed self-verification"
        if detail:
            message += f": {detail}"
        super().__init__(message)

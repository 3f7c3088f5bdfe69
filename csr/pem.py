"""
PEM envelope codec.

  -----BEGIN <label>-----
  <base64, 64 characters per line>
  -----END <label>-----

``decode(encode(label, der)) == (label, der)`` holds for every byte string,
including the empty one.
"""
from __future__ import annotations

import base64
import binascii
import re

from csr.errors import EncodingError, MalformedPemError

PRIVATE_KEY = "PRIVATE KEY"
PUBLIC_KEY = "PUBLIC KEY"
CERTIFICATE_REQUEST = "CERTIFICATE REQUEST"

LINE_WIDTH = 64

_LABEL_RE = re.compile(r"[A-Z0-9]+( [A-Z0-9]+)*")
_BLOCK_RE = re.compile(
    r"-----BEGIN (?P<begin>[^-\r\n]*)-----\r?\n"
    r"(?P<body>.*?)"
    r"-----END (?P<end>[^-\r\n]*)-----",
    re.DOTALL,
)


def encode(label: str, der: bytes) -> str:
    """Wrap *der* in a PEM block labelled *label* (case-sensitive)."""
    if not _LABEL_RE.fullmatch(label):
        raise EncodingError(f"invalid PEM label {label!r}")
    b64 = base64.b64encode(der).decode("ascii")
    lines = [b64[i:i + LINE_WIDTH] for i in range(0, len(b64), LINE_WIDTH)]
    return "\n".join([f"-----BEGIN {label}-----", *lines, f"-----END {label}-----"]) + "\n"


def decode(pem: str, expected_label: str | None = None) -> tuple[str, bytes]:
    """
    Unwrap the first PEM block in *pem* and return (label, der).

    Raises MalformedPemError when the delimiters are missing or disagree,
    the label differs from *expected_label*, or the payload is not base64.
    """
    match = _BLOCK_RE.search(pem)
    if match is None:
        raise MalformedPemError("no PEM BEGIN/END delimiters found")

    label = match.group("begin")
    if match.group("end") != label:
        raise MalformedPemError(
            f"PEM footer label {match.group('end')!r} does not match header {label!r}"
        )
    if expected_label is not None and label != expected_label:
        raise MalformedPemError(f"expected PEM label {expected_label!r}, got {label!r}")

    payload = "".join(match.group("body").split())
    try:
        der = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise MalformedPemError(f"invalid base64 payload in {label!r} block: {exc}") from exc
    # b64decode tolerates excess padding and non-zero trailing bits on some
    # Python versions; only the canonical encoding of *der* is accepted.
    if base64.b64encode(der).decode("ascii") != payload:
        raise MalformedPemError(f"non-canonical base64 payload in {label!r} block")
    return label, der

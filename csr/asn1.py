"""
Minimal DER encoder for the structures a PKCS#10 request needs.

Each ASN.1 value is a small immutable node; ``node.encode()`` yields its DER
bytes (definite lengths, shortest-form length octets, SET OF members sorted
by encoding).  There is no general decoder: ``read_tlv`` only
splits one tag-length-value triple, which is enough to embed pre-encoded
blobs (SPKI, a finalized request info) verbatim and to sanity-check them.

Node kinds:
  Integer, Null, ObjectIdentifier, String(tag), OctetString, BitString
  Sequence, Set                      constructed, universal
  Context(number, child, explicit)   context-specific tagging
  Raw(der)                           an already-encoded TLV, copied as is
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import ClassVar

from csr.errors import EncodingError

# ─── Tag constants ────────────────────────────────────────────────────────────

INTEGER = 0x02
BIT_STRING = 0x03
OCTET_STRING = 0x04
NULL = 0x05
OBJECT_IDENTIFIER = 0x06
UTF8_STRING = 0x0C
PRINTABLE_STRING = 0x13
IA5_STRING = 0x16
SEQUENCE = 0x30
SET = 0x31

CLASS_CONTEXT = 0x80
CONSTRUCTED = 0x20

# X.690 caps the long form at 126 subsequent length octets.
_MAX_LENGTH_OCTETS = 126
_MAX_LOW_TAG_NUMBER = 30

_PRINTABLE_RE = re.compile(r"[A-Za-z0-9 '()+,\-./:=?]*")
_OID_RE = re.compile(r"\d+(\.\d+)+")


# ─── Length / TLV helpers ─────────────────────────────────────────────────────


def encode_length(length: int) -> bytes:
    """Return the shortest DER length octets for *length*."""
    if length < 0:
        raise EncodingError(f"negative length {length}")
    if length < 0x80:
        return bytes([length])
    body = length.to_bytes((length.bit_length() + 7) // 8, "big")
    if len(body) > _MAX_LENGTH_OCTETS:
        raise EncodingError(f"length {length} needs {len(body)} length octets")
    return bytes([0x80 | len(body)]) + body


def encode_tlv(tag: int, content: bytes) -> bytes:
    if not 0 <= tag <= 0xFF or tag & 0x1F == 0x1F:
        raise EncodingError(f"unsupported tag byte 0x{tag:02x}")
    return bytes([tag]) + encode_length(len(content)) + content


def read_tlv(data: bytes, offset: int = 0) -> tuple[int, bytes, int]:
    """
    Split the TLV starting at *offset*.

    Returns (tag, content, end_offset).  Rejects high-tag-number form,
    indefinite lengths, non-minimal length octets and truncated input.
    """
    if offset >= len(data):
        raise EncodingError("truncated TLV: no tag byte")
    tag = data[offset]
    if tag & 0x1F == 0x1F:
        raise EncodingError(f"high-tag-number form not supported (0x{tag:02x})")
    pos = offset + 1
    if pos >= len(data):
        raise EncodingError("truncated TLV: no length octet")
    first = data[pos]
    pos += 1
    if first < 0x80:
        length = first
    elif first == 0x80:
        raise EncodingError("indefinite length is not valid DER")
    else:
        count = first & 0x7F
        if pos + count > len(data):
            raise EncodingError("truncated TLV: length octets")
        length_bytes = data[pos:pos + count]
        pos += count
        length = int.from_bytes(length_bytes, "big")
        if length_bytes[0] == 0 or length < 0x80:
            raise EncodingError("non-minimal length encoding")
    end = pos + length
    if end > len(data):
        raise EncodingError(f"truncated TLV: need {length} content bytes, have {len(data) - pos}")
    return tag, bytes(data[pos:end]), end


# ─── Nodes ────────────────────────────────────────────────────────────────────


class Node:
    """Base for all DER nodes: subclasses provide ``tag`` and ``content()``."""

    tag: int

    def content(self) -> bytes:
        raise NotImplementedError

    def encode(self) -> bytes:
        return encode_tlv(self.tag, self.content())


@dataclass(frozen=True)
class Integer(Node):
    value: int
    tag: ClassVar[int] = INTEGER

    def content(self) -> bytes:
        magnitude = self.value if self.value >= 0 else ~self.value
        size = magnitude.bit_length() // 8 + 1
        return self.value.to_bytes(size, "big", signed=True)


@dataclass(frozen=True)
class Null(Node):
    tag: ClassVar[int] = NULL

    def content(self) -> bytes:
        return b""


@dataclass(frozen=True)
class ObjectIdentifier(Node):
    dotted: str
    tag: ClassVar[int] = OBJECT_IDENTIFIER

    def __post_init__(self) -> None:
        if not _OID_RE.fullmatch(self.dotted):
            raise EncodingError(f"malformed object identifier {self.dotted!r}")
        first, second = (int(p) for p in self.dotted.split(".")[:2])
        if first > 2 or (first < 2 and second >= 40):
            raise EncodingError(f"invalid leading arcs in {self.dotted!r}")

    def content(self) -> bytes:
        arcs = [int(p) for p in self.dotted.split(".")]
        out = bytearray()
        for arc in [40 * arcs[0] + arcs[1]] + arcs[2:]:
            chunk = [arc & 0x7F]
            arc >>= 7
            while arc:
                chunk.append(0x80 | (arc & 0x7F))
                arc >>= 7
            out.extend(reversed(chunk))
        return bytes(out)


@dataclass(frozen=True)
class String(Node):
    """A character string; *tag* selects UTF8String, PrintableString or IA5String."""

    tag: int
    value: str

    def __post_init__(self) -> None:
        if self.tag == PRINTABLE_STRING:
            if not _PRINTABLE_RE.fullmatch(self.value):
                raise EncodingError(f"{self.value!r} contains characters not allowed in PrintableString")
        elif self.tag == IA5_STRING:
            if not self.value.isascii():
                raise EncodingError(f"{self.value!r} contains characters not allowed in IA5String")
        elif self.tag != UTF8_STRING:
            raise EncodingError(f"unsupported string tag 0x{self.tag:02x}")

    def content(self) -> bytes:
        if self.tag == UTF8_STRING:
            return self.value.encode("utf-8")
        return self.value.encode("ascii")


@dataclass(frozen=True)
class OctetString(Node):
    value: bytes
    tag: ClassVar[int] = OCTET_STRING

    def content(self) -> bytes:
        return bytes(self.value)


@dataclass(frozen=True)
class BitString(Node):
    value: bytes
    unused_bits: int = 0
    tag: ClassVar[int] = BIT_STRING

    def __post_init__(self) -> None:
        if not 0 <= self.unused_bits <= 7 or (self.unused_bits and not self.value):
            raise EncodingError(f"invalid unused-bit count {self.unused_bits}")

    def content(self) -> bytes:
        return bytes([self.unused_bits]) + bytes(self.value)


@dataclass(frozen=True)
class Sequence(Node):
    children: tuple[Node, ...]
    tag: ClassVar[int] = SEQUENCE

    def content(self) -> bytes:
        return b"".join(child.encode() for child in self.children)


@dataclass(frozen=True)
class Set(Node):
    """SET OF; members are emitted in ascending order of their encodings."""

    children: tuple[Node, ...]
    tag: ClassVar[int] = SET

    def content(self) -> bytes:
        return b"".join(sorted(child.encode() for child in self.children))


@dataclass(frozen=True)
class Context(Node):
    """
    Context-specific tag [number] around *child*.

    Explicit tagging wraps the child's full TLV in a constructed tag.
    Implicit tagging replaces the child's tag, keeping its constructed bit.
    """

    number: int
    child: Node
    explicit: bool = True

    def __post_init__(self) -> None:
        if not 0 <= self.number <= _MAX_LOW_TAG_NUMBER:
            raise EncodingError(f"context tag number {self.number} out of range")

    @property
    def tag(self) -> int:  # type: ignore[override]
        if self.explicit:
            return CLASS_CONTEXT | CONSTRUCTED | self.number
        return CLASS_CONTEXT | (self.child.tag & CONSTRUCTED) | self.number

    def content(self) -> bytes:
        if self.explicit:
            return self.child.encode()
        return self.child.content()


@dataclass(frozen=True)
class Raw(Node):
    """A pre-encoded TLV embedded byte-for-byte."""

    der: bytes

    def __post_init__(self) -> None:
        _, _, end = read_tlv(self.der)
        if end != len(self.der):
            raise EncodingError(f"{len(self.der) - end} trailing bytes after TLV")

    @property
    def tag(self) -> int:  # type: ignore[override]
        return self.der[0]

    def content(self) -> bytes:
        return read_tlv(self.der)[1]

    def encode(self) -> bytes:
        return bytes(self.der)

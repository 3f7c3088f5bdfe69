"""
Unit tests for the DER encoder (csr/asn1.py).  No keys involved.
"""
from __future__ import annotations

import pytest

from csr import asn1
from csr.errors import EncodingError


# ─── Lengths / TLV ────────────────────────────────────────────────────────────

@pytest.mark.parametrize(
    "length, expected",
    [
        (0, b"\x00"),
        (127, b"\x7f"),
        (128, b"\x81\x80"),
        (255, b"\x81\xff"),
        (256, b"\x82\x01\x00"),
        (65536, b"\x83\x01\x00\x00"),
    ],
)
def test_encode_length_shortest_form(length, expected):
    assert asn1.encode_length(length) == expected


def test_encode_length_rejects_unrepresentable():
    with pytest.raises(EncodingError):
        asn1.encode_length(1 << (8 * 127))
    with pytest.raises(EncodingError):
        asn1.encode_length(-1)


def test_read_tlv_splits_one_value():
    data = b"\x04\x03abc\x05\x00"
    tag, content, end = asn1.read_tlv(data)
    assert (tag, content, end) == (0x04, b"abc", 5)
    assert asn1.read_tlv(data, end) == (0x05, b"", 7)


@pytest.mark.parametrize(
    "data",
    [
        b"",
        b"\x04",
        b"\x04\x05abc",           # truncated content
        b"\x04\x80abc\x00\x00",   # indefinite length
        b"\x04\x81\x03abc",       # long form for a short length
        b"\x04\x82\x00\x80" + b"x" * 128,  # leading zero length octet
        b"\x1f\x01\x00",          # high-tag-number form
    ],
)
def test_read_tlv_rejects_non_der(data):
    with pytest.raises(EncodingError):
        asn1.read_tlv(data)


# ─── Primitive nodes ──────────────────────────────────────────────────────────

@pytest.mark.parametrize(
    "value, expected",
    [
        (0, b"\x02\x01\x00"),
        (127, b"\x02\x01\x7f"),
        (128, b"\x02\x02\x00\x80"),
        (256, b"\x02\x02\x01\x00"),
        (-1, b"\x02\x01\xff"),
        (-128, b"\x02\x01\x80"),
        (-129, b"\x02\x02\xff\x7f"),
    ],
)
def test_integer_minimal_twos_complement(value, expected):
    assert asn1.Integer(value).encode() == expected


def test_null():
    assert asn1.Null().encode() == b"\x05\x00"


@pytest.mark.parametrize(
    "dotted, expected_hex",
    [
        ("2.5.4.3", "0603550403"),
        ("2.5.29.17", "0603551d11"),
        ("1.2.840.113549.1.9.14", "06092a864886f70d01090e"),
        ("1.2.840.113549.1.1.11", "06092a864886f70d01010b"),
    ],
)
def test_object_identifier_encoding(dotted, expected_hex):
    assert asn1.ObjectIdentifier(dotted).encode().hex() == expected_hex


@pytest.mark.parametrize("dotted", ["", "1", "1..2", "3.1", "1.40", "a.b.c", "1.2."])
def test_object_identifier_rejects_malformed(dotted):
    with pytest.raises(EncodingError):
        asn1.ObjectIdentifier(dotted)


def test_utf8_string_keeps_non_ascii():
    node = asn1.String(asn1.UTF8_STRING, "Jürgen")
    assert node.encode() == b"\x0c\x07" + "Jürgen".encode("utf-8")


def test_printable_string_rejects_at_sign():
    assert asn1.String(asn1.PRINTABLE_STRING, "Example Org").encode() == b"\x13\x0bExample Org"
    with pytest.raises(EncodingError):
        asn1.String(asn1.PRINTABLE_STRING, "someone@example.com")


def test_ia5_string_rejects_non_ascii():
    assert asn1.String(asn1.IA5_STRING, "a@b").encode() == b"\x16\x03a@b"
    with pytest.raises(EncodingError):
        asn1.String(asn1.IA5_STRING, "ü@example.com")


def test_unknown_string_tag_rejected():
    with pytest.raises(EncodingError):
        asn1.String(0x1E, "bmp")


def test_bit_string_prefixes_unused_bits():
    assert asn1.BitString(b"\xab\xcd").encode() == b"\x03\x03\x00\xab\xcd"
    with pytest.raises(EncodingError):
        asn1.BitString(b"\x00", unused_bits=8)


# ─── Constructed nodes ────────────────────────────────────────────────────────

def test_sequence_preserves_order():
    seq = asn1.Sequence((asn1.Integer(2), asn1.Integer(1)))
    assert seq.encode() == b"\x30\x06\x02\x01\x02\x02\x01\x01"


def test_set_sorts_members_by_encoding():
    unordered = asn1.Set((asn1.Integer(2), asn1.Integer(1)))
    assert unordered.encode() == b"\x31\x06\x02\x01\x01\x02\x01\x02"


def test_long_sequence_uses_long_form_length():
    seq = asn1.Sequence((asn1.OctetString(b"x" * 200),))
    der = seq.encode()
    assert der[:3] == b"\x30\x81\xcb"
    assert len(der) == 3 + 203


def test_explicit_context_wraps_child():
    node = asn1.Context(0, asn1.Integer(5))
    assert node.encode() == b"\xa0\x03\x02\x01\x05"


def test_implicit_context_retags_primitive():
    node = asn1.Context(1, asn1.String(asn1.IA5_STRING, "a@b"), explicit=False)
    assert node.encode() == b"\x81\x03a@b"


def test_implicit_context_keeps_constructed_bit():
    node = asn1.Context(0, asn1.Set((asn1.Null(),)), explicit=False)
    assert node.encode() == b"\xa0\x02\x05\x00"


def test_context_number_out_of_range():
    with pytest.raises(EncodingError):
        asn1.Context(31, asn1.Null())


def test_raw_is_embedded_verbatim():
    blob = asn1.Sequence((asn1.Integer(1),)).encode()
    outer = asn1.Sequence((asn1.Raw(blob), asn1.Null()))
    assert outer.encode() == b"\x30\x07" + blob + b"\x05\x00"
    assert asn1.Raw(blob).content() == b"\x02\x01\x01"


def test_raw_rejects_trailing_bytes():
    with pytest.raises(EncodingError):
        asn1.Raw(b"\x05\x00\x00")

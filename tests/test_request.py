"""
Tests for the CertificationRequestInfo builder (csr/request.py).
"""
from __future__ import annotations

import dataclasses

import pytest

from csr import asn1
from csr.errors import EncodingError, InvalidAltNameError, InvalidSubjectError
from csr.keys import EncodedKey, export_private, export_public
from csr.request import (
    DNS_NAME,
    RFC822_NAME,
    CertificationRequestInfo,
    Extension,
    GeneralName,
    SubjectInfo,
    build_unsigned_request_info,
)

EXTENSION_REQUEST_DER = bytes.fromhex("06092a864886f70d01090e")
SAN_OID_DER = bytes.fromhex("0603551d11")


def _children(der: bytes) -> list[tuple[int, bytes]]:
    """Split the content of a constructed TLV into (tag, content) pairs."""
    _, content, _ = asn1.read_tlv(der)
    out, offset = [], 0
    while offset < len(content):
        tag, value, offset = asn1.read_tlv(content, offset)
        out.append((tag, value))
    return out


def test_top_level_structure(request_info, key_pair):
    fields = _children(request_info.der)
    assert [tag for tag, _ in fields] == [asn1.INTEGER, asn1.SEQUENCE, asn1.SEQUENCE, 0xA0]
    assert fields[0][1] == b"\x00"  # version v1(0)


def test_spki_embedded_verbatim(request_info, key_pair):
    spki = export_public(key_pair).der
    assert spki in request_info.der
    assert request_info.public_key_info.der == spki


def test_common_name_is_utf8string(request_info):
    cn = "someone@example.com".encode()
    expected_atv = (
        b"\x30" + bytes([5 + 2 + len(cn)])
        + b"\x06\x03\x55\x04\x03"
        + b"\x0c" + bytes([len(cn)]) + cn
    )
    assert expected_atv in request_info.der


def test_non_ascii_common_name_is_preserved(key_pair):
    info = build_unsigned_request_info(
        export_public(key_pair), SubjectInfo(common_name="Zoë Müller", email="zoe@example.com")
    )
    assert "Zoë Müller".encode("utf-8") in info.der


def test_extension_request_carries_single_rfc822_san(request_info):
    attributes = _children(request_info.der)[3][1]
    tag, attribute, end = asn1.read_tlv(attributes)
    assert end == len(attributes)  # exactly one attribute
    assert attribute.startswith(EXTENSION_REQUEST_DER)

    # Attribute ::= SEQUENCE { OID, SET { Extensions } }
    values_tag, values, _ = asn1.read_tlv(attribute, len(EXTENSION_REQUEST_DER))
    assert values_tag == asn1.SET
    _, extensions, _ = asn1.read_tlv(values)
    _, extension, ext_end = asn1.read_tlv(extensions)
    assert ext_end == len(extensions)  # exactly one extension
    assert extension.startswith(SAN_OID_DER)

    octet_tag, general_names_der, _ = asn1.read_tlv(extension, len(SAN_OID_DER))
    assert octet_tag == asn1.OCTET_STRING
    names = _children(general_names_der)
    assert names == [(0x81, b"someone@example.com")]


def test_alt_names_property(request_info):
    assert request_info.alt_names == [GeneralName(RFC822_NAME, "someone@example.com")]


def test_der_is_stable_across_builds(key_pair, subject):
    public = export_public(key_pair)
    assert build_unsigned_request_info(public, subject).der == build_unsigned_request_info(public, subject).der


def test_info_is_immutable(request_info):
    with pytest.raises(dataclasses.FrozenInstanceError):
        request_info.der = b""  # type: ignore[misc]


def test_replacing_a_field_re_encodes(request_info):
    changed = dataclasses.replace(request_info, subject=SubjectInfo("other@example.com", "other@example.com"))
    assert changed.der != request_info.der
    assert b"other@example.com" in changed.der


def test_decoded_info_keeps_original_bytes(request_info):
    kept = CertificationRequestInfo.decoded(
        subject=request_info.subject,
        public_key_info=request_info.public_key_info,
        extensions=request_info.extensions,
        der=b"\x30\x00",
    )
    assert kept.der == b"\x30\x00"


def test_dns_general_name_uses_context_tag_2():
    ext = Extension(alt_names=(GeneralName(DNS_NAME, "example.com"),))
    assert b"\x82\x0bexample.com" in ext.to_node().encode()


def test_unsupported_general_name_tag():
    with pytest.raises(EncodingError):
        GeneralName(4, "directoryName").to_node()


# ─── Rejections ───────────────────────────────────────────────────────────────

@pytest.mark.parametrize("common_name", ["", "   "])
def test_empty_common_name_rejected(key_pair, common_name):
    with pytest.raises(InvalidSubjectError):
        build_unsigned_request_info(export_public(key_pair), SubjectInfo(common_name, "a@example.com"))


@pytest.mark.parametrize("email", ["", "  ", "zoë@example.com"])
def test_bad_email_rejected(key_pair, email):
    with pytest.raises(InvalidAltNameError):
        build_unsigned_request_info(export_public(key_pair), SubjectInfo("someone", email))


def test_private_key_rejected_as_public_key_info(key_pair, subject):
    with pytest.raises(EncodingError):
        build_unsigned_request_info(export_private(key_pair), subject)


def test_garbage_public_key_der_rejected(subject):
    with pytest.raises(EncodingError):
        build_unsigned_request_info(EncodedKey(label="PUBLIC KEY", der=b"\x30\x05\x00"), subject)

"""
PKCS#10 CertificationRequestInfo model and builder (RFC 2986).

  CertificationRequestInfo ::= SEQUENCE {
      version       INTEGER { v1(0) },
      subject       Name,
      subjectPKInfo SubjectPublicKeyInfo,
      attributes    [0] IMPLICIT SET OF Attribute }

The only attribute emitted is extensionRequest (RFC 2985) carrying a
subjectAltName extension: a CSR has no extensions field of its own, so the
desired certificate extensions travel as an attribute for the CA to honour.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from csr import asn1
from csr.errors import EncodingError, InvalidAltNameError, InvalidSubjectError
from csr.keys import EncodedKey
from csr.pem import PUBLIC_KEY

logger = logging.getLogger(__name__)

COMMON_NAME_OID = "2.5.4.3"
EXTENSION_REQUEST_OID = "1.2.840.113549.1.9.14"
SUBJECT_ALT_NAME_OID = "2.5.29.17"

# GeneralName CHOICE tags whose value is an IA5String (RFC 5280 §4.2.1.6)
RFC822_NAME = 1
DNS_NAME = 2
UNIFORM_RESOURCE_IDENTIFIER = 6
_IA5_GENERAL_NAMES = {
    RFC822_NAME: "rfc822Name",
    DNS_NAME: "dNSName",
    UNIFORM_RESOURCE_IDENTIFIER: "uniformResourceIdentifier",
}


# ─── Model ────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class SubjectInfo:
    common_name: str
    email: str


@dataclass(frozen=True)
class GeneralName:
    tag: int
    value: str

    def to_node(self) -> asn1.Node:
        if self.tag not in _IA5_GENERAL_NAMES:
            raise EncodingError(f"unsupported GeneralName choice [{self.tag}]")
        return asn1.Context(self.tag, asn1.String(asn1.IA5_STRING, self.value), explicit=False)


@dataclass(frozen=True)
class Extension:
    """A non-critical subjectAltName extension."""

    alt_names: tuple[GeneralName, ...]
    oid: str = SUBJECT_ALT_NAME_OID

    def to_node(self) -> asn1.Node:
        general_names = asn1.Sequence(tuple(name.to_node() for name in self.alt_names))
        return asn1.Sequence((
            asn1.ObjectIdentifier(self.oid),
            asn1.OctetString(general_names.encode()),
        ))


@dataclass(frozen=True)
class CertificationRequestInfo:
    """
    The to-be-signed part of a CSR.

    ``der`` is computed once from the other fields and is exactly the byte
    range the signature covers.  Instances are frozen and ``replace()``
    always re-encodes, so a changed info can never carry a stale encoding.
    """

    subject: SubjectInfo
    public_key_info: EncodedKey
    extensions: tuple[Extension, ...]
    der: bytes = field(init=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "der", self.to_node().encode())

    @classmethod
    def decoded(
        cls,
        subject: SubjectInfo,
        public_key_info: EncodedKey,
        extensions: tuple[Extension, ...],
        der: bytes,
    ) -> "CertificationRequestInfo":
        """An info read back from an existing request, keeping its original bytes."""
        info = cls(subject=subject, public_key_info=public_key_info, extensions=extensions)
        object.__setattr__(info, "der", bytes(der))
        return info

    def to_node(self) -> asn1.Node:
        rdn = asn1.Set((
            asn1.Sequence((
                asn1.ObjectIdentifier(COMMON_NAME_OID),
                # UTF8String keeps the value as-is rather than coercing to PrintableString.
                asn1.String(asn1.UTF8_STRING, self.subject.common_name),
            )),
        ))
        extension_request = asn1.Sequence((
            asn1.ObjectIdentifier(EXTENSION_REQUEST_OID),
            asn1.Set((asn1.Sequence(tuple(ext.to_node() for ext in self.extensions)),)),
        ))
        return asn1.Sequence((
            asn1.Integer(0),
            asn1.Sequence((rdn,)),
            asn1.Raw(self.public_key_info.der),
            asn1.Context(0, asn1.Set((extension_request,)), explicit=False),
        ))

    @property
    def alt_names(self) -> list[GeneralName]:
        return [name for ext in self.extensions if ext.oid == SUBJECT_ALT_NAME_OID for name in ext.alt_names]


# ─── Builder ──────────────────────────────────────────────────────────────────


def validate_subject(subject: SubjectInfo) -> None:
    """Reject unusable identity fields before any expensive work is done."""
    if not subject.common_name or not subject.common_name.strip():
        raise InvalidSubjectError("commonName must not be empty")
    if not subject.email or not subject.email.strip():
        raise InvalidAltNameError("subjectAltName email must not be empty")
    if not subject.email.isascii():
        raise InvalidAltNameError(f"email {subject.email!r} is not representable as IA5String")


def build_unsigned_request_info(public_key: EncodedKey, subject: SubjectInfo) -> CertificationRequestInfo:
    """
    Assemble the CertificationRequestInfo for *subject* around the SPKI DER
    in *public_key*, with one rfc822Name subjectAltName entry.
    """
    validate_subject(subject)
    if public_key.label != PUBLIC_KEY:
        raise EncodingError(f"expected a {PUBLIC_KEY!r}, got {public_key.label!r}")

    san = Extension(alt_names=(GeneralName(RFC822_NAME, subject.email),))
    info = CertificationRequestInfo(
        subject=subject,
        public_key_info=public_key,
        extensions=(san,),
    )
    logger.debug("Built request info for %r (%d bytes)", subject.common_name, len(info.der))
    return info

"""
Sign and verify PKCS#10 requests (sha256WithRSAEncryption, PKCS#1 v1.5).

  CertificationRequest ::= SEQUENCE {
      certificationRequestInfo CertificationRequestInfo,
      signatureAlgorithm       AlgorithmIdentifier,
      signature                BIT STRING }

The request info is embedded using the exact bytes that were signed; it is
never re-encoded between signing and serialization.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from cryptography import x509
from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.x509.oid import NameOID

from csr import asn1, pem
from csr.errors import EncodingError, MalformedPemError
from csr.keys import EncodedKey
from csr.request import (
    DNS_NAME,
    RFC822_NAME,
    UNIFORM_RESOURCE_IDENTIFIER,
    CertificationRequestInfo,
    Extension,
    GeneralName,
    SubjectInfo,
)

logger = logging.getLogger(__name__)

SHA256_WITH_RSA_OID = "1.2.840.113549.1.1.11"


@dataclass(frozen=True)
class CertificationRequest:
    info: CertificationRequestInfo
    signature: bytes
    signature_algorithm_oid: str = SHA256_WITH_RSA_OID

    def to_der(self) -> bytes:
        return asn1.Sequence((
            asn1.Raw(self.info.der),
            asn1.Sequence((asn1.ObjectIdentifier(self.signature_algorithm_oid), asn1.Null())),
            asn1.BitString(self.signature),
        )).encode()

    def to_pem(self) -> str:
        return pem.encode(pem.CERTIFICATE_REQUEST, self.to_der())


def sign(info: CertificationRequestInfo, private_key: rsa.RSAPrivateKey) -> CertificationRequest:
    """Sign the finalized DER of *info* with RSA/SHA-256/PKCS#1 v1.5."""
    signature = private_key.sign(info.der, padding.PKCS1v15(), hashes.SHA256())
    logger.debug("Signed %d bytes of request info for %r", len(info.der), info.subject.common_name)
    return CertificationRequest(info=info, signature=signature)


def verify(request: CertificationRequest) -> bool:
    """
    Check the signature against the public key embedded in the request info.

    Returns False on a bad signature, an unexpected algorithm or an unusable
    embedded key; the caller decides whether that is fatal.
    """
    if request.signature_algorithm_oid != SHA256_WITH_RSA_OID:
        logger.warning("Unsupported signature algorithm %s", request.signature_algorithm_oid)
        return False
    try:
        public_key = serialization.load_der_public_key(
            request.info.public_key_info.der, backend=default_backend()
        )
    except (ValueError, UnsupportedAlgorithm) as exc:
        logger.warning("Embedded public key could not be loaded: %s", exc)
        return False
    if not isinstance(public_key, rsa.RSAPublicKey):
        logger.warning("Embedded public key is not RSA")
        return False

    try:
        public_key.verify(request.signature, request.info.der, padding.PKCS1v15(), hashes.SHA256())
    except InvalidSignature:
        logger.debug("Signature mismatch for %r", request.info.subject.common_name)
        return False
    return True


# ─── Reading requests back ────────────────────────────────────────────────────


def load_request(csr_pem: str) -> CertificationRequest:
    """
    Parse a "CERTIFICATE REQUEST" PEM block.

    The request info keeps its original bytes so ``verify`` checks exactly
    what was signed.  Raises MalformedPemError on any format problem.
    """
    _, der = pem.decode(csr_pem, expected_label=pem.CERTIFICATE_REQUEST)
    try:
        csr = x509.load_der_x509_csr(der, default_backend())
        spki = csr.public_key().public_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        alt_names = _alt_names(csr)
        cn_attrs = csr.subject.get_attributes_for_oid(NameOID.COMMON_NAME)
    except (
        ValueError,
        UnsupportedAlgorithm,
        x509.DuplicateExtension,
        x509.UnsupportedGeneralNameType,
    ) as exc:
        raise MalformedPemError(f"not a valid PKCS#10 request: {exc}") from exc

    common_name = str(cn_attrs[0].value) if cn_attrs else ""
    email = next((n.value for n in alt_names if n.tag == RFC822_NAME), "")
    if not common_name:
        logger.warning("Request has no commonName in its subject")
    if not alt_names:
        logger.warning("Request carries no subjectAltName entries")

    try:
        info = CertificationRequestInfo.decoded(
            subject=SubjectInfo(common_name=common_name, email=email),
            public_key_info=EncodedKey(label=pem.PUBLIC_KEY, der=spki),
            extensions=(Extension(alt_names=tuple(alt_names)),) if alt_names else (),
            der=csr.tbs_certrequest_bytes,
        )
    except EncodingError as exc:
        raise MalformedPemError(f"request fields cannot be represented: {exc}") from exc
    return CertificationRequest(
        info=info,
        signature=csr.signature,
        signature_algorithm_oid=csr.signature_algorithm_oid.dotted_string,
    )


def _alt_names(csr: x509.CertificateSigningRequest) -> list[GeneralName]:
    try:
        san = csr.extensions.get_extension_for_class(x509.SubjectAlternativeName)
    except x509.ExtensionNotFound:
        return []
    names: list[GeneralName] = []
    for entry in san.value:
        if isinstance(entry, x509.RFC822Name):
            names.append(GeneralName(RFC822_NAME, entry.value))
        elif isinstance(entry, x509.DNSName):
            names.append(GeneralName(DNS_NAME, entry.value))
        elif isinstance(entry, x509.UniformResourceIdentifier):
            names.append(GeneralName(UNIFORM_RESOURCE_IDENTIFIER, entry.value))
        else:
            logger.debug("Skipping unsupported GeneralName %r", entry)
    return names

# SPDX-FileCopyrightText: Copyright 2024 Siemens AG
#
# SPDX-License-Identifier: Apache-2.0

"""Load, convert and identify the X509 certificates and requests carried in SCEP messages."""

import logging
from typing import List, Optional, Sequence, Union

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from pyasn1.codec.der import decoder, encoder
from pyasn1_alt_modules import rfc5280, rfc5652
from robot.api.deco import keyword, not_keyword

from scepmsg.typingutils import PublicKey


@keyword(name="Parse Certificate")
def parse_certificate(data: bytes) -> x509.Certificate:  # noqa D417 undocumented-param
    """Parse a DER-encoded X509 certificate.

    Arguments:
    ---------
        - `data`: DER-encoded X509 certificate.

    Returns:
    -------
        - The decoded `cryptography` certificate.

    Raises:
    ------
        - `ValueError`: If the data is not a DER-encoded certificate.

    Examples:
    --------
    | ${cert}= | Parse Certificate | ${der_data} |

    """
    return x509.load_der_x509_certificate(data)


@keyword(name="Parse CSR")
def parse_csr(raw_csr: bytes) -> x509.CertificateSigningRequest:  # noqa D417 undocumented-param
    """Parse a DER-encoded PKCS#10 certificate signing request.

    Arguments:
    ---------
        - `raw_csr`: DER encoded CSR.

    Returns:
    -------
        - The decoded `cryptography` CSR.

    Raises:
    ------
        - `ValueError`: If the data is not a DER-encoded CSR.

    Examples:
    --------
    | ${csr}= | Parse CSR | ${der_data} |

    """
    return x509.load_der_x509_csr(raw_csr)


@not_keyword
def convert_cert_crypto_to_pyasn1(cert: x509.Certificate) -> rfc5280.Certificate:
    """Convert a `cryptography` certificate to a pyasn1 `rfc5280.Certificate` object.

    :param cert: The cryptography `x509.Certificate` to be converted.
    :return: The converted certificate as a pyasn1 `rfc5280.Certificate` object.
    """
    der_data = cert.public_bytes(serialization.Encoding.DER)
    asn1_cert, _ = decoder.decode(der_data, asn1Spec=rfc5280.Certificate())
    return asn1_cert


@not_keyword
def convert_cert_pyasn1_to_crypto(cert: rfc5280.Certificate) -> x509.Certificate:
    """Convert a pyasn1 `rfc5280.Certificate` object to a `cryptography` certificate.

    :param cert: The pyasn1 certificate to be converted.
    :return: The converted certificate as a `cryptography` `x509.Certificate` object.
    """
    return x509.load_der_x509_certificate(encoder.encode(cert))


@not_keyword
def cert_to_der(cert: x509.Certificate) -> bytes:
    """Return the DER encoding of a certificate."""
    return cert.public_bytes(serialization.Encoding.DER)


@not_keyword
def compute_subject_key_identifier(public_key: PublicKey) -> bytes:
    """Compute the RFC 5280 (method 1) subject key identifier of a public key.

    The identifier is the SHA-1 hash of the `subjectPublicKey` bit string.

    :param public_key: The public key to derive the identifier from.
    :return: The 20 byte key identifier.
    """
    return x509.SubjectKeyIdentifier.from_public_key(public_key).digest  # type: ignore


@not_keyword
def get_subject_key_identifier(cert: x509.Certificate) -> Optional[bytes]:
    """Return the value of the `SubjectKeyIdentifier` extension, or `None` if absent."""
    try:
        return cert.extensions.get_extension_for_class(x509.SubjectKeyIdentifier).value.digest
    except x509.ExtensionNotFound:
        return None


@not_keyword
def prepare_issuer_and_serial_number(cert: x509.Certificate) -> rfc5652.IssuerAndSerialNumber:
    """Create an `IssuerAndSerialNumber` structure which uniquely identifies a certificate.

    :param cert: Certificate from which to extract the issuer and serial number.
    :return: The populated `IssuerAndSerialNumber` structure.
    """
    issuer, _ = decoder.decode(cert.issuer.public_bytes(), asn1Spec=rfc5280.Name())
    iss_ser_num = rfc5652.IssuerAndSerialNumber()
    iss_ser_num["issuer"] = issuer
    iss_ser_num["serialNumber"] = rfc5280.CertificateSerialNumber(cert.serial_number)
    return iss_ser_num


@not_keyword
def prepare_signer_identifier(cert: x509.Certificate) -> rfc5652.SignerIdentifier:
    """Create a `SignerIdentifier` for the certificate of the signing key.

    Uses `issuerAndSerialNumber`, which every SCEP implementation understands.

    :param cert: Certificate corresponding to the signing key.
    :return: A `SignerIdentifier` structure identifying the signer.
    """
    sid = rfc5652.SignerIdentifier()
    sid["issuerAndSerialNumber"] = prepare_issuer_and_serial_number(cert)
    return sid


@not_keyword
def prepare_recipient_identifier(cert: x509.Certificate) -> rfc5652.RecipientIdentifier:
    """Create a `RecipientIdentifier` for the certificate of a key transport recipient.

    :param cert: The certificate of the recipient.
    :return: The populated `RecipientIdentifier` structure.
    """
    rid = rfc5652.RecipientIdentifier()
    rid["issuerAndSerialNumber"] = prepare_issuer_and_serial_number(cert)
    return rid


@not_keyword
def cert_matches_identifier(
    cert: x509.Certificate, identifier: Union[rfc5652.SignerIdentifier, rfc5652.RecipientIdentifier]
) -> bool:
    """Check if a certificate is the one referenced by a signer or recipient identifier.

    :param cert: The certificate to check.
    :param identifier: The `SignerIdentifier` or `RecipientIdentifier` structure.
    :return: `True` if the certificate matches, otherwise `False`.
    """
    name = identifier.getName()
    if name == "issuerAndSerialNumber":
        iss_ser_num = identifier[name]
        if int(iss_ser_num["serialNumber"]) != cert.serial_number:
            return False
        return encoder.encode(iss_ser_num["issuer"]) == cert.issuer.public_bytes()

    if name == "subjectKeyIdentifier":
        ski = identifier[name].asOctets()
        cert_ski = get_subject_key_identifier(cert)
        if cert_ski is None:
            cert_ski = compute_subject_key_identifier(cert.public_key())  # type: ignore
        return ski == cert_ski

    logging.info("Unsupported identifier choice: %s", name)
    return False


@not_keyword
def find_cert_by_identifier(
    certs: Sequence[x509.Certificate], identifier: Union[rfc5652.SignerIdentifier, rfc5652.RecipientIdentifier]
) -> Optional[x509.Certificate]:
    """Return the first certificate referenced by the identifier, or `None`."""
    for cert in certs:
        if cert_matches_identifier(cert, identifier):
            return cert
    return None


@not_keyword
def cert_in_list(cert: x509.Certificate, cert_list: Sequence[x509.Certificate]) -> bool:
    """Check if a certificate is in a list of certificates, comparing the DER encoding.

    :param cert: The certificate to check.
    :param cert_list: The list of certificates.
    :return: `True` if the certificate is in the list, otherwise `False`.
    """
    der_cert = cert_to_der(cert)
    return any(der_cert == cert_to_der(entry) for entry in cert_list)


@not_keyword
def get_cert_chain_names(certs: Sequence[x509.Certificate]) -> List[str]:
    """Return the subject names of the certificates, used for logging."""
    return [cert.subject.rfc4514_string() for cert in certs]


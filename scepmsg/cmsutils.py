# SPDX-FileCopyrightText: Copyright 2024 Siemens AG
#
# SPDX-License-Identifier: Apache-2.0

"""Utilities for the CMS `SignedData` and `EnvelopedData` structures of a SCEP `pkiMessage`.

A SCEP `pkiMessage` is a `SignedData` structure carrying the SCEP attributes as signed
attributes. Its content is the `pkiEnvelope`, an `EnvelopedData` structure, which holds the
PKCS#10 request of a client or the degenerate certificate collection of a `CertRep`.
"""

import logging
import os
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from cryptography import x509
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from pyasn1.codec.der import decoder, encoder
from pyasn1.error import PyAsn1Error
from pyasn1.type import tag, univ, useful
from pyasn1_alt_modules import rfc4055, rfc5280, rfc5652, rfc9481
from robot.api.deco import keyword, not_keyword

from scepmsg import certutils, cryptoutils
from scepmsg.asn1_structures import CertificateSequence, SignedDataTMP
from scepmsg.exceptions import ContainerMalformed, DecryptionFailed, NoRecipients, SignatureInvalid, UnsupportedAlgorithm
from scepmsg.oidutils import (
    AES_CBC_KEY_SIZES,
    AES_CBC_NAME_2_OID,
    AES_CBC_OID_2_NAME,
    SHA_NAME_2_OID,
    SHA_OID_2_NAME,
    SIG_NAME_2_OID,
    SIG_OID_2_NAME,
)
from scepmsg.typingutils import DecryptKey, SignKey

#########################
# SignedData
##########################


@not_keyword
def prepare_single_value_attribute(attr_type: univ.ObjectIdentifier, attr_value) -> rfc5652.Attribute:
    """Prepare an `Attribute` with a single DER-encoded value.

    :param attr_type: The Object Identifier (OID) for the attribute.
    :param attr_value: The pyasn1 value of the attribute to be encoded.
    :return: The populated `Attribute` structure.
    """
    attr = rfc5652.Attribute()
    attr["attrType"] = attr_type
    attr["attrValues"][0] = encoder.encode(attr_value)
    return attr


@not_keyword
def prepare_signed_attributes(
    message_digest: bytes,
    extra_attributes: Optional[Sequence[rfc5652.Attribute]] = None,
    signing_time: Optional[datetime] = None,
) -> rfc5652.SignedAttributes:
    """Create the `SignedAttributes` of a `SignerInfo`.

    Contains the mandatory `contentType` and `messageDigest` attributes, the `signingTime`
    and the SCEP attributes given as `extra_attributes`.

    :param message_digest: Digest of the content to be signed.
    :param extra_attributes: Additional attributes to sign, e.g. the SCEP `messageType`.
    :param signing_time: The time to include. Defaults to now.
    :return: The `SignedAttributes` structure, tagged for the `SignerInfo`.
    """
    signed_attrs = rfc5652.SignedAttributes().subtype(
        implicitTag=tag.Tag(tag.tagClassContext, tag.tagFormatConstructed, 0)
    )

    signing_time_obj = rfc5280.Time()
    signing_time_obj["utcTime"] = useful.UTCTime.fromDateTime(signing_time or datetime.now(timezone.utc))

    signed_attrs.append(prepare_single_value_attribute(rfc5652.id_contentType, rfc5652.id_data))
    signed_attrs.append(prepare_single_value_attribute(rfc5652.id_messageDigest, univ.OctetString(message_digest)))
    signed_attrs.append(prepare_single_value_attribute(rfc5652.id_signingTime, signing_time_obj))

    for attr in extra_attributes or []:
        signed_attrs.append(attr)

    return signed_attrs


def _encode_signed_attributes_for_signing(signed_attrs: rfc5652.SignedAttributes) -> bytes:
    """Return the DER encoding of the signed attributes with the explicit `SET OF` tag (RFC 5652 Section 5.4)."""
    der_data = encoder.encode(signed_attrs)
    return b"\x31" + der_data[1:]


def _get_signature_alg_oid(key: SignKey, hash_alg: str) -> univ.ObjectIdentifier:
    """Return the signature algorithm OID for a key and a hash algorithm name."""
    if isinstance(key, rsa.RSAPrivateKey):
        name = f"rsa-{hash_alg}"
    elif isinstance(key, ec.EllipticCurvePrivateKey):
        name = f"ecdsa-{hash_alg}"
    else:
        raise UnsupportedAlgorithm(f"Unsupported key type to sign a SCEP message: {type(key).__name__}")

    try:
        return SIG_NAME_2_OID[name]
    except KeyError as err:
        raise UnsupportedAlgorithm(f"Unsupported signature algorithm: {name}") from err


@not_keyword
def prepare_signer_info(
    signer_cert: x509.Certificate,
    signer_key: SignKey,
    content: bytes,
    extra_attributes: Optional[Sequence[rfc5652.Attribute]] = None,
    hash_alg: str = "sha256",
) -> rfc5652.SignerInfo:
    """Create a `SignerInfo` structure, which signs the content and the SCEP attributes.

    :param signer_cert: Certificate corresponding to the signing key.
    :param signer_key: Private key used for signing.
    :param content: The content to sign, the `messageDigest` is computed over it.
    :param extra_attributes: The SCEP attributes to sign.
    :param hash_alg: Hash algorithm for the digest and the signature (e.g., "sha256").
    :return: A `SignerInfo` structure ready to be included in `SignedData`.
    """
    if hash_alg not in SHA_NAME_2_OID:
        raise UnsupportedAlgorithm(f"Unsupported digest algorithm: {hash_alg}")

    dig_alg_id = rfc5652.DigestAlgorithmIdentifier()
    dig_alg_id["algorithm"] = SHA_NAME_2_OID[hash_alg]

    sig_alg_id = rfc5652.SignatureAlgorithmIdentifier()
    sig_alg_id["algorithm"] = _get_signature_alg_oid(signer_key, hash_alg)
    if isinstance(signer_key, rsa.RSAPrivateKey):
        sig_alg_id["parameters"] = encoder.encode(univ.Null(""))

    signed_attrs = prepare_signed_attributes(
        message_digest=cryptoutils.compute_hash(hash_alg, content),
        extra_attributes=extra_attributes,
    )

    signer_info = rfc5652.SignerInfo()
    # Version 1, because the `sid` is the `issuerAndSerialNumber`.
    signer_info["version"] = 1
    signer_info["sid"] = certutils.prepare_signer_identifier(signer_cert)
    signer_info["digestAlgorithm"] = dig_alg_id
    signer_info["signedAttrs"] = signed_attrs
    signer_info["signatureAlgorithm"] = sig_alg_id

    signature = cryptoutils.sign_data(
        data=_encode_signed_attributes_for_signing(signed_attrs), key=signer_key, hash_alg=hash_alg
    )
    signer_info["signature"] = univ.OctetString(signature)
    return signer_info


@not_keyword
def prepare_certificate_sequence(certs: Sequence[x509.Certificate]) -> CertificateSequence:
    """Prepare the `certificates` field of a `SignedData` structure, keeping the order of the certificates.

    :param certs: The certificates to include.
    :return: The populated structure, with the correct tagging.
    """
    certificates = CertificateSequence().subtype(implicitTag=tag.Tag(tag.tagClassContext, tag.tagFormatConstructed, 0))

    for cert in certs:
        cert_choice = rfc5652.CertificateChoices()
        cert_choice["certificate"] = certutils.convert_cert_crypto_to_pyasn1(cert)
        certificates.append(cert_choice)

    return certificates


def _prepare_encapsulated_content_info(content: Optional[bytes]) -> rfc5652.EncapsulatedContentInfo:
    """Create an `EncapsulatedContentInfo` of type `id-data`; without `eContent` if the content is `None`."""
    encap_content_info = rfc5652.EncapsulatedContentInfo()
    encap_content_info["eContentType"] = rfc5652.id_data
    if content is not None:
        econtent = univ.OctetString(content).subtype(explicitTag=tag.Tag(tag.tagClassContext, tag.tagFormatSimple, 0))
        encap_content_info["eContent"] = econtent
    return encap_content_info


def _wrap_in_content_info(content_type: univ.ObjectIdentifier, structure) -> bytes:
    """Wrap a structure inside a DER-encoded `ContentInfo`."""
    content_info = rfc5652.ContentInfo()
    content_info["contentType"] = content_type
    content_info["content"] = encoder.encode(structure)
    return encoder.encode(content_info)


@keyword(name="Prepare SignedData")
def prepare_signed_data(  # noqa D417 undocumented-param
    content: Optional[bytes],
    signer_cert: x509.Certificate,
    signer_key: SignKey,
    extra_attributes: Optional[Sequence[rfc5652.Attribute]] = None,
    certificates: Optional[Sequence[x509.Certificate]] = None,
    hash_alg: str = "sha256",
) -> bytes:
    """Prepare a DER-encoded `ContentInfo` with a `SignedData` structure.

    The signer certificate is added to the certificates if it is not already present.
    The certificates are encoded in the given order.

    Arguments:
    ---------
        - `content`: The content to be signed, or `None` to omit the `eContent` (e.g., for a failure `CertRep`).
        - `signer_cert`: The certificate of the signer.
        - `signer_key`: The private key used for signing.
        - `extra_attributes`: The SCEP attributes to add to the signed attributes. Defaults to `None`.
        - `certificates`: The certificates to include. Defaults to the signer certificate.
        - `hash_alg`: The hash algorithm name to use for signing. Defaults to "sha256".

    Returns:
    -------
        - The DER-encoded `ContentInfo` structure.

    Raises:
    ------
        - `UnsupportedAlgorithm`: If the key type or the hash algorithm is not supported.

    Examples:
    --------
    | ${der_data}= | Prepare SignedData | ${content} | ${cert} | ${key} | ${attributes} |
    | ${der_data}= | Prepare SignedData | ${content} | ${cert} | ${key} | certificates=${chain} | hash_alg=sha384 |

    """
    certs = list(certificates) if certificates is not None else []
    if not certutils.cert_in_list(signer_cert, certs):
        certs.append(signer_cert)

    signer_info = prepare_signer_info(
        signer_cert=signer_cert,
        signer_key=signer_key,
        content=content or b"",
        extra_attributes=extra_attributes,
        hash_alg=hash_alg,
    )

    signed_data = SignedDataTMP()
    signed_data["version"] = 1
    signed_data["digestAlgorithms"].append(signer_info["digestAlgorithm"])
    signed_data["encapContentInfo"] = _prepare_encapsulated_content_info(content)
    signed_data["certificates"] = prepare_certificate_sequence(certs)
    signed_data["signerInfos"].append(signer_info)

    logging.debug("Signed the `SignedData` with: %s", signer_cert.subject.rfc4514_string())
    return _wrap_in_content_info(rfc5652.id_signedData, signed_data)


def _decode_content_info(raw: bytes, content_type: univ.ObjectIdentifier, name: str) -> bytes:
    """Decode a `ContentInfo` and return the raw content, after checking the content type."""
    try:
        content_info, rest = decoder.decode(raw, asn1Spec=rfc5652.ContentInfo())
    except PyAsn1Error as err:
        raise ContainerMalformed(f"The data is not a DER-encoded `ContentInfo`: {err}") from err

    if rest != b"":
        raise ContainerMalformed("ContentInfo", remainder=rest)

    if content_info["contentType"] != content_type:
        raise ContainerMalformed(
            f"Expected a `ContentInfo` with a `{name}` structure, got content type: {content_info['contentType']}"
        )

    return content_info["content"].asOctets()


@keyword(name="Parse SignedData")
def parse_signed_data(raw: bytes) -> rfc5652.SignedData:  # noqa D417 undocumented-param
    """Parse a DER-encoded `ContentInfo` which carries a `SignedData` structure.

    Arguments:
    ---------
        - `raw`: The DER-encoded `ContentInfo`.

    Returns:
    -------
        - The decoded `SignedData` structure.

    Raises:
    ------
        - `ContainerMalformed`: If the data cannot be decoded or does not carry `SignedData`.

    Examples:
    --------
    | ${signed_data}= | Parse SignedData | ${der_data} |

    """
    content = _decode_content_info(raw, rfc5652.id_signedData, "SignedData")
    try:
        signed_data, rest = decoder.decode(content, asn1Spec=rfc5652.SignedData())
    except PyAsn1Error as err:
        raise ContainerMalformed(f"The content is not a DER-encoded `SignedData`: {err}") from err

    if rest != b"":
        raise ContainerMalformed("SignedData", remainder=rest)

    return signed_data


@not_keyword
def get_signed_content(signed_data: rfc5652.SignedData) -> bytes:
    """Return the `eContent` of a `SignedData` structure, or empty bytes if absent."""
    econtent = signed_data["encapContentInfo"]["eContent"]
    if not econtent.isValue:
        return b""
    return econtent.asOctets()


@not_keyword
def get_signed_attributes(signed_data: rfc5652.SignedData, index: int = 0) -> rfc5652.SignedAttributes:
    """Return the signed attributes of a `SignerInfo` of a `SignedData` structure.

    :param signed_data: The `SignedData` structure.
    :param index: The index of the `SignerInfo`. Defaults to `0`.
    :return: The `SignedAttributes` structure, which may be empty.
    :raises ContainerMalformed: If the `SignerInfo` is absent.
    """
    signer_infos = signed_data["signerInfos"]
    if len(signer_infos) <= index:
        raise ContainerMalformed(f"The `SignedData` structure has no `SignerInfo` at index {index}.")
    return signer_infos[index]["signedAttrs"]


@not_keyword
def get_certificates_from_signed_data(signed_data: rfc5652.SignedData) -> List[x509.Certificate]:
    """Extract the certificates of a `SignedData` structure, in the order of the encoding.

    :param signed_data: The `SignedData` structure.
    :return: The certificates; choices other than `certificate` are skipped.
    :raises ContainerMalformed: If a certificate cannot be loaded.
    """
    certificates = signed_data["certificates"]
    if not certificates.isValue:
        return []

    certs = []
    for cert_choice in certificates:
        if cert_choice.getName() != "certificate":
            logging.info("Skipping the unsupported `CertificateChoices` entry: %s", cert_choice.getName())
            continue

        try:
            certs.append(certutils.convert_cert_pyasn1_to_crypto(cert_choice["certificate"]))
        except ValueError as err:
            raise ContainerMalformed(f"A certificate inside the `SignedData` could not be loaded: {err}") from err

    return certs


def _get_message_digest(signed_attrs: rfc5652.SignedAttributes) -> bytes:
    """Return the value of the `messageDigest` signed attribute."""
    for attr in signed_attrs:
        if attr["attrType"] != rfc5652.id_messageDigest:
            continue

        if len(attr["attrValues"]) != 1:
            raise SignatureInvalid("The `id-messageDigest` `attrValues` must contain exactly one value!")

        try:
            message_digest, _ = decoder.decode(attr["attrValues"][0], rfc5652.MessageDigest())
        except PyAsn1Error as err:
            raise SignatureInvalid("The `id-messageDigest` value could not be decoded.") from err
        return message_digest.asOctets()

    logging.info("Values of signed attributes: %s", signed_attrs.prettyPrint())
    raise SignatureInvalid("The `id-messageDigest` attribute was not found in the `SignedAttributes` structure!")


def _get_signature_hash_name(signer_info: rfc5652.SignerInfo, public_key) -> str:
    """Return the hash algorithm name of the signature and check that it fits the signer key."""
    digest_oid = signer_info["digestAlgorithm"]["algorithm"]
    digest_name = SHA_OID_2_NAME.get(digest_oid)
    if digest_name is None:
        raise UnsupportedAlgorithm(f"Unsupported `digestAlgorithm` OID: {digest_oid}")

    sig_oid = signer_info["signatureAlgorithm"]["algorithm"]
    sig_name = SIG_OID_2_NAME.get(sig_oid)
    if sig_name is None:
        raise UnsupportedAlgorithm(f"Unsupported `signatureAlgorithm` OID: {sig_oid}")

    key_type = "rsa" if isinstance(public_key, rsa.RSAPublicKey) else "ecdsa"
    if not sig_name.startswith(key_type):
        raise SignatureInvalid(f"The signature algorithm `{sig_name}` does not match the signer key type.")

    if sig_name == "rsa":
        return digest_name
    return sig_name.split("-")[1]


@not_keyword
def verify_signer_info(signer_info: rfc5652.SignerInfo, signer_cert: x509.Certificate, content: bytes) -> None:
    """Verify the signature of a single `SignerInfo`.

    If signed attributes are present, the `messageDigest` is compared with the digest of the
    content and the signature is verified over the DER-encoded attributes. Otherwise the signature
    is verified over the content.

    :param signer_info: The `SignerInfo` structure.
    :param signer_cert: The certificate referenced by the `sid`.
    :param content: The signed content.
    :raises SignatureInvalid: If the digest or the signature is invalid.
    :raises UnsupportedAlgorithm: If the algorithms are not supported.
    """
    public_key = signer_cert.public_key()
    if not isinstance(public_key, (rsa.RSAPublicKey, ec.EllipticCurvePublicKey)):
        raise UnsupportedAlgorithm(f"Unsupported signer key type: {type(public_key).__name__}")

    hash_alg = _get_signature_hash_name(signer_info, public_key)
    digest_name = SHA_OID_2_NAME[signer_info["digestAlgorithm"]["algorithm"]]

    signed_attrs = signer_info["signedAttrs"]
    if signed_attrs.isValue:
        message_digest = _get_message_digest(signed_attrs)
        if message_digest != cryptoutils.compute_hash(digest_name, content):
            raise SignatureInvalid("The `messageDigest` does not match the digest of the signed content.")
        data = _encode_signed_attributes_for_signing(signed_attrs)
    else:
        data = content

    try:
        cryptoutils.verify_signature(
            public_key=public_key, signature=signer_info["signature"].asOctets(), data=data, hash_alg=hash_alg
        )
    except InvalidSignature as err:
        raise SignatureInvalid(
            "The signature of the `SignedData` is invalid.", error_details=signer_cert.subject.rfc4514_string()
        ) from err


@keyword(name="Verify SignedData")
def verify_signed_data(  # noqa D417 undocumented-param
    signed_data: rfc5652.SignedData, certs: Sequence[x509.Certificate]
) -> x509.Certificate:
    """Verify all signatures of a `SignedData` structure against a set of certificates.

    Each `SignerInfo` is matched to a certificate by its `sid`. The certificates are either the
    ones inside the structure or an explicitly trusted set.

    Arguments:
    ---------
        - `signed_data`: The decoded `SignedData` structure.
        - `certs`: The certificates to look up the signers in.

    Returns:
    -------
        - The certificate of the first signer.

    Raises:
    ------
        - `SignatureInvalid`: If no signer is present, a signer certificate is not found or a signature is invalid.
        - `UnsupportedAlgorithm`: If the algorithms are not supported.

    Examples:
    --------
    | ${signer_cert}= | Verify SignedData | ${signed_data} | ${certs} |

    """
    signer_infos = signed_data["signerInfos"]
    if len(signer_infos) == 0:
        raise SignatureInvalid("The `SignedData` structure contains no `SignerInfo`.")

    content = get_signed_content(signed_data)
    signer_certs = []
    for index, signer_info in enumerate(signer_infos):
        cert = certutils.find_cert_by_identifier(certs, signer_info["sid"])
        if cert is None:
            raise SignatureInvalid(
                f"No certificate found for the signer at index {index}.",
                error_details=certutils.get_cert_chain_names(certs),
            )
        verify_signer_info(signer_info, cert, content)
        signer_certs.append(cert)

    return signer_certs[0]


#########################
# EnvelopedData
##########################


@not_keyword
def prepare_ktri(recipient_cert: x509.Certificate, cek: bytes) -> rfc5652.RecipientInfo:
    """Prepare a `KeyTransRecipientInfo` with RSA PKCS#1 v1.5 key transport.

    :param recipient_cert: The certificate of the recipient.
    :param cek: The content encryption key to be encrypted.
    :return: A `RecipientInfo` object containing the `KeyTransRecipientInfo`.
    """
    key_enc_alg_id = rfc5652.KeyEncryptionAlgorithmIdentifier()
    key_enc_alg_id["algorithm"] = rfc9481.rsaEncryption
    key_enc_alg_id["parameters"] = encoder.encode(univ.Null(""))

    encrypted_key = cryptoutils.encrypt_key_transport(recipient_cert.public_key(), cek)  # type: ignore

    ktri = rfc5652.KeyTransRecipientInfo()
    # Version MUST be 0 for the `issuerAndSerialNumber`.
    ktri["version"] = 0
    ktri["rid"] = certutils.prepare_recipient_identifier(recipient_cert)
    ktri["keyEncryptionAlgorithm"] = key_enc_alg_id
    ktri["encryptedKey"] = rfc5652.EncryptedKey(encrypted_key)

    recip_info = rfc5652.RecipientInfo()
    recip_info["ktri"] = ktri
    return recip_info


@not_keyword
def prepare_encrypted_content_info(
    cek: bytes, data_to_protect: bytes, content_enc_alg: str = "aes256_cbc", iv: Optional[bytes] = None
) -> rfc5652.EncryptedContentInfo:
    """Create an `EncryptedContentInfo` with AES-CBC encryption of `id-data` content.

    :param cek: AES key for encrypting the data.
    :param data_to_protect: The data to encrypt.
    :param content_enc_alg: The name of the AES-CBC algorithm, e.g. "aes128_cbc".
    :param iv: Optional initialization vector. Defaults to random bytes.
    :return: An `EncryptedContentInfo` containing the encrypted content.
    """
    iv = iv or os.urandom(16)
    alg_id = rfc5652.ContentEncryptionAlgorithmIdentifier()
    alg_id["algorithm"] = AES_CBC_NAME_2_OID[content_enc_alg]
    alg_id["parameters"] = encoder.encode(univ.OctetString(iv))

    encrypted_content = cryptoutils.compute_aes_cbc(decrypt=False, iv=iv, key=cek, data=data_to_protect)

    enc_content_info = rfc5652.EncryptedContentInfo()
    enc_content_info["contentType"] = rfc5652.id_data
    enc_content_info["contentEncryptionAlgorithm"] = alg_id
    enc_content_info["encryptedContent"] = rfc5652.EncryptedContent(encrypted_content).subtype(
        implicitTag=tag.Tag(tag.tagClassContext, tag.tagFormatSimple, 0)
    )
    return enc_content_info


@keyword(name="Prepare EnvelopedData")
def prepare_enveloped_data(  # noqa D417 undocumented-param
    data: bytes,
    recipients: Sequence[x509.Certificate],
    content_enc_alg: str = "aes256_cbc",
) -> bytes:
    """Encrypt data for one or more recipients inside a DER-encoded `ContentInfo` with `EnvelopedData`.

    A fresh content encryption key is transported to every recipient with RSA PKCS#1 v1.5.

    Arguments:
    ---------
        - `data`: The data to encrypt, e.g. the DER-encoded CSR.
        - `recipients`: The certificates of the recipients. Must contain RSA keys.
        - `content_enc_alg`: The content encryption algorithm. Defaults to "aes256_cbc".

    Returns:
    -------
        - The DER-encoded `ContentInfo` structure.

    Raises:
    ------
        - `NoRecipients`: If no recipient certificate is provided.
        - `UnsupportedAlgorithm`: If the content encryption algorithm or a recipient key is not supported.

    Examples:
    --------
    | ${der_data}= | Prepare EnvelopedData | ${csr_der} | ${ca_certs} |
    | ${der_data}= | Prepare EnvelopedData | ${csr_der} | ${ca_certs} | content_enc_alg=aes128_cbc |

    """
    if not recipients:
        raise NoRecipients("At least one recipient certificate is required to encrypt the `pkiEnvelope`.")

    if content_enc_alg not in AES_CBC_KEY_SIZES:
        raise UnsupportedAlgorithm(f"Unsupported content encryption algorithm: {content_enc_alg}")

    cek = os.urandom(AES_CBC_KEY_SIZES[content_enc_alg])

    env_data = rfc5652.EnvelopedData()
    env_data["version"] = 0
    for cert in recipients:
        env_data["recipientInfos"].append(prepare_ktri(cert, cek))

    env_data["encryptedContentInfo"] = prepare_encrypted_content_info(
        cek=cek, data_to_protect=data, content_enc_alg=content_enc_alg
    )

    logging.debug("Encrypted the `pkiEnvelope` for: %s", certutils.get_cert_chain_names(recipients))
    return _wrap_in_content_info(rfc5652.id_envelopedData, env_data)


@not_keyword
def parse_enveloped_data(raw: bytes) -> rfc5652.EnvelopedData:
    """Parse a DER-encoded `ContentInfo` which carries an `EnvelopedData` structure.

    :param raw: The DER-encoded `ContentInfo`.
    :return: The decoded `EnvelopedData` structure.
    :raises ContainerMalformed: If the data cannot be decoded or does not carry `EnvelopedData`.
    """
    content = _decode_content_info(raw, rfc5652.id_envelopedData, "EnvelopedData")
    try:
        env_data, rest = decoder.decode(content, asn1Spec=rfc5652.EnvelopedData())
    except PyAsn1Error as err:
        raise ContainerMalformed(f"The content is not a DER-encoded `EnvelopedData`: {err}") from err

    if rest != b"":
        raise ContainerMalformed("EnvelopedData", remainder=rest)

    return env_data


def _find_ktri(
    recipient_infos: rfc5652.RecipientInfos, cert: x509.Certificate
) -> rfc5652.KeyTransRecipientInfo:
    """Return the `KeyTransRecipientInfo` addressed to the certificate."""
    for recip_info in recipient_infos:
        if recip_info.getName() != "ktri":
            logging.debug("Skipping the unsupported `RecipientInfo` choice: %s", recip_info.getName())
            continue

        if certutils.cert_matches_identifier(cert, recip_info["ktri"]["rid"]):
            return recip_info["ktri"]

    raise DecryptionFailed(
        f"The certificate is not a recipient of the `EnvelopedData`: {cert.subject.rfc4514_string()}"
    )


def _is_absent_or_null(parameters) -> bool:
    """Check if the `parameters` of an `AlgorithmIdentifier` are absent or `NULL`."""
    return not parameters.isValue or parameters.asOctets() == encoder.encode(univ.Null(""))


@not_keyword
def compute_key_transport_mechanism(private_key: DecryptKey, ktri: rfc5652.KeyTransRecipientInfo) -> bytes:
    """Decrypt the content encryption key of a `KeyTransRecipientInfo`.

    :param private_key: The recipient's RSA private key.
    :param ktri: The `KeyTransRecipientInfo` addressed to the recipient.
    :return: The content encryption key.
    :raises UnsupportedAlgorithm: If the key transport algorithm is not supported.
    :raises DecryptionFailed: If the key cannot be decrypted.
    """
    if not isinstance(private_key, rsa.RSAPrivateKey):
        raise UnsupportedAlgorithm(f"Only RSA keys can decrypt the `pkiEnvelope`. Got: {type(private_key).__name__}")

    key_enc_alg_id = ktri["keyEncryptionAlgorithm"]
    oaep_params = None
    if key_enc_alg_id["algorithm"] == rfc9481.rsaEncryption:
        if not _is_absent_or_null(key_enc_alg_id["parameters"]):
            raise UnsupportedAlgorithm("The `parameters` field must be absent or `NULL` for `rsaEncryption`.")

    elif key_enc_alg_id["algorithm"] == rfc4055.id_RSAES_OAEP:
        oaep_params = rfc4055.RSAES_OAEP_params()
        if key_enc_alg_id["parameters"].isValue:
            try:
                oaep_params, rest = decoder.decode(key_enc_alg_id["parameters"], rfc4055.RSAES_OAEP_params())
            except PyAsn1Error as err:
                raise UnsupportedAlgorithm("The `RSAES_OAEP_params` could not be decoded.") from err
            if rest != b"":
                raise UnsupportedAlgorithm("Decoding of `RSAES_OAEP_params` resulted in unexpected extra data.")

    else:
        logging.info("%s", key_enc_alg_id.prettyPrint())
        raise UnsupportedAlgorithm("Invalid OID. Only `rsaEncryption` and `RSAES_OAEP` are allowed for key transport.")

    try:
        return cryptoutils.decrypt_key_transport(private_key, ktri["encryptedKey"].asOctets(), oaep_params)
    except ValueError as err:
        raise DecryptionFailed("The content encryption key could not be decrypted.") from err


@not_keyword
def decrypt_encrypted_content_info(enc_content_info: rfc5652.EncryptedContentInfo, cek: bytes) -> bytes:
    """Decrypt the content of an `EncryptedContentInfo` with AES-CBC.

    :param enc_content_info: The `EncryptedContentInfo` structure.
    :param cek: The content encryption key.
    :return: The decrypted content.
    :raises UnsupportedAlgorithm: If the content encryption algorithm is not AES-CBC.
    :raises ContainerMalformed: If the encrypted content or the IV is absent.
    :raises DecryptionFailed: If the key does not fit the algorithm or the padding is invalid.
    """
    alg_id = enc_content_info["contentEncryptionAlgorithm"]
    alg_name = AES_CBC_OID_2_NAME.get(alg_id["algorithm"])
    if alg_name is None:
        raise UnsupportedAlgorithm(f"Unsupported content encryption algorithm: {alg_id['algorithm']}")

    if not alg_id["parameters"].isValue:
        raise ContainerMalformed("The IV of the content encryption algorithm is absent.")

    try:
        iv, _ = decoder.decode(alg_id["parameters"], univ.OctetString())
    except PyAsn1Error as err:
        raise ContainerMalformed("The IV of the content encryption algorithm could not be decoded.") from err

    if not enc_content_info["encryptedContent"].isValue:
        raise ContainerMalformed("The `encryptedContent` of the `EnvelopedData` is absent.")

    if len(cek) != AES_CBC_KEY_SIZES[alg_name]:
        raise DecryptionFailed(
            f"The decrypted content encryption key has {len(cek)} bytes, expected {AES_CBC_KEY_SIZES[alg_name]}."
        )

    try:
        return cryptoutils.compute_aes_cbc(
            key=cek, data=enc_content_info["encryptedContent"].asOctets(), iv=iv.asOctets(), decrypt=True
        )
    except ValueError as err:
        raise DecryptionFailed(f"The `encryptedContent` could not be decrypted: {err}") from err


@keyword(name="Decrypt EnvelopedData")
def decrypt_enveloped_data(  # noqa D417 undocumented-param
    raw: bytes, cert: x509.Certificate, key: DecryptKey
) -> bytes:
    """Decrypt a DER-encoded `ContentInfo` with an `EnvelopedData` structure.

    Arguments:
    ---------
        - `raw`: The DER-encoded `ContentInfo`.
        - `cert`: The certificate of the recipient, used to find its `RecipientInfo`.
        - `key`: The RSA private key of the recipient.

    Returns:
    -------
        - The decrypted content.

    Raises:
    ------
        - `ContainerMalformed`: If the structure cannot be decoded.
        - `DecryptionFailed`: If the certificate is not a recipient, or the key or the ciphertext is wrong.
        - `UnsupportedAlgorithm`: If an algorithm is not supported.

    Examples:
    --------
    | ${data}= | Decrypt EnvelopedData | ${der_data} | ${ca_cert} | ${ca_key} |

    """
    env_data = parse_enveloped_data(raw)
    ktri = _find_ktri(env_data["recipientInfos"], cert)
    cek = compute_key_transport_mechanism(key, ktri)
    return decrypt_encrypted_content_info(env_data["encryptedContentInfo"], cek)


#########################
# Degenerate certificates
##########################


@keyword(name="Prepare Degenerate Certificates")
def prepare_degenerate_certificates(certs: Sequence[x509.Certificate]) -> bytes:  # noqa D417 undocumented-param
    """Prepare a degenerate certificates-only `SignedData` structure.

    The structure carries no content and no signers and is used to transport certificates.
    The certificates keep the given order.

    Arguments:
    ---------
        - `certs`: The certificates to include, e.g. the issued certificate.

    Returns:
    -------
        - The DER-encoded `ContentInfo` structure.

    Examples:
    --------
    | ${der_data}= | Prepare Degenerate Certificates | ${certs} |

    """
    signed_data = SignedDataTMP()
    signed_data["version"] = 1
    signed_data["digestAlgorithms"] = rfc5652.DigestAlgorithmIdentifiers().clear()
    signed_data["encapContentInfo"] = _prepare_encapsulated_content_info(None)
    if certs:
        signed_data["certificates"] = prepare_certificate_sequence(certs)
    signed_data["signerInfos"] = rfc5652.SignerInfos().clear()
    return _wrap_in_content_info(rfc5652.id_signedData, signed_data)


@keyword(name="Get CA Certs")
def get_ca_certs(raw: bytes) -> List[x509.Certificate]:  # noqa D417 undocumented-param
    """Extract the certificates of a degenerate certificates-only `SignedData` structure.

    Arguments:
    ---------
        - `raw`: The DER-encoded `ContentInfo` structure.

    Returns:
    -------
        - The certificates, in the order of the encoding.

    Raises:
    ------
        - `ContainerMalformed`: If the structure cannot be decoded.

    Examples:
    --------
    | ${certs}= | Get CA Certs | ${der_data} |

    """
    signed_data = parse_signed_data(raw)
    return get_certificates_from_signed_data(signed_data)

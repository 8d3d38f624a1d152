"""Defines Object Identifiers (OIDs) and mappings for SCEP messages."""

# SPDX-FileCopyrightText: Copyright 2024 Siemens AG
#
# SPDX-License-Identifier: Apache-2.0

from typing import Dict

from cryptography.hazmat.primitives import hashes
from pyasn1.type import univ
from pyasn1_alt_modules import rfc5480, rfc8017, rfc9481

# SCEP signed attributes, draft-gutmann-scep / RFC 8894 Section 3.2.1.
# These are the bit-exact compatibility surface of the protocol.
id_scep = "2.16.840.1.113733.1.9"

id_scep_messageType = univ.ObjectIdentifier(f"{id_scep}.2")
id_scep_pkiStatus = univ.ObjectIdentifier(f"{id_scep}.3")
id_scep_failInfo = univ.ObjectIdentifier(f"{id_scep}.4")
id_scep_senderNonce = univ.ObjectIdentifier(f"{id_scep}.5")
id_scep_recipientNonce = univ.ObjectIdentifier(f"{id_scep}.6")
id_scep_transactionID = univ.ObjectIdentifier(f"{id_scep}.7")

SCEP_ATTR_NAME_2_OID: Dict[str, univ.ObjectIdentifier] = {
    "messageType": id_scep_messageType,
    "pkiStatus": id_scep_pkiStatus,
    "failInfo": id_scep_failInfo,
    "senderNonce": id_scep_senderNonce,
    "recipientNonce": id_scep_recipientNonce,
    "transactionID": id_scep_transactionID,
}

# Encoded as PrintableString.
SCEP_TEXT_ATTRIBUTES = frozenset({"messageType", "pkiStatus", "failInfo", "transactionID"})
# Encoded as OCTET STRING.
SCEP_NONCE_ATTRIBUTES = frozenset({"senderNonce", "recipientNonce"})

SCEP_NONCE_SIZE = 16

# PKCS#9 challengePassword, RFC 2985 Section 5.4.1.
id_pkcs9_at_challengePassword = univ.ObjectIdentifier("1.2.840.113549.1.9.7")


SHA_OID_2_NAME = {
    rfc5480.id_sha1: "sha1",
    rfc5480.id_sha224: "sha224",
    rfc5480.id_sha256: "sha256",
    rfc5480.id_sha384: "sha384",
    rfc5480.id_sha512: "sha512",
}
SHA_NAME_2_OID = {v: k for k, v in SHA_OID_2_NAME.items()}

RSA_SHA_OID_2_NAME = {
    rfc8017.sha1WithRSAEncryption: "rsa-sha1",
    rfc9481.sha224WithRSAEncryption: "rsa-sha224",
    rfc9481.sha256WithRSAEncryption: "rsa-sha256",
    rfc9481.sha384WithRSAEncryption: "rsa-sha384",
    rfc9481.sha512WithRSAEncryption: "rsa-sha512",
}
ECDSA_SHA_OID_2_NAME = {
    rfc9481.ecdsa_with_SHA224: "ecdsa-sha224",
    rfc9481.ecdsa_with_SHA256: "ecdsa-sha256",
    rfc9481.ecdsa_with_SHA384: "ecdsa-sha384",
    rfc9481.ecdsa_with_SHA512: "ecdsa-sha512",
}

# Signature algorithm OIDs, which can be used inside a `SignerInfo`.
# Some SCEP implementations write the bare `rsaEncryption` OID and take
# the hash algorithm from the `digestAlgorithm` field.
SIG_OID_2_NAME: Dict[univ.ObjectIdentifier, str] = {rfc9481.rsaEncryption: "rsa"}
SIG_OID_2_NAME.update(RSA_SHA_OID_2_NAME)
SIG_OID_2_NAME.update(ECDSA_SHA_OID_2_NAME)
SIG_NAME_2_OID = {v: k for k, v in SIG_OID_2_NAME.items()}

AES_CBC_OID_2_NAME = {
    rfc9481.id_aes128_CBC: "aes128_cbc",
    rfc9481.id_aes192_CBC: "aes192_cbc",
    rfc9481.id_aes256_CBC: "aes256_cbc",
}
AES_CBC_NAME_2_OID = {v: k for k, v in AES_CBC_OID_2_NAME.items()}
AES_CBC_KEY_SIZES = {"aes128_cbc": 16, "aes192_cbc": 24, "aes256_cbc": 32}

ALLOWED_HASH_TYPES = {
    "sha1": hashes.SHA1(),
    "sha224": hashes.SHA224(),
    "sha256": hashes.SHA256(),
    "sha384": hashes.SHA384(),
    "sha512": hashes.SHA512(),
}

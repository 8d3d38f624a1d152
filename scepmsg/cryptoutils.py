# SPDX-FileCopyrightText: Copyright 2024 Siemens AG
#
# SPDX-License-Identifier: Apache-2.0

"""Functions for the cryptographic operations behind a SCEP `pkiMessage`.

Provided primitives are: signing and verifying the signed attributes, computing hashes,
the RSA key transport of the content encryption key and the AES-CBC content encryption of
the `pkiEnvelope`. The module leverages the `cryptography` library.
"""

import logging
from typing import Optional, Union

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives import padding as aes_padding
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from pyasn1.codec.der import decoder
from pyasn1_alt_modules import rfc4055, rfc5280
from robot.api.deco import keyword, not_keyword

from scepmsg.exceptions import UnsupportedAlgorithm
from scepmsg.oidutils import ALLOWED_HASH_TYPES, SHA_OID_2_NAME
from scepmsg.typingutils import SignKey, VerifyKey


@not_keyword
def hash_name_to_instance(alg: str) -> hashes.HashAlgorithm:
    """Resolve a digest name, or the digest part of a signature name such as 'rsa-sha256'.

    :param alg: The digest or signature algorithm name.
    :return: The matching `cryptography` hash instance.
    :raises UnsupportedAlgorithm: If no SCEP digest matches the name.
    """
    digest_name = alg.rpartition("-")[2]
    if digest_name not in ALLOWED_HASH_TYPES:
        raise UnsupportedAlgorithm(f"Unsupported hash algorithm: {alg}")
    return ALLOWED_HASH_TYPES[digest_name]


@not_keyword
def compute_hash(alg_name: str, data: bytes) -> bytes:
    """Return the `messageDigest` value of `data` for the named digest."""
    digest = hashes.Hash(hash_name_to_instance(alg_name))
    digest.update(data)
    return digest.finalize()


@keyword(name="Sign Data")
def sign_data(  # noqa D417 undocumented-param
    data: bytes,
    key: SignKey,
    hash_alg: Union[str, hashes.HashAlgorithm] = "sha256",
) -> bytes:
    """Compute the `SignerInfo` signature over the DER-encoded signed attributes.

    RSA keys sign with PKCS#1 v1.5, EC keys with ECDSA.

    Arguments:
    ---------
        - `data`: The signed attributes, encoded as a `SET OF`.
        - `key`: The private key of the SCEP signer.
        - `hash_alg`: The digest name or instance. Defaults to "sha256".

    Returns:
    -------
        - The raw signature value.

    Raises:
    ------
        - `UnsupportedAlgorithm`: If the key is neither RSA nor EC.

    Examples:
    --------
    | ${sig}= | Sign Data | ${signed_attrs} | ${signer_key} | sha256 |

    """
    if not isinstance(hash_alg, hashes.HashAlgorithm):
        hash_alg = hash_name_to_instance(hash_alg)

    if isinstance(key, rsa.RSAPrivateKey):
        return key.sign(data, padding.PKCS1v15(), hash_alg)
    if isinstance(key, ec.EllipticCurvePrivateKey):
        return key.sign(data, ec.ECDSA(hash_alg))

    raise UnsupportedAlgorithm(f"Unsupported private key type to sign a SCEP message: {type(key).__name__}.")


@keyword(name="Verify Signature")
def verify_signature(  # noqa D417 undocumented-param
    public_key: VerifyKey,
    signature: bytes,
    data: bytes,
    hash_alg: Union[str, hashes.HashAlgorithm] = "sha256",
) -> None:
    """Check a `SignerInfo` signature against the signer certificate's public key.

    Arguments:
    ---------
        - `public_key`: The public key of the SCEP signer.
        - `signature`: The `signature` field of the `SignerInfo`.
        - `data`: The signed attributes, encoded as a `SET OF`.
        - `hash_alg`: The digest name or instance from the `digestAlgorithm`.

    Raises:
    ------
        - `InvalidSignature`: If the signature does not match.
        - `UnsupportedAlgorithm`: If the key is neither RSA nor EC.

    Examples:
    --------
    | Verify Signature | ${signer_pub_key} | ${signature} | ${signed_attrs} | sha256 |

    """
    if not isinstance(hash_alg, hashes.HashAlgorithm):
        hash_alg = hash_name_to_instance(hash_alg)

    if isinstance(public_key, rsa.RSAPublicKey):
        public_key.verify(signature, data, padding.PKCS1v15(), hash_alg)
    elif isinstance(public_key, ec.EllipticCurvePublicKey):
        public_key.verify(signature, data, ec.ECDSA(hash_alg))
    else:
        raise UnsupportedAlgorithm(f"Unsupported key type to verify a signature: {type(public_key).__name__}.")


@not_keyword
def compute_aes_cbc(key: bytes, data: bytes, iv: bytes, decrypt: bool = True) -> bytes:
    """Encrypt or decrypt the `pkiEnvelope` content with AES-CBC and PKCS#7 padding.

    :param key: The content encryption key (16, 24 or 32 bytes).
    :param data: The inner content, or the `encryptedContent` when decrypting.
    :param iv: The 16-byte IV carried in the content encryption algorithm parameters.
    :param decrypt: Whether to decrypt. Defaults to `True`.
    :return: The ciphertext, or the unpadded plaintext.
    :raises ValueError: If the IV or key length is wrong, or the padding is invalid.
    """
    if len(iv) != 16:
        raise ValueError("IV must be 16 bytes long for AES-CBC.")

    cipher = Cipher(algorithms.AES(key), modes.CBC(iv))
    pkcs7 = aes_padding.PKCS7(algorithms.AES.block_size)  # type: ignore

    if not decrypt:
        padder = pkcs7.padder()
        encryptor = cipher.encryptor()
        return encryptor.update(padder.update(data) + padder.finalize()) + encryptor.finalize()

    decryptor = cipher.decryptor()
    unpadder = pkcs7.unpadder()
    padded = decryptor.update(data) + decryptor.finalize()
    return unpadder.update(padded) + unpadder.finalize()


def _get_hash_from_alg_id(alg_id: rfc5280.AlgorithmIdentifier) -> hashes.HashAlgorithm:
    """Return the hash instance of a digest `AlgorithmIdentifier`."""
    name = SHA_OID_2_NAME.get(alg_id["algorithm"])
    if name is None:
        raise UnsupportedAlgorithm(f"Unsupported hash algorithm OID: {alg_id['algorithm']}")
    return hash_name_to_instance(name)


@not_keyword
def get_rsa_oaep_padding(param: rfc4055.RSAES_OAEP_params) -> padding.OAEP:
    """Generate the RSA OAEP padding configuration based on the `RSAES_OAEP_params`.

    Absent fields fall back to the defaults of RFC 4055 (SHA-1 and MGF1 with SHA-1).

    :param param: The `RSAES_OAEP_params` structure that defines the padding scheme.
    :return: A `cryptography` library `OAEP` padding object configured with the specified parameters.
    :raises UnsupportedAlgorithm: If the pSourceFunc parameter is present or a hash is unknown.
    """
    hash_fun: hashes.HashAlgorithm = hashes.SHA1()
    mgf_hash: hashes.HashAlgorithm = hashes.SHA1()

    if param["hashFunc"].isValue:
        hash_fun = _get_hash_from_alg_id(param["hashFunc"])

    if param["maskGenFunc"].isValue and param["maskGenFunc"]["parameters"].isValue:
        mgf_alg_id, rest = decoder.decode(param["maskGenFunc"]["parameters"], rfc5280.AlgorithmIdentifier())
        if rest != b"":
            raise UnsupportedAlgorithm("Error decoding MGF parameters")
        mgf_hash = _get_hash_from_alg_id(mgf_alg_id)

    if param["pSourceFunc"].isValue:
        raise UnsupportedAlgorithm("pSourceFunc is not supported")

    return padding.OAEP(mgf=padding.MGF1(algorithm=mgf_hash), algorithm=hash_fun, label=None)


@not_keyword
def encrypt_key_transport(public_key: rsa.RSAPublicKey, content_enc_key: bytes) -> bytes:
    """Encrypt the content encryption key for a recipient with RSA PKCS#1 v1.5.

    :param public_key: The RSA public key of the recipient.
    :param content_enc_key: The content encryption key to be encrypted.
    :return: The encrypted content encryption key.
    :raises UnsupportedAlgorithm: If the recipient key is not an RSA key.
    """
    if not isinstance(public_key, rsa.RSAPublicKey):
        raise UnsupportedAlgorithm(
            f"Only RSA keys can be used for the SCEP key transport. Got: {type(public_key).__name__}"
        )
    return public_key.encrypt(plaintext=content_enc_key, padding=padding.PKCS1v15())


@not_keyword
def decrypt_key_transport(
    private_key: rsa.RSAPrivateKey,
    encrypted_key: bytes,
    oaep_params: Optional[rfc4055.RSAES_OAEP_params] = None,
) -> bytes:
    """Decrypt the content encryption key of a `KeyTransRecipientInfo`.

    :param private_key: The recipient's RSA private key used for decryption.
    :param encrypted_key: The encrypted key to be decrypted.
    :param oaep_params: The RSAES-OAEP parameters, if OAEP was used instead of PKCS#1 v1.5.
    :return: The decrypted key as bytes.
    :raises ValueError: If the decryption fails.
    """
    padding_val = padding.PKCS1v15() if oaep_params is None else get_rsa_oaep_padding(oaep_params)
    content_enc_key = private_key.decrypt(ciphertext=encrypted_key, padding=padding_val)
    logging.debug("Recovered a content encryption key of %d bytes.", len(content_enc_key))
    return content_enc_key

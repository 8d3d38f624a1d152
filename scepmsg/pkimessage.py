# SPDX-FileCopyrightText: Copyright 2024 Siemens AG
#
# SPDX-License-Identifier: Apache-2.0

"""Data model of a SCEP `pkiMessage`, the parser and the decryption of the `pkiEnvelope`.

A `pkiMessage` is parsed in two steps. `parse_pki_message` verifies the signature and
validates the signed attributes required for the message type. The payload stays encrypted
until `PKIMessage.decrypt_pki_envelope` is called with the key of an intended recipient.
"""

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

from cryptography import x509
from pyasn1_alt_modules import rfc5652
from robot.api.deco import keyword, not_keyword

from scepmsg import certextractutils, certutils, cmsutils
from scepmsg.attributeutils import decode_scep_attribute
from scepmsg.exceptions import (
    AttributeMissing,
    ContainerMalformed,
    OperationNotImplemented,
    PayloadMalformed,
)
from scepmsg.message_rules import COMMON_REQUIRED_ATTRIBUTES, get_attribute_rule
from scepmsg.scep_config import DEFAULT_LOGGER_NAME, SCEPConfig, get_config
from scepmsg.scep_enums import FailInfo, MessageType, PKIStatus
from scepmsg.typingutils import DecryptKey, SignKey


@dataclass
class CertRepMessage:
    """The payload of a `CertRep` message.

    Attributes:
        pki_status: The status of the transaction.
        recipient_nonce: The `senderNonce` of the request this message answers.
        fail_info: The failure reason, only set for the status FAILURE.
        certificate: The issued certificate, set after the `pkiEnvelope` of a SUCCESS was decrypted.
        degenerate: The DER-encoded degenerate certificate collection, set on responses built locally.

    """

    pki_status: PKIStatus
    recipient_nonce: bytes
    fail_info: Optional[FailInfo] = None
    certificate: Optional[x509.Certificate] = None
    degenerate: Optional[bytes] = field(default=None, repr=False)

    def __post_init__(self):
        if self.pki_status == PKIStatus.FAILURE and self.fail_info is None:
            raise AttributeMissing("failInfo", "A `CertRep` with the status FAILURE must have a `failInfo`.")
        if self.pki_status != PKIStatus.FAILURE and self.fail_info is not None:
            raise ValueError(f"A `failInfo` is only allowed for the status FAILURE, got: {self.pki_status}")


@dataclass
class CSRReqMessage:
    """The payload of a PKCSReq, RenewalReq or UpdateReq message.

    Attributes:
        raw_decrypted: The DER-encoded CSR recovered from the `pkiEnvelope`.
        csr: The parsed CSR.
        challenge_password: The `challengePassword` of the CSR, empty if absent.

    """

    raw_decrypted: bytes
    csr: x509.CertificateSigningRequest
    challenge_password: str = ""


Payload = Union[CertRepMessage, CSRReqMessage]


def _check_payload(message_type: MessageType, payload: Optional[Payload]) -> None:
    """Ensure that the payload kind belongs to the message type."""
    if payload is None:
        return
    if isinstance(payload, CertRepMessage) and message_type == MessageType.CertRep:
        return
    if isinstance(payload, CSRReqMessage) and message_type.is_request:
        return
    raise ValueError(f"A `{type(payload).__name__}` payload is not allowed for the message type {message_type}.")


@dataclass
class PKIMessage:
    """A SCEP `pkiMessage`, either parsed from bytes or built for transmission.

    Attributes:
        transaction_id: The `transactionID`, stable for one enrolment.
        message_type: The `messageType`, which selects the payload kind.
        sender_nonce: The `senderNonce`, always present on requests.
        payload: A `CertRepMessage` for `CertRep`, a `CSRReqMessage` for the request types or `None`.
        raw: The DER-encoded `SignedData`, as sent or received.
        recipients: The CA/RA certificates the `pkiEnvelope` is encrypted for (outbound messages).
        signer_cert: The certificate of the signer. For parsed messages the verified signer.
        signer_key: The private key used to sign an outbound message.

    """

    transaction_id: str = ""
    message_type: MessageType = MessageType.PKCSReq
    sender_nonce: Optional[bytes] = None
    payload: Optional[Payload] = None
    raw: bytes = field(default=b"", repr=False)
    recipients: List[x509.Certificate] = field(default_factory=list, repr=False)
    signer_cert: Optional[x509.Certificate] = field(default=None, repr=False)
    signer_key: Optional[SignKey] = field(default=None, repr=False)

    _signed_data: Optional[rfc5652.SignedData] = field(default=None, init=False, repr=False, compare=False)
    _pki_envelope: bytes = field(default=b"", init=False, repr=False, compare=False)
    _embedded_certs: List[x509.Certificate] = field(default_factory=list, init=False, repr=False, compare=False)
    _logger: logging.Logger = field(
        default_factory=lambda: logging.getLogger(DEFAULT_LOGGER_NAME), init=False, repr=False, compare=False
    )

    def __post_init__(self):
        self.message_type = MessageType.from_attribute(self.message_type)
        _check_payload(self.message_type, self.payload)

    @property
    def cert_rep(self) -> CertRepMessage:
        """Return the `CertRep` payload.

        :raises ValueError: If the message does not carry a `CertRepMessage`.
        """
        if not isinstance(self.payload, CertRepMessage):
            raise ValueError(f"The message of type {self.message_type} has no `CertRep` payload.")
        return self.payload

    @property
    def csr_req(self) -> CSRReqMessage:
        """Return the request payload.

        :raises ValueError: If the message does not carry a (decrypted) `CSRReqMessage`.
        """
        if not isinstance(self.payload, CSRReqMessage):
            raise ValueError(f"The message of type {self.message_type} has no decrypted request payload.")
        return self.payload

    @property
    def signed_data(self) -> rfc5652.SignedData:
        """Return the decoded `SignedData` structure of the raw message."""
        if self._signed_data is None:
            self._signed_data = cmsutils.parse_signed_data(self.raw)
        return self._signed_data

    @property
    def pki_envelope(self) -> bytes:
        """Return the DER-encoded `pkiEnvelope` (the signed content), empty if absent."""
        if not self._pki_envelope and self.raw:
            self._pki_envelope = cmsutils.get_signed_content(self.signed_data)
        return self._pki_envelope

    @property
    def embedded_certs(self) -> List[x509.Certificate]:
        """Return the certificates carried inside the `SignedData` structure."""
        if not self._embedded_certs and self.raw:
            self._embedded_certs = cmsutils.get_certificates_from_signed_data(self.signed_data)
        return list(self._embedded_certs)

    @property
    def is_decrypted(self) -> bool:
        """Whether the `pkiEnvelope` content was recovered."""
        if isinstance(self.payload, CSRReqMessage):
            return True
        return isinstance(self.payload, CertRepMessage) and self.payload.certificate is not None

    def decrypt_pki_envelope(self, cert: x509.Certificate, key: DecryptKey) -> None:
        """Decrypt the `pkiEnvelope` and populate the payload.

        Must be called at most once per message. For a `CertRep` the first certificate of the
        degenerate collection is set as the issued certificate. For a request the CSR and the
        `challengePassword` are extracted.

        :param cert: The certificate of the recipient.
        :param key: The RSA private key of the recipient.
        :raises OperationNotImplemented: For the unsupported message types.
        :raises ContainerMalformed: If the message has no `pkiEnvelope` or it cannot be decoded.
        :raises DecryptionFailed: If the recipient or the key is wrong, or the ciphertext is corrupt.
        :raises PayloadMalformed: If the decrypted content is not the expected structure.
        """
        if not self.message_type.is_supported:
            raise OperationNotImplemented(str(self.message_type))

        if not self.pki_envelope:
            raise ContainerMalformed(f"The {self.message_type} message has no `pkiEnvelope` to decrypt.")

        decrypted = cmsutils.decrypt_enveloped_data(self.pki_envelope, cert, key)

        if self.message_type == MessageType.CertRep:
            try:
                certs = cmsutils.get_ca_certs(decrypted)
            except ContainerMalformed as err:
                raise PayloadMalformed(f"The decrypted `pkiEnvelope` is not a degenerate collection: {err}") from err

            if not certs:
                raise PayloadMalformed("The decrypted degenerate certificate collection is empty.")

            self.payload = dataclasses.replace(self.cert_rep, certificate=certs[0])
            self._logger.debug(
                "decrypt pkiEnvelope: transaction id %s, ca certs %d", self.transaction_id, len(certs)
            )
            return

        try:
            csr = certutils.parse_csr(decrypted)
            challenge_password = certextractutils.extract_challenge_password(decrypted)
        except ValueError as err:
            raise PayloadMalformed(f"Could not parse the CSR from the `pkiEnvelope`: {err}") from err

        self.payload = CSRReqMessage(
            raw_decrypted=decrypted,
            csr=csr,
            challenge_password=challenge_password or "",
        )
        self._logger.debug(
            "decrypt pkiEnvelope: transaction id %s, has challenge %s",
            self.transaction_id,
            challenge_password is not None,
        )


def _decode_required(signed_attrs: rfc5652.SignedAttributes, name: str) -> Union[str, bytes]:
    """Decode a mandatory attribute, which must also be non-empty."""
    value = decode_scep_attribute(signed_attrs, name)
    if len(value) == 0:
        raise AttributeMissing(name, f"SCEP pkiMessage must include a non-empty `{name}` attribute.")
    return value


@not_keyword
def validate_scep_attributes(
    signed_attrs: rfc5652.SignedAttributes, message_type: MessageType
) -> Dict[str, Union[str, bytes]]:
    """Decode the attributes a message type requires, following its `AttributeRule`.

    :param signed_attrs: The signed attributes of the `pkiMessage`.
    :param message_type: The already decoded message type.
    :return: The decoded attribute values, keyed by attribute name.
    :raises OperationNotImplemented: If the message type is recognized but not supported.
    :raises AttributeMissing: If a required attribute is absent or empty.
    :raises UnknownStatus: If the `pkiStatus` is not a defined value.
    """
    rule = get_attribute_rule(message_type)
    if not rule.supported:
        raise OperationNotImplemented(str(message_type))

    values = {}
    for name in rule.required:
        values[name] = _decode_required(signed_attrs, name)

    pki_status = None
    if "pkiStatus" in values:
        pki_status = PKIStatus.from_attribute(values["pkiStatus"])

    for name in rule.required_for_status(pki_status):
        values[name] = _decode_required(signed_attrs, name)

    for name in rule.optional:
        try:
            values[name] = decode_scep_attribute(signed_attrs, name)
        except AttributeMissing:
            logging.debug("The optional `%s` attribute is absent.", name)

    return values


@keyword(name="Parse PKIMessage")
def parse_pki_message(raw: bytes, config: Optional[SCEPConfig] = None) -> PKIMessage:  # noqa D417 undocumented-param
    """Parse and verify a DER-encoded SCEP `pkiMessage`.

    The signature is verified against the certificates inside the message, or against
    `config.trusted_certs` if set. The `pkiEnvelope` is not decrypted.

    Arguments:
    ---------
        - `raw`: The DER-encoded `ContentInfo` with the `SignedData` structure.
        - `config`: The `SCEPConfig` to use. Defaults to `None` (the default config).

    Returns:
    -------
        - The parsed `PKIMessage`; a `CertRep` carries its status payload, a request its `senderNonce`.

    Raises:
    ------
        - `ContainerMalformed`: If the data cannot be decoded.
        - `SignatureInvalid`: If the signature cannot be verified with the chosen certificates.
        - `AttributeMissing`: If a mandatory attribute for the message type is absent.
        - `AttributeMalformed`: If an attribute cannot be decoded.
        - `UnknownMessageType`: If the `messageType` is not defined.
        - `UnknownStatus`: If the `pkiStatus` is not defined.
        - `OperationNotImplemented`: For the message types CertPoll, GetCert and GetCRL.

    Examples:
    --------
    | ${msg}= | Parse PKIMessage | ${der_data} |
    | ${msg}= | Parse PKIMessage | ${der_data} | config=${config} |

    """
    config = get_config(config)
    logger = config.logger

    signed_data = cmsutils.parse_signed_data(raw)
    embedded_certs = cmsutils.get_certificates_from_signed_data(signed_data)

    if config.trusted_certs:
        # RFC 2315 Section 9.1: the certificates may be obtained by other means, e.g. `GetCACert`.
        logger.debug("Verifying with the trusted certificates: %s", certutils.get_cert_chain_names(config.trusted_certs))
        verify_certs = config.trusted_certs
    else:
        verify_certs = embedded_certs

    signer_cert = cmsutils.verify_signed_data(signed_data, verify_certs)

    signed_attrs = cmsutils.get_signed_attributes(signed_data)
    common = {name: _decode_required(signed_attrs, name) for name in COMMON_REQUIRED_ATTRIBUTES}
    transaction_id = common["transactionID"]
    message_type = MessageType.from_attribute(common["messageType"])  # type: ignore

    logger.debug("parsed scep pkiMessage: message type %s, transaction id %s", message_type, transaction_id)

    values = validate_scep_attributes(signed_attrs, message_type)

    payload = None
    if message_type == MessageType.CertRep:
        fail_info = FailInfo.from_attribute(values["failInfo"]) if "failInfo" in values else None
        payload = CertRepMessage(
            pki_status=PKIStatus.from_attribute(values["pkiStatus"]),
            recipient_nonce=values["recipientNonce"],  # type: ignore
            fail_info=fail_info,
        )

    msg = PKIMessage(
        transaction_id=transaction_id,  # type: ignore
        message_type=message_type,
        sender_nonce=values.get("senderNonce"),  # type: ignore
        payload=payload,
        raw=raw,
        signer_cert=signer_cert,
    )
    msg._signed_data = signed_data
    msg._pki_envelope = cmsutils.get_signed_content(signed_data)
    msg._embedded_certs = embedded_certs
    msg._logger = logger
    return msg

# SPDX-FileCopyrightText: Copyright 2024 Siemens AG
#
# SPDX-License-Identifier: Apache-2.0

"""Build the enrolment requests (PKCSReq, RenewalReq and UpdateReq) of a SCEP client."""

from typing import Optional, Sequence, Union

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from robot.api.deco import keyword

from scepmsg import certextractutils, certutils, cmsutils, nonceutils
from scepmsg.attributeutils import prepare_scep_attributes
from scepmsg.exceptions import NoRecipients, UnknownMessageType
from scepmsg.pkimessage import CSRReqMessage, PKIMessage
from scepmsg.scep_config import SCEPConfig, get_config
from scepmsg.scep_enums import MessageType
from scepmsg.typingutils import SignKey


@keyword(name="Prepare Request Template")
def prepare_request_template(  # noqa D417 undocumented-param
    recipients: Sequence[x509.Certificate],
    signer_cert: x509.Certificate,
    signer_key: SignKey,
    message_type: Union[MessageType, str] = MessageType.PKCSReq,
) -> PKIMessage:
    """Prepare the template message from which a request is built.

    The recipients are the already known CA/RA certificates, e.g. the result of a `GetCACert` request.

    Arguments:
    ---------
        - `recipients`: The CA/RA certificates to encrypt the request for.
        - `signer_cert`: The certificate to sign with, e.g. a self-signed certificate for the CSR key.
        - `signer_key`: The private key belonging to the signer certificate.
        - `message_type`: The request type or its numeric code. Defaults to `PKCSReq`.

    Returns:
    -------
        - The template `PKIMessage`.

    Raises:
    ------
        - `UnknownMessageType`: If the message type is not a request type.

    Examples:
    --------
    | ${template}= | Prepare Request Template | ${ca_certs} | ${cert} | ${key} |
    | ${template}= | Prepare Request Template | ${ca_certs} | ${cert} | ${key} | message_type=17 |

    """
    message_type = MessageType.from_attribute(message_type)
    if not message_type.is_request:
        raise UnknownMessageType(f"The template must have a request message type, got: {message_type}")

    return PKIMessage(
        message_type=message_type,
        recipients=list(recipients),
        signer_cert=signer_cert,
        signer_key=signer_key,
    )


@keyword(name="Build CSR Request")
def build_csr_request(  # noqa D417 undocumented-param
    csr: Union[x509.CertificateSigningRequest, bytes],
    template: PKIMessage,
    config: Optional[SCEPConfig] = None,
) -> PKIMessage:
    """Build a signed SCEP request, which carries the encrypted CSR.

    The recipients are selected from the template's recipients with `config.certs_selector`.
    A fresh `senderNonce` is generated and the `transactionID` is derived from the public key of the CSR.

    Arguments:
    ---------
        - `csr`: The CSR, as `cryptography` object or DER-encoded.
        - `template`: The template with the message type, the recipients and the signer.
        - `config`: The `SCEPConfig` to use. Defaults to `None` (the default config).

    Returns:
    -------
        - The request `PKIMessage`, carrying the selected recipients.

    Raises:
    ------
        - `NoRecipients`: If the template has no recipients, or the selector rejected all of them.
        - `UnknownMessageType`: If the template message type is not a request type.
        - `ValueError`: If the template has no signer.

    Examples:
    --------
    | ${request}= | Build CSR Request | ${csr} | ${template} |
    | ${request}= | Build CSR Request | ${csr} | ${template} | config=${config} |

    """
    config = get_config(config)

    if not template.message_type.is_request:
        raise UnknownMessageType(f"Cannot build a request of type: {template.message_type}")

    if template.signer_cert is None or template.signer_key is None:
        raise ValueError("The template must carry the signer certificate and key.")

    if isinstance(csr, bytes):
        csr = certutils.parse_csr(csr)

    recipients = config.certs_selector(list(template.recipients))  # type: ignore
    if not recipients:
        if template.recipients:
            raise NoRecipients(
                "no selected CA/RA recipients",
                error_details=certutils.get_cert_chain_names(template.recipients),
            )
        raise NoRecipients("no CA/RA recipients")

    der_csr = csr.public_bytes(serialization.Encoding.DER)
    pki_envelope = cmsutils.prepare_enveloped_data(der_csr, recipients, content_enc_alg=config.content_enc_alg)

    transaction_id = nonceutils.new_transaction_id(csr.public_key())  # type: ignore
    sender_nonce = nonceutils.new_nonce()

    config.logger.debug(
        "creating SCEP CSR request: transaction id %s, signer %s",
        transaction_id,
        template.signer_cert.subject.rfc4514_string(),
    )

    attributes = prepare_scep_attributes(
        {
            "transactionID": transaction_id,
            "messageType": template.message_type,
            "senderNonce": sender_nonce,
        }
    )

    raw = cmsutils.prepare_signed_data(
        content=pki_envelope,
        signer_cert=template.signer_cert,
        signer_key=template.signer_key,
        extra_attributes=attributes,
        hash_alg=config.hash_alg,
    )

    challenge_password = certextractutils.extract_challenge_password(der_csr)

    return PKIMessage(
        transaction_id=transaction_id,
        message_type=template.message_type,
        sender_nonce=sender_nonce,
        payload=CSRReqMessage(raw_decrypted=der_csr, csr=csr, challenge_password=challenge_password or ""),
        raw=raw,
        recipients=recipients,
        signer_cert=template.signer_cert,
        signer_key=template.signer_key,
    )

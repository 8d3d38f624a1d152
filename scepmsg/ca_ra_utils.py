# SPDX-FileCopyrightText: Copyright 2024 Siemens AG
#
# SPDX-License-Identifier: Apache-2.0

"""Build the `CertRep` responses of a CA or RA to a SCEP request."""

import logging
from typing import Optional, Union

from cryptography import x509
from robot.api.deco import keyword, not_keyword

from scepmsg import certutils, cmsutils
from scepmsg.attributeutils import prepare_scep_attributes
from scepmsg.exceptions import NoRecipients, SCEPError, UnknownMessageType
from scepmsg.pkimessage import CertRepMessage, PKIMessage
from scepmsg.scep_config import SCEPConfig, get_config
from scepmsg.scep_enums import FailInfo, MessageType, PKIStatus
from scepmsg.typingutils import DecryptKey, SignKey


def _ensure_request(request: PKIMessage) -> None:
    """Ensure that the message is a request, which can be answered with a `CertRep`."""
    if not request.message_type.is_request:
        raise UnknownMessageType(f"Only a request can be answered with a `CertRep`, got: {request.message_type}")


@not_keyword
def get_requester_cert(request: PKIMessage) -> x509.Certificate:
    """Return the certificate which signed the request, to encrypt the response for.

    The certificate is looked up in the certificates carried inside the request. If the
    request carries none, e.g. because it was verified with trusted certificates, the
    verified signer certificate of the parsed request is used.

    :param request: The parsed request.
    :return: The certificate matching the `sid` of the first `SignerInfo`.
    :raises NoRecipients: If neither the request nor the parsed message provides the signer certificate.
    """
    signer_infos = request.signed_data["signerInfos"]
    if len(signer_infos) == 0:
        raise NoRecipients("The request has no signer to encrypt the response for.")

    cert = certutils.find_cert_by_identifier(request.embedded_certs, signer_infos[0]["sid"])
    if cert is not None:
        return cert

    if request.signer_cert is not None:
        logging.debug(
            "The request does not carry its signer certificate, using the verified signer: %s",
            request.signer_cert.subject.rfc4514_string(),
        )
        return request.signer_cert

    raise NoRecipients(
        "The request does not carry the certificate of its signer.",
        error_details=certutils.get_cert_chain_names(request.embedded_certs),
    )


@keyword(name="Build Failure Response")
def build_failure_response(  # noqa D417 undocumented-param
    request: PKIMessage,
    ca_cert: x509.Certificate,
    ca_key: SignKey,
    fail_info: Union[FailInfo, str] = FailInfo.BadRequest,
    config: Optional[SCEPConfig] = None,
) -> PKIMessage:
    """Build a `CertRep` with the status FAILURE for a request.

    The response carries no `pkiEnvelope`. The `recipientNonce` is the `senderNonce` of the request.

    Arguments:
    ---------
        - `request`: The parsed request to answer.
        - `ca_cert`: The certificate of the CA or RA which signs the response.
        - `ca_key`: The private key of the CA or RA.
        - `fail_info`: The `FailInfo`, its numeric code or its name (e.g. "badRequest"). Defaults to `BadRequest`.
        - `config`: The `SCEPConfig` to use. Defaults to `None` (the default config).

    Returns:
    -------
        - The `CertRep` message, ready to be sent.

    Raises:
    ------
        - `UnknownMessageType`: If the message is not a request.

    Examples:
    --------
    | ${response}= | Build Failure Response | ${request} | ${ca_cert} | ${ca_key} | badRequest |
    | ${response}= | Build Failure Response | ${request} | ${ca_cert} | ${ca_key} | fail_info=1 |

    """
    _ensure_request(request)
    config = get_config(config)

    if isinstance(fail_info, str) and not fail_info.isdigit():
        fail_info = FailInfo.from_name(fail_info)
    fail_info = FailInfo.from_attribute(fail_info)

    attributes = prepare_scep_attributes(
        {
            "transactionID": request.transaction_id,
            "pkiStatus": PKIStatus.FAILURE,
            "failInfo": fail_info,
            "messageType": MessageType.CertRep,
            "senderNonce": request.sender_nonce,
            "recipientNonce": request.sender_nonce,
        }
    )

    raw = cmsutils.prepare_signed_data(
        content=None,
        signer_cert=ca_cert,
        signer_key=ca_key,
        extra_attributes=attributes,
        hash_alg=config.hash_alg,
    )

    config.logger.debug(
        "created scep failure response: transaction id %s, fail info %s", request.transaction_id, fail_info
    )

    return PKIMessage(
        transaction_id=request.transaction_id,
        message_type=MessageType.CertRep,
        sender_nonce=request.sender_nonce,
        payload=CertRepMessage(
            pki_status=PKIStatus.FAILURE,
            recipient_nonce=request.sender_nonce,  # type: ignore
            fail_info=fail_info,
        ),
        raw=raw,
        signer_cert=ca_cert,
        signer_key=ca_key,
    )


@keyword(name="Build Success Response")
def build_success_response(  # noqa D417 undocumented-param
    request: PKIMessage,
    ca_cert: x509.Certificate,
    ca_key: DecryptKey,
    issued_cert: x509.Certificate,
    config: Optional[SCEPConfig] = None,
) -> PKIMessage:
    """Build a `CertRep` with the status SUCCESS, which delivers the issued certificate.

    If the request was not yet decrypted, it is decrypted with the CA certificate and key.
    The issued certificate is sent as a degenerate certificate collection, encrypted for the
    certificate which signed the request. It is also added as the first certificate of the
    `SignedData` structure, followed by the CA certificate.

    Arguments:
    ---------
        - `request`: The parsed request to answer.
        - `ca_cert`: The certificate of the CA or RA which signs the response.
        - `ca_key`: The private key of the CA or RA.
        - `issued_cert`: The certificate issued for the request.
        - `config`: The `SCEPConfig` to use. Defaults to `None` (the default config).

    Returns:
    -------
        - The `CertRep` message, ready to be sent.

    Raises:
    ------
        - `UnknownMessageType`: If the message is not a request.
        - `DecryptionFailed`: If the request has to be decrypted and the CA is not a recipient.
        - `NoRecipients`: If the signer certificate of the request is unknown.

    Examples:
    --------
    | ${response}= | Build Success Response | ${request} | ${ca_cert} | ${ca_key} | ${issued_cert} |

    """
    _ensure_request(request)
    config = get_config(config)

    if not request.is_decrypted:
        request.decrypt_pki_envelope(ca_cert, ca_key)

    requester_cert = get_requester_cert(request)

    degenerate = cmsutils.prepare_degenerate_certificates([issued_cert])
    pki_envelope = cmsutils.prepare_enveloped_data(
        degenerate, recipients=[requester_cert], content_enc_alg=config.content_enc_alg
    )

    attributes = prepare_scep_attributes(
        {
            "transactionID": request.transaction_id,
            "pkiStatus": PKIStatus.SUCCESS,
            "messageType": MessageType.CertRep,
            "senderNonce": request.sender_nonce,
            "recipientNonce": request.sender_nonce,
        }
    )

    # Issued certificate first.
    raw = cmsutils.prepare_signed_data(
        content=pki_envelope,
        signer_cert=ca_cert,
        signer_key=ca_key,
        extra_attributes=attributes,
        certificates=[issued_cert, ca_cert],
        hash_alg=config.hash_alg,
    )

    config.logger.debug(
        "created scep success response: transaction id %s, issued certificate %s",
        request.transaction_id,
        issued_cert.subject.rfc4514_string(),
    )

    return PKIMessage(
        transaction_id=request.transaction_id,
        message_type=MessageType.CertRep,
        sender_nonce=request.sender_nonce,
        payload=CertRepMessage(
            pki_status=PKIStatus.SUCCESS,
            recipient_nonce=request.sender_nonce,  # type: ignore
            certificate=issued_cert,
            degenerate=degenerate,
        ),
        raw=raw,
        recipients=[requester_cert],
        signer_cert=ca_cert,
        signer_key=ca_key,
    )


@keyword(name="Build CertRep From Exception")
def build_cert_rep_from_exception(  # noqa D417 undocumented-param
    request: PKIMessage,
    ca_cert: x509.Certificate,
    ca_key: SignKey,
    error: SCEPError,
    config: Optional[SCEPConfig] = None,
) -> PKIMessage:
    """Build a failure `CertRep` with the `failInfo` of an exception raised while processing a request.

    Arguments:
    ---------
        - `request`: The parsed request to answer.
        - `ca_cert`: The certificate of the CA or RA which signs the response.
        - `ca_key`: The private key of the CA or RA.
        - `error`: The raised `SCEPError`, e.g. a `SignatureInvalid` is answered with `badMessageCheck`.
        - `config`: The `SCEPConfig` to use. Defaults to `None` (the default config).

    Returns:
    -------
        - The `CertRep` message, ready to be sent.

    Examples:
    --------
    | ${response}= | Build CertRep From Exception | ${request} | ${ca_cert} | ${ca_key} | ${error} |

    """
    config = get_config(config)
    fail_info = FailInfo.from_name(error.get_failinfo())
    config.logger.info("Answering the request with %s: %s", fail_info, error.message)
    return build_failure_response(request, ca_cert, ca_key, fail_info, config=config)

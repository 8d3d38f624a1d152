# SPDX-FileCopyrightText: Copyright 2024 Siemens AG
#
# SPDX-License-Identifier: Apache-2.0

import unittest

from scepmsg.certselectors import EnciphermentCertsSelector, FingerprintCertsSelector
from scepmsg.cmsutils import decrypt_enveloped_data, parse_enveloped_data
from scepmsg.exceptions import NoRecipients, UnknownMessageType
from scepmsg.nonceutils import new_transaction_id
from scepmsg.pkimessage import PKIMessage
from scepmsg.requestutils import build_csr_request, prepare_request_template
from scepmsg.scep_config import SCEPConfig
from scepmsg.scep_enums import MessageType
from unit_tests.utils_for_test import (
    build_certificate,
    build_csr,
    csr_to_der,
    generate_rsa_key,
    generate_scep_setup,
    prepare_key_usage,
)


class TestBuildCSRRequest(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.setup = generate_scep_setup()
        cls.csr = build_csr(cls.setup.client_key, "SCEP Test Client")
        cls.ra_key = generate_rsa_key()
        cls.signing_only_ra_cert = build_certificate(
            cls.ra_key, "SCEP Signing RA", key_usage=prepare_key_usage(key_encipherment=False)
        )

    def test_build_pkcs_req(self):
        """
        GIVEN a CSR and a template with the CA as recipient.
        WHEN the request is built,
        THEN the attributes are set and the CA can decrypt the CSR.
        """
        template = prepare_request_template([self.setup.ca_cert], self.setup.client_cert, self.setup.client_key)
        request = build_csr_request(self.csr, template)

        self.assertEqual(request.message_type, MessageType.PKCSReq)
        self.assertEqual(request.transaction_id, new_transaction_id(self.csr.public_key()))
        self.assertEqual(len(request.sender_nonce), 16)
        self.assertEqual(request.recipients, [self.setup.ca_cert])
        self.assertEqual(request.csr_req.challenge_password, "")
        self.assertEqual(request.embedded_certs, [self.setup.client_cert])

        decrypted = decrypt_enveloped_data(request.pki_envelope, self.setup.ca_cert, self.setup.ca_key)
        self.assertEqual(decrypted, csr_to_der(self.csr))

    def test_build_from_der_csr(self):
        """
        GIVEN a DER-encoded CSR and a RenewalReq template given by its numeric code.
        WHEN the request is built,
        THEN the CSR is parsed and the message type is kept.
        """
        template = prepare_request_template(
            [self.setup.ca_cert], self.setup.client_cert, self.setup.client_key, message_type="17"
        )
        request = build_csr_request(csr_to_der(self.csr), template)
        self.assertEqual(request.message_type, MessageType.RenewalReq)
        self.assertEqual(csr_to_der(request.csr_req.csr), csr_to_der(self.csr))

    def test_fresh_nonce_per_request(self):
        """
        GIVEN the same CSR and template.
        WHEN two requests are built,
        THEN they share the transaction ID but not the sender nonce.
        """
        template = prepare_request_template([self.setup.ca_cert], self.setup.client_cert, self.setup.client_key)
        first = build_csr_request(self.csr, template)
        second = build_csr_request(self.csr, template)
        self.assertEqual(first.transaction_id, second.transaction_id)
        self.assertNotEqual(first.sender_nonce, second.sender_nonce)

    def test_selector_filters_recipients(self):
        """
        GIVEN a template with a signing-only RA certificate and the CA certificate.
        WHEN the request is built with the `EnciphermentCertsSelector`,
        THEN only the CA is a recipient.
        """
        template = prepare_request_template(
            [self.signing_only_ra_cert, self.setup.ca_cert], self.setup.client_cert, self.setup.client_key
        )
        config = SCEPConfig(certs_selector=EnciphermentCertsSelector(), content_enc_alg="aes128_cbc")
        request = build_csr_request(self.csr, template, config=config)

        self.assertEqual(request.recipients, [self.setup.ca_cert])
        self.assertEqual(len(parse_enveloped_data(request.pki_envelope)["recipientInfos"]), 1)

    def test_selector_rejects_all_recipients(self):
        """
        GIVEN a template with the CA certificate and a selector for an unknown fingerprint.
        WHEN the request is built,
        THEN a `NoRecipients` is raised.
        """
        template = prepare_request_template([self.setup.ca_cert], self.setup.client_cert, self.setup.client_key)
        config = SCEPConfig(certs_selector=FingerprintCertsSelector(b"\x00" * 32))
        with self.assertRaises(NoRecipients) as context:
            build_csr_request(self.csr, template, config=config)
        self.assertIn("selected", context.exception.message)

    def test_template_without_recipients(self):
        """
        GIVEN a template without recipients.
        WHEN the request is built,
        THEN a `NoRecipients` is raised.
        """
        template = prepare_request_template([], self.setup.client_cert, self.setup.client_key)
        with self.assertRaises(NoRecipients):
            build_csr_request(self.csr, template)

    def test_template_with_response_type(self):
        """
        GIVEN the message type `CertRep`.
        WHEN a template is prepared, or a request is built from a template of that type,
        THEN an `UnknownMessageType` is raised.
        """
        with self.assertRaises(UnknownMessageType):
            prepare_request_template([self.setup.ca_cert], self.setup.client_cert, self.setup.client_key, "3")

        template = PKIMessage(message_type=MessageType.CertRep, recipients=[self.setup.ca_cert])
        with self.assertRaises(UnknownMessageType):
            build_csr_request(self.csr, template)

    def test_template_without_signer(self):
        """
        GIVEN a template without signer.
        WHEN the request is built,
        THEN a `ValueError` is raised.
        """
        template = PKIMessage(message_type=MessageType.PKCSReq, recipients=[self.setup.ca_cert])
        with self.assertRaises(ValueError):
            build_csr_request(self.csr, template)


if __name__ == "__main__":
    unittest.main()

# SPDX-FileCopyrightText: Copyright 2024 Siemens AG
#
# SPDX-License-Identifier: Apache-2.0

import unittest

from scepmsg.ca_ra_utils import build_failure_response, build_success_response
from scepmsg.exceptions import ContainerMalformed
from scepmsg.nonceutils import new_transaction_id
from scepmsg.pkimessage import parse_pki_message
from scepmsg.requestutils import build_csr_request, prepare_request_template
from scepmsg.scep_config import SCEPConfig
from scepmsg.scep_enums import FailInfo, MessageType, PKIStatus
from unit_tests.utils_for_test import build_certificate, build_csr, csr_to_der, generate_scep_setup


class TestRequestResponseWorkflow(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.setup = generate_scep_setup()
        cls.csr = build_csr(cls.setup.client_key, "SCEP Test Client")
        cls.issued_cert = build_certificate(
            cls.setup.client_key, "SCEP Test Client", issuer_cert=cls.setup.ca_cert, issuer_key=cls.setup.ca_key
        )

    def setUp(self):
        template = prepare_request_template([self.setup.ca_cert], self.setup.client_cert, self.setup.client_key)
        self.request = build_csr_request(self.csr, template)
        config = SCEPConfig(trusted_certs=[self.setup.ca_cert, self.setup.client_cert])
        self.parsed_request = parse_pki_message(self.request.raw, config=config)

    def test_parse_built_request(self):
        """
        GIVEN a PKCSReq built for the CA.
        WHEN it is parsed with the CA and client certificates trusted,
        THEN the transaction ID, message type and sender nonce equal the built ones.
        """
        self.assertEqual(self.parsed_request.transaction_id, new_transaction_id(self.csr.public_key()))
        self.assertEqual(self.parsed_request.transaction_id, self.request.transaction_id)
        self.assertEqual(self.parsed_request.message_type, MessageType.PKCSReq)
        self.assertEqual(str(self.parsed_request.message_type), "PKCSReq (19)")
        self.assertEqual(self.parsed_request.sender_nonce, self.request.sender_nonce)
        self.assertEqual(len(self.parsed_request.sender_nonce), 16)
        self.assertNotEqual(self.parsed_request.sender_nonce, b"\x00" * 16)

    def test_decrypt_parsed_request(self):
        """
        GIVEN the parsed PKCSReq.
        WHEN the CA decrypts it,
        THEN the recovered CSR equals the original and the challenge password is empty.
        """
        self.parsed_request.decrypt_pki_envelope(self.setup.ca_cert, self.setup.ca_key)
        self.assertEqual(self.parsed_request.csr_req.raw_decrypted, csr_to_der(self.csr))
        self.assertEqual(self.parsed_request.csr_req.challenge_password, "")

    def test_success_response(self):
        """
        GIVEN the parsed PKCSReq and an issued certificate.
        WHEN the CA builds a success `CertRep` and the client parses and decrypts it,
        THEN the issued certificate and the nonces are recovered.
        """
        response = build_success_response(
            self.parsed_request, self.setup.ca_cert, self.setup.ca_key, self.issued_cert
        )
        self.assertEqual(response.cert_rep.recipient_nonce, self.request.sender_nonce)
        self.assertEqual(response.recipients, [self.setup.client_cert])

        parsed = parse_pki_message(response.raw)
        self.assertEqual(parsed.message_type, MessageType.CertRep)
        self.assertEqual(parsed.transaction_id, self.request.transaction_id)
        self.assertEqual(parsed.cert_rep.pki_status, PKIStatus.SUCCESS)
        self.assertEqual(parsed.cert_rep.pki_status.value, "0")
        self.assertEqual(parsed.cert_rep.recipient_nonce, self.request.sender_nonce)
        self.assertEqual(parsed.signer_cert, self.setup.ca_cert)
        self.assertEqual(parsed.embedded_certs, [self.issued_cert, self.setup.ca_cert])

        parsed.decrypt_pki_envelope(self.setup.client_cert, self.setup.client_key)
        self.assertEqual(parsed.cert_rep.certificate, self.issued_cert)

    def test_failure_response(self):
        """
        GIVEN the parsed PKCSReq.
        WHEN the CA builds a failure `CertRep` with `badRequest` and the client parses it,
        THEN the status, the fail info and the recipient nonce are recovered and nothing can be decrypted.
        """
        response = build_failure_response(
            self.parsed_request, self.setup.ca_cert, self.setup.ca_key, FailInfo.BadRequest
        )
        self.assertEqual(response.cert_rep.recipient_nonce, self.request.sender_nonce)

        parsed = parse_pki_message(response.raw)
        self.assertEqual(parsed.cert_rep.pki_status, PKIStatus.FAILURE)
        self.assertEqual(parsed.cert_rep.fail_info, FailInfo.BadRequest)
        self.assertEqual(str(parsed.cert_rep.fail_info), "badRequest (2)")
        self.assertEqual(parsed.cert_rep.recipient_nonce, self.request.sender_nonce)
        self.assertEqual(parsed.pki_envelope, b"")
        with self.assertRaises(ContainerMalformed):
            parsed.decrypt_pki_envelope(self.setup.client_cert, self.setup.client_key)


if __name__ == "__main__":
    unittest.main()

# SPDX-FileCopyrightText: Copyright 2024 Siemens AG
#
# SPDX-License-Identifier: Apache-2.0

import unittest

from scepmsg.exceptions import AttributeMissing, UnknownMessageType
from scepmsg.pkimessage import CertRepMessage, CSRReqMessage, PKIMessage
from scepmsg.scep_enums import FailInfo, MessageType, PKIStatus
from unit_tests.utils_for_test import build_csr, csr_to_der, generate_rsa_key


class TestPKIMessageModel(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        csr = build_csr(generate_rsa_key())
        cls.csr_payload = CSRReqMessage(raw_decrypted=csr_to_der(csr), csr=csr)

    def test_failure_requires_fail_info(self):
        """
        GIVEN the status FAILURE without a `failInfo`.
        WHEN a `CertRepMessage` is created,
        THEN an `AttributeMissing` is raised.
        """
        with self.assertRaises(AttributeMissing):
            CertRepMessage(pki_status=PKIStatus.FAILURE, recipient_nonce=b"\x01" * 16)

    def test_fail_info_only_for_failure(self):
        """
        GIVEN the status SUCCESS with a `failInfo`.
        WHEN a `CertRepMessage` is created,
        THEN a `ValueError` is raised.
        """
        with self.assertRaises(ValueError):
            CertRepMessage(pki_status=PKIStatus.SUCCESS, recipient_nonce=b"\x01" * 16, fail_info=FailInfo.BadAlg)

    def test_message_type_from_code(self):
        """
        GIVEN the numeric code "18" and the undefined code "42".
        WHEN a `PKIMessage` is created with them,
        THEN the first becomes `UpdateReq` and the second raises an `UnknownMessageType`.
        """
        self.assertEqual(PKIMessage(message_type="18").message_type, MessageType.UpdateReq)  # type: ignore
        with self.assertRaises(UnknownMessageType):
            PKIMessage(message_type="42")  # type: ignore

    def test_payload_must_match_message_type(self):
        """
        GIVEN a request payload for a `CertRep` and a `CertRep` payload for a request.
        WHEN the messages are created,
        THEN a `ValueError` is raised.
        """
        cert_rep = CertRepMessage(pki_status=PKIStatus.PENDING, recipient_nonce=b"\x01" * 16)
        with self.assertRaises(ValueError):
            PKIMessage(message_type=MessageType.CertRep, payload=self.csr_payload)
        with self.assertRaises(ValueError):
            PKIMessage(message_type=MessageType.PKCSReq, payload=cert_rep)

    def test_payload_accessors(self):
        """
        GIVEN a request with a decrypted payload and a `CertRep` without an issued certificate.
        WHEN the payload accessors are used,
        THEN the matching accessor returns the payload and the other raises a `ValueError`.
        """
        request = PKIMessage(message_type=MessageType.PKCSReq, payload=self.csr_payload)
        self.assertIs(request.csr_req, self.csr_payload)
        self.assertTrue(request.is_decrypted)
        with self.assertRaises(ValueError):
            _ = request.cert_rep

        cert_rep = CertRepMessage(pki_status=PKIStatus.SUCCESS, recipient_nonce=b"\x01" * 16)
        response = PKIMessage(message_type=MessageType.CertRep, payload=cert_rep)
        self.assertIs(response.cert_rep, cert_rep)
        self.assertFalse(response.is_decrypted)
        with self.assertRaises(ValueError):
            _ = response.csr_req


if __name__ == "__main__":
    unittest.main()

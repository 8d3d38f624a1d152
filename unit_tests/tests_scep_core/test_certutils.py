# SPDX-FileCopyrightText: Copyright 2024 Siemens AG
#
# SPDX-License-Identifier: Apache-2.0

import unittest

from pyasn1_alt_modules import rfc5652

from scepmsg.certutils import (
    cert_matches_identifier,
    cert_to_der,
    compute_subject_key_identifier,
    find_cert_by_identifier,
    parse_certificate,
    parse_csr,
    prepare_recipient_identifier,
    prepare_signer_identifier,
)
from unit_tests.utils_for_test import (
    build_certificate,
    generate_rsa_key,
    generate_scep_setup,
    subject_key_identifier_tagged,
)


class TestCertUtils(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.setup = generate_scep_setup()

    def test_parse_certificate(self):
        """
        GIVEN a DER-encoded certificate and data which is not a certificate.
        WHEN they are parsed,
        THEN the certificate is loaded and the garbage raises a `ValueError`.
        """
        self.assertEqual(parse_certificate(cert_to_der(self.setup.ca_cert)), self.setup.ca_cert)
        with self.assertRaises(ValueError):
            parse_certificate(b"\x30\x00")
        with self.assertRaises(ValueError):
            parse_csr(b"\x30\x00")

    def test_issuer_and_serial_number(self):
        """
        GIVEN signer and recipient identifiers for the CA certificate.
        WHEN they are matched against the CA and the client certificate,
        THEN only the CA certificate matches.
        """
        for identifier in (
            prepare_signer_identifier(self.setup.ca_cert),
            prepare_recipient_identifier(self.setup.ca_cert),
        ):
            self.assertTrue(cert_matches_identifier(self.setup.ca_cert, identifier))
            self.assertFalse(cert_matches_identifier(self.setup.client_cert, identifier))

    def test_same_serial_number_other_issuer(self):
        """
        GIVEN a certificate with the serial number of the CA certificate, but another issuer.
        WHEN it is matched against the CA identifier,
        THEN it does not match.
        """
        other = build_certificate(generate_rsa_key(), "Other CA", serial_number=self.setup.ca_cert.serial_number)
        self.assertFalse(cert_matches_identifier(other, prepare_signer_identifier(self.setup.ca_cert)))

    def test_subject_key_identifier(self):
        """
        GIVEN a recipient identifier with the subject key identifier of the client.
        WHEN the certificate is looked up,
        THEN the client certificate is found.
        """
        ski = compute_subject_key_identifier(self.setup.client_cert.public_key())
        rid = rfc5652.RecipientIdentifier()
        rid["subjectKeyIdentifier"] = subject_key_identifier_tagged(ski)

        certs = [self.setup.ca_cert, self.setup.client_cert]
        self.assertEqual(find_cert_by_identifier(certs, rid), self.setup.client_cert)
        self.assertIsNone(find_cert_by_identifier([self.setup.ca_cert], rid))


if __name__ == "__main__":
    unittest.main()

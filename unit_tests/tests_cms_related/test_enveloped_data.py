# SPDX-FileCopyrightText: Copyright 2024 Siemens AG
#
# SPDX-License-Identifier: Apache-2.0

import unittest

from scepmsg.cmsutils import decrypt_enveloped_data, parse_enveloped_data, prepare_enveloped_data
from scepmsg.exceptions import ContainerMalformed, DecryptionFailed, NoRecipients, UnsupportedAlgorithm
from scepmsg.oidutils import AES_CBC_NAME_2_OID
from unit_tests.utils_for_test import build_certificate, generate_ec_key, generate_rsa_key, generate_scep_setup


class TestEnvelopedData(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.setup = generate_scep_setup()
        cls.data = b"a DER-encoded CSR would be here"

    def test_encrypt_and_decrypt(self):
        """
        GIVEN data encrypted for the CA with AES-128 and AES-256.
        WHEN the CA decrypts the `EnvelopedData`,
        THEN the original data is recovered and the algorithm OID matches.
        """
        for alg_name in ("aes128_cbc", "aes256_cbc"):
            raw = prepare_enveloped_data(self.data, [self.setup.ca_cert], content_enc_alg=alg_name)
            env_data = parse_enveloped_data(raw)
            self.assertEqual(env_data["version"], 0)
            alg_id = env_data["encryptedContentInfo"]["contentEncryptionAlgorithm"]
            self.assertEqual(alg_id["algorithm"], AES_CBC_NAME_2_OID[alg_name])
            self.assertEqual(decrypt_enveloped_data(raw, self.setup.ca_cert, self.setup.ca_key), self.data)

    def test_multiple_recipients(self):
        """
        GIVEN data encrypted for the CA and an RA.
        WHEN each recipient decrypts the `EnvelopedData`,
        THEN both recover the original data.
        """
        ra_key = generate_rsa_key()
        ra_cert = build_certificate(ra_key, "SCEP Test RA")
        raw = prepare_enveloped_data(self.data, [self.setup.ca_cert, ra_cert])
        self.assertEqual(len(parse_enveloped_data(raw)["recipientInfos"]), 2)
        self.assertEqual(decrypt_enveloped_data(raw, self.setup.ca_cert, self.setup.ca_key), self.data)
        self.assertEqual(decrypt_enveloped_data(raw, ra_cert, ra_key), self.data)

    def test_decrypt_as_non_recipient(self):
        """
        GIVEN data encrypted for the CA.
        WHEN the client tries to decrypt it,
        THEN a `DecryptionFailed` is raised.
        """
        raw = prepare_enveloped_data(self.data, [self.setup.ca_cert])
        with self.assertRaises(DecryptionFailed):
            decrypt_enveloped_data(raw, self.setup.client_cert, self.setup.client_key)

    def test_decrypt_with_wrong_key(self):
        """
        GIVEN data encrypted for the CA.
        WHEN it is decrypted with the CA certificate but another private key,
        THEN a `DecryptionFailed` is raised.
        """
        raw = prepare_enveloped_data(self.data, [self.setup.ca_cert])
        with self.assertRaises(DecryptionFailed):
            decrypt_enveloped_data(raw, self.setup.ca_cert, self.setup.client_key)

    def test_no_recipients(self):
        """
        GIVEN an empty recipient list.
        WHEN the `EnvelopedData` is built,
        THEN a `NoRecipients` is raised.
        """
        with self.assertRaises(NoRecipients):
            prepare_enveloped_data(self.data, [])

    def test_unsupported_algorithms(self):
        """
        GIVEN an EC recipient or an unknown content encryption algorithm.
        WHEN the `EnvelopedData` is built,
        THEN an `UnsupportedAlgorithm` is raised.
        """
        ec_cert = build_certificate(generate_ec_key(), "EC Recipient")
        with self.assertRaises(UnsupportedAlgorithm):
            prepare_enveloped_data(self.data, [ec_cert])
        with self.assertRaises(UnsupportedAlgorithm):
            prepare_enveloped_data(self.data, [self.setup.ca_cert], content_enc_alg="des_ede3_cbc")

    def test_parse_garbage(self):
        """
        GIVEN data which is not DER-encoded.
        WHEN it is decrypted,
        THEN a `ContainerMalformed` is raised.
        """
        with self.assertRaises(ContainerMalformed):
            decrypt_enveloped_data(b"\x00\x01\x02", self.setup.ca_cert, self.setup.ca_key)


if __name__ == "__main__":
    unittest.main()

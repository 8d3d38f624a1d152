# SPDX-FileCopyrightText: Copyright 2024 Siemens AG
#
# SPDX-License-Identifier: Apache-2.0

import unittest

from pyasn1.codec.der import decoder, encoder
from pyasn1.type import char, univ
from pyasn1_alt_modules import rfc5652

from scepmsg.attributeutils import decode_scep_attribute, encode_scep_attribute, prepare_scep_attributes
from scepmsg.cmsutils import prepare_signed_attributes, prepare_single_value_attribute
from scepmsg.exceptions import AttributeMalformed, AttributeMissing
from scepmsg.oidutils import id_scep_messageType, id_scep_senderNonce, id_scep_transactionID
from scepmsg.scep_enums import FailInfo, MessageType, PKIStatus


def _signed_attrs(*attributes) -> rfc5652.SignedAttributes:
    """Prepare the signed attributes and decode them again, as a parser sees them."""
    signed_attrs = prepare_signed_attributes(b"\x00" * 32, extra_attributes=list(attributes))
    der_data = encoder.encode(signed_attrs)
    decoded, _ = decoder.decode(der_data, asn1Spec=signed_attrs.clone())
    return decoded


class TestAttributeUtils(unittest.TestCase):
    def test_encode_text_attribute(self):
        """
        GIVEN a message type.
        WHEN the `messageType` attribute is encoded,
        THEN the value is the numeric code as `PrintableString`.
        """
        attr = encode_scep_attribute("messageType", MessageType.PKCSReq)
        self.assertEqual(attr["attrType"], id_scep_messageType)
        value, rest = decoder.decode(attr["attrValues"][0].asOctets())
        self.assertEqual(rest, b"")
        self.assertIsInstance(value, char.PrintableString)
        self.assertEqual(str(value), "19")

    def test_encode_nonce_attribute(self):
        """
        GIVEN a 16 byte nonce.
        WHEN the `senderNonce` attribute is encoded,
        THEN the value is an `OCTET STRING` with the raw bytes.
        """
        nonce = bytes(range(16))
        attr = encode_scep_attribute("senderNonce", nonce)
        self.assertEqual(attr["attrType"], id_scep_senderNonce)
        value, _ = decoder.decode(attr["attrValues"][0].asOctets(), asn1Spec=univ.OctetString())
        self.assertEqual(value.asOctets(), nonce)

    def test_decode_encoded_attributes(self):
        """
        GIVEN signed attributes with all SCEP attributes.
        WHEN each attribute is decoded,
        THEN the encoded values are returned.
        """
        nonce = b"\x01" * 16
        signed_attrs = _signed_attrs(
            encode_scep_attribute("transactionID", "dGVzdA=="),
            encode_scep_attribute("messageType", MessageType.CertRep),
            encode_scep_attribute("pkiStatus", PKIStatus.FAILURE),
            encode_scep_attribute("failInfo", FailInfo.BadTime),
            encode_scep_attribute("senderNonce", nonce),
            encode_scep_attribute("recipientNonce", nonce),
        )
        self.assertEqual(decode_scep_attribute(signed_attrs, "transactionID"), "dGVzdA==")
        self.assertEqual(decode_scep_attribute(signed_attrs, "messageType"), "3")
        self.assertEqual(decode_scep_attribute(signed_attrs, "pkiStatus"), "2")
        self.assertEqual(decode_scep_attribute(signed_attrs, "failInfo"), "3")
        self.assertEqual(decode_scep_attribute(signed_attrs, "senderNonce"), nonce)
        self.assertEqual(decode_scep_attribute(signed_attrs, "recipientNonce"), nonce)

    def test_decode_missing_attribute(self):
        """
        GIVEN signed attributes without the `transactionID`.
        WHEN the `transactionID` is decoded,
        THEN an `AttributeMissing` naming the attribute is raised.
        """
        signed_attrs = _signed_attrs(encode_scep_attribute("messageType", "19"))
        with self.assertRaises(AttributeMissing) as context:
            decode_scep_attribute(signed_attrs, "transactionID")
        self.assertEqual(context.exception.attribute, "transactionID")

    def test_decode_nonce_with_wrong_type(self):
        """
        GIVEN a `senderNonce` encoded as `PrintableString`.
        WHEN the `senderNonce` is decoded,
        THEN an `AttributeMalformed` is raised.
        """
        attr = prepare_single_value_attribute(id_scep_senderNonce, char.PrintableString("not-a-nonce"))
        with self.assertRaises(AttributeMalformed):
            decode_scep_attribute(_signed_attrs(attr), "senderNonce")

    def test_decode_text_with_wrong_type(self):
        """
        GIVEN a `messageType` encoded as `OCTET STRING`.
        WHEN the `messageType` is decoded,
        THEN an `AttributeMalformed` is raised.
        """
        attr = prepare_single_value_attribute(id_scep_messageType, univ.OctetString(b"19"))
        with self.assertRaises(AttributeMalformed):
            decode_scep_attribute(_signed_attrs(attr), "messageType")

    def test_decode_attribute_with_two_values(self):
        """
        GIVEN a `transactionID` attribute with two values.
        WHEN the `transactionID` is decoded,
        THEN an `AttributeMalformed` is raised.
        """
        attr = prepare_single_value_attribute(id_scep_transactionID, char.PrintableString("first"))
        attr["attrValues"][1] = encoder.encode(char.PrintableString("second"))
        with self.assertRaises(AttributeMalformed):
            decode_scep_attribute(_signed_attrs(attr), "transactionID")

    def test_encode_invalid_values(self):
        """
        GIVEN an unknown attribute name and values of the wrong type.
        WHEN the attributes are encoded,
        THEN a `ValueError` is raised.
        """
        with self.assertRaises(ValueError):
            encode_scep_attribute("challengePassword", "secret")
        with self.assertRaises(ValueError):
            encode_scep_attribute("senderNonce", "not bytes")
        with self.assertRaises(ValueError):
            encode_scep_attribute("transactionID", b"bytes")

    def test_prepare_scep_attributes_skips_none(self):
        """
        GIVEN a mapping with an absent `senderNonce`.
        WHEN the attributes are prepared,
        THEN only the present attributes are encoded, in order.
        """
        attributes = prepare_scep_attributes(
            {"transactionID": "abc", "senderNonce": None, "messageType": MessageType.GetCert}
        )
        self.assertEqual(
            [attr["attrType"] for attr in attributes], [id_scep_transactionID, id_scep_messageType]
        )


if __name__ == "__main__":
    unittest.main()

# SPDX-FileCopyrightText: Copyright 2024 Siemens AG
#
# SPDX-License-Identifier: Apache-2.0
# type: ignore
"""Defines ASN.1 structures which differ from the `pyasn1-alt-modules` definitions.

Only used for encoding, decoding is done with the regular `rfc5652` structures.
"""

from pyasn1.type import namedtype, tag, univ
from pyasn1_alt_modules import rfc5652


class CertificateSequence(univ.SequenceOf):
    """Defines an order-preserving variant of the `CertificateSet`.

    The DER encoder sorts the elements of a `SET OF`. Encoded as a `SEQUENCE OF`, the
    certificates keep the given order with the same content octets.

    CertificateSet ::= SET OF CertificateChoices
    """

    componentType = rfc5652.CertificateChoices()


class SignedDataTMP(univ.Sequence):
    """Defines the `SignedData` structure with the order-preserving `certificates` field.

    SignedData ::= SEQUENCE {
        version CMSVersion,
        digestAlgorithms DigestAlgorithmIdentifiers,
        encapContentInfo EncapsulatedContentInfo,
        certificates [0] IMPLICIT CertificateSet OPTIONAL,
        crls [1] IMPLICIT RevocationInfoChoices OPTIONAL,
        signerInfos SignerInfos }
    """

    componentType = namedtype.NamedTypes(
        namedtype.NamedType("version", rfc5652.CMSVersion()),
        namedtype.NamedType("digestAlgorithms", rfc5652.DigestAlgorithmIdentifiers()),
        namedtype.NamedType("encapContentInfo", rfc5652.EncapsulatedContentInfo()),
        namedtype.OptionalNamedType(
            "certificates",
            CertificateSequence().subtype(implicitTag=tag.Tag(tag.tagClassContext, tag.tagFormatConstructed, 0)),
        ),
        namedtype.OptionalNamedType(
            "crls",
            rfc5652.RevocationInfoChoices().subtype(
                implicitTag=tag.Tag(tag.tagClassContext, tag.tagFormatConstructed, 1)
            ),
        ),
        namedtype.NamedType("signerInfos", rfc5652.SignerInfos()),
    )

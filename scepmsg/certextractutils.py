# SPDX-FileCopyrightText: Copyright 2024 Siemens AG
#
# SPDX-License-Identifier: Apache-2.0

"""Extract values from the PKCS#10 request inside a SCEP `pkiEnvelope`."""

import logging
from typing import Optional

from pyasn1.codec.der import decoder
from pyasn1.error import PyAsn1Error
from pyasn1.type import char
from pyasn1_alt_modules import rfc6402
from robot.api.deco import keyword, not_keyword

from scepmsg.oidutils import id_pkcs9_at_challengePassword

_STRING_TYPES = (
    char.PrintableString,
    char.UTF8String,
    char.IA5String,
    char.TeletexString,
    char.BMPString,
    char.UniversalString,
)


@not_keyword
def decode_csr(raw_csr: bytes) -> rfc6402.CertificationRequest:
    """Decode a DER-encoded CSR into a pyasn1 `CertificationRequest`.

    :param raw_csr: The DER-encoded CSR.
    :return: The decoded structure.
    :raises ValueError: If the data is not a CSR or has trailing bytes.
    """
    try:
        csr, rest = decoder.decode(raw_csr, asn1Spec=rfc6402.CertificationRequest())
    except PyAsn1Error as err:
        raise ValueError(f"The data is not a DER-encoded `CertificationRequest`: {err}") from err
    if rest != b"":
        raise ValueError(f"Decoding the `CertificationRequest` had a remainder: {rest.hex()}")
    return csr


@keyword(name="Extract Challenge Password")
def extract_challenge_password(raw_csr: bytes) -> Optional[str]:  # noqa D417 undocumented-param
    """Extract the PKCS#9 `challengePassword` attribute from a DER-encoded CSR.

    The challenge password is the shared secret a SCEP client uses to authorize its request.

    Arguments:
    ---------
        - `raw_csr`: The DER-encoded CSR, as recovered from the `pkiEnvelope`.

    Returns:
    -------
        - The challenge password, or `None` if the attribute is absent.

    Raises:
    ------
        - `ValueError`: If the CSR or the attribute value cannot be decoded.

    Examples:
    --------
    | ${password}= | Extract Challenge Password | ${csr_der} |

    """
    csr = decode_csr(raw_csr)
    attributes = csr["certificationRequestInfo"]["attributes"]
    if not attributes.isValue:
        return None

    for attr in attributes:
        if attr["attrType"] != id_pkcs9_at_challengePassword:
            continue

        if len(attr["attrValues"]) != 1:
            raise ValueError("The `challengePassword` attribute must contain exactly one value.")

        try:
            value, rest = decoder.decode(attr["attrValues"][0].asOctets())
        except PyAsn1Error as err:
            raise ValueError(f"The `challengePassword` value could not be decoded: {err}") from err

        if rest != b"" or not isinstance(value, _STRING_TYPES):
            raise ValueError("The `challengePassword` value must be a DirectoryString.")

        logging.debug("Found a `challengePassword` attribute inside the CSR.")
        return str(value)

    return None

# SPDX-FileCopyrightText: Copyright 2024 Siemens AG
#
# SPDX-License-Identifier: Apache-2.0

"""Encode and decode the SCEP attributes carried inside the signed attributes of a `pkiMessage`.

The `messageType`, `pkiStatus`, `failInfo` and `transactionID` attributes are encoded as
`PrintableString`, the `senderNonce` and `recipientNonce` as `OCTET STRING`.
"""

import logging
from typing import Dict, List, Optional, Union

from pyasn1.codec.der import decoder
from pyasn1.error import PyAsn1Error
from pyasn1.type import char, univ
from pyasn1_alt_modules import rfc5652
from robot.api.deco import keyword, not_keyword

from scepmsg.cmsutils import prepare_single_value_attribute
from scepmsg.exceptions import AttributeMalformed, AttributeMissing
from scepmsg.oidutils import SCEP_ATTR_NAME_2_OID, SCEP_NONCE_ATTRIBUTES, SCEP_TEXT_ATTRIBUTES
from scepmsg.scep_enums import FailInfo, MessageType, PKIStatus

ScepAttributeValue = Union[MessageType, PKIStatus, FailInfo, str, bytes]


def _get_attribute_oid(name: str) -> univ.ObjectIdentifier:
    """Return the OID of a SCEP attribute name."""
    try:
        return SCEP_ATTR_NAME_2_OID[name]
    except KeyError as err:
        raise ValueError(f"Unknown SCEP attribute: {name}. Known are: {list(SCEP_ATTR_NAME_2_OID)}") from err


@keyword(name="Encode SCEP Attribute")
def encode_scep_attribute(name: str, value: ScepAttributeValue) -> rfc5652.Attribute:  # noqa D417 undocumented-param
    """Encode a SCEP attribute as an `Attribute` for the signed attributes.

    Arguments:
    ---------
        - `name`: The attribute name, e.g. "messageType" or "senderNonce".
        - `value`: The value; an enum member or its numeric-string code for the enumerated
        attributes, a string for the `transactionID` and bytes for the nonces.

    Returns:
    -------
        - The populated `Attribute` structure.

    Raises:
    ------
        - `ValueError`: If the attribute name is unknown or the value has the wrong type.

    Examples:
    --------
    | ${attr}= | Encode SCEP Attribute | transactionID | ${tx_id} |
    | ${attr}= | Encode SCEP Attribute | senderNonce | ${nonce} |

    """
    oid = _get_attribute_oid(name)

    if name in SCEP_NONCE_ATTRIBUTES:
        if not isinstance(value, bytes):
            raise ValueError(f"The `{name}` attribute must be bytes, got: {type(value).__name__}")
        return prepare_single_value_attribute(oid, univ.OctetString(value))

    if isinstance(value, (MessageType, PKIStatus, FailInfo)):
        value = value.value

    if not isinstance(value, str):
        raise ValueError(f"The `{name}` attribute must be a string, got: {type(value).__name__}")

    return prepare_single_value_attribute(oid, char.PrintableString(value))


@keyword(name="Decode SCEP Attribute")
def decode_scep_attribute(  # noqa D417 undocumented-param
    signed_attrs: rfc5652.SignedAttributes, name: str
) -> Union[str, bytes]:
    """Decode a SCEP attribute from the signed attributes of a `pkiMessage`.

    Arguments:
    ---------
        - `signed_attrs`: The `SignedAttributes` structure of the `SignerInfo`.
        - `name`: The attribute name, e.g. "transactionID".

    Returns:
    -------
        - The string value for the text attributes, the raw bytes for the nonces.

    Raises:
    ------
        - `AttributeMissing`: If the attribute is absent or has no value.
        - `AttributeMalformed`: If the attribute has more than one value or cannot be decoded
        as the expected type.

    Examples:
    --------
    | ${tx_id}= | Decode SCEP Attribute | ${signed_attrs} | transactionID |

    """
    oid = _get_attribute_oid(name)

    attr = find_attribute(signed_attrs, oid)
    if attr is None or len(attr["attrValues"]) == 0:
        raise AttributeMissing(name)

    if len(attr["attrValues"]) != 1:
        raise AttributeMalformed(f"The `{name}` attribute must contain exactly one value.")

    try:
        value, rest = decoder.decode(attr["attrValues"][0].asOctets())
    except PyAsn1Error as err:
        raise AttributeMalformed(f"The `{name}` attribute could not be decoded: {err}") from err

    if rest != b"":
        raise AttributeMalformed(f"The `{name}` attribute had a remainder: {rest.hex()}")

    if name in SCEP_TEXT_ATTRIBUTES:
        if not isinstance(value, char.AbstractCharacterString):
            raise AttributeMalformed(f"The `{name}` attribute must be a character string, got: {type(value).__name__}")
        return str(value)

    if value.tagSet != univ.OctetString.tagSet:
        raise AttributeMalformed(f"The `{name}` attribute must be an OCTET STRING, got: {type(value).__name__}")
    return value.asOctets()


@not_keyword
def find_attribute(
    signed_attrs: rfc5652.SignedAttributes, oid: univ.ObjectIdentifier
) -> Optional[rfc5652.Attribute]:
    """Return the first attribute with the given type, or `None` if absent."""
    if not signed_attrs.isValue:
        return None

    for attr in signed_attrs:
        if attr["attrType"] == oid:
            return attr
    return None


@not_keyword
def prepare_scep_attributes(values: Dict[str, Optional[ScepAttributeValue]]) -> List[rfc5652.Attribute]:
    """Encode several SCEP attributes, skipping the ones set to `None`.

    :param values: The attribute values, keyed by attribute name.
    :return: The list of encoded `Attribute` structures, in the given order.
    """
    attributes = []
    for name, value in values.items():
        if value is None:
            continue
        attributes.append(encode_scep_attribute(name, value))

    logging.debug("Prepared the SCEP attributes: %s", [name for name, value in values.items() if value is not None])
    return attributes

# SPDX-FileCopyrightText: Copyright 2024 Siemens AG
#
# SPDX-License-Identifier: Apache-2.0

"""Enums for the Simple Certificate Enrolment Protocol (SCEP).

The values are the numeric-string codes carried inside the signed attributes of a
SCEP `pkiMessage`, so an enum member can be encoded as-is and a decoded attribute is
only accepted if it maps to a member. Because members can only be obtained through
that validated construction, rendering a member can never meet an unknown code.
"""

import enum
from typing import Union

from scepmsg.exceptions import AttributeMalformed, UnknownMessageType, UnknownStatus


class MessageType(enum.Enum):
    """The operation performed by the transaction.

    The `messageType` attribute MUST be included in all PKI messages.
    """

    CertRep = "3"
    RenewalReq = "17"
    UpdateReq = "18"
    PKCSReq = "19"
    CertPoll = "20"
    GetCert = "21"
    GetCRL = "22"

    def __str__(self) -> str:
        return f"{self.name} ({self.value})"

    @property
    def is_request(self) -> bool:
        """Whether the message type carries an encrypted PKCS#10 request."""
        return self in REQUEST_MESSAGE_TYPES

    @property
    def is_supported(self) -> bool:
        """Whether this library can parse and process the message type."""
        return self not in UNSUPPORTED_MESSAGE_TYPES

    @classmethod
    def from_attribute(cls, value: Union[str, "MessageType"]) -> "MessageType":
        """Return the member for a decoded `messageType` attribute value.

        :param value: The numeric-string code, e.g. "19".
        :return: The matching `MessageType`.
        :raises UnknownMessageType: If the code is not defined.
        """
        if isinstance(value, MessageType):
            return value
        try:
            return cls(str(value).strip())
        except ValueError as err:
            raise UnknownMessageType(f"Unknown SCEP messageType: {value!r}") from err


class PKIStatus(enum.Enum):
    """Transaction status information. All SCEP responses MUST include a `pkiStatus`."""

    SUCCESS = "0"
    FAILURE = "2"
    PENDING = "3"

    def __str__(self) -> str:
        return f"{self.name} ({self.value})"

    @classmethod
    def from_attribute(cls, value: Union[str, "PKIStatus"]) -> "PKIStatus":
        """Return the member for a decoded `pkiStatus` attribute value.

        :param value: The numeric-string code, e.g. "0".
        :return: The matching `PKIStatus`.
        :raises UnknownStatus: If the code is not defined.
        """
        if isinstance(value, PKIStatus):
            return value
        try:
            return cls(str(value).strip())
        except ValueError as err:
            raise UnknownStatus(f"Unknown SCEP pkiStatus: {value!r}") from err


class FailInfo(enum.Enum):
    """The failure reason of a `CertRep` with the status FAILURE."""

    BadAlg = "0"
    BadMessageCheck = "1"
    BadRequest = "2"
    BadTime = "3"
    BadCertID = "4"

    def __str__(self) -> str:
        return f"{_FAIL_INFO_NAMES[self]} ({self.value})"

    @classmethod
    def from_attribute(cls, value: Union[str, "FailInfo"]) -> "FailInfo":
        """Return the member for a decoded `failInfo` attribute value.

        :param value: The numeric-string code, e.g. "2".
        :return: The matching `FailInfo`.
        :raises AttributeMalformed: If the code is not defined.
        """
        if isinstance(value, FailInfo):
            return value
        try:
            return cls(str(value).strip())
        except ValueError as err:
            raise AttributeMalformed(f"Unknown SCEP failInfo: {value!r}") from err

    @classmethod
    def from_name(cls, name: str) -> "FailInfo":
        """Return the member for a protocol name such as `badRequest` (case-insensitive)."""
        for member, member_name in _FAIL_INFO_NAMES.items():
            if member_name.lower() == name.strip().lower():
                return member
        raise ValueError(f"Unknown SCEP failInfo name: {name}")


_FAIL_INFO_NAMES = {
    FailInfo.BadAlg: "badAlg",
    FailInfo.BadMessageCheck: "badMessageCheck",
    FailInfo.BadRequest: "badRequest",
    FailInfo.BadTime: "badTime",
    FailInfo.BadCertID: "badCertID",
}

REQUEST_MESSAGE_TYPES = frozenset({MessageType.PKCSReq, MessageType.RenewalReq, MessageType.UpdateReq})
UNSUPPORTED_MESSAGE_TYPES = frozenset({MessageType.CertPoll, MessageType.GetCert, MessageType.GetCRL})

# SPDX-FileCopyrightText: Copyright 2024 Siemens AG
#
# SPDX-License-Identifier: Apache-2.0

"""Declarative table of the signed attributes each SCEP message type must carry.

The parser consults this table instead of branching on the message type, so a new
message type is a new table entry.
"""

from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Tuple

from scepmsg.scep_enums import MessageType, PKIStatus

# Mandatory for every pkiMessage, checked before the per-type rules.
COMMON_REQUIRED_ATTRIBUTES: Tuple[str, ...] = ("transactionID", "messageType")


@dataclass(frozen=True)
class AttributeRule:
    """Attribute presence rules for one message type.

    Attributes:
        required: Attributes which MUST be present and non-empty.
        optional: Attributes which are copied onto the message if present.
        status_rules: Additional required attributes, keyed by the `pkiStatus` of a `CertRep`.
        supported: `False` for recognized operations this library does not implement.

    """

    required: Tuple[str, ...] = ()
    optional: Tuple[str, ...] = ()
    status_rules: Mapping[PKIStatus, Tuple[str, ...]] = field(default_factory=dict)
    supported: bool = True

    def required_for_status(self, status: Optional[PKIStatus]) -> Tuple[str, ...]:
        """Return the extra attributes required for the given `pkiStatus`."""
        if status is None:
            return ()
        return tuple(self.status_rules.get(status, ()))


_REQUEST_RULE = AttributeRule(required=("senderNonce",))
_UNSUPPORTED_RULE = AttributeRule(supported=False)

SCEP_ATTRIBUTE_RULES: Dict[MessageType, AttributeRule] = {
    MessageType.CertRep: AttributeRule(
        required=("pkiStatus", "recipientNonce"),
        optional=("senderNonce",),
        # PENDING requires nothing further; polling is not implemented.
        status_rules={PKIStatus.FAILURE: ("failInfo",)},
    ),
    MessageType.PKCSReq: _REQUEST_RULE,
    MessageType.RenewalReq: _REQUEST_RULE,
    MessageType.UpdateReq: _REQUEST_RULE,
    MessageType.CertPoll: _UNSUPPORTED_RULE,
    MessageType.GetCert: _UNSUPPORTED_RULE,
    MessageType.GetCRL: _UNSUPPORTED_RULE,
}


def get_attribute_rule(message_type: MessageType) -> AttributeRule:
    """Return the attribute rule for a validated message type."""
    return SCEP_ATTRIBUTE_RULES[message_type]

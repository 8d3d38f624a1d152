# SPDX-FileCopyrightText: Copyright 2024 Siemens AG
#
# SPDX-License-Identifier: Apache-2.0

"""Contains the Custom Exceptions raised while building, parsing and processing SCEP messages.

Every exception carries the SCEP `failInfo` name a responder would answer with, so a
server can turn a failed request straight into a `CertRep` with the status FAILURE.
"""

from typing import List, Optional, Union


class SCEPError(Exception):
    """Base class for SCEP message errors."""

    failinfo: str = "badRequest"
    error_details: List[str]

    def __init__(
        self, message: str, error_details: Optional[Union[List[str], str]] = None, failinfo: Optional[str] = None
    ):
        """Initialize the exception with the message.

        :param message: The message to display.
        :param error_details: Additional details about the error.
        :param failinfo: Overrides the class-level `failInfo` name.
        """
        self.message = message
        self._failinfo = failinfo or self.failinfo
        if error_details is None:
            self.error_details = []
        elif isinstance(error_details, str):
            self.error_details = [error_details]
        else:
            self.error_details = list(error_details)
        super().__init__(message)

    def get_failinfo(self) -> str:
        """Return the failinfo."""
        return self._failinfo

    def get_error_details(self) -> List[str]:
        """Return the error details."""
        return self.error_details


#########################
# Container Errors
##########################


class ContainerMalformed(SCEPError):
    """Raised when the outer or inner CMS container bytes do not decode."""

    def __init__(self, message: str, remainder: Optional[bytes] = None):
        """Initialize the exception with the message.

        :param message: The message to display or just the structure name.
        :param remainder: The bytes left over after decoding, if that was the problem.
        """
        if remainder is not None:
            message = f"Decoding the `{message}` structure had a remainder: {remainder.hex()}."
        super().__init__(message)


class SignatureInvalid(SCEPError):
    """Raised when the signature of the signed container does not verify against the chosen certificates."""

    failinfo = "badMessageCheck"


class DecryptionFailed(SCEPError):
    """Raised when the enveloped content cannot be decrypted (wrong key, not a recipient, corrupt ciphertext)."""

    failinfo = "badMessageCheck"


class UnsupportedAlgorithm(SCEPError):
    """Raised when a signature, digest or content encryption algorithm is not supported."""

    failinfo = "badAlg"


class PayloadMalformed(SCEPError):
    """Raised when the decrypted content is not the expected certificate collection or request."""


#########################
# Protocol Errors
##########################


class AttributeMissing(SCEPError):
    """Raised when a mandatory signed attribute is absent or empty."""

    def __init__(self, attribute: str, message: Optional[str] = None):
        """Initialize the exception with the attribute name.

        :param attribute: The name of the missing SCEP attribute, e.g. `recipientNonce`.
        :param message: Optional message to display instead of the default one.
        """
        self.attribute = attribute
        super().__init__(message or f"SCEP pkiMessage must include the `{attribute}` attribute.")


class AttributeMalformed(SCEPError):
    """Raised when a signed attribute is present but cannot be decoded as the expected type."""


class UnknownMessageType(SCEPError):
    """Raised when the `messageType` is not one of the defined values."""


class UnknownStatus(SCEPError):
    """Raised when the `pkiStatus` is not one of the defined values."""


class OperationNotImplemented(SCEPError):
    """Raised for the recognized but unsupported operations CertPoll, GetCert and GetCRL."""

    def __init__(self, message_type: str):
        """Initialize the exception with the message type.

        :param message_type: The rendered message type, e.g. `GetCRL (22)`.
        """
        self.message_type = message_type
        super().__init__(f"SCEP operation not implemented: {message_type}")


class NoRecipients(SCEPError):
    """Raised when no encryption recipients are available or selected for an outbound message."""


class RandomnessUnavailable(SCEPError):
    """Raised when the platform randomness source fails. Not meant to be retried."""

# SPDX-FileCopyrightText: Copyright 2024 Siemens AG
#
# SPDX-License-Identifier: Apache-2.0

"""Policies selecting which CA/RA certificates an outbound SCEP request is encrypted for.

The candidates are the already-resolved recipient certificates of the request template.
Resolving them (e.g. with a `GetCACert` request to the server) is the caller's job and
happens before a request is built; the selector only filters the set it is given.
"""

import logging
from abc import ABC, abstractmethod
from typing import Union

from cryptography import x509
from cryptography.hazmat.primitives import hashes

from scepmsg.oidutils import ALLOWED_HASH_TYPES
from scepmsg.typingutils import CertList, CertsFilter


class CertsSelector(ABC):
    """Select the encryption recipients out of a list of candidate certificates."""

    @abstractmethod
    def select_certs(self, certs: CertList) -> CertList:
        """Return the selected certificates, in the order they were given.

        :param certs: The candidate certificates.
        :return: The selected subset, which may be empty.
        """

    def __call__(self, certs: CertList) -> CertList:
        return self.select_certs(certs)


class NopCertsSelector(CertsSelector):
    """Pass all candidates through unchanged."""

    def select_certs(self, certs: CertList) -> CertList:
        return list(certs)


class FunctionCertsSelector(CertsSelector):
    """Adapt a plain function to the `CertsSelector` interface."""

    def __init__(self, func: CertsFilter):
        self.func = func

    def select_certs(self, certs: CertList) -> CertList:
        return list(self.func(list(certs)))


class EnciphermentCertsSelector(CertsSelector):
    """Select the certificates which are allowed to be used for key encipherment.

    A certificate without a `KeyUsage` extension is not restricted and is selected as well.
    """

    def select_certs(self, certs: CertList) -> CertList:
        selected = []
        for cert in certs:
            if _allows_key_encipherment(cert):
                selected.append(cert)
            else:
                logging.debug("Certificate %s is not allowed for key encipherment.", cert.subject.rfc4514_string())
        return selected


class FingerprintCertsSelector(CertsSelector):
    """Select the certificates whose fingerprint matches a known value.

    Used when the CA fingerprint is distributed out-of-band, e.g. in an MDM profile.
    """

    def __init__(self, fingerprint: Union[bytes, str], hash_alg: str = "sha256"):
        """Initialize the selector.

        :param fingerprint: The expected fingerprint, raw or as hex string (colons are ignored).
        :param hash_alg: The name of the hash algorithm the fingerprint was computed with.
        """
        if isinstance(fingerprint, str):
            fingerprint = bytes.fromhex(fingerprint.replace(":", ""))
        if hash_alg not in ALLOWED_HASH_TYPES:
            raise ValueError(f"Unsupported hash algorithm for the fingerprint: {hash_alg}")
        self.fingerprint = fingerprint
        self.hash_alg: hashes.HashAlgorithm = ALLOWED_HASH_TYPES[hash_alg]

    def select_certs(self, certs: CertList) -> CertList:
        return [cert for cert in certs if cert.fingerprint(self.hash_alg) == self.fingerprint]


def _allows_key_encipherment(cert: x509.Certificate) -> bool:
    """Check the `KeyUsage` extension for `keyEncipherment`."""
    try:
        key_usage = cert.extensions.get_extension_for_class(x509.KeyUsage).value
    except x509.ExtensionNotFound:
        return True
    return key_usage.key_encipherment


def ensure_certs_selector(selector: Union[CertsSelector, CertsFilter, None]) -> CertsSelector:
    """Return a `CertsSelector` for a selector, a plain function or `None` (select all)."""
    if selector is None:
        return NopCertsSelector()
    if isinstance(selector, CertsSelector):
        return selector
    return FunctionCertsSelector(selector)


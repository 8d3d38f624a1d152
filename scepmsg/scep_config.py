# SPDX-FileCopyrightText: Copyright 2024 Siemens AG
#
# SPDX-License-Identifier: Apache-2.0

"""Options passed explicitly into the SCEP entry points."""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Union

from cryptography import x509

from scepmsg.certselectors import CertsSelector, ensure_certs_selector
from scepmsg.oidutils import AES_CBC_NAME_2_OID, ALLOWED_HASH_TYPES
from scepmsg.typingutils import CertsFilter

DEFAULT_LOGGER_NAME = "scepmsg"


@dataclass
class SCEPConfig:
    """Options for parsing and building SCEP messages.

    Attributes:
        trusted_certs: If set, only these certificates are used to verify the signature of a parsed
            message, replacing the certificates inside the container. According to RFC 2315 Section 9.1
            a server may omit certificates the verifier already has, e.g. from a `GetCACert` request.
        certs_selector: Selects the CA/RA certificates an outbound request is encrypted for.
        logger: Receives the diagnostics of the SCEP operations.
        hash_alg: The digest algorithm used for signing outbound messages.
        content_enc_alg: The content encryption algorithm of the `pkiEnvelope`.

    """

    trusted_certs: List[x509.Certificate] = field(default_factory=list)
    certs_selector: Union[CertsSelector, CertsFilter, None] = None
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(DEFAULT_LOGGER_NAME))
    hash_alg: str = "sha256"
    content_enc_alg: str = "aes256_cbc"

    def __post_init__(self):
        self.trusted_certs = list(self.trusted_certs or [])
        self.certs_selector = ensure_certs_selector(self.certs_selector)
        if self.hash_alg not in ALLOWED_HASH_TYPES:
            raise ValueError(f"Unsupported hash algorithm: {self.hash_alg}")
        if self.content_enc_alg not in AES_CBC_NAME_2_OID:
            raise ValueError(f"Unsupported content encryption algorithm: {self.content_enc_alg}")


def get_config(config: Optional[SCEPConfig] = None) -> SCEPConfig:
    """Return the given config or the default one."""
    return config if config is not None else SCEPConfig()

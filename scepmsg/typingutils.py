# SPDX-FileCopyrightText: Copyright 2024 Siemens AG
#
# SPDX-License-Identifier: Apache-2.0

"""Type aliases to enhance code readability, maintainability, and type safety.

Type aliases are used to create descriptive names for commonly used types, making the codebase
easier to understand and work with.
"""

from typing import Callable, List, Union

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric.ec import EllipticCurvePrivateKey, EllipticCurvePublicKey
from cryptography.hazmat.primitives.asymmetric.ed448 import Ed448PublicKey
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey

# Keys which can sign a SCEP `pkiMessage`.
SignKey = Union[RSAPrivateKey, EllipticCurvePrivateKey]

# Keys which can verify the signature of a SCEP `pkiMessage`.
VerifyKey = Union[RSAPublicKey, EllipticCurvePublicKey]

# Public keys a transaction ID can be derived from.
PublicKey = Union[RSAPublicKey, EllipticCurvePublicKey, Ed25519PublicKey, Ed448PublicKey]

# The `pkiEnvelope` is always key-transported, so only RSA keys can decrypt it.
DecryptKey = RSAPrivateKey

CertList = List[x509.Certificate]

CertsFilter = Callable[[CertList], CertList]

# Either a string or an integer, used by the Robot Framework keywords.
Strint = Union[str, int]

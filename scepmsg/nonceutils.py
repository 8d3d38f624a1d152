# SPDX-FileCopyrightText: Copyright 2024 Siemens AG
#
# SPDX-License-Identifier: Apache-2.0

"""Generate the nonces and transaction identifiers of SCEP transactions."""

import base64
import logging
import os
from typing import List

from robot.api.deco import keyword

from scepmsg import certutils
from scepmsg.exceptions import RandomnessUnavailable
from scepmsg.oidutils import SCEP_NONCE_SIZE
from scepmsg.typingutils import PublicKey, Strint


@keyword(name="New Nonce")
def new_nonce() -> bytes:
    """Generate a fresh `senderNonce`.

    A sender must include a new 16 byte random nonce in each transaction to a recipient.

    Returns:
    -------
        - 16 random bytes.

    Raises:
    ------
        - `RandomnessUnavailable`: If the platform randomness source fails.

    Examples:
    --------
    | ${nonce}= | New Nonce |

    """
    try:
        return os.urandom(SCEP_NONCE_SIZE)
    except (OSError, NotImplementedError) as err:
        raise RandomnessUnavailable(f"Could not generate a nonce: {err}") from err


@keyword(name="New Transaction ID")
def new_transaction_id(public_key: PublicKey) -> str:  # noqa D417 undocumented-param
    """Derive the deterministic `transactionID` for the public key of a request.

    The client MUST use the same transaction identifier for all PKI messages of one
    enrolment. Deriving it from the public key makes a resubmission with the same key
    correlate with the first attempt.

    Arguments:
    ---------
        - `public_key`: The public key inside the certificate signing request.

    Returns:
    -------
        - The base64 encoded subject key identifier of the public key.

    Examples:
    --------
    | ${tx_id}= | New Transaction ID | ${csr.public_key()} |

    """
    key_id = certutils.compute_subject_key_identifier(public_key)
    return base64.b64encode(key_id).decode("ascii")


@keyword(name="Nonces Must Be Unique")
def nonces_must_be_unique(nonces: List[bytes]):  # noqa D417 undocumented-param
    """Ensure that all nonces in a list are unique.

    Arguments:
    ---------
        - `nonces`: A list of nonces to be checked.

    Raises:
    ------
        - `ValueError`: If a duplicate nonce is found.

    Examples:
    --------
    | Nonces Must Be Unique | ${nonces} |

    """
    seen = set()
    for index, nonce in enumerate(nonces):
        if nonce in seen:
            logging.info("Duplicate nonce at index %d: %s", index, nonce.hex())
            raise ValueError(f"Duplicate nonce found at index {index}: {nonce.hex()}")
        seen.add(nonce)


@keyword(name="Nonce Must Have Size")
def nonce_must_have_size(nonce: bytes, size: Strint = SCEP_NONCE_SIZE):  # noqa D417 undocumented-param
    """Ensure that a nonce has the expected size.

    Arguments:
    ---------
        - `nonce`: The nonce to check.
        - `size`: The expected size in bytes. Defaults to 16.

    Raises:
    ------
        - `ValueError`: If the nonce has another size.

    Examples:
    --------
    | Nonce Must Have Size | ${nonce} |

    """
    if len(nonce) != int(size):
        raise ValueError(f"Expected a nonce of {size} bytes, got {len(nonce)} bytes.")

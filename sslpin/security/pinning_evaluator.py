"""
Pinning decision logic.

The certificate pin is checked first, the public key pin only when the
certificate pin fails. Anything else is a rejection.
"""
import base64
import hmac
import logging
from typing import Optional, Sequence

from .chain_extractor import public_key_of, require_leaf
from .models import ExtractError, PinningVerdict
from .trust_anchor_store import PinnedCertificate

logger = logging.getLogger(__name__)


def evaluate(chain: Optional[Sequence[bytes]], anchor: Optional[PinnedCertificate]) -> PinningVerdict:
    """
    Decide whether a server chain satisfies the pinned trust anchor.

    Args:
        chain: Certificates presented by the server, DER-encoded, leaf first
        anchor: The pinned certificate, or None if it failed to load

    Returns:
        PinningVerdict for this chain
    """
    if anchor is None:
        logger.warning("No pinned certificate available, rejecting")
        return PinningVerdict.REJECTED

    try:
        leaf = require_leaf(chain)
    except ExtractError as e:
        logger.warning(f"Server chain unusable ({e.kind.value}): {e}")
        return PinningVerdict.REJECTED

    if pin_by_certificate(leaf, anchor):
        logger.info("Certificate pinning passed")
        return PinningVerdict.ACCEPTED_BY_CERTIFICATE

    if pin_by_public_key(leaf, anchor):
        logger.info("Public key pinning passed")
        return PinningVerdict.ACCEPTED_BY_KEY

    logger.warning("SSL pinning failed")
    return PinningVerdict.REJECTED


def pin_by_certificate(leaf: bytes, anchor: PinnedCertificate) -> bool:
    """Compare the leaf certificate with the pinned one, byte for byte."""
    return hmac.compare_digest(bytes(leaf), anchor.der_bytes)


def pin_by_public_key(leaf: bytes, anchor: PinnedCertificate) -> bool:
    """Compare the leaf's SPKI public key with the pinned certificate's."""
    try:
        server_key = public_key_of(leaf)
    except ExtractError as e:
        logger.warning(f"Cannot extract server public key: {e}")
        return False

    try:
        local_key = anchor.public_key
    except ExtractError as e:
        logger.warning(f"Cannot extract pinned public key: {e}")
        return False

    logger.debug(f"Server public key: {base64.b64encode(server_key).decode()}")
    logger.debug(f"Local public key: {base64.b64encode(local_key).decode()}")

    return hmac.compare_digest(server_key, local_key)

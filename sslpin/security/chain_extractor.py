"""
Extraction of leaf certificates and public keys from server chains.
"""
import logging
from typing import Optional, Sequence

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import serialization

from .models import ExtractError, ExtractErrorKind, ServerChain

logger = logging.getLogger(__name__)


def leaf_of(chain: Optional[Sequence[bytes]]) -> Optional[bytes]:
    """Return the first certificate in presentation order, or None."""
    if not chain:
        return None
    return chain[0]


def require_leaf(chain: Optional[Sequence[bytes]]) -> bytes:
    """
    Return the leaf certificate of a chain.

    Raises:
        ExtractError: NO_CHAIN when there is no chain at all, NO_LEAF when
            the chain holds no certificate
    """
    if chain is None:
        raise ExtractError(ExtractErrorKind.NO_CHAIN, "No server chain presented")

    leaf = leaf_of(chain)
    if not leaf:
        raise ExtractError(ExtractErrorKind.NO_LEAF, "No certificates in server chain")
    return leaf


def public_key_of(cert_der: bytes) -> bytes:
    """
    Extract the subject public key of a DER certificate.

    The key is exported as DER-encoded SubjectPublicKeyInfo, which is the
    format used on both sides of every key comparison.

    Args:
        cert_der: DER-encoded certificate

    Returns:
        SPKI DER bytes

    Raises:
        ExtractError: If the certificate is malformed or its key cannot be exported
    """
    try:
        cert = x509.load_der_x509_certificate(bytes(cert_der), default_backend())
        public_key = cert.public_key()
        return public_key.public_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PublicFormat.SubjectPublicKeyInfo
        )
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise ExtractError(ExtractErrorKind.NO_KEY, f"Cannot extract public key: {e}") from e


def chain_from_socket(sock) -> Optional[ServerChain]:
    """
    Build a ServerChain from a connected TLS socket.

    Returns None when the socket carries no TLS peer information at all,
    and an empty chain when the peer presented no certificate.
    """
    if sock is None or not hasattr(sock, "getpeercert"):
        return None

    get_chain = getattr(sock, "get_unverified_chain", None)
    if callable(get_chain):
        try:
            presented = get_chain()
        except ValueError as e:
            logger.debug(f"Peer chain unavailable: {e}")
            return None
        if presented:
            return tuple(bytes(cert) for cert in presented)

    try:
        leaf = sock.getpeercert(binary_form=True)
    except ValueError as e:
        # Handshake not completed
        logger.debug(f"Peer certificate unavailable: {e}")
        return None

    return (leaf,) if leaf else ()

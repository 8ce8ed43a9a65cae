"""
Trust anchor store holding the pinned reference certificate.
"""
import os
import logging
import threading
from datetime import datetime, timezone
from typing import Optional

from cryptography import x509
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes

from .chain_extractor import public_key_of
from .models import CertificateInfo, ExtractError, LoadError, LoadErrorKind

CERTIFICATE_EXTENSION = ".der"


class PinnedCertificate:
    """Immutable DER bytes of the expected leaf certificate."""

    def __init__(self, name: str, der_bytes: bytes):
        if not der_bytes:
            raise ValueError("Pinned certificate bytes must not be empty")
        self._name = name
        self._der_bytes = bytes(der_bytes)
        self._key_lock = threading.Lock()
        self._public_key: Optional[bytes] = None
        self._key_error: Optional[ExtractError] = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def der_bytes(self) -> bytes:
        return self._der_bytes

    @property
    def public_key(self) -> bytes:
        """
        SPKI DER public key of the pinned certificate.

        Derived on first access and cached, including a failed derivation.

        Raises:
            ExtractError: If the certificate has no exportable key
        """
        if self._public_key is None and self._key_error is None:
            with self._key_lock:
                if self._public_key is None and self._key_error is None:
                    try:
                        self._public_key = public_key_of(self._der_bytes)
                    except ExtractError as e:
                        self._key_error = e
        if self._key_error is not None:
            raise self._key_error
        return self._public_key

    def __repr__(self):
        return f"PinnedCertificate(name={self._name!r}, size={len(self._der_bytes)})"


class TrustAnchorStore:
    """
    Loads the pinned certificate exactly once per process.

    The outcome of the first load is kept for the store's lifetime: a failed
    load is never retried, and get() keeps returning None afterwards.
    """

    def __init__(self, anchor_dir: str, name: str):
        """
        Initialize the store.

        Args:
            anchor_dir: Directory holding the bundled certificate asset
            name: Logical asset name, usually the pinned host's domain name
        """
        self.anchor_dir = anchor_dir
        self.name = name
        self.logger = logging.getLogger(__name__)
        self._lock = threading.Lock()
        self._loaded = False
        self._anchor: Optional[PinnedCertificate] = None
        self._load_error: Optional[LoadError] = None

    @classmethod
    def from_bytes(cls, der_bytes: bytes, name: str = "pinned") -> 'TrustAnchorStore':
        """Create a store around certificate bytes that are already in memory."""
        store = cls(anchor_dir="", name=name)
        with store._lock:
            try:
                store._anchor = store._parse(der_bytes, source=name)
            except LoadError as e:
                store._load_error = e
            store._loaded = True
        return store

    @property
    def asset_path(self) -> str:
        return os.path.join(self.anchor_dir, f"{self.name}{CERTIFICATE_EXTENSION}")

    def load(self) -> PinnedCertificate:
        """
        Load the pinned certificate, reading the asset at most once.

        Returns:
            The loaded PinnedCertificate

        Raises:
            LoadError: NOT_FOUND if the asset is absent, UNREADABLE if it cannot be parsed
        """
        if not self._loaded:
            with self._lock:
                if not self._loaded:
                    try:
                        self._anchor = self._read_asset()
                        self.logger.info(f"Loaded pinned certificate: {self.asset_path}")
                    except LoadError as e:
                        self._load_error = e
                        self.logger.error(f"Failed to load pinned certificate: {e}")
                    self._loaded = True

        if self._load_error is not None:
            raise self._load_error
        return self._anchor

    def get(self) -> Optional[PinnedCertificate]:
        """Return the pinned certificate, or None if loading failed."""
        try:
            return self.load()
        except LoadError:
            return None

    def describe(self) -> Optional[CertificateInfo]:
        """Get diagnostic information about the pinned certificate."""
        anchor = self.get()
        if anchor is None:
            return None

        cert = x509.load_der_x509_certificate(anchor.der_bytes, default_backend())
        now = datetime.now(timezone.utc)
        not_before = cert.not_valid_before_utc
        not_after = cert.not_valid_after_utc

        return CertificateInfo(
            subject=cert.subject.rfc4514_string(),
            issuer=cert.issuer.rfc4514_string(),
            serial_number=str(cert.serial_number),
            not_before=not_before,
            not_after=not_after,
            is_valid=not_before <= now <= not_after,
            fingerprint=cert.fingerprint(hashes.SHA256()).hex()
        )

    def _read_asset(self) -> PinnedCertificate:
        """Read and parse the certificate asset from disk."""
        file_path = self.asset_path
        if not os.path.exists(file_path):
            raise LoadError(LoadErrorKind.NOT_FOUND, f"Pinned certificate not found: {file_path}")

        try:
            with open(file_path, 'rb') as f:
                content = f.read()
        except OSError as e:
            raise LoadError(LoadErrorKind.UNREADABLE, f"Cannot read pinned certificate {file_path}: {e}") from e

        return self._parse(content, source=file_path)

    def _parse(self, content: bytes, source: str) -> PinnedCertificate:
        if not content:
            raise LoadError(LoadErrorKind.UNREADABLE, f"Pinned certificate is empty: {source}")

        try:
            x509.load_der_x509_certificate(content, default_backend())
        except ValueError as e:
            raise LoadError(LoadErrorKind.UNREADABLE, f"Pinned certificate is not valid DER: {source}") from e

        return PinnedCertificate(self.name, content)

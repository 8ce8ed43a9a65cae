"""
Security models for certificate and public key pinning.
"""
import ssl
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple


# Certificates as presented by the peer, DER-encoded, leaf first.
ServerChain = Tuple[bytes, ...]


class PinningVerdict(Enum):
    """Outcome of a single pinning evaluation."""
    ACCEPTED_BY_CERTIFICATE = "accepted_by_certificate"
    ACCEPTED_BY_KEY = "accepted_by_key"
    REJECTED = "rejected"

    @property
    def is_accepted(self) -> bool:
        return self is not PinningVerdict.REJECTED


class HandshakeState(Enum):
    """States a handshake passes through inside the gate."""
    START = "start"
    CHAIN_RECEIVED = "chain_received"
    EVALUATED = "evaluated"
    RESUMED = "resumed"
    ABORTED = "aborted"


class ChallengeDisposition(Enum):
    """Answer handed back to the transport layer."""
    USE_CREDENTIAL = "use_credential"
    CANCEL_AUTHENTICATION_CHALLENGE = "cancel_authentication_challenge"


class LoadErrorKind(Enum):
    NOT_FOUND = "not_found"
    UNREADABLE = "unreadable"


class ExtractErrorKind(Enum):
    NO_CHAIN = "no_chain"
    NO_LEAF = "no_leaf"
    NO_KEY = "no_key"


class PinningServiceError(Exception):
    """Base class for pinning errors."""


class LoadError(PinningServiceError):
    """Raised when the pinned certificate asset cannot be loaded."""

    def __init__(self, kind: LoadErrorKind, message: str):
        super().__init__(message)
        self.kind = kind


class ExtractError(PinningServiceError):
    """Raised when a certificate or key cannot be extracted from a chain."""

    def __init__(self, kind: ExtractErrorKind, message: str):
        super().__init__(message)
        self.kind = kind


class PinningError(ssl.SSLError):
    """
    Raised by the transport when the handshake gate cancels a connection.

    Subclasses ssl.SSLError so urllib3 and requests report it as an SSL failure.
    The message intentionally carries no detail about which pin failed.
    """

    def __init__(self, host: str):
        super().__init__(f"SSL pinning failed for host {host}")
        self.host = host


@dataclass(frozen=True)
class AuthenticationChallenge:
    """A transport request to authorize the peer of a new connection."""
    host: str
    server_trust: Optional[ServerChain]
    port: Optional[int] = None


@dataclass(frozen=True)
class HandshakeOutcome:
    """Result of running one challenge through the handshake gate."""
    host: str
    disposition: ChallengeDisposition
    credential: Optional[ServerChain]
    verdict: PinningVerdict
    state: HandshakeState

    @property
    def is_resumed(self) -> bool:
        return self.state is HandshakeState.RESUMED


@dataclass
class CertificateInfo:
    """Information about a certificate."""
    subject: str
    issuer: str
    serial_number: str
    not_before: datetime
    not_after: datetime
    is_valid: bool
    fingerprint: str

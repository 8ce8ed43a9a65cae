"""
Security package for certificate and public key pinning.
"""
from .models import (
    AuthenticationChallenge,
    CertificateInfo,
    ChallengeDisposition,
    ExtractError,
    HandshakeOutcome,
    HandshakeState,
    LoadError,
    PinningError,
    PinningVerdict,
)
from .trust_anchor_store import PinnedCertificate, TrustAnchorStore
from .pinning_evaluator import evaluate
from .handshake_gate import HandshakeGate
from .transport import PinningAdapter

__all__ = [
    'AuthenticationChallenge',
    'CertificateInfo',
    'ChallengeDisposition',
    'ExtractError',
    'HandshakeOutcome',
    'HandshakeState',
    'LoadError',
    'PinningError',
    'PinningVerdict',
    'PinnedCertificate',
    'TrustAnchorStore',
    'evaluate',
    'HandshakeGate',
    'PinningAdapter'
]

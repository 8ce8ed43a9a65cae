"""
Handshake gate mapping pinning verdicts to transport dispositions.
"""
import logging

from .models import (
    AuthenticationChallenge,
    ChallengeDisposition,
    ExtractErrorKind,
    HandshakeOutcome,
    HandshakeState,
    PinningVerdict,
)
from .pinning_evaluator import evaluate
from .trust_anchor_store import TrustAnchorStore


class HandshakeGate:
    """
    Answers authentication challenges raised by the transport layer.

    Each call runs START -> CHAIN_RECEIVED -> EVALUATED -> RESUMED/ABORTED
    on its own; the only shared state is the read-only anchor store.
    """

    def __init__(self, anchor_store: TrustAnchorStore):
        self.anchor_store = anchor_store
        self.logger = logging.getLogger(__name__)

    def handle_challenge(self, challenge: AuthenticationChallenge) -> HandshakeOutcome:
        """
        Decide whether the connection described by a challenge may proceed.

        Never raises: every failure ends in an ABORTED outcome.
        """
        state = HandshakeState.START
        self.logger.debug(f"Handshake challenge for {challenge.host}: {state.value}")

        server_trust = challenge.server_trust
        if server_trust is None:
            self.logger.warning(
                f"No server trust presented by {challenge.host} ({ExtractErrorKind.NO_CHAIN.value})"
            )
            return self._abort(challenge, PinningVerdict.REJECTED)

        state = HandshakeState.CHAIN_RECEIVED
        self.logger.debug(
            f"Handshake challenge for {challenge.host}: {state.value} ({len(server_trust)} certificates)"
        )

        try:
            verdict = evaluate(server_trust, self.anchor_store.get())
        except Exception as e:
            self.logger.error(f"Pinning evaluation failed for {challenge.host}: {e}")
            verdict = PinningVerdict.REJECTED

        state = HandshakeState.EVALUATED
        self.logger.debug(f"Handshake challenge for {challenge.host}: {state.value} ({verdict.value})")

        if verdict.is_accepted:
            return self._resume(challenge, verdict)
        return self._abort(challenge, verdict)

    def _resume(self, challenge: AuthenticationChallenge, verdict: PinningVerdict) -> HandshakeOutcome:
        self.logger.info(f"Pinning passed for {challenge.host} ({verdict.value})")
        return HandshakeOutcome(
            host=challenge.host,
            disposition=ChallengeDisposition.USE_CREDENTIAL,
            credential=challenge.server_trust,
            verdict=verdict,
            state=HandshakeState.RESUMED
        )

    def _abort(self, challenge: AuthenticationChallenge, verdict: PinningVerdict) -> HandshakeOutcome:
        self.logger.warning(f"Cancelling connection to {challenge.host}")
        return HandshakeOutcome(
            host=challenge.host,
            disposition=ChallengeDisposition.CANCEL_AUTHENTICATION_CHALLENGE,
            credential=None,
            verdict=verdict,
            state=HandshakeState.ABORTED
        )

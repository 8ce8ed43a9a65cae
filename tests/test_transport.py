"""
Tests for the pinned requests/urllib3 transport.
"""
import unittest
from unittest.mock import Mock, patch

import requests
from urllib3.connection import HTTPSConnection

from sslpin.security.handshake_gate import HandshakeGate
from sslpin.security.models import HandshakeState, PinningError
from sslpin.security.transport import (
    PinnedHTTPSConnection,
    PinnedHTTPSConnectionPool,
    PinningAdapter,
    PinningPoolManager,
    PinningProxyManager,
)
from sslpin.security.trust_anchor_store import TrustAnchorStore

from cert_helpers import create_certificate, create_rsa_key, to_der


def make_tls_socket(*chain):
    """Create a fake connected TLS socket presenting the given leaf."""
    sock = Mock(spec=["getpeercert", "close"])
    sock.getpeercert.return_value = chain[0] if chain else None
    return sock


class TestPinnedHTTPSConnection(unittest.TestCase):
    """Test cases for PinnedHTTPSConnection."""

    @classmethod
    def setUpClass(cls):
        cls.pinned = to_der(create_certificate(create_rsa_key()))
        cls.unrelated = to_der(create_certificate(create_rsa_key()))

    def setUp(self):
        self.gate = HandshakeGate(TrustAnchorStore.from_bytes(self.pinned, name="thronesapi.com"))
        self.conn = PinnedHTTPSConnection("thronesapi.com", 443)
        self.conn.handshake_gate = self.gate

    def _connect_with(self, sock):
        def fake_connect():
            self.conn.sock = sock

        with patch('urllib3.connection.HTTPSConnection.connect', side_effect=fake_connect):
            self.conn.connect()

    def test_connect_accepted(self):
        sock = make_tls_socket(self.pinned)

        self._connect_with(sock)

        self.assertIs(self.conn.sock, sock)
        sock.close.assert_not_called()

    def test_connect_rejected(self):
        sock = make_tls_socket(self.unrelated)

        with self.assertRaises(PinningError) as cm:
            self._connect_with(sock)

        self.assertEqual(cm.exception.host, "thronesapi.com")
        self.assertNotIn("public key", str(cm.exception))
        sock.close.assert_called()
        self.assertIsNone(self.conn.sock)

    def test_connect_without_peer_certificate(self):
        with self.assertRaises(PinningError):
            self._connect_with(make_tls_socket())

    def test_connect_passes_challenge_to_gate(self):
        gate = Mock()
        gate.handle_challenge.return_value = Mock(is_resumed=True, state=HandshakeState.RESUMED)
        self.conn.handshake_gate = gate

        self._connect_with(make_tls_socket(self.pinned))

        challenge = gate.handle_challenge.call_args[0][0]
        self.assertEqual(challenge.host, "thronesapi.com")
        self.assertEqual(challenge.port, 443)
        self.assertEqual(challenge.server_trust, (self.pinned,))

    def test_connect_without_gate_is_rejected(self):
        self.conn.handshake_gate = None

        with self.assertRaises(PinningError):
            self._connect_with(make_tls_socket(self.pinned))

    def test_pinning_error_is_ssl_error(self):
        import ssl
        self.assertTrue(issubclass(PinningError, ssl.SSLError))


class TestPinningAdapter(unittest.TestCase):
    """Test cases for PinningAdapter and its pool manager."""

    def setUp(self):
        self.gate = Mock(spec=HandshakeGate)
        self.adapter = PinningAdapter(self.gate)

    def test_pool_manager_type(self):
        self.assertIsInstance(self.adapter.poolmanager, PinningPoolManager)
        self.assertIs(self.adapter.poolmanager.handshake_gate, self.gate)

    def test_https_pool_carries_gate(self):
        pool = self.adapter.poolmanager.connection_from_url("https://thronesapi.com/api/v2/Characters")

        self.assertIsInstance(pool, PinnedHTTPSConnectionPool)
        self.assertIs(pool.handshake_gate, self.gate)

    def test_new_connection_carries_gate(self):
        pool = self.adapter.poolmanager.connection_from_url("https://thronesapi.com/")

        conn = pool._new_conn()

        self.assertIsInstance(conn, PinnedHTTPSConnection)
        self.assertIs(conn.handshake_gate, self.gate)

    def test_http_pool_unchanged(self):
        pool = self.adapter.poolmanager.connection_from_url("http://thronesapi.com/")
        self.assertNotIsInstance(pool, PinnedHTTPSConnectionPool)

    def test_pool_manager_does_not_change_global_pool_classes(self):
        from urllib3.poolmanager import pool_classes_by_scheme
        self.assertIsNot(pool_classes_by_scheme['https'], PinnedHTTPSConnectionPool)

    def test_proxied_https_pool_carries_gate(self):
        manager = self.adapter.proxy_manager_for("http://proxy.local:3128")

        self.assertIsInstance(manager, PinningProxyManager)
        self.assertIs(self.adapter.proxy_manager_for("http://proxy.local:3128"), manager)

        pool = manager.connection_from_url("https://thronesapi.com/")
        self.assertIsInstance(pool, PinnedHTTPSConnectionPool)
        self.assertIs(pool.handshake_gate, self.gate)

    def test_socks_proxy_refused(self):
        with self.assertRaises(requests.exceptions.InvalidSchema):
            self.adapter.proxy_manager_for("socks5://proxy.local:1080")

    def test_adapter_state_keeps_gate(self):
        state = self.adapter.__getstate__()
        self.assertIs(state['handshake_gate'], self.gate)

    def test_rejected_connection_raises_requests_ssl_error(self):
        pinned = to_der(create_certificate(create_rsa_key()))
        unrelated = to_der(create_certificate(create_rsa_key()))
        gate = HandshakeGate(TrustAnchorStore.from_bytes(pinned, name="thronesapi.com"))

        session = requests.Session()
        session.trust_env = False
        session.mount("https://", PinningAdapter(gate))

        def fake_connect(conn):
            conn.sock = make_tls_socket(unrelated)

        with patch.object(HTTPSConnection, 'connect', autospec=True, side_effect=fake_connect) as mock_connect:
            with self.assertRaises(requests.exceptions.SSLError) as cm:
                session.get("https://thronesapi.com/api/v2/Characters", timeout=5)

        session.close()
        self.assertEqual(mock_connect.call_count, 1)
        self.assertNotIn(pinned.hex(), str(cm.exception))


if __name__ == '__main__':
    unittest.main()

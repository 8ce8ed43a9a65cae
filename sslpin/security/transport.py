"""
Transport integration running the handshake gate on every new HTTPS connection.

Example usage:

    session = requests.Session()
    session.mount('https://', PinningAdapter(HandshakeGate(store)))
"""
import logging

from requests.adapters import DEFAULT_POOLBLOCK, HTTPAdapter
from requests.exceptions import InvalidSchema
from urllib3.connection import HTTPSConnection
from urllib3.connectionpool import HTTPSConnectionPool
from urllib3.poolmanager import PoolManager, ProxyManager

from .chain_extractor import chain_from_socket
from .handshake_gate import HandshakeGate
from .models import AuthenticationChallenge, PinningError

logger = logging.getLogger(__name__)


class PinnedHTTPSConnection(HTTPSConnection):
    """HTTPS connection that asks the handshake gate before use."""

    handshake_gate = None

    def connect(self):
        super().connect()

        if self.handshake_gate is None:
            logger.error(f"No handshake gate configured for {self.host}")
            self.close()
            raise PinningError(self.host)

        challenge = AuthenticationChallenge(
            host=self.host,
            server_trust=chain_from_socket(self.sock),
            port=self.port
        )
        outcome = self.handshake_gate.handle_challenge(challenge)

        if not outcome.is_resumed:
            self.close()
            raise PinningError(self.host)


class PinnedHTTPSConnectionPool(HTTPSConnectionPool):
    """Connection pool handing its gate to every connection it creates."""

    ConnectionCls = PinnedHTTPSConnection
    handshake_gate = None

    def _new_conn(self):
        conn = super()._new_conn()
        conn.handshake_gate = self.handshake_gate
        return conn


class _GatedPoolsMixin:
    """Creates pinned pools for https URLs and hands them the gate."""

    def _install_handshake_gate(self, handshake_gate: HandshakeGate):
        self.handshake_gate = handshake_gate
        self.pool_classes_by_scheme = dict(self.pool_classes_by_scheme)
        self.pool_classes_by_scheme['https'] = PinnedHTTPSConnectionPool

    def _new_pool(self, scheme, host, port, request_context=None):
        pool = super()._new_pool(scheme, host, port, request_context=request_context)
        if isinstance(pool, PinnedHTTPSConnectionPool):
            pool.handshake_gate = self.handshake_gate
        return pool


class PinningPoolManager(_GatedPoolsMixin, PoolManager):
    """Pool manager for direct connections."""

    def __init__(self, handshake_gate: HandshakeGate, num_pools=10, headers=None, **connection_pool_kw):
        super().__init__(num_pools=num_pools, headers=headers, **connection_pool_kw)
        self._install_handshake_gate(handshake_gate)


class PinningProxyManager(_GatedPoolsMixin, ProxyManager):
    """Pool manager for connections tunnelled through an HTTP(S) proxy."""

    def __init__(self, handshake_gate: HandshakeGate, proxy_url, **kwargs):
        super().__init__(proxy_url, **kwargs)
        self._install_handshake_gate(handshake_gate)


class PinningAdapter(HTTPAdapter):
    """
    A HTTPS Adapter for Python Requests that enforces certificate or public
    key pinning on every connection it opens.
    """

    __attrs__ = HTTPAdapter.__attrs__ + ['handshake_gate']

    def __init__(self, handshake_gate: HandshakeGate, **kwargs):
        self.handshake_gate = handshake_gate

        super().__init__(**kwargs)

    def init_poolmanager(self, connections, maxsize, block=DEFAULT_POOLBLOCK, **pool_kwargs):
        self._pool_connections = connections
        self._pool_maxsize = maxsize
        self._pool_block = block

        self.poolmanager = PinningPoolManager(
            self.handshake_gate,
            num_pools=connections,
            maxsize=maxsize,
            block=block,
            **pool_kwargs
        )

    def proxy_manager_for(self, proxy, **proxy_kwargs):
        if proxy in self.proxy_manager:
            return self.proxy_manager[proxy]

        # SOCKS pools use their own connection classes
        if proxy.lower().startswith("socks"):
            raise InvalidSchema(f"SOCKS proxies are not supported with pinning: {proxy}")

        manager = self.proxy_manager[proxy] = PinningProxyManager(
            self.handshake_gate,
            proxy,
            proxy_headers=self.proxy_headers(proxy),
            num_pools=self._pool_connections,
            maxsize=self._pool_maxsize,
            block=self._pool_block,
            **proxy_kwargs
        )
        return manager

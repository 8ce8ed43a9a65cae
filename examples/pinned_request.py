#!/usr/bin/env python3
"""
Example script calling an API over a pinned connection.

Place the server's DER certificate at certs/thronesapi.com.der first, e.g.:

    openssl s_client -connect thronesapi.com:443 -servername thronesapi.com </dev/null \
        | openssl x509 -outform der -out certs/thronesapi.com.der
"""
import sys

from sslpin.security.handshake_gate import HandshakeGate
from sslpin.security.trust_anchor_store import TrustAnchorStore
from sslpin.services.pinned_session_service import PinnedSessionService

API_URL = "https://thronesapi.com/api/v2/Characters"


def main():
    """Fetch the character list with pinning enabled."""
    store = TrustAnchorStore("certs", "thronesapi.com")
    if store.get() is None:
        print(f"⚠️ Local certificate missing or unreadable: {store.asset_path}")

    service = PinnedSessionService(HandshakeGate(store))
    try:
        result = service.start_request(API_URL)
    finally:
        service.close()

    if not result.success:
        print(f"❌ Request failed: {result.error_message}")
        sys.exit(1)

    print(f"✅ Response:\n{result.content.text}")


if __name__ == '__main__':
    main()

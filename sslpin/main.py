"""
Main application entry point for the SSL pinning client.
Handles configuration, anchor loading and service wiring.
"""

import os
import sys
import logging
from typing import Optional

from .models.fetch import FetchResult
from .security.handshake_gate import HandshakeGate
from .security.trust_anchor_store import TrustAnchorStore
from .services.config_service import ConfigService
from .services.logging_service import LoggingService
from .services.pinned_session_service import PinnedSessionService


class PinningClientApplication:
    """Main application class for the SSL pinning client."""

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize the client application.

        Args:
            config_path: Path to configuration file (optional)
        """
        self.config_path = config_path or self._get_default_config_path()
        self.logger = logging.getLogger(__name__)
        self.config_service = None
        self.config = None
        self.logging_service = None
        self.anchor_store = None
        self.handshake_gate = None
        self.session_service = None

    def _get_default_config_path(self) -> str:
        """Get the default configuration file path."""
        possible_paths = [
            "config/default.properties",
            "config.properties",
            os.path.expanduser("~/.sslpin/config.properties"),
        ]

        for path in possible_paths:
            if os.path.exists(path):
                return path

        return possible_paths[0]

    def initialize(self) -> bool:
        """
        Initialize all application components.

        Returns:
            True if initialization successful, False otherwise
        """
        try:
            if not self._load_configuration():
                return False

            self.logging_service = LoggingService(self.config)
            self.logger.info("Starting SSL pinning client initialization...")

            self._initialize_pinning()
            self._initialize_services()

            self.logger.info("SSL pinning client initialized successfully")
            return True

        except Exception as e:
            self.logger.error(f"Failed to initialize application: {str(e)}")
            return False

    def _load_configuration(self) -> bool:
        """Load application configuration."""
        self.config_service = ConfigService()

        if not os.path.exists(self.config_path):
            self.logger.warning(f"Configuration file not found: {self.config_path}")
            self.config_service.create_default_config_file(self.config_path)
            self.logger.warning(
                f"Default configuration created at: {self.config_path}; "
                "edit it and place the pinned certificate before running again"
            )
            return False

        try:
            self.config = self.config_service.load_config(self.config_path)
        except (FileNotFoundError, ValueError) as e:
            self.logger.error(f"Failed to load configuration: {str(e)}")
            return False

        return True

    def _initialize_pinning(self):
        """Load the trust anchor once and build the handshake gate."""
        self.anchor_store = TrustAnchorStore(self.config.anchor_dir, self.config.pinned_host)

        # A failed load is remembered and every handshake will be rejected
        if self.anchor_store.get() is None:
            self.logger.error("Pinned certificate unavailable; all connections will be rejected")
        else:
            info = self.anchor_store.describe()
            self.logger.info(f"Pinned certificate: {info.subject} (sha256 {info.fingerprint})")
            if not info.is_valid:
                self.logger.warning("Pinned certificate is outside its validity period")

        self.handshake_gate = HandshakeGate(self.anchor_store)

    def _initialize_services(self):
        self.session_service = PinnedSessionService(
            self.handshake_gate,
            timeout=self.config.request_timeout_seconds,
            max_retries=self.config.max_retry_attempts,
            verify_ca=self.config.verify_ca
        )

    def fetch(self, url: Optional[str] = None) -> FetchResult:
        """Call the configured API, or the given URL, over a pinned connection."""
        if self.session_service is None:
            raise ValueError("Application not initialized. Call initialize() first.")
        target = url or self.config.api_url
        result = self.session_service.start_request(target)

        self.logging_service.log_with_context(
            'info' if result.success else 'error',
            "Pinned request finished",
            url=target,
            success=result.success,
            pinning_failed=result.pinning_failed,
            retry_count=result.retry_count
        )
        return result

    def shutdown(self):
        if self.session_service:
            self.session_service.close()
        self.logger.info("SSL pinning client shut down")

    def get_status(self) -> dict:
        """Get current application status."""
        anchor = self.anchor_store.get() if self.anchor_store else None
        return {
            'config_path': self.config_path,
            'pinned_host': self.config.pinned_host if self.config else None,
            'anchor_path': self.anchor_store.asset_path if self.anchor_store else None,
            'anchor_loaded': anchor is not None,
            'api_url': self.config.api_url if self.config else None,
            'verify_ca': self.config.verify_ca if self.config else None,
        }


def main():
    """Main entry point for the application."""
    import argparse

    parser = argparse.ArgumentParser(description='SSL Pinning Client')
    parser.add_argument('--config', '-c', help='Configuration file path')
    parser.add_argument('--url', help='HTTPS URL to fetch (uses config if not specified)')
    parser.add_argument('--check-config', action='store_true', help='Check configuration and exit')

    args = parser.parse_args()

    app = PinningClientApplication(config_path=args.config)

    if not app.initialize():
        print("Failed to initialize application")
        sys.exit(1)

    if args.check_config:
        status = app.get_status()
        print("Configuration check passed")
        print(f"Config path: {status['config_path']}")
        print(f"Pinned host: {status['pinned_host']}")
        print(f"Pinned certificate: {status['anchor_path']} (loaded: {status['anchor_loaded']})")
        print(f"CA verification: {status['verify_ca']}")
        sys.exit(0 if status['anchor_loaded'] else 1)

    try:
        result = app.fetch(args.url)
    finally:
        app.shutdown()

    if not result.success:
        print(f"Request failed: {result.error_message}")
        sys.exit(1)

    print(f"Response:\n{result.content.text}")


if __name__ == '__main__':
    main()

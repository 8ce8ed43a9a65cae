"""
Tests for the trust anchor store.
"""
import os
import shutil
import tempfile
import threading
import unittest
from unittest.mock import patch

from sslpin.security.models import ExtractError, LoadError, LoadErrorKind
from sslpin.security.trust_anchor_store import PinnedCertificate, TrustAnchorStore

from cert_helpers import create_certificate, create_rsa_key, spki_der, to_der


class TestTrustAnchorStore(unittest.TestCase):
    """Test cases for TrustAnchorStore."""

    def setUp(self):
        """Set up a temporary anchor directory."""
        self.temp_dir = tempfile.mkdtemp()
        self.key = create_rsa_key()
        self.cert = create_certificate(self.key)
        self.cert_der = to_der(self.cert)

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def _write_anchor(self, content: bytes, name: str = "thronesapi.com"):
        path = os.path.join(self.temp_dir, f"{name}.der")
        with open(path, 'wb') as f:
            f.write(content)
        return path

    def test_asset_path(self):
        store = TrustAnchorStore(self.temp_dir, "thronesapi.com")
        self.assertEqual(store.asset_path, os.path.join(self.temp_dir, "thronesapi.com.der"))

    def test_load_success(self):
        self._write_anchor(self.cert_der)
        store = TrustAnchorStore(self.temp_dir, "thronesapi.com")

        anchor = store.load()

        self.assertIsInstance(anchor, PinnedCertificate)
        self.assertEqual(anchor.der_bytes, self.cert_der)
        self.assertEqual(anchor.name, "thronesapi.com")
        self.assertIs(store.get(), anchor)

    def test_public_key_derived_from_certificate(self):
        self._write_anchor(self.cert_der)
        store = TrustAnchorStore(self.temp_dir, "thronesapi.com")

        self.assertEqual(store.load().public_key, spki_der(self.key))

    def test_load_not_found(self):
        store = TrustAnchorStore(self.temp_dir, "missing.example")

        with self.assertRaises(LoadError) as cm:
            store.load()

        self.assertEqual(cm.exception.kind, LoadErrorKind.NOT_FOUND)
        self.assertIsNone(store.get())

    def test_load_empty_file(self):
        self._write_anchor(b"")
        store = TrustAnchorStore(self.temp_dir, "thronesapi.com")

        with self.assertRaises(LoadError) as cm:
            store.load()
        self.assertEqual(cm.exception.kind, LoadErrorKind.UNREADABLE)

    def test_load_unparsable_file(self):
        self._write_anchor(b"garbage bytes that are not DER")
        store = TrustAnchorStore(self.temp_dir, "thronesapi.com")

        with self.assertRaises(LoadError) as cm:
            store.load()
        self.assertEqual(cm.exception.kind, LoadErrorKind.UNREADABLE)

    def test_pem_file_is_not_accepted(self):
        from cryptography.hazmat.primitives import serialization
        self._write_anchor(self.cert.public_bytes(serialization.Encoding.PEM))
        store = TrustAnchorStore(self.temp_dir, "thronesapi.com")

        self.assertIsNone(store.get())

    def test_load_failure_is_not_retried(self):
        store = TrustAnchorStore(self.temp_dir, "thronesapi.com")
        self.assertIsNone(store.get())

        # Asset appears after the first failed load
        self._write_anchor(self.cert_der)

        self.assertIsNone(store.get())
        with self.assertRaises(LoadError):
            store.load()

    def test_asset_read_once(self):
        self._write_anchor(self.cert_der)
        store = TrustAnchorStore(self.temp_dir, "thronesapi.com")

        with patch.object(store, '_read_asset', wraps=store._read_asset) as mock_read:
            store.get()
            store.get()
            store.load()

        self.assertEqual(mock_read.call_count, 1)

    def test_concurrent_first_use_reads_once(self):
        self._write_anchor(self.cert_der)
        store = TrustAnchorStore(self.temp_dir, "thronesapi.com")
        results = []
        start = threading.Barrier(8)

        def worker():
            start.wait()
            results.append(store.get())

        with patch.object(store, '_read_asset', wraps=store._read_asset) as mock_read:
            threads = [threading.Thread(target=worker) for _ in range(8)]
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join()

        self.assertEqual(mock_read.call_count, 1)
        self.assertEqual(len(results), 8)
        self.assertTrue(all(result is results[0] for result in results))

    def test_from_bytes(self):
        store = TrustAnchorStore.from_bytes(self.cert_der, name="thronesapi.com")

        self.assertEqual(store.load().der_bytes, self.cert_der)

    def test_from_bytes_invalid(self):
        store = TrustAnchorStore.from_bytes(b"", name="thronesapi.com")

        self.assertIsNone(store.get())
        with self.assertRaises(LoadError) as cm:
            store.load()
        self.assertEqual(cm.exception.kind, LoadErrorKind.UNREADABLE)

    def test_describe(self):
        store = TrustAnchorStore.from_bytes(self.cert_der, name="thronesapi.com")

        info = store.describe()

        self.assertIn("CN=thronesapi.com", info.subject)
        self.assertEqual(info.serial_number, str(self.cert.serial_number))
        self.assertTrue(info.is_valid)
        self.assertEqual(len(info.fingerprint), 64)

    def test_describe_without_anchor(self):
        store = TrustAnchorStore(self.temp_dir, "missing.example")
        self.assertIsNone(store.describe())


class TestPinnedCertificate(unittest.TestCase):
    """Test cases for PinnedCertificate."""

    def test_empty_bytes_rejected(self):
        with self.assertRaises(ValueError):
            PinnedCertificate("thronesapi.com", b"")

    def test_public_key_derived_once(self):
        key = create_rsa_key()
        anchor = PinnedCertificate("thronesapi.com", to_der(create_certificate(key)))

        with patch('sslpin.security.trust_anchor_store.public_key_of',
                   return_value=b"spki") as mock_extract:
            self.assertEqual(anchor.public_key, b"spki")
            self.assertEqual(anchor.public_key, b"spki")

        mock_extract.assert_called_once()

    def test_public_key_failure_is_cached(self):
        anchor = PinnedCertificate("thronesapi.com", b"not der")

        with self.assertRaises(ExtractError):
            anchor.public_key
        with patch('sslpin.security.trust_anchor_store.public_key_of') as mock_extract:
            with self.assertRaises(ExtractError):
                anchor.public_key
        mock_extract.assert_not_called()


if __name__ == '__main__':
    unittest.main()

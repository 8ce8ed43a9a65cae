"""
SSL pinning client: certificate and public key pinning for HTTPS requests.
"""

__version__ = "1.0.0"

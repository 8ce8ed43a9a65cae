"""
Pinned session service for issuing HTTPS requests through the handshake gate.
"""
import requests
import time
import logging
from urllib.parse import urlparse
from urllib3.util.retry import Retry

from ..models.fetch import FetchedContent, FetchResult
from ..security.handshake_gate import HandshakeGate
from ..security.models import PinningError
from ..security.transport import PinningAdapter


class PinnedSessionService:
    """Issues requests over connections that passed certificate or public key pinning."""

    def __init__(self,
                 handshake_gate: HandshakeGate,
                 timeout: int = 30,
                 max_retries: int = 3,
                 backoff_factor: float = 1.0,
                 verify_ca: bool = True,
                 user_agent: str = None):
        """
        Initialize the pinned session service.

        Args:
            handshake_gate: Gate consulted on every new HTTPS connection
            timeout: Request timeout in seconds
            max_retries: Maximum number of retry attempts for transient errors
            backoff_factor: Factor for exponential backoff between retries
            verify_ca: Whether the platform CA trust evaluation runs before pinning
            user_agent: Custom user agent string
        """
        self.handshake_gate = handshake_gate
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_factor = backoff_factor
        self.verify_ca = verify_ca
        self.user_agent = user_agent or "sslpin/1.0"
        self.logger = logging.getLogger(__name__)

        self.session = self._create_session()

    def _create_session(self) -> requests.Session:
        """Create a requests session with the pinning adapter mounted for https."""
        session = requests.Session()

        # start_request owns retries; urllib3 makes a single attempt and
        # never retries pinning failures, which surface as "other" errors
        retry_strategy = Retry(
            total=0,
            other=0,
            raise_on_status=False
        )

        adapter = PinningAdapter(self.handshake_gate, max_retries=retry_strategy)
        session.mount("https://", adapter)
        session.verify = self.verify_ca

        session.headers.update({
            'User-Agent': self.user_agent,
            'Accept': 'application/json, */*;q=0.8',
        })

        return session

    def start_request(self, url: str) -> FetchResult:
        """
        Fetch a URL over a pinned connection.

        Args:
            url: The https URL to fetch

        Returns:
            FetchResult containing the response or error information
        """
        if not self._is_valid_url(url):
            return FetchResult.error_result(f"Invalid URL format: {url}")

        retry_count = 0
        last_error = None

        while retry_count <= self.max_retries:
            try:
                self.logger.info(f"Fetching URL: {url} (attempt {retry_count + 1})")

                # Explicit verify keeps REQUESTS_CA_BUNDLE from overriding verify_ca
                response = self.session.get(url, timeout=self.timeout, verify=self.verify_ca)
                response.raise_for_status()

                content = FetchedContent(
                    url=response.url,
                    text=response.text,
                    status_code=response.status_code,
                    headers=dict(response.headers),
                    encoding=response.encoding
                )

                self.logger.info(f"Successfully fetched {url} (status: {response.status_code})")
                return FetchResult.success_result(content)

            except requests.exceptions.SSLError as e:
                if self._is_pinning_failure(e):
                    self.logger.error(f"SSL pinning rejected connection for {url}")
                    return FetchResult.error_result(
                        "SSL pinning failed", retry_count, pinning_failed=True
                    )
                last_error = f"SSL error: {str(e)}"
                self.logger.error(f"SSL error fetching {url}: {last_error}")
                break

            except requests.exceptions.Timeout as e:
                last_error = f"Request timeout: {str(e)}"
                self.logger.warning(f"Timeout fetching {url}: {last_error}")

            except requests.exceptions.ConnectionError as e:
                last_error = f"Connection error: {str(e)}"
                self.logger.warning(f"Connection error fetching {url}: {last_error}")

            except requests.exceptions.HTTPError as e:
                last_error = f"HTTP error {e.response.status_code}: {str(e)}"
                self.logger.warning(f"HTTP error fetching {url}: {last_error}")

                # Don't retry for client errors (4xx)
                if 400 <= e.response.status_code < 500:
                    retry_count += 1
                    break

            except requests.exceptions.RequestException as e:
                last_error = f"Request error: {str(e)}"
                self.logger.warning(f"Request error fetching {url}: {last_error}")

            retry_count += 1
            if retry_count <= self.max_retries:
                sleep_time = self.backoff_factor * (2 ** (retry_count - 1))
                self.logger.info(f"Retrying in {sleep_time} seconds...")
                time.sleep(sleep_time)

        return FetchResult.error_result(last_error or "Unknown error", retry_count)

    def close(self):
        self.session.close()

    def _is_pinning_failure(self, error: BaseException) -> bool:
        """Walk the wrapped exceptions looking for a PinningError."""
        pending = [error]
        seen = set()

        while pending:
            current = pending.pop()
            if not isinstance(current, BaseException) or id(current) in seen:
                continue
            seen.add(id(current))

            if isinstance(current, PinningError):
                return True

            pending.append(getattr(current, 'reason', None))
            pending.append(current.__cause__)
            pending.append(current.__context__)
            pending.extend(arg for arg in current.args if isinstance(arg, BaseException))

        return False

    def _is_valid_url(self, url: str) -> bool:
        """Only https URLs can be pinned."""
        try:
            result = urlparse(url)
            return result.scheme == 'https' and bool(result.netloc)
        except ValueError:
            return False

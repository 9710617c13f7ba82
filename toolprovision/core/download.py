"""
Network download with bounded retry and exponential backoff.

Each attempt streams the archive into a fresh temporary file; partial files
are discarded on failure and the next attempt starts from scratch. The delay
between attempts doubles from the initial delay up to a cap and is never
applied after the final attempt.
"""

import logging
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional
from urllib.parse import urlparse

import requests
from requests.exceptions import RequestException

from toolprovision.core.exceptions import DownloadExhaustedError

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_INITIAL_DELAY_MS = 5000
DEFAULT_BACKOFF_CAP_MS = 60000
DEFAULT_TIMEOUT_MS = 60000

CHUNK_SIZE = 8192


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry configuration for downloads.

    Attributes:
        max_attempts: Total number of attempts (not retries), at least 1
        initial_delay_ms: Delay after the first failed attempt
        backoff_cap_ms: Upper bound for any single delay
    """

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    initial_delay_ms: int = DEFAULT_INITIAL_DELAY_MS
    backoff_cap_ms: int = DEFAULT_BACKOFF_CAP_MS

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be positive: {self.max_attempts}")
        if self.initial_delay_ms < 0:
            raise ValueError(f"initial_delay_ms cannot be negative: {self.initial_delay_ms}")
        if self.backoff_cap_ms < 0:
            raise ValueError(f"backoff_cap_ms cannot be negative: {self.backoff_cap_ms}")

    def delay_after(self, attempt: int) -> int:
        """
        Delay in milliseconds that follows failed attempt number `attempt` (1-based).

        Example:
            >>> policy = RetryPolicy()
            >>> [policy.delay_after(k) for k in range(1, 6)]
            [5000, 10000, 20000, 40000, 60000]
        """
        if attempt < 1:
            raise ValueError(f"attempt is 1-based: {attempt}")
        return min(self.initial_delay_ms * 2 ** (attempt - 1), self.backoff_cap_ms)

    def schedule(self) -> List[int]:
        """Delays actually slept by a fully failing fetch (one fewer than attempts)."""
        return [self.delay_after(k) for k in range(1, self.max_attempts)]


class Downloader:
    """
    Fetches URLs to local temporary files with retry.

    Example:
        >>> downloader = Downloader(RetryPolicy(max_attempts=3), timeout_ms=30000)
        >>> archive = downloader.fetch(
        ...     "https://example.com/tool-1.0.0-linux64.tar.gz", Path("/tmp/dl")
        ... )
    """

    def __init__(
        self,
        policy: Optional[RetryPolicy] = None,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        sleep: Callable[[float], None] = time.sleep,
        session: Optional[requests.Session] = None,
    ):
        """
        Args:
            policy: Retry policy (default: RetryPolicy())
            timeout_ms: Per-attempt connect/read timeout in milliseconds
            sleep: Function used to wait between attempts, takes seconds
            session: Optional requests session (default: module-level requests)
        """
        if timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be positive: {timeout_ms}")

        self.policy = policy or RetryPolicy()
        self.timeout_ms = timeout_ms
        self._sleep = sleep
        self._http = session or requests

    def max_duration_ms(self) -> int:
        """
        Upper bound of a fully failing fetch: every attempt hitting its
        timeout plus every backoff delay.
        """
        return self.policy.max_attempts * self.timeout_ms + sum(self.policy.schedule())

    def fetch(self, url: str, destination_dir: Path) -> Path:
        """
        Download `url` into a new temporary file under `destination_dir`.

        Args:
            url: URL to download
            destination_dir: Directory receiving the temporary file

        Returns:
            Path to the downloaded file

        Raises:
            ValueError: If URL is empty
            DownloadExhaustedError: If every attempt failed
        """
        if not url:
            raise ValueError("URL cannot be empty")

        destination_dir = Path(destination_dir)
        destination_dir.mkdir(parents=True, exist_ok=True)

        max_attempts = self.policy.max_attempts
        last_error: Optional[Exception] = None

        logger.info(f"Downloading: {url}")

        for attempt in range(1, max_attempts + 1):
            try:
                logger.info(f"Download attempt {attempt}/{max_attempts} for {url}")
                path = self._download_once(url, destination_dir)
                logger.info(f"Download successful on attempt {attempt} for {url}")
                return path
            except (RequestException, OSError) as e:
                last_error = e
                logger.warning(f"Download attempt {attempt} failed for {url}: {e}")

                if attempt < max_attempts:
                    delay_ms = self.policy.delay_after(attempt)
                    logger.info(
                        f"Waiting {delay_ms / 1000:g} seconds before trying again "
                        f"to download {url}"
                    )
                    self._sleep(delay_ms / 1000)

        raise DownloadExhaustedError(url, max_attempts, last_error) from last_error

    def _download_once(self, url: str, destination_dir: Path) -> Path:
        """
        Stream a single attempt to disk.

        Raises:
            RequestException: On connection errors, timeouts and non-2xx statuses
            OSError: If the temporary file cannot be written
        """
        timeout = self.timeout_ms / 1000
        response = self._http.get(
            url, stream=True, timeout=timeout, allow_redirects=True
        )

        try:
            response.raise_for_status()

            fd, temp_name = tempfile.mkstemp(
                dir=destination_dir, prefix=".download-", suffix=_archive_suffix(url)
            )
            temp_path = Path(temp_name)
            downloaded = 0

            try:
                with open(fd, "wb") as f:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        if chunk:
                            f.write(chunk)
                            downloaded += len(chunk)
            except Exception:
                temp_path.unlink(missing_ok=True)
                raise
        finally:
            response.close()

        logger.debug(f"Wrote {downloaded} bytes to {temp_path}")
        return temp_path


def _archive_suffix(url: str) -> str:
    """Keep the archive extension of the URL on the temporary file name."""
    name = Path(urlparse(url).path).name.lower()
    for ext in (".tar.gz", ".zip"):
        if name.endswith(ext):
            return ext
    return ""


__all__ = [
    "RetryPolicy",
    "Downloader",
    "DEFAULT_MAX_ATTEMPTS",
    "DEFAULT_INITIAL_DELAY_MS",
    "DEFAULT_BACKOFF_CAP_MS",
    "DEFAULT_TIMEOUT_MS",
]

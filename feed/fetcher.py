"""HTTP client for downloading property calendar feeds."""
import logging
import time

import requests

from sync.exceptions import FeedDownloadError

logger = logging.getLogger(__name__)


class FeedFetcher:
    """Downloads iCalendar feeds from booking platforms."""

    def __init__(self, timeout: int = 30, max_retries: int = 3, base_delay: float = 1):
        """
        Initialize the feed fetcher.

        Args:
            timeout: HTTP request timeout in seconds (default: 30)
            max_retries: Number of attempts before giving up (default: 3)
            base_delay: Initial backoff delay in seconds (default: 1)
        """
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.base_delay = base_delay

    def fetch(self, url: str) -> str:
        """
        Download the feed body with retry logic.

        Args:
            url: Calendar feed URL

        Returns:
            Feed text

        Raises:
            FeedDownloadError: If every attempt fails or returns a non-2xx status
        """
        for attempt in range(self.max_retries):
            try:
                logger.info(
                    f"Fetching calendar feed (attempt {attempt + 1}/{self.max_retries})",
                    extra={'url': url}
                )
                response = requests.get(url, timeout=self.timeout)
                response.raise_for_status()
                return response.text

            except requests.RequestException as e:
                if attempt < self.max_retries - 1:
                    delay = self.base_delay * (2 ** attempt)
                    logger.warning(
                        f"Feed request failed (attempt {attempt + 1}/{self.max_retries}): {e}. "
                        f"Retrying in {delay} seconds..."
                    )
                    time.sleep(delay)
                else:
                    logger.error(
                        f"All {self.max_retries} attempts failed for {url}. Last error: {e}"
                    )
                    raise FeedDownloadError(
                        f"Unable to download calendar: {e}"
                    ) from e

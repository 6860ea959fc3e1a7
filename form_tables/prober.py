"""
URL prober: liveness checks for the links found in form tables.

Each URL gets at most two requests: a HEAD, then (if the HEAD failed or came
back >= 400) a streamed GET whose body is never read, for servers that reject
HEAD. Any final 2xx/3xx status is live; everything else is not.

Results are cached per exact URL string for the lifetime of one run so a link
repeated across cells, languages or passes is requested once and always gets
the same decision.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, Optional
from urllib.parse import urljoin, urlparse

import requests

from .config import Settings
from .exceptions import ProbeError
from .logger import get_module_logger
from .schemas import ProbeMethod, ProbeResult

logger = get_module_logger("prober")


class ProbeCache:
    """
    In-memory, per-run cache of probe results keyed by URL string.

    Owned by a URLProber and handed to whoever needs it; never a module-level
    singleton. The first result stored for a URL wins, so concurrent probes of
    the same URL all return the same object.
    """

    def __init__(self):
        self._results: dict[str, ProbeResult] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._lock = threading.Lock()

    def get(self, url: str) -> Optional[ProbeResult]:
        with self._lock:
            return self._results.get(url)

    def put(self, url: str, result: ProbeResult) -> ProbeResult:
        """Store a result unless one is already there; returns the stored one."""
        with self._lock:
            return self._results.setdefault(url, result)

    def lock_for(self, url: str) -> threading.Lock:
        """Per-URL lock that serializes in-flight probes of the same URL."""
        with self._lock:
            return self._locks.setdefault(url, threading.Lock())

    def __contains__(self, url: str) -> bool:
        with self._lock:
            return url in self._results

    def __len__(self) -> int:
        with self._lock:
            return len(self._results)

    def clear(self) -> None:
        with self._lock:
            self._results.clear()
            self._locks.clear()


class URLProber:
    """Checks whether URLs answer with a success or redirect status."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        session=None,
        cache: Optional[ProbeCache] = None
    ):
        self.settings = settings or Settings()
        # Anything with requests-style head()/get() works (tests inject a fake)
        self.session = session if session is not None else requests.Session()
        self.cache = cache if cache is not None else ProbeCache()
        self.headers = {"User-Agent": self.settings.user_agent}
        self.requests_sent = 0
        self._count_lock = threading.Lock()

    def probe(self, url: str) -> ProbeResult:
        """
        Probe one URL, serving repeats from the cache.

        Never raises: every failure comes back as ProbeResult(is_live=False).
        """
        cached = self.cache.get(url)
        if cached is not None:
            logger.debug(f"Cache hit: {url}")
            return cached

        with self.cache.lock_for(url):
            # Another thread may have finished the same URL while we waited
            cached = self.cache.get(url)
            if cached is not None:
                return cached
            try:
                result = self._probe_uncached(url)
            except Exception as e:
                logger.warning(f"Unexpected error probing {url!r}: {e}")
                result = ProbeResult(url=url, is_live=False, error=f"unexpected error: {e}")
            return self.cache.put(url, result)

    def probe_many(self, urls: Iterable[str], max_workers: Optional[int] = None) -> dict[str, ProbeResult]:
        """
        Probe a batch of URLs, de-duplicated, on a bounded thread pool.

        Decisions stay deterministic: each URL's result is whatever the cache
        holds for it, however the work was scheduled.
        """
        unique = list(dict.fromkeys(urls))
        workers = max_workers or self.settings.max_workers

        if workers <= 1 or len(unique) <= 1:
            return {url: self.probe(url) for url in unique}

        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = list(pool.map(self.probe, unique))
        return dict(zip(unique, results))

    def resolve(self, url: str) -> str:
        """
        Turn an href into an absolute http(s) URL for probing.

        Raises:
            ProbeError: blank or malformed URL, unsupported scheme, or relative
                URL with no base_url configured
        """
        url = url.strip()
        if not url:
            raise ProbeError("empty URL", url=url)

        try:
            parsed = urlparse(url)
        except ValueError as e:
            raise ProbeError(f"malformed URL: {e}", url=url)
        if parsed.scheme in ("http", "https"):
            return url
        if parsed.scheme:
            raise ProbeError(f"unsupported scheme: {parsed.scheme}", url=url)

        if not self.settings.base_url:
            if parsed.netloc:
                # Scheme-relative ("//host/path")
                return f"https:{url}"
            raise ProbeError("relative URL without base_url", url=url)
        try:
            return urljoin(self.settings.base_url, url)
        except ValueError as e:
            raise ProbeError(f"malformed URL: {e}", url=url)

    def _probe_uncached(self, url: str) -> ProbeResult:
        try:
            target = self.resolve(url)
        except ProbeError as e:
            logger.debug(f"Not probing {url!r}: {e.message}")
            return ProbeResult(url=url, is_live=False, error=e.message)

        # HEAD first; anything short of a live answer falls through to GET
        try:
            status = self._attempt(ProbeMethod.HEAD, target)
            if _is_live_status(status):
                return ProbeResult(url=url, is_live=True, status_code=status, method=ProbeMethod.HEAD)
            logger.debug(f"HEAD {target} -> {status}, retrying with GET")
        except ProbeError as e:
            logger.debug(f"HEAD {target} failed ({e.message}), retrying with GET")

        try:
            status = self._attempt(ProbeMethod.GET, target)
        except ProbeError as e:
            return ProbeResult(url=url, is_live=False, method=ProbeMethod.GET, error=e.message)

        if _is_live_status(status):
            return ProbeResult(url=url, is_live=True, status_code=status, method=ProbeMethod.GET)
        return ProbeResult(
            url=url,
            is_live=False,
            status_code=status,
            method=ProbeMethod.GET,
            error=f"HTTP {status}"
        )

    def _attempt(self, method: ProbeMethod, target: str) -> int:
        """Send one request and return its final status code."""
        with self._count_lock:
            self.requests_sent += 1

        kwargs = {
            "allow_redirects": True,
            "timeout": self.settings.timeout,
            "headers": self.headers,
        }
        try:
            if method is ProbeMethod.HEAD:
                response = self.session.head(target, **kwargs)
            else:
                # stream=True: only the status line and headers are read
                response = self.session.get(target, stream=True, **kwargs)
            status = response.status_code
            response.close()
            return status
        except requests.Timeout:
            raise ProbeError(f"timeout after {self.settings.timeout}s", url=target)
        except requests.RequestException as e:
            raise ProbeError(f"request failed: {e}", url=target)
        except ValueError as e:
            # urllib3 rejects some URLs that urlparse accepts
            raise ProbeError(f"malformed URL: {e}", url=target)


def _is_live_status(status: int) -> bool:
    return 200 <= status < 400

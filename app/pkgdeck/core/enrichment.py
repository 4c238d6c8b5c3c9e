"""Package metadata enrichment from online registries.

Enrichment data (summary, repository, categories, icons...) is fetched
from the registry that matches a package's source and cached on disk
for a week. The cache is an explicit object: construct one EnrichmentCache
per process and pass it to whatever needs it.

Thread safety: lookups take a shared read lock, inserts an exclusive write
lock. Disk writes happen on a background worker thread so inserting never
waits for I/O.
"""

import logging
import queue
import threading
import time
from collections.abc import Callable, Iterable, Iterator
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import requests

from pkgdeck import __version__
from pkgdeck.core.paths import get_enrichment_cache_path
from pkgdeck.core.storage import read_json, write_json_atomic
from pkgdeck.models.package import Package, PackageEnrichment, PackageSource

logger = logging.getLogger(__name__)

CACHE_TTL_SECONDS = 7 * 24 * 60 * 60
FETCH_TIMEOUT = 10.0
MAX_SCREENSHOTS = 5
MAX_CATEGORIES = 5

FLATHUB_URL = "https://flathub.org/api/v2/appstream/{name}"
FLATHUB_ICON_URL = "https://dl.flathub.org/repo/appstream/x86_64/icons/128x128/{name}.png"
CRATES_URL = "https://crates.io/api/v1/crates/{name}"
PYPI_URL = "https://pypi.org/pypi/{name}/json"
NPM_URL = "https://registry.npmjs.org/{name}"
SNAPCRAFT_URL = "https://api.snapcraft.io/v2/snaps/info/{name}"
PUB_DEV_URL = "https://pub.dev/api/packages/{name}"
PUB_DEV_SCORE_URL = "https://pub.dev/api/packages/{name}/score"


class ReadWriteLock:
    """Lock allowing many concurrent readers or one writer.

    Writers wait for active readers to finish; new readers wait while a
    writer is waiting, so writers are not starved.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._waiting_writers:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._waiting_writers += 1
            while self._writer or self._readers:
                self._cond.wait()
            self._waiting_writers -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class PersistenceWorker:
    """Daemon thread that runs save jobs from a queue.

    ``submit`` never blocks. Job failures are logged and do not stop the
    worker.
    """

    def __init__(self, name: str = "pkgdeck-persistence") -> None:
        self._queue: queue.Queue[Callable[[], None]] = queue.Queue()
        self._name = name
        self._thread: threading.Thread | None = None
        self._start_lock = threading.Lock()

    def submit(self, job: Callable[[], None]) -> None:
        self._ensure_started()
        self._queue.put_nowait(job)

    def flush(self) -> None:
        """Block until every submitted job has run."""
        if self._thread is not None:
            self._queue.join()

    def _ensure_started(self) -> None:
        with self._start_lock:
            if self._thread is None or not self._thread.is_alive():
                self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
                self._thread.start()

    def _run(self) -> None:
        while True:
            job = self._queue.get()
            try:
                job()
            except Exception:
                logger.exception("Background persistence job failed")
            finally:
                self._queue.task_done()


def _strings(values: Any) -> tuple[str, ...]:
    if not isinstance(values, list):
        return ()
    return tuple(str(value) for value in values if value)


class EnrichmentFetcher:
    """Fetches enrichment data from the registry of each source.

    Every fetch returns None when the source has no registry, the
    package is unknown, or the request fails.
    """

    def __init__(self, session: requests.Session | None = None, timeout: float = FETCH_TIMEOUT) -> None:
        self.session = session if session is not None else requests.Session()
        self.session.headers.setdefault("User-Agent", f"pkgdeck/{__version__} (Linux package manager)")
        self.timeout = timeout
        self._fetchers: dict[PackageSource, Callable[[str], PackageEnrichment | None]] = {
            PackageSource.FLATPAK: self.fetch_flathub,
            PackageSource.CARGO: self.fetch_crates_io,
            PackageSource.PIP: self.fetch_pypi,
            PackageSource.PIPX: self.fetch_pypi,
            PackageSource.NPM: self.fetch_npm,
            PackageSource.SNAP: self.fetch_snapcraft,
            PackageSource.DART: self.fetch_pub_dev,
        }

    def supports(self, source: PackageSource) -> bool:
        return source in self._fetchers

    def fetch(self, package: Package) -> PackageEnrichment | None:
        fetcher = self._fetchers.get(package.source)
        if fetcher is None:
            return None
        return fetcher(package.name)

    def _get_json(self, url: str, headers: dict[str, str] | None = None) -> Any | None:
        try:
            response = self.session.get(url, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            logger.debug("Enrichment request to %s failed: %s", url, e)
            return None
        if response.status_code != 200:
            logger.debug("Enrichment request to %s returned HTTP %d", url, response.status_code)
            return None
        try:
            return response.json()
        except ValueError as e:
            logger.debug("Enrichment response from %s is not JSON: %s", url, e)
            return None

    def fetch_flathub(self, app_id: str) -> PackageEnrichment | None:
        data = self._get_json(FLATHUB_URL.format(name=app_id))
        if not isinstance(data, dict):
            return None
        icon = data.get("icon")
        if icon and not str(icon).startswith("http"):
            icon = FLATHUB_ICON_URL.format(name=app_id)
        screenshots = [
            shot.get("imgDesktopUrl")
            for shot in data.get("screenshots") or []
            if isinstance(shot, dict) and shot.get("imgDesktopUrl")
        ]
        categories = [
            category.get("name")
            for category in data.get("categories") or []
            if isinstance(category, dict) and category.get("name")
        ]
        return PackageEnrichment(
            icon_url=icon or None,
            screenshots=tuple(screenshots[:MAX_SCREENSHOTS]),
            categories=tuple(categories),
            developer=data.get("developerName"),
            downloads=data.get("installs_last_month"),
            summary=data.get("summary"),
            repository=(data.get("urls") or {}).get("homepage"),
        )

    def fetch_crates_io(self, name: str) -> PackageEnrichment | None:
        data = self._get_json(CRATES_URL.format(name=name))
        if not isinstance(data, dict) or not isinstance(data.get("crate"), dict):
            return None
        crate = data["crate"]
        return PackageEnrichment(
            summary=crate.get("description"),
            downloads=crate.get("downloads"),
            repository=crate.get("repository") or crate.get("homepage"),
            keywords=_strings(crate.get("keywords")),
            categories=_strings(crate.get("categories")),
            last_updated=crate.get("updated_at"),
        )

    def fetch_pypi(self, name: str) -> PackageEnrichment | None:
        data = self._get_json(PYPI_URL.format(name=name))
        if not isinstance(data, dict) or not isinstance(data.get("info"), dict):
            return None
        info = data["info"]
        project_urls = info.get("project_urls") or {}
        repository = (
            project_urls.get("Repository")
            or project_urls.get("Source")
            or project_urls.get("GitHub")
            or info.get("home_page")
            or None
        )
        keywords = tuple(k.strip() for k in (info.get("keywords") or "").split(",") if k.strip())
        categories = [
            classifier.split(" :: ")[1]
            for classifier in info.get("classifiers") or []
            if classifier.startswith("Topic ::") and " :: " in classifier
        ]
        return PackageEnrichment(
            summary=info.get("summary"),
            developer=info.get("author") or None,
            repository=repository,
            keywords=keywords,
            categories=tuple(categories[:MAX_CATEGORIES]),
        )

    def fetch_npm(self, name: str) -> PackageEnrichment | None:
        data = self._get_json(NPM_URL.format(name=name))
        if not isinstance(data, dict):
            return None
        author = data.get("author")
        developer = author.get("name") if isinstance(author, dict) else author
        repository = data.get("repository")
        if isinstance(repository, dict):
            repository = repository.get("url")
        return PackageEnrichment(
            summary=data.get("description"),
            keywords=_strings(data.get("keywords")),
            repository=repository or data.get("homepage"),
            developer=developer,
        )

    def fetch_snapcraft(self, name: str) -> PackageEnrichment | None:
        data = self._get_json(SNAPCRAFT_URL.format(name=name), headers={"Snap-Device-Series": "16"})
        if not isinstance(data, dict) or not isinstance(data.get("snap"), dict):
            return None
        snap = data["snap"]
        media = [item for item in snap.get("media") or [] if isinstance(item, dict)]
        icon = next((item.get("url") for item in media if item.get("type") == "icon"), None)
        screenshots = [item["url"] for item in media if item.get("type") == "screenshot" and item.get("url")]
        categories = [
            category.get("name")
            for category in snap.get("categories") or []
            if isinstance(category, dict) and category.get("name")
        ]
        return PackageEnrichment(
            icon_url=icon,
            screenshots=tuple(screenshots[:MAX_SCREENSHOTS]),
            categories=tuple(categories),
            summary=snap.get("summary") or snap.get("description"),
            developer=(snap.get("publisher") or {}).get("display-name"),
            repository=snap.get("website"),
        )

    def fetch_pub_dev(self, name: str) -> PackageEnrichment | None:
        data = self._get_json(PUB_DEV_URL.format(name=name))
        if not isinstance(data, dict):
            return None
        pubspec = (data.get("latest") or {}).get("pubspec")
        if not isinstance(pubspec, dict):
            return None

        score = self._get_json(PUB_DEV_SCORE_URL.format(name=name))
        rating = None
        downloads = None
        if isinstance(score, dict):
            popularity = score.get("popularityScore")
            # popularity is 0-1; ratings are shown out of 5
            rating = popularity * 5.0 if isinstance(popularity, int | float) else None
            downloads = score.get("likeCount")

        return PackageEnrichment(
            summary=pubspec.get("description"),
            repository=pubspec.get("repository") or pubspec.get("homepage"),
            rating=rating,
            downloads=downloads,
        )


@dataclass(frozen=True, slots=True)
class _CacheEntry:
    enrichment: PackageEnrichment
    fetched_at: float

    def to_dict(self) -> dict[str, Any]:
        return {"enrichment": self.enrichment.to_dict(), "fetched_at": self.fetched_at}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "_CacheEntry":
        return cls(
            enrichment=PackageEnrichment.from_dict(data["enrichment"]),
            fetched_at=float(data["fetched_at"]),
        )


class EnrichmentCache:
    """TTL cache of enrichment data keyed by package id.

    Attributes:
        path: Cache file.
        ttl: Entry lifetime in seconds.
        fetcher: Registry client used on cache misses.
    """

    def __init__(
        self,
        path: Path | None = None,
        ttl: float = CACHE_TTL_SECONDS,
        fetcher: EnrichmentFetcher | None = None,
        clock: Callable[[], float] = time.time,
        max_workers: int = 4,
    ) -> None:
        self.path = path if path is not None else get_enrichment_cache_path()
        self.ttl = ttl
        self.fetcher = fetcher if fetcher is not None else EnrichmentFetcher()
        self._clock = clock
        self._max_workers = max_workers
        self._entries: dict[str, _CacheEntry] = {}
        self._lock = ReadWriteLock()
        self._worker = PersistenceWorker()

    def _is_fresh(self, entry: _CacheEntry, now: float) -> bool:
        return now - entry.fetched_at < self.ttl

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._entries)

    def get(self, package: Package) -> PackageEnrichment | None:
        """Return the cached enrichment if present and not expired."""
        now = self._clock()
        with self._lock.read():
            entry = self._entries.get(package.id)
        if entry is None or not self._is_fresh(entry, now):
            return None
        return entry.enrichment

    def insert(self, package: Package, enrichment: PackageEnrichment) -> None:
        """Cache an enrichment and schedule a background save."""
        with self._lock.write():
            self._entries[package.id] = _CacheEntry(enrichment, self._clock())
        self._worker.submit(self._save)

    def load(self) -> None:
        """Load the cache file, dropping expired and malformed entries."""
        try:
            data = read_json(self.path)
        except (OSError, ValueError) as e:
            logger.debug("Ignoring unreadable enrichment cache %s: %s", self.path, e)
            return
        if not isinstance(data, dict):
            return

        now = self._clock()
        loaded: dict[str, _CacheEntry] = {}
        for key, value in data.items():
            try:
                entry = _CacheEntry.from_dict(value)
            except (KeyError, TypeError, ValueError, AttributeError):
                logger.debug("Skipping malformed enrichment cache entry %s", key)
                continue
            if self._is_fresh(entry, now):
                loaded[key] = entry

        with self._lock.write():
            self._entries = loaded
        logger.debug("Loaded %d enrichment cache entries", len(loaded))

    def _save(self) -> None:
        with self._lock.read():
            data = {key: entry.to_dict() for key, entry in self._entries.items()}
        try:
            write_json_atomic(self.path, data)
        except OSError as e:
            logger.warning("Failed to save enrichment cache to %s: %s", self.path, e)

    def flush(self) -> None:
        """Wait for pending background saves."""
        self._worker.flush()

    def enrich(self, package: Package) -> PackageEnrichment | None:
        """Return cached enrichment, fetching and caching it on a miss."""
        cached = self.get(package)
        if cached is not None:
            return cached
        enrichment = self.fetcher.fetch(package)
        if enrichment is not None:
            self.insert(package, enrichment)
        return enrichment

    def enrich_many(self, packages: Iterable[Package]) -> dict[str, PackageEnrichment]:
        """Enrich several packages concurrently.

        Returns:
            Enrichment by package id, for packages that have one.
        """
        candidates = [pkg for pkg in packages if self.fetcher.supports(pkg.source)]
        if not candidates:
            return {}
        with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
            results = list(pool.map(self.enrich, candidates))
        return {pkg.id: enrichment for pkg, enrichment in zip(candidates, results) if enrichment is not None}

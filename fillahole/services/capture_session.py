"""
Capture session - GPS watch state for the geotagged camera flow.

Consumes a stream of position fixes (up to 1 Hz), tracks the latest
accuracy, and reverse-geocodes the position only after the fix has been
quiet for the debounce window. close() releases the watch and any pending
debounce timer; no callback fires after it.
"""

from typing import AsyncIterator, Callable, Dict, Optional
import asyncio
import logging
import time

from fillahole.core.settings import Settings
from fillahole.models.metadata import CaptureMetadata, GpsFix, gps_strength, normalize_device_metadata
from fillahole.services.geocoding import GeocodingProvider, build_geocoding_provider, display_address

logger = logging.getLogger(__name__)

LOCKED_ACCURACY_M = 20
GEOCODE_ACCURACY_M = 50
NO_LOCK_ACCURACY_M = 100.0


class CaptureNotReadyError(RuntimeError):
    pass


class CaptureSession:

    def __init__(
        self,
        fixes: AsyncIterator[GpsFix],
        geocoder: GeocodingProvider,
        debounce_seconds: float = 2.0,
        on_address: Optional[Callable[[str], None]] = None,
    ):
        self._fixes = fixes
        self._geocoder = geocoder
        self._debounce_seconds = debounce_seconds
        self._on_address = on_address

        self.location: Optional[GpsFix] = None
        self.accuracy: float = NO_LOCK_ACCURACY_M
        self.address: str = "Locating..."
        self.error: Optional[str] = None
        self.geocode_calls = 0
        self.closed = False

        self._watch_task: Optional[asyncio.Task] = None
        self._geocode_task: Optional[asyncio.Task] = None

    @classmethod
    def from_settings(
        cls,
        fixes: AsyncIterator[GpsFix],
        settings: Settings,
        on_address: Optional[Callable[[str], None]] = None,
    ) -> "CaptureSession":
        return cls(
            fixes,
            build_geocoding_provider(settings),
            debounce_seconds=settings.GEOCODE_DEBOUNCE_SECONDS,
            on_address=on_address,
        )

    @property
    def quality(self) -> str:
        return gps_strength(self.accuracy)

    @property
    def can_shoot(self) -> bool:
        return self.location is not None and self.accuracy < LOCKED_ACCURACY_M

    @property
    def has_pending_geocode(self) -> bool:
        return self._geocode_task is not None and not self._geocode_task.done()

    @property
    def is_watching(self) -> bool:
        return self._watch_task is not None and not self._watch_task.done()

    def start(self) -> None:
        if self.closed:
            raise RuntimeError("Capture session already closed")
        if self._watch_task is None:
            self._watch_task = asyncio.get_running_loop().create_task(self._watch())

    async def _watch(self) -> None:
        try:
            async for fix in self._fixes:
                if self.closed:
                    break
                self.on_fix(fix)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.error = f"Failed to start GPS: {e}"
            logger.error(self.error, exc_info=True)

    def on_fix(self, fix: GpsFix) -> None:
        """Record a fix; every fix resets the trailing geocode timer, only a decent one rearms it."""
        if self.closed:
            return
        self.location = fix
        if fix.accuracy is not None:
            self.accuracy = fix.accuracy

        self._cancel_geocode()
        if fix.accuracy is not None and fix.accuracy < GEOCODE_ACCURACY_M:
            self._geocode_task = asyncio.get_running_loop().create_task(self._geocode_after_quiet(fix))

    async def _geocode_after_quiet(self, fix: GpsFix) -> None:
        await asyncio.sleep(self._debounce_seconds)
        self.geocode_calls += 1
        result: Dict = await asyncio.to_thread(self._geocoder.reverse_geocode, fix.latitude, fix.longitude)
        if self.closed:
            return
        address = display_address(result)
        if address:
            self.address = address
            if self._on_address:
                self._on_address(address)

    def _cancel_geocode(self) -> None:
        if self._geocode_task is not None and not self._geocode_task.done():
            self._geocode_task.cancel()
        self._geocode_task = None

    def capture(self, exif: Optional[Dict] = None, now_ms: Optional[int] = None) -> CaptureMetadata:
        """Metadata for a photo taken now. Requires a GPS lock (< 20 m)."""
        if self.location is None:
            raise CaptureNotReadyError("Cannot capture: waiting for first GPS fix")
        if not self.can_shoot:
            raise CaptureNotReadyError("Cannot capture: GPS lock not achieved (accuracy must be < 20m)")
        captured_at = now_ms if now_ms is not None else int(time.time() * 1000)
        return normalize_device_metadata(self.location.model_dump(), captured_at, exif)

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        tasks = [t for t in (self._watch_task, self._geocode_task) if t is not None and not t.done()]
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        close_stream = getattr(self._fixes, "aclose", None)
        if close_stream is not None:
            await close_stream()
        logger.debug("Capture session closed")

    async def __aenter__(self) -> "CaptureSession":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

"""
Preview Pipeline

Debounces edits, preloads each new render off-screen and only swaps the
displayed image once a load has fully succeeded.

Every issued render URL gets a generation token from a monotonically
increasing counter. A finished load may touch displayed state only if its
token is still the latest one issued, so an older render that completes late
can never overwrite a newer one. Superseded loads keep running and their
results are dropped, unless `cancel_superseded` is set.
"""

import asyncio
from enum import Enum
from typing import Awaitable, Callable, Optional

from loguru import logger as log

from common import global_config
from common.config_models import PreviewConfig
from src.utils.logging_config import setup_logging

setup_logging()

UrlBuilder = Callable[[], Optional[str]]
ImageLoader = Callable[[str], Awaitable[bytes]]


class PreviewState(str, Enum):
    IDLE = "idle"
    DEBOUNCING = "debouncing"
    PRELOADING = "preloading"
    DISPLAYING = "displaying"


class PreviewPipeline:
    def __init__(
        self,
        build_url: UrlBuilder,
        load_image: ImageLoader,
        preview_config: Optional[PreviewConfig] = None,
        on_change: Optional[Callable[["PreviewPipeline"], None]] = None,
    ):
        config = preview_config or global_config.preview
        self.debounce_seconds = config.debounce_seconds
        self.indicator_timeout_seconds = config.indicator_timeout_seconds
        self.cancel_superseded = config.cancel_superseded

        self._build_url = build_url
        self._load_image = load_image
        self._on_change = on_change

        self.state = PreviewState.IDLE
        self.displayed_url: Optional[str] = None
        self.displayed_image: Optional[bytes] = None
        self.rendering = False
        self.issued_url: Optional[str] = None

        self._generation = 0
        self._debounce_handle: Optional[asyncio.TimerHandle] = None
        self._guard_handle: Optional[asyncio.TimerHandle] = None
        self._tasks: dict[int, asyncio.Task] = {}
        self._closed = False

    @property
    def generation(self) -> int:
        return self._generation

    def show(self, url: Optional[str], image: Optional[bytes] = None) -> None:
        """Display an image directly, e.g. the bare product before any render."""
        self.displayed_url = url
        self.displayed_image = image
        if url and self.state == PreviewState.IDLE:
            self.state = PreviewState.DISPLAYING
        self._notify()

    def notify_edit(self) -> None:
        """Restart the trailing-edge debounce timer."""
        if self._closed:
            return
        loop = asyncio.get_running_loop()
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
        self._debounce_handle = loop.call_later(self.debounce_seconds, self._on_debounce)
        self.state = PreviewState.DEBOUNCING

    def flush(self) -> Optional[int]:
        """Fire a pending debounce immediately. Returns the issued generation, if any."""
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
            self._debounce_handle = None
        return self._issue()

    def _on_debounce(self) -> None:
        self._debounce_handle = None
        self._issue()

    def _settled_state(self) -> PreviewState:
        if self.rendering:
            return PreviewState.PRELOADING
        return PreviewState.DISPLAYING if self.displayed_url else PreviewState.IDLE

    def _issue(self) -> Optional[int]:
        if self._closed:
            return None
        try:
            url = self._build_url()
        except Exception as e:
            log.warning(f"Could not build render URL: {str(e)}")
            url = None

        if url is None or url == self.issued_url:
            self.state = self._settled_state()
            self._notify()
            return None

        self._generation += 1
        token = self._generation
        self.issued_url = url

        if self.cancel_superseded:
            for stale_token, task in list(self._tasks.items()):
                if stale_token != token:
                    task.cancel()

        loop = asyncio.get_running_loop()
        self.rendering = True
        self.state = PreviewState.PRELOADING
        if self._guard_handle is not None:
            self._guard_handle.cancel()
        self._guard_handle = loop.call_later(
            self.indicator_timeout_seconds, self._on_guard_timeout, token
        )

        log.debug(f"Preloading generation {token}: {url}")
        task = loop.create_task(self._preload(url, token))
        self._tasks[token] = task
        task.add_done_callback(lambda _: self._tasks.pop(token, None))
        self._notify()
        return token

    async def _preload(self, url: str, token: int) -> None:
        try:
            image = await self._load_image(url)
        except asyncio.CancelledError:
            log.debug(f"Generation {token} cancelled")
            raise
        except Exception as e:
            if token != self._generation or self._closed:
                log.debug(f"Ignoring failure of stale generation {token}")
                return
            log.warning(f"Preview load failed for generation {token}: {str(e)}")
            # Allow the same state to be retried on the next edit
            self.issued_url = self.displayed_url
            self._clear_indicator()
            self.state = self._settled_state()
            self._notify()
            return

        if token != self._generation or self._closed:
            log.debug(f"Discarding stale generation {token} (latest {self._generation})")
            return

        self.displayed_url = url
        self.displayed_image = image
        self._clear_indicator()
        self.state = PreviewState.DISPLAYING
        self._notify()

    def _on_guard_timeout(self, token: int) -> None:
        self._guard_handle = None
        if token == self._generation and self.rendering:
            log.info(f"Generation {token} still loading; hiding rendering indicator")
            self.rendering = False
            self._notify()

    def _clear_indicator(self) -> None:
        self.rendering = False
        if self._guard_handle is not None:
            self._guard_handle.cancel()
            self._guard_handle = None

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change(self)

    async def wait_idle(self) -> None:
        """Wait for every in-flight preload to finish (mainly for callers shutting down)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)

    def close(self) -> None:
        """Cancel pending timers. Loads still in flight finish but no longer update the display."""
        self._closed = True
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
            self._debounce_handle = None
        if self._guard_handle is not None:
            self._guard_handle.cancel()
            self._guard_handle = None
        if self.cancel_superseded:
            for task in self._tasks.values():
                task.cancel()

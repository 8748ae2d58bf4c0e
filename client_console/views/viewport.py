"""Viewport size classification for responsive layouts."""

import asyncio
from enum import Enum
from typing import Awaitable, Callable, Optional

from pydantic import BaseModel

from client_console.core.config import settings

MOBILE_BREAKPOINT_PX = 640
DESKTOP_BREAKPOINT_PX = 1024


class ViewportSize(str, Enum):
    MOBILE = "mobile"
    TABLET = "tablet"
    DESKTOP = "desktop"


def get_viewport_size(width: int) -> ViewportSize:
    """Classify a viewport width: <640 mobile, <1024 tablet, otherwise desktop."""
    if width < MOBILE_BREAKPOINT_PX:
        return ViewportSize.MOBILE
    if width < DESKTOP_BREAKPOINT_PX:
        return ViewportSize.TABLET
    return ViewportSize.DESKTOP


class Viewport(BaseModel):
    """Reported browser viewport."""

    width: int = 1024
    height: int = 768

    @property
    def size(self) -> ViewportSize:
        return get_viewport_size(self.width)

    @property
    def is_mobile(self) -> bool:
        return self.size == ViewportSize.MOBILE

    @property
    def is_tablet(self) -> bool:
        return self.size == ViewportSize.TABLET

    @property
    def is_desktop(self) -> bool:
        return self.size == ViewportSize.DESKTOP


class ViewportTracker:
    """
    Holds the latest viewport of a live session.

    Resize reports are applied after a quiet period so a burst of resize
    events only re-renders once.
    """

    def __init__(
        self,
        debounce: Optional[float] = None,
        on_change: Optional[Callable[[], Awaitable[None]]] = None,
    ) -> None:
        self.debounce = debounce if debounce is not None else settings.VIEWPORT_DEBOUNCE_MS / 1000
        self.on_change = on_change
        self.current = Viewport()
        self._pending: Optional[asyncio.Task] = None

    def report(self, width: int, height: int) -> None:
        self.cancel()
        self._pending = asyncio.create_task(self._apply_after_pause(Viewport(width=width, height=height)))

    async def _apply_after_pause(self, viewport: Viewport) -> None:
        await asyncio.sleep(self.debounce)
        self._pending = None
        changed = viewport.size != self.current.size
        self.current = viewport
        if changed and self.on_change is not None:
            await self.on_change()

    def cancel(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

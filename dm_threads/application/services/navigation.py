"""
Navigation history for the messaging pages.

Models the browser history the messaging UI reads and writes:
- push(): a new entry (user picked a thread from the list)
- replace(): rewrite the current entry in place (resolution produced a
  canonical id, or the user went back to the list)
- back()/forward(): move through entries; navigation listeners fire so the
  page can re-run resolution with the historical identifier.

Paths look like /messages and /messages/{identifier}, optionally behind a
locale segment (/ja/messages/{identifier}).
"""

import asyncio
import logging
from typing import Any, Callable, Optional

from dm_threads.application.services.thread_events import invoke_listener
from dm_threads.config.settings import Config

logger = logging.getLogger(__name__)

NavigationListener = Callable[[str], Any]


def conversation_path(
    identifier: Optional[str] = None,
    prefix: str = Config.MESSAGES_PATH_PREFIX,
    locale: Optional[str] = None,
) -> str:
    path = prefix.rstrip("/") or "/"
    if identifier:
        path = f"{path}/{identifier}"
    if locale:
        path = f"/{locale}{path}"
    return path


def parse_conversation_identifier(
    path: str, prefix: str = Config.MESSAGES_PATH_PREFIX
) -> Optional[str]:
    """Extract {identifier} from /messages/{identifier}[/...]; None for the list page."""
    segments = [s for s in path.split("?", 1)[0].split("/") if s]
    prefix_segments = [s for s in prefix.split("/") if s]
    if segments[: len(prefix_segments)] != prefix_segments:
        # Allow a leading locale segment
        if (
            len(segments) > len(prefix_segments)
            and segments[1 : len(prefix_segments) + 1] == prefix_segments
        ):
            segments = segments[1:]
        else:
            return None

    rest = segments[len(prefix_segments) :]
    return rest[0] if rest else None


class NavigationHistory:
    def __init__(
        self,
        initial_path: str = Config.MESSAGES_PATH_PREFIX,
        prefix: str = Config.MESSAGES_PATH_PREFIX,
    ):
        self._entries: list[str] = [initial_path]
        self._index = 0
        self._prefix = prefix
        self._listeners: list[NavigationListener] = []
        self._tasks: set[asyncio.Task] = set()

    @property
    def current_path(self) -> str:
        return self._entries[self._index]

    @property
    def current_conversation_identifier(self) -> Optional[str]:
        return parse_conversation_identifier(self.current_path, self._prefix)

    @property
    def entries(self) -> list[str]:
        return list(self._entries)

    @property
    def can_go_back(self) -> bool:
        return self._index > 0

    @property
    def can_go_forward(self) -> bool:
        return self._index < len(self._entries) - 1

    def push(self, path: str) -> None:
        # A new entry drops the forward stack, like the browser does
        del self._entries[self._index + 1 :]
        self._entries.append(path)
        self._index += 1
        logger.debug(f"[NavigationHistory] push {path}")

    def replace(self, path: str) -> None:
        self._entries[self._index] = path
        logger.debug(f"[NavigationHistory] replace → {path}")

    def back(self) -> Optional[str]:
        if not self.can_go_back:
            return None
        self._index -= 1
        self._notify()
        return self.current_path

    def forward(self) -> Optional[str]:
        if not self.can_go_forward:
            return None
        self._index += 1
        self._notify()
        return self.current_path

    def on_navigate(self, listener: NavigationListener) -> Callable[[], None]:
        """Listen for back/forward moves. Returns a callable that stops listening."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _notify(self) -> None:
        path = self.current_path
        for listener in list(self._listeners):
            try:
                task = invoke_listener(listener, path)
            except Exception:
                logger.exception(f"[NavigationHistory] Listener failed for {path}")
                continue
            if task is not None:
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)

    async def drain(self) -> None:
        """Wait for async navigation listeners to finish."""
        while True:
            pending = [t for t in self._tasks if not t.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

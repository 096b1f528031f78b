import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass

from klip.clipboard import Clipboard
from klip.config import POLL_INTERVAL
from klip.storage import ClipStore, StorageError

logger = logging.getLogger(__name__)


@dataclass
class MonitorState:
    last_seen_text: str = ""


class ClipboardMonitor:
    """Polls the clipboard and records new text in the store.

    Subscribers registered with :meth:`subscribe` are called (with no
    arguments) after every clip the monitor actually inserts.
    """

    def __init__(
        self,
        store: ClipStore,
        clipboard: Clipboard,
        poll_interval: float | None = None,
        on_change: Callable[[], None] | None = None,
    ):
        self._store = store
        self._clipboard = clipboard
        self._poll_interval = poll_interval if poll_interval is not None else POLL_INTERVAL
        self._subscribers: list[Callable[[], None]] = []
        if on_change:
            self._subscribers.append(on_change)
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    def subscribe(self, callback: Callable[[], None]) -> None:
        self._subscribers.append(callback)

    def _read_text(self) -> str | None:
        try:
            return self._clipboard.read_text()
        except Exception:
            logger.debug("Clipboard read failed", exc_info=True)
            return None

    def initial_state(self) -> MonitorState:
        return MonitorState(last_seen_text=self._read_text() or "")

    def check_clipboard(self, state: MonitorState) -> bool:
        text = self._read_text()
        if text is None or text == state.last_seen_text or not text.strip():
            return False

        previous = state.last_seen_text
        state.last_seen_text = text
        try:
            clip_id = self._store.insert_text(text)
        except StorageError:
            logger.exception("Error saving clipboard text")
            state.last_seen_text = previous
            return False

        if clip_id is None:
            return False

        logger.debug("Captured clip %s", clip_id)
        self._notify()
        return True

    def _notify(self) -> None:
        for callback in list(self._subscribers):
            try:
                callback()
            except Exception:
                logger.exception("clipboard-changed subscriber failed")

    def run(self, state: MonitorState | None = None) -> None:
        state = state if state is not None else self.initial_state()
        while not self._stop_event.is_set():
            try:
                self.check_clipboard(state)
            except Exception:
                logger.exception("Error checking clipboard")
            self._stop_event.wait(self._poll_interval)

    def start(self) -> threading.Thread:
        if self._thread and self._thread.is_alive():
            return self._thread
        self._stop_event.clear()
        state = self.initial_state()
        self._thread = threading.Thread(target=self.run, args=(state,), name="klip-monitor", daemon=True)
        self._thread.start()
        return self._thread

    def stop(self, timeout: float | None = None) -> None:
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout)
            self._thread = None

"""规则文件监视器

规则文件被修改后 (防抖) 回调，通常用于 SettingsConfigSource.reload()。
"""
import logging
import threading
from pathlib import Path
from typing import Callable, Dict, Optional, Set, Union

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[str], None]


class RulesFileHandler(FileSystemEventHandler):
    """过滤目标文件并对变化事件做防抖"""

    def __init__(
        self,
        watched_files: Set[str],
        callback: ChangeCallback,
        debounce_delay: float = 0.5,
    ):
        super().__init__()
        self.watched_files = set(watched_files)
        self.callback = callback
        self.debounce_delay = debounce_delay
        self._timers: Dict[str, threading.Timer] = {}
        self._lock = threading.Lock()

    def on_modified(self, event: FileSystemEvent):
        if not event.is_directory:
            self._handle_event(event.src_path)

    def on_created(self, event: FileSystemEvent):
        if not event.is_directory:
            self._handle_event(event.src_path)

    def on_moved(self, event: FileSystemEvent):
        if not event.is_directory:
            self._handle_event(event.dest_path)

    def _handle_event(self, path) -> None:
        path = str(path)
        if Path(path).name not in self.watched_files:
            return

        with self._lock:
            timer = self._timers.get(path)
            if timer is not None:
                timer.cancel()
            timer = threading.Timer(self.debounce_delay, self._fire, args=(path,))
            timer.daemon = True
            self._timers[path] = timer
            timer.start()

    def _fire(self, path: str) -> None:
        with self._lock:
            self._timers.pop(path, None)
        logger.info(f"Rules file changed: {path}")
        try:
            self.callback(path)
        except Exception:
            logger.exception(f"Rules change callback failed for {path}")

    def cancel(self) -> None:
        with self._lock:
            for timer in self._timers.values():
                timer.cancel()
            self._timers.clear()


class RulesFileWatcher:
    """
    规则文件监视器

    用法:
        with RulesFileWatcher("rules.txt", on_change=lambda path: source.reload()):
            ...
    """

    def __init__(
        self,
        path: Union[str, Path],
        on_change: ChangeCallback,
        debounce_delay: float = 0.5,
    ):
        self.path = Path(path)
        self._handler = RulesFileHandler(
            watched_files={self.path.name},
            callback=on_change,
            debounce_delay=debounce_delay,
        )
        self._observer: Optional[Observer] = None

    def start(self) -> None:
        if self._observer is not None:
            return

        watch_dir = self.path.parent
        watch_dir.mkdir(parents=True, exist_ok=True)

        observer = Observer()
        observer.schedule(self._handler, str(watch_dir), recursive=False)
        observer.start()
        self._observer = observer
        logger.info(f"Watching rules file: {self.path}")

    def stop(self) -> None:
        if self._observer is None:
            return

        self._handler.cancel()
        self._observer.stop()
        self._observer.join(timeout=5)
        self._observer = None
        logger.info("Rules file watcher stopped")

    def __enter__(self) -> 'RulesFileWatcher':
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

"""
檔案監聽器
監控 vault 資料夾變更，在變更停止一段時間後觸發發佈
"""

import time
import threading
from pathlib import Path
from typing import Callable, Iterable, Optional
from watchdog.observers import Observer
from watchdog.events import FileSystemEventHandler, FileSystemEvent


DEFAULT_IGNORED_DIRS = ('.obsidian', '.git', '.trash')


class FileMonitor:
    """vault 變更監聽器（防抖）"""

    def __init__(
        self,
        watch_path: str,
        callback: Callable[[], None],
        delay: float = 10,
        ignored_dirs: Iterable[str] = DEFAULT_IGNORED_DIRS,
    ):
        """
        初始化監聽器

        Args:
            watch_path:   vault 根目錄（recursive）
            callback:     變更平息後呼叫，無參數
            delay:        防抖延遲（秒）
            ignored_dirs: 這些資料夾內的事件不觸發（宿主設定、版控、垃圾桶）
        """
        self.watch_path   = str(Path(watch_path).expanduser().resolve())
        self.callback     = callback
        self.delay        = delay
        self.ignored_dirs = frozenset(ignored_dirs)

        self.observer = Observer()

        self._last_event_time: float = 0
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()

    def _make_handler(self) -> FileSystemEventHandler:
        monitor = self

        class Handler(FileSystemEventHandler):
            def on_any_event(self, event: FileSystemEvent):
                if event.is_directory:
                    return
                if event.event_type in ('opened', 'closed', 'closed_no_write'):
                    return
                if monitor._is_ignored(event.src_path):
                    return
                monitor._schedule()

        return Handler()

    def _is_ignored(self, file_path: str) -> bool:
        try:
            rel = Path(file_path).resolve().relative_to(self.watch_path)
        except ValueError:
            return True
        parts = rel.parts
        if not parts:
            return True
        # 目錄在忽略清單，或檔案本身是隱藏檔（編輯器暫存等）
        if any(p in self.ignored_dirs for p in parts[:-1]):
            return True
        return parts[-1].startswith('.') or parts[-1].startswith('~$')

    # ── 防抖排程 ──────────────────────────────────────────────────────────────

    def _schedule(self) -> None:
        """重設防抖 timer"""
        with self._lock:
            self._last_event_time = time.time()
            if self._timer:
                self._timer.cancel()
            self._timer = threading.Timer(self.delay, self._fire_if_idle)
            self._timer.daemon = True
            self._timer.start()

    def _fire_if_idle(self) -> None:
        with self._lock:
            if time.time() - self._last_event_time < self.delay:
                return  # 還有新事件進來，不觸發
            self._timer = None

        try:
            self.callback()
        except Exception as e:
            print(f"[FileMonitor] 回調執行錯誤: {e}")

    # ── 生命週期 ──────────────────────────────────────────────────────────────

    def start(self) -> None:
        self.observer.schedule(self._make_handler(), self.watch_path, recursive=True)
        self.observer.start()

    def stop(self) -> None:
        with self._lock:
            if self._timer:
                self._timer.cancel()
        self.observer.stop()
        self.observer.join()

"""
進度回報器
發佈過程的計數器，供狀態列等觀察者訂閱；不保存任何操作結果
"""

import threading
from typing import Callable, List, Optional


class ProgressSnapshot:
    """某一時刻的進度"""

    def __init__(
        self,
        active: bool,
        publish_total: int,
        publish_done: int,
        delete_total: int,
        delete_done: int,
        finished: bool = False
    ):
        self.active = active
        self.publish_total = publish_total
        self.publish_done = publish_done
        self.delete_total = delete_total
        self.delete_done = delete_done
        self.finished = finished

    def __repr__(self):
        return (
            f"ProgressSnapshot(active={self.active}, "
            f"publish={self.publish_done}/{self.publish_total}, "
            f"delete={self.delete_done}/{self.delete_total})"
        )


class ProgressReporter:
    """
    進度計數器

    increment 可能來自多個上傳執行緒，所有狀態變更都在鎖內進行。
    計數在達到宣告總數後飽和，不會超過也不會拋錯。
    finish(linger) 立即通知完成，linger 秒後再通知觀察者清除顯示。
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._observers: List[Callable[[ProgressSnapshot], None]] = []
        self._timer: Optional[threading.Timer] = None
        self._active = False
        self._finished = False
        self._publish_total = 0
        self._publish_done = 0
        self._delete_total = 0
        self._delete_done = 0

    def subscribe(self, observer: Callable[[ProgressSnapshot], None]) -> None:
        self._observers.append(observer)

    def unsubscribe(self, observer: Callable[[ProgressSnapshot], None]) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    @property
    def active(self) -> bool:
        return self._active

    def snapshot(self) -> ProgressSnapshot:
        with self._lock:
            return self._snapshot()

    def start(self, publish_total: int = 0, delete_total: int = 0) -> None:
        """重設計數並標記為進行中"""
        with self._lock:
            if self._timer:
                self._timer.cancel()
                self._timer = None
            self._active = True
            self._finished = False
            self._publish_total = max(0, publish_total)
            self._delete_total = max(0, delete_total)
            self._publish_done = 0
            self._delete_done = 0
            snap = self._snapshot()
        self._notify(snap)

    def increment_publish(self) -> None:
        with self._lock:
            if self._publish_done < self._publish_total:
                self._publish_done += 1
            snap = self._snapshot()
        self._notify(snap)

    def increment_delete(self) -> None:
        with self._lock:
            if self._delete_done < self._delete_total:
                self._delete_done += 1
            snap = self._snapshot()
        self._notify(snap)

    def finish(self, linger: float = 0.0, success: bool = True) -> None:
        """
        標記完成

        Args:
            linger: 清除顯示前的停留秒數（純顯示用途）
            success: False 時以零完成度通知（失敗路徑）
        """
        with self._lock:
            self._finished = True
            if not success:
                self._publish_done = 0
                self._delete_done = 0
            snap = self._snapshot()
        self._notify(snap)

        if linger and linger > 0:
            with self._lock:
                if self._timer:
                    self._timer.cancel()
                self._timer = threading.Timer(linger, self._reset)
                self._timer.daemon = True
                self._timer.start()
        else:
            self._reset()

    def _reset(self) -> None:
        with self._lock:
            self._timer = None
            self._active = False
            self._finished = False
            self._publish_total = 0
            self._publish_done = 0
            self._delete_total = 0
            self._delete_done = 0
            snap = self._snapshot()
        self._notify(snap)

    def _snapshot(self) -> ProgressSnapshot:
        return ProgressSnapshot(
            active=self._active,
            publish_total=self._publish_total,
            publish_done=self._publish_done,
            delete_total=self._delete_total,
            delete_done=self._delete_done,
            finished=self._finished,
        )

    def _notify(self, snap: ProgressSnapshot) -> None:
        for observer in list(self._observers):
            observer(snap)

"""
取消信号
"""
import threading
from typing import Callable, Dict, Optional


class CancelToken:
    """
    跨线程共享的取消信号

    cancel() 之后 is_cancelled 为真，并依次调用已注册的回调。
    回调用于中断阻塞中的网络调用（例如关闭正在握手的套接字）。
    """

    def __init__(self):
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: Dict[int, Callable[[], None]] = {}
        self._next_id = 0
        self._timer: Optional[threading.Timer] = None

    @classmethod
    def with_timeout(cls, seconds: float) -> "CancelToken":
        """
        创建在指定秒数后自动取消的信号

        Args:
            seconds: 整体截止时间（秒）

        Returns:
            CancelToken: 取消信号
        """
        token = cls()
        token._timer = threading.Timer(seconds, token.cancel)
        token._timer.daemon = True
        token._timer.start()
        return token

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._event.wait(timeout)

    def cancel(self):
        """触发取消"""
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks = list(self._callbacks.values())
            self._callbacks.clear()
            if self._timer is not None:
                self._timer.cancel()

        for callback in callbacks:
            callback()

    def on_cancel(self, callback: Callable[[], None]) -> Callable[[], None]:
        """
        注册取消回调

        已经取消时立即调用回调。

        Args:
            callback: 取消时调用的函数

        Returns:
            Callable: 注销函数
        """
        with self._lock:
            if not self._event.is_set():
                handle = self._next_id
                self._next_id += 1
                self._callbacks[handle] = callback
                return lambda: self._unregister(handle)

        callback()
        return lambda: None

    def _unregister(self, handle: int):
        with self._lock:
            self._callbacks.pop(handle, None)

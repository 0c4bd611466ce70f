"""等待首个响应块时的进度提示。

提示只是装饰：它在后台线程里刷新 stderr，不接触数据通路。
会话在发起请求前 start()，收到第一块或请求失败时 stop()。
"""

from typing import Optional, Protocol

from rich.console import Console
from rich.status import Status


class WaitIndicator(Protocol):
    def start(self) -> None:
        ...

    def stop(self) -> None:
        ...


class NullIndicator:
    def start(self) -> None:
        pass

    def stop(self) -> None:
        pass


class SpinnerIndicator:
    """基于 rich Status 的 spinner，stop() 可重复调用。"""

    def __init__(self, console: Optional[Console] = None, spinner: str = "dots"):
        self._console = console or Console(stderr=True)
        self._spinner = spinner
        self._status: Optional[Status] = None

    def start(self) -> None:
        if self._status is not None:
            return
        self._status = self._console.status("", spinner=self._spinner)
        self._status.start()

    def stop(self) -> None:
        if self._status is None:
            return
        status, self._status = self._status, None
        status.stop()


def terminal_indicator() -> WaitIndicator:
    """stderr 是终端时返回 spinner，否则返回空实现。"""

    console = Console(stderr=True)
    if console.is_terminal:
        return SpinnerIndicator(console)
    return NullIndicator()

"""Server-Sent-Events 帧解析。

把任意来源的字节块序列（HTTP 响应体、管道等）切分成行、再组装成帧：

- 以空行作为帧边界；
- `event:` / `data:` / `id:` 写入对应字段，多行 data 以换行拼接；
- 以 `:` 开头的行是注释，直接丢弃；
- 跨字节块的半行会留在缓冲区，直到读到换行符才解析。

payload 为 `[DONE]` 时流正常结束；payload 无法解析时抛出一次 ParseError，
之后不再产出任何事件。无论以哪种方式结束，都会调用 on_close 释放底层连接。
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Callable, Generic, Iterable, Iterator, List, Optional, TypeVar

from models_chat.domain.exceptions import ParseError

T = TypeVar("T")

DONE_SENTINEL = "[DONE]"


@dataclass(frozen=True)
class StreamEvent:
    """一个完整的事件帧。"""

    data: str
    event: Optional[str] = None
    id: Optional[str] = None


def iter_lines(chunks: Iterable[bytes]) -> Iterator[str]:
    """把字节块切成去掉行尾的文本行，末尾不完整的行在输入耗尽时也会产出。"""

    buffer = b""
    for chunk in chunks:
        if not chunk:
            continue
        buffer += chunk
        while True:
            idx = buffer.find(b"\n")
            if idx < 0:
                break
            raw, buffer = buffer[:idx], buffer[idx + 1:]
            yield _decode_line(raw)
    if buffer:
        yield _decode_line(buffer)


def _decode_line(raw: bytes) -> str:
    if raw.endswith(b"\r"):
        raw = raw[:-1]
    return raw.decode("utf-8", errors="replace")


def iter_events(chunks: Iterable[bytes]) -> Iterator[StreamEvent]:
    """按 SSE 规则把行组装成 StreamEvent。"""

    data_lines: List[str] = []
    event_type: Optional[str] = None
    event_id: Optional[str] = None

    for line in iter_lines(chunks):
        if line == "":
            if data_lines:
                yield StreamEvent(data="\n".join(data_lines), event=event_type, id=event_id)
            data_lines = []
            event_type = None
            event_id = None
            continue
        if line.startswith(":"):
            continue

        name, sep, value = line.partition(":")
        if sep and value.startswith(" "):
            value = value[1:]
        if name == "data":
            data_lines.append(value)
        elif name == "event":
            event_type = value
        elif name == "id":
            event_id = value
        # 其余字段（retry 等）忽略

    # 服务端省略最后一个空行时，仍把已累积的数据作为一帧交付
    if data_lines:
        yield StreamEvent(data="\n".join(data_lines), event=event_type, id=event_id)


class EventStreamReader(Generic[T]):
    """把字节流包装成只能向前读取的 payload 迭代器。

    Args:
        chunks: 字节块序列。
        decode: 把 json.loads 后的对象转换为目标类型；结构不符时应抛出
            ParseError / ValueError / TypeError / KeyError。
        on_close: 释放底层字节源的回调，只会被调用一次。
    """

    def __init__(
        self,
        chunks: Iterable[bytes],
        decode: Callable[[Any], T],
        on_close: Optional[Callable[[], None]] = None,
    ):
        self._events = iter_events(chunks)
        self._decode = decode
        self._on_close = on_close
        self._finished = False
        self._closed = False

    def __iter__(self) -> "EventStreamReader[T]":
        return self

    def __next__(self) -> T:
        if self._finished:
            raise StopIteration
        try:
            event = next(self._events)
        except BaseException:
            # 自然结束、读错误或 KeyboardInterrupt 都要释放连接
            self._finish()
            raise

        if event.data == DONE_SENTINEL:
            self._finish()
            raise StopIteration

        try:
            return self._decode(json.loads(event.data))
        except ParseError:
            self._finish()
            raise
        except (ValueError, TypeError, KeyError) as exc:
            # json.JSONDecodeError 也是 ValueError
            self._finish()
            raise ParseError(
                code="MALFORMED_EVENT",
                message=f"malformed event payload: {exc}",
                data=event.data[:200],
            ) from exc

    def read(self) -> Optional[T]:
        """读取下一个 payload，流结束时返回 None。"""

        return next(self, None)

    def events(self) -> Iterator[StreamEvent]:
        """逐帧返回未解码的 StreamEvent，遇到 [DONE] 或输入结束即停止。

        与 next()/read() 共用同一个底层流，结束或出错时同样释放字节源。
        """

        while not self._finished:
            try:
                event = next(self._events)
            except StopIteration:
                self._finish()
                return
            except BaseException:
                self._finish()
                raise
            if event.data == DONE_SENTINEL:
                self._finish()
                return
            yield event

    @property
    def finished(self) -> bool:
        return self._finished

    def close(self) -> None:
        self._finish()

    def _finish(self) -> None:
        self._finished = True
        if self._closed:
            return
        self._closed = True
        close_events = getattr(self._events, "close", None)
        if close_events is not None:
            close_events()
        if self._on_close is not None:
            self._on_close()

    def __enter__(self) -> "EventStreamReader[T]":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

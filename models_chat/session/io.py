"""会话的输入输出端。

- OutputSink: 接收增量文本与换行信号，ConsoleSink 写到标准输出。
- InputSource: 逐行读取用户输入，返回 None 表示输入结束（EOF）。
"""

from typing import Optional, Protocol, TextIO

import click


class OutputSink(Protocol):
    def write(self, text: str) -> None:
        ...

    def newline(self) -> None:
        ...

    @property
    def is_terminal(self) -> bool:
        ...


class InputSource(Protocol):
    def read_line(self, prompt: str) -> Optional[str]:
        ...


class ConsoleSink:
    """写到 stream（默认 stdout），每次写入后立即 flush。"""

    def __init__(self, stream: Optional[TextIO] = None):
        self._stream = stream

    def write(self, text: str) -> None:
        click.echo(text, nl=False, file=self._stream)

    def newline(self) -> None:
        click.echo("", file=self._stream)

    @property
    def is_terminal(self) -> bool:
        stream = self._stream or click.get_text_stream("stdout")
        isatty = getattr(stream, "isatty", None)
        return bool(isatty and isatty())


class ConsoleInput:
    def read_line(self, prompt: str) -> Optional[str]:
        try:
            return input(prompt)
        except EOFError:
            return None

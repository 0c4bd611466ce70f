"""交互式对话会话。

ChatSession 是一个简单的状态机：

    AWAITING_INPUT -> DISPATCHING -> (STREAMING | COMMAND_HANDLING) -> AWAITING_INPUT
                                                                      \\-> ENDED

- 以 `/` 开头的输入是会话内命令（/set、/reset 等），命令出错只提示，不中断会话。
- 其余输入作为一轮 user 消息发给模型，回复逐块写到 OutputSink，结束后
  作为 assistant 消息追加到历史；流式阶段的任何错误都会向上抛出并结束会话。
- 启动时提供了初始 prompt（命令行参数或管道输入）则为单次模式，
  完成一轮问答后立即结束。

命令处理器都是本类的方法，直接修改 self.conversation / self.parameters，
不存在状态副本。
"""

import logging
import time
from enum import Enum
from typing import Callable, Dict, List, Optional

from models_chat.domain.conversation import Conversation
from models_chat.domain.exceptions import ValidationError
from models_chat.domain.models import ChatRequest
from models_chat.domain.parameters import NOT_SET, PARAMETER_NAMES, ParameterSet
from models_chat.infrastructure.logging.logger import log_event
from models_chat.providers.base import CompletionClient
from models_chat.session.indicator import NullIndicator, WaitIndicator
from models_chat.session.io import InputSource, OutputSink

COMMAND_PREFIX = "/"
INPUT_PROMPT = ">>> "

HELP_LINES = (
    "Commands:",
    "  /bye, /exit, /quit - Exit the chat",
    "  /parameters - Show current model parameters",
    "  /reset, /clear - Reset chat context",
    "  /set <name> <value> - Set a model parameter",
    "  /system-prompt <prompt> - Set the system prompt",
    "  /help - Show this help message",
)


class SessionState(str, Enum):
    AWAITING_INPUT = "awaiting_input"
    DISPATCHING = "dispatching"
    COMMAND_HANDLING = "command_handling"
    STREAMING = "streaming"
    ENDED = "ended"


def strip_quotes(text: str) -> str:
    """去掉一层成对的首尾引号。"""

    if len(text) >= 2 and text[0] == text[-1] and text[0] in ("\"", "'"):
        return text[1:-1]
    return text


class ChatSession:
    """一次交互式对话。

    Args:
        client: 流式推理客户端。
        model: 已校验过的规范模型名。
        sink: 输出端。
        input_source: 交互输入来源；为 None 时只处理 initial_prompt。
        conversation / parameters: 会话拥有的唯一实例，缺省时新建。
        initial_prompt: 非空时进入单次模式。
        indicator_factory: 每次请求创建一个等待提示。
        token_delay: 每写出一块内容后的停顿（秒）。
    """

    def __init__(
        self,
        client: CompletionClient,
        model: str,
        sink: OutputSink,
        input_source: Optional[InputSource] = None,
        *,
        conversation: Optional[Conversation] = None,
        parameters: Optional[ParameterSet] = None,
        initial_prompt: str = "",
        indicator_factory: Callable[[], WaitIndicator] = NullIndicator,
        token_delay: float = 0.0,
    ):
        self._client = client
        self.model = model
        self._sink = sink
        self._input = input_source
        self.conversation = conversation if conversation is not None else Conversation()
        self.parameters = parameters if parameters is not None else ParameterSet()
        self._pending_prompt = initial_prompt.strip()
        self.one_shot = bool(self._pending_prompt)
        self._indicator_factory = indicator_factory
        self._token_delay = token_delay
        self.state = SessionState.AWAITING_INPUT
        self._commands: Dict[str, Callable[[str], SessionState]] = {
            "/bye": self._handle_exit,
            "/exit": self._handle_exit,
            "/quit": self._handle_exit,
            "/parameters": self._handle_parameters,
            "/reset": self._handle_reset,
            "/clear": self._handle_reset,
            "/set": self._handle_set,
            "/system-prompt": self._handle_system_prompt,
            "/help": self._handle_help,
        }

    # ---- 主循环 ----

    def run(self) -> None:
        log_event(logging.INFO, "Session started", model=self.model, one_shot=self.one_shot)
        while self.state is not SessionState.ENDED:
            line = self._next_input()
            if line is None:
                self.state = SessionState.ENDED
                break
            self.handle_input(line)
        log_event(logging.INFO, "Session ended", model=self.model, turns=len(self.conversation))

    def _next_input(self) -> Optional[str]:
        if self._pending_prompt:
            prompt, self._pending_prompt = self._pending_prompt, ""
            return prompt
        if self._input is None:
            return None
        return self._input.read_line(INPUT_PROMPT)

    def handle_input(self, line: str) -> SessionState:
        """处理一行输入并返回下一个状态。"""

        prompt = line.strip()
        if not prompt:
            self.state = SessionState.AWAITING_INPUT
            return self.state

        self.state = SessionState.DISPATCHING
        if prompt.startswith(COMMAND_PREFIX):
            self.state = SessionState.COMMAND_HANDLING
            self.state = self._dispatch_command(prompt)
            return self.state

        self.state = SessionState.STREAMING
        try:
            self.exchange(prompt)
        except BaseException:
            self.state = SessionState.ENDED
            raise
        self.state = SessionState.ENDED if self.one_shot else SessionState.AWAITING_INPUT
        return self.state

    # ---- 流式问答 ----

    def exchange(self, prompt: str) -> str:
        """发送一轮 user 消息，流式输出回复，返回完整回复文本。"""

        self.conversation.add_message("user", prompt)
        req = ChatRequest(model=self.model, messages=self.conversation.messages(), stream=True)
        self.parameters.apply_to(req)

        parts: List[str] = []
        chunk_count = 0
        indicator = self._indicator_factory()
        indicator.start()
        stream = None
        try:
            stream = self._client.stream(req)
            for chunk in stream:
                indicator.stop()
                chunk_count += 1
                for choice in chunk.choices:
                    content = choice.content
                    if not content:
                        continue
                    parts.append(content)
                    self._sink.write(content)
                    if self._token_delay:
                        time.sleep(self._token_delay)
        finally:
            indicator.stop()
            if stream is not None:
                stream.close()

        self._sink.newline()
        reply = "".join(parts)
        self.conversation.add_message("assistant", reply)
        log_event(
            logging.INFO,
            "Completed exchange",
            model=self.model,
            chunks=chunk_count,
            reply_chars=len(reply),
        )
        return reply

    # ---- 命令 ----

    def _dispatch_command(self, prompt: str) -> SessionState:
        name, *rest = prompt.split(None, 1)
        handler = self._commands.get(name)
        if handler is None:
            self._say(f"Unknown command '{prompt}'. See /help for supported commands.")
            return SessionState.AWAITING_INPUT
        log_event(logging.DEBUG, "Handling session command", command=name)
        return handler(rest[0].strip() if rest else "")

    def _handle_exit(self, _args: str) -> SessionState:
        return SessionState.ENDED

    def _handle_parameters(self, _args: str) -> SessionState:
        self._say("Current parameters:")
        for name in PARAMETER_NAMES:
            self._say(f"  {name}: {self.parameters.format(name)}")
        self._say("")
        self._say("System Prompt:")
        self._say("  " + (self.conversation.system_prompt or NOT_SET))
        return SessionState.AWAITING_INPUT

    def _handle_reset(self, _args: str) -> SessionState:
        self.conversation.reset()
        self._say("Reset chat history")
        return SessionState.AWAITING_INPUT

    def _handle_set(self, args: str) -> SessionState:
        parts = args.split()
        if len(parts) != 2:
            self._say("Invalid /set syntax. Usage: /set <name> <value>")
            return SessionState.AWAITING_INPUT
        name, value = parts
        try:
            self.parameters.set_by_name(name, value)
        except ValidationError as e:
            self._say(e.message)
            return SessionState.AWAITING_INPUT
        self._say(f"Set {name} to {value}")
        return SessionState.AWAITING_INPUT

    def _handle_system_prompt(self, args: str) -> SessionState:
        if not args:
            self._say("Invalid /system-prompt syntax. Usage: /system-prompt <prompt>")
            return SessionState.AWAITING_INPUT
        self.conversation.system_prompt = strip_quotes(args)
        self._say("Updated system prompt")
        return SessionState.AWAITING_INPUT

    def _handle_help(self, _args: str) -> SessionState:
        for line in HELP_LINES:
            self._say(line)
        return SessionState.AWAITING_INPUT

    def _say(self, text: str) -> None:
        if text:
            self._sink.write(text)
        self._sink.newline()

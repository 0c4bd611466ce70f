"""对话请求与流式结果的数据模型。

- ChatMessage: 一条对话消息（system/user/assistant），追加后不可变。
- ChatRequest: 发给推理端点的完整请求，负责序列化为 JSON 请求体。
- ChatChoice / CompletionChunk: 事件流中每一帧反序列化后的增量结果。

流式响应把内容放在 choice.delta 中，非流式形态则放在 choice.message 中，
两者结构一致，消费方通过 ChatChoice.content 统一读取。
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional


# 与 OpenAI 风格 chat/completions 接口的 role 字段对应
Role = Literal["system", "user", "assistant"]


@dataclass(frozen=True)
class ChatMessage:
    """一条对话消息。"""

    role: Role
    content: str

    def to_payload(self) -> Dict[str, Any]:
        return {"role": self.role, "content": self.content}


@dataclass
class ChatRequest:
    """一次 chat completion 请求。

    max_tokens / temperature / top_p 为 None 时不会出现在请求体中，
    由服务端使用默认值。
    """

    model: str
    messages: List[ChatMessage]
    stream: bool = False
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None
    top_p: Optional[float] = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": [m.to_payload() for m in self.messages],
            "stream": self.stream,
        }
        if self.max_tokens is not None:
            payload["max_tokens"] = self.max_tokens
        if self.temperature is not None:
            payload["temperature"] = self.temperature
        if self.top_p is not None:
            payload["top_p"] = self.top_p
        return payload


@dataclass
class ChatUsage:
    """token 统计信息（通常只出现在最后一帧）。"""

    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


@dataclass
class ChoiceContent:
    """delta 或 message 的内容体。"""

    role: Optional[str] = None
    content: Optional[str] = None


@dataclass
class ChatChoice:
    """单个候选的增量。delta 与 message 至少其一存在。"""

    index: int
    delta: Optional[ChoiceContent] = None
    message: Optional[ChoiceContent] = None
    finish_reason: Optional[str] = None

    @property
    def content(self) -> Optional[str]:
        """优先取 delta 中的增量，其次取完整 message。"""

        if self.delta is not None and self.delta.content is not None:
            return self.delta.content
        if self.message is not None and self.message.content is not None:
            return self.message.content
        return None


@dataclass
class CompletionChunk:
    """事件流中一帧的反序列化结果。"""

    choices: List[ChatChoice] = field(default_factory=list)
    usage: Optional[ChatUsage] = None
    raw: Optional[dict] = None

"""chat/completions 流式推理客户端。

本模块负责：

1. 把 ChatRequest 序列化为请求体（强制 stream=true）。
2. 发起 HTTP 请求，把非 2xx 状态码映射为 AuthError / ValidationError / ServerError。
3. 成功时把响应体交给 EventStreamReader，逐帧解析为 CompletionChunk。

失败路径上连接会立即释放；成功路径上由调用方通过 ChatCompletionStream.close()
（或 with 语句）释放。
"""

import logging
from typing import Any, Iterator, List, Optional

import httpx

from models_chat.config.settings import Settings, settings
from models_chat.domain.exceptions import AuthError, ParseError, TransportError
from models_chat.domain.models import (
    ChatChoice,
    ChatRequest,
    ChatUsage,
    ChoiceContent,
    CompletionChunk,
)
from models_chat.infrastructure.logging.logger import log_event
from models_chat.infrastructure.sse.event_reader import EventStreamReader
from models_chat.providers.http_errors import raise_for_status


class ChatCompletionStream:
    """一次成功响应的流句柄，可迭代出 CompletionChunk。"""

    def __init__(self, response, client):
        self._response = response
        self._client = client
        self._released = False
        self._reader: EventStreamReader[CompletionChunk] = EventStreamReader(
            self._iter_bytes(),
            decode=parse_completion_chunk,
            on_close=self._release,
        )

    def _iter_bytes(self) -> Iterator[bytes]:
        try:
            yield from self._response.iter_bytes()
        except httpx.RequestError as e:
            raise TransportError(code="NETWORK_ERROR", message=str(e)) from e

    def __iter__(self) -> "ChatCompletionStream":
        return self

    def __next__(self) -> CompletionChunk:
        try:
            return next(self._reader)
        except ParseError as e:
            log_event(logging.WARNING, "Malformed stream event", error=e.message)
            raise

    def read(self) -> Optional[CompletionChunk]:
        """读取下一块，流结束时返回 None。"""

        try:
            return next(self)
        except StopIteration:
            return None

    @property
    def closed(self) -> bool:
        return self._released

    def close(self) -> None:
        self._reader.close()

    def _release(self) -> None:
        if self._released:
            return
        self._released = True
        try:
            self._response.close()
        finally:
            self._client.close()

    def __enter__(self) -> "ChatCompletionStream":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class InferenceClient:
    """流式推理客户端。

    - token: Bearer 凭据，由调用方显式传入（不读取全局状态）。
    - cfg: 端点 URL、超时等配置。
    """

    name = "inference"

    def __init__(self, token: str, cfg: Settings = settings):
        self._token = token
        self._settings = cfg

    def stream(self, req: ChatRequest) -> ChatCompletionStream:
        if not self._token:
            raise AuthError(code="MISSING_TOKEN", message="no token available, authentication required")
        payload = req.to_payload()
        payload["stream"] = True
        log_event(
            logging.INFO,
            "Starting chat completion stream",
            model=req.model,
            message_count=len(req.messages),
        )

        client = httpx.Client(timeout=self._settings.http_timeout, trust_env=False)
        try:
            http_req = client.build_request(
                "POST",
                self._settings.inference_url,
                json=payload,
                headers={
                    "Authorization": f"Bearer {self._token}",
                    "Content-Type": "application/json",
                },
            )
            resp = client.send(http_req, stream=True)
        except httpx.RequestError as e:
            # 网络错误：DNS 失败、连接超时等
            client.close()
            raise TransportError(code="NETWORK_ERROR", message=str(e)) from e
        except BaseException:
            client.close()
            raise

        if not 200 <= resp.status_code < 300:
            # 不返回流时在这里就把连接关掉
            try:
                raise_for_status(resp, source=self.name)
            finally:
                resp.close()
                client.close()

        return ChatCompletionStream(resp, client)


def parse_completion_chunk(data: Any) -> CompletionChunk:
    """把一帧 JSON 解析为 CompletionChunk，结构不符时抛出 ParseError。"""

    if not isinstance(data, dict):
        raise _malformed("payload is not an object")
    raw_choices = data.get("choices") or []
    if not isinstance(raw_choices, list):
        raise _malformed("choices is not a list")

    choices: List[ChatChoice] = []
    for i, ch in enumerate(raw_choices):
        if not isinstance(ch, dict):
            raise _malformed("choice is not an object")
        choices.append(
            ChatChoice(
                index=ch.get("index", i),
                delta=_parse_content(ch.get("delta"), "delta"),
                message=_parse_content(ch.get("message"), "message"),
                finish_reason=ch.get("finish_reason"),
            )
        )

    usage_raw = data.get("usage") or {}
    usage = None
    if isinstance(usage_raw, dict) and usage_raw:
        usage = ChatUsage(
            prompt_tokens=usage_raw.get("prompt_tokens", 0),
            completion_tokens=usage_raw.get("completion_tokens", 0),
            total_tokens=usage_raw.get("total_tokens", 0),
        )
    return CompletionChunk(choices=choices, usage=usage, raw=data)


def _parse_content(payload: Any, key: str) -> Optional[ChoiceContent]:
    if payload is None:
        return None
    if not isinstance(payload, dict):
        raise _malformed(f"{key} is not an object")
    content = payload.get("content")
    if content is not None and not isinstance(content, str):
        raise _malformed(f"{key}.content is not a string")
    return ChoiceContent(role=payload.get("role"), content=content)


def _malformed(reason: str) -> ParseError:
    return ParseError(code="MALFORMED_EVENT", message=f"malformed completion chunk: {reason}")

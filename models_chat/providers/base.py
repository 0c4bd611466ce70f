"""Provider 抽象接口。

会话层不直接依赖 httpx，而是依赖这里的协议：

- CompletionClient: 发起一次流式 chat completion，返回可逐块读取的句柄。
- TokenProvider: 提供 Bearer 凭据，拿不到时返回空字符串。
- ModelCatalog: 列出可用模型，用于校验/选择模型名。

测试中用假的实现替换即可，不需要真实网络。
"""

from typing import Iterator, List, Optional, Protocol

from models_chat.domain.models import ChatRequest, CompletionChunk
from models_chat.providers.catalog import ModelSummary


class CompletionStream(Protocol):
    """一次流式响应的句柄。close() 可重复调用。"""

    def __iter__(self) -> Iterator[CompletionChunk]:
        ...

    def __next__(self) -> CompletionChunk:
        ...

    def read(self) -> Optional[CompletionChunk]:
        ...

    def close(self) -> None:
        ...


class CompletionClient(Protocol):
    name: str

    def stream(self, req: ChatRequest) -> CompletionStream:
        """执行一次流式对话调用；失败时抛出 domain.exceptions 中的异常。"""

        ...


class TokenProvider(Protocol):
    def get_token(self) -> str:
        ...


class ModelCatalog(Protocol):
    def list_models(self) -> List[ModelSummary]:
        ...

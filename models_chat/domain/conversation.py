"""会话历史。

Conversation 只在内存中保存本次进程内的多轮对话，系统提示词单独存放，
在 messages() 物化请求消息列表时才作为第一条 system 消息注入。
"""

from typing import List, Optional

from .exceptions import ValidationError
from .models import ChatMessage, Role

_TURN_ROLES = ("user", "assistant")


class Conversation:
    def __init__(self, system_prompt: Optional[str] = None):
        self._turns: List[ChatMessage] = []
        self._system_prompt = system_prompt or ""

    @property
    def system_prompt(self) -> str:
        return self._system_prompt

    @system_prompt.setter
    def system_prompt(self, value: Optional[str]) -> None:
        self._system_prompt = value or ""

    def add_message(self, role: Role, content: str) -> ChatMessage:
        """追加一轮 user/assistant 消息，system 角色只能通过 system_prompt 设置。"""

        if role not in _TURN_ROLES:
            raise ValidationError(
                code="INVALID_ROLE",
                message=f"role must be one of {', '.join(_TURN_ROLES)}, got {role!r}",
                role=role,
            )
        message = ChatMessage(role=role, content=content)
        self._turns.append(message)
        return message

    def messages(self) -> List[ChatMessage]:
        """返回发给模型的完整消息列表（每次调用都重新构造）。"""

        items: List[ChatMessage] = []
        if self._system_prompt:
            items.append(ChatMessage(role="system", content=self._system_prompt))
        items.extend(self._turns)
        return items

    def reset(self) -> None:
        self._turns = []

    def __len__(self) -> int:
        return len(self._turns)

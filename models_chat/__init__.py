"""models-chat 顶层包。

该包提供与 chat/completions 推理端点进行多轮流式对话的核心实现，
包括 SSE 事件流解析、流式推理客户端、生成参数、会话历史与交互式会话循环。
"""

from models_chat.session import ChatSession, SessionState

__all__ = ["ChatSession", "SessionState"]

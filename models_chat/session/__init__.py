"""交互式会话：状态机、输入输出端与等待提示。"""

from models_chat.session.indicator import NullIndicator, SpinnerIndicator, terminal_indicator
from models_chat.session.io import ConsoleInput, ConsoleSink
from models_chat.session.loop import ChatSession, SessionState

__all__ = [
    "ChatSession",
    "ConsoleInput",
    "ConsoleSink",
    "NullIndicator",
    "SessionState",
    "SpinnerIndicator",
    "terminal_indicator",
]

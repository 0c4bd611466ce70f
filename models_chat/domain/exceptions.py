"""统一业务异常模型。

所有跨模块抛出的错误都继承自 BusinessError，CLI 层据此决定：
- 命令处理阶段的错误：打印提示后继续等待输入。
- 流式对话阶段的错误：结束会话并返回非零退出码。
"""


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "MALFORMED_VALUE"）。
        message: 用户可读错误信息。
        http_status: 对应的 HTTP 状态码，默认 400。
        extra: 其他补充字段（例如 field、body 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class AuthError(BusinessError):
    """凭据缺失或被服务端拒绝。"""


class ValidationError(BusinessError):
    """参数、模型名或请求字段校验失败。"""


class ParseError(BusinessError):
    """事件流中出现无法解析的帧，当前请求随之终止。"""


class ServerError(BusinessError):
    """服务端返回非成功状态码，extra["body"] 保存响应体便于排查。"""

    @property
    def body(self) -> str:
        return self.extra.get("body", "")


class TransportError(BusinessError):
    """网络层错误，例如连接失败、读超时等。"""

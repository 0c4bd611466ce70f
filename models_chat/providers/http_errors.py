"""HTTP 状态码到业务异常的映射。"""

import logging

import httpx

from models_chat.domain.exceptions import AuthError, ServerError, ValidationError
from models_chat.infrastructure.logging.logger import log_event


def read_body(resp) -> str:
    """尽量读出响应体用于诊断，读取失败时返回空字符串。"""

    try:
        raw = resp.read()
    except httpx.HTTPError as exc:
        log_event(logging.WARNING, "Failed to read error body", error=str(exc))
        return ""
    if isinstance(raw, bytes):
        return raw.decode("utf-8", errors="replace")
    return raw or ""


def raise_for_status(resp, source: str) -> None:
    """2xx 直接返回，其余状态码转换成对应异常。

    - 401/403 -> AuthError
    - 400/422 -> ValidationError
    - 其他 -> ServerError（附带响应体）
    """

    status = resp.status_code
    if 200 <= status < 300:
        return

    body = read_body(resp)
    log_event(logging.WARNING, "HTTP error response", source=source, http_status=status)
    detail = f"\n{body}\n" if body else ""

    if status in (401, 403):
        raise AuthError(code="UNAUTHORIZED", message="unauthorized" + detail, http_status=status, body=body)
    if status in (400, 422):
        raise ValidationError(code="BAD_REQUEST", message="bad request" + detail, http_status=status, body=body)
    reason = getattr(resp, "reason_phrase", "") or ""
    raise ServerError(
        code="SERVER_ERROR",
        message=f"unexpected response from the server: {status} {reason}".rstrip() + detail,
        http_status=status,
        body=body,
    )

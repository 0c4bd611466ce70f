"""模型目录。

- ModelSummary: 目录中一个模型的概要信息。
- CatalogClient: 通过 HTTP 查询可在 playground 免费使用的最新模型。
- resolve_model_name: 把用户输入（模型名或展示名，不区分大小写）解析为规范模型名。
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from models_chat.config.settings import Settings, settings
from models_chat.domain.exceptions import ServerError, TransportError, ValidationError
from models_chat.infrastructure.logging.logger import log_event
from models_chat.providers.http_errors import raise_for_status, read_body

CHAT_COMPLETION_TASK = "chat-completion"

MODEL_NOT_FOUND_MESSAGE = (
    "The specified model name is not found. "
    "Run 'models-chat run' without a model name to select one interactively."
)

_CATALOG_QUERY: Dict[str, Any] = {
    "filters": [
        {"field": "freePlayground", "values": ["true"], "operator": "eq"},
        {"field": "labels", "values": ["latest"], "operator": "eq"},
    ],
    "order": [
        {"field": "displayName", "direction": "asc"},
    ],
}


@dataclass
class ModelSummary:
    id: str
    name: str
    friendly_name: str
    task: str = ""
    publisher: str = ""
    summary: str = ""

    def has_name(self, name: str) -> bool:
        key = name.lower()
        return self.name.lower() == key or self.friendly_name.lower() == key

    def is_chat_model(self) -> bool:
        return self.task == CHAT_COMPLETION_TASK


class CatalogClient:
    """模型目录 HTTP 客户端（目录接口无需认证）。"""

    def __init__(self, cfg: Settings = settings):
        self._settings = cfg

    def list_models(self) -> List[ModelSummary]:
        try:
            with httpx.Client(timeout=self._settings.http_timeout, trust_env=False) as client:
                resp = client.post(
                    self._settings.catalog_url,
                    json=_CATALOG_QUERY,
                    headers={"Content-Type": "application/json"},
                )
                raise_for_status(resp, source="catalog")
                try:
                    data = resp.json()
                    models = [_to_summary(s) for s in data.get("summaries") or []]
                except (ValueError, AttributeError, TypeError) as e:
                    # 200 但响应体不是预期的 JSON 结构
                    body = read_body(resp)
                    log_event(logging.WARNING, "Malformed catalog response", error=str(e))
                    raise ServerError(
                        code="SERVER_ERROR",
                        message=f"unexpected response from the server: {e}",
                        http_status=resp.status_code,
                        body=body,
                    ) from e
        except httpx.RequestError as e:
            raise TransportError(code="NETWORK_ERROR", message=str(e)) from e

        log_event(logging.INFO, "Loaded model catalog", model_count=len(models))
        return models


def _to_summary(raw: Dict[str, Any]) -> ModelSummary:
    tasks = raw.get("inferenceTasks") or []
    return ModelSummary(
        id=raw.get("assetId") or "",
        name=raw.get("name") or "",
        friendly_name=raw.get("displayName") or raw.get("name") or "",
        task=tasks[0] if tasks else "",
        publisher=raw.get("publisher") or "",
        summary=raw.get("summary") or "",
    )


def sort_models(models: List[ModelSummary]) -> List[ModelSummary]:
    """按展示名排序（不区分大小写），返回新列表。"""

    return sorted(models, key=lambda m: m.friendly_name.lower())


def filter_chat_models(models: List[ModelSummary]) -> List[ModelSummary]:
    return [m for m in models if m.is_chat_model()]


def resolve_model_name(name: Optional[str], models: List[ModelSummary]) -> str:
    """返回目录中的规范模型名，找不到时抛出 ValidationError。"""

    if name:
        for model in models:
            if model.has_name(name):
                return model.name
    raise ValidationError(code="MODEL_NOT_FOUND", message=MODEL_NOT_FOUND_MESSAGE, model=name)

"""推理端点集成层。

该包下的模块负责：
- 定义协作方接口 (base)。
- 流式推理客户端 (inference_client)。
- 模型目录与模型名解析 (catalog)。
- 凭据来源 (auth)。
"""

from typing import Optional

from models_chat.config.settings import Settings, settings
from models_chat.domain.exceptions import AuthError
from models_chat.providers.auth import SettingsTokenProvider
from models_chat.providers.base import CompletionClient, TokenProvider
from models_chat.providers.inference_client import InferenceClient


def create_client(
    cfg: Settings = settings,
    token_provider: Optional[TokenProvider] = None,
) -> CompletionClient:
    """用 token_provider（默认读配置）提供的凭据创建推理客户端。

    拿不到凭据时直接抛出 AuthError，不会发起任何网络请求。
    """

    provider = token_provider or SettingsTokenProvider(cfg)
    token = provider.get_token()
    if not token:
        raise AuthError(
            code="MISSING_TOKEN",
            message="No token found. Set GITHUB_TOKEN (or MODELS_CHAT_TOKEN) to authenticate.",
        )
    return InferenceClient(token, cfg)

"""凭据来源。"""

from models_chat.config.settings import Settings, settings


class SettingsTokenProvider:
    """从配置读取凭据（环境变量 MODELS_CHAT_TOKEN / GITHUB_TOKEN、.env 或 YAML）。"""

    def __init__(self, cfg: Settings = settings):
        self._settings = cfg

    def get_token(self) -> str:
        return self._settings.github_token or ""


class StaticTokenProvider:
    def __init__(self, token: str):
        self._token = token

    def get_token(self) -> str:
        return self._token

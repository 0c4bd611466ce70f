from models_chat.config.settings import Settings, load_settings, settings

__all__ = ["Settings", "load_settings", "settings"]

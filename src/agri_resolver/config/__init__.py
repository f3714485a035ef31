from agri_resolver.config.loader import YamlConfigLoader
from agri_resolver.config.models import AppConfig, ConfigLoadRequest

__all__ = ["AppConfig", "ConfigLoadRequest", "YamlConfigLoader"]

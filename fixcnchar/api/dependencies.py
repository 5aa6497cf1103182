"""API 共享依赖"""
from fixcnchar.config import settings
from fixcnchar.core.config_source import ConfigSource, SettingsConfigSource

config_source = SettingsConfigSource(settings)


def get_config_source() -> ConfigSource:
    """FastAPI 依赖: 当前规则配置来源 (测试中可通过 dependency_overrides 替换)"""
    return config_source

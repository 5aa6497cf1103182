from pathlib import Path
from typing import Any, Dict, Optional, Literal

from pydantic import Field
from pydantic_settings import BaseSettings

from fixcnchar.core.rules.table import DEFAULT_RULES


class Settings(BaseSettings):
    """应用配置"""
    # 服务配置
    app_name: str = "fixcnchar"
    version: str = "1.0.0"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # 替换规则配置
    enable_realtime: bool = True                                  # 输入时实时替换
    rules: Dict[str, Any] = Field(default_factory=lambda: dict(DEFAULT_RULES))
    rules_file: Optional[Path] = None                             # 规则文件 (覆盖同名规则)
    watch_rules_file: bool = True                                 # 规则文件变化时自动重载
    watch_debounce_delay: float = 0.5                             # 重载防抖（秒）
    allow_composition_replace: bool = False                       # 输入法组字替换占位符时也修正

    class Config:
        env_prefix = "FIXCNCHAR_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        validate_assignment = True
        extra = "ignore"


settings = Settings()

"""规则配置来源

改写器通过 ConfigSource 读取规则与实时开关，并在配置变化时收到通知。
"""
import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Mapping, Optional

from fixcnchar.core.editor.base import Disposable
from fixcnchar.core.rules.loader import load_rules_file
from fixcnchar.core.rules.table import DEFAULT_RULES

logger = logging.getLogger(__name__)

ConfigListener = Callable[[], None]


class ConfigSource(ABC):
    """配置来源抽象基类"""

    def __init__(self):
        self._listeners: List[ConfigListener] = []
        self._listeners_lock = threading.Lock()

    @abstractmethod
    def get_rules(self) -> Mapping[str, Any]:
        """当前的原始规则映射"""

    @abstractmethod
    def is_realtime_enabled(self) -> bool:
        """是否开启实时替换"""

    def on_did_change(self, listener: ConfigListener) -> Disposable:
        """订阅配置变化"""
        with self._listeners_lock:
            self._listeners.append(listener)

        def _remove():
            with self._listeners_lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return Disposable(_remove)

    def notify_changed(self) -> None:
        """通知所有订阅者配置已变化"""
        with self._listeners_lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener()
            except Exception:
                logger.exception("Config change listener failed")


class StaticConfigSource(ConfigSource):
    """内存中的配置来源"""

    def __init__(self, rules: Optional[Mapping[str, Any]] = None, enable_realtime: bool = True):
        super().__init__()
        self._rules: Dict[str, Any] = dict(DEFAULT_RULES if rules is None else rules)
        self._enable_realtime = enable_realtime

    def get_rules(self) -> Mapping[str, Any]:
        return dict(self._rules)

    def is_realtime_enabled(self) -> bool:
        return self._enable_realtime

    def set_rules(self, rules: Mapping[str, Any]) -> None:
        self._rules = dict(rules)
        self.notify_changed()

    def set_realtime_enabled(self, enabled: bool) -> None:
        self._enable_realtime = enabled
        self.notify_changed()


class SettingsConfigSource(ConfigSource):
    """
    基于 Settings 的配置来源

    规则 = settings.rules，再由规则文件中的同名规则覆盖。

    用法:
        source = SettingsConfigSource(settings)
        source.update(enable_realtime=False)   # 校验后生效并通知订阅者
        source.reload()                        # 重新读取规则文件
    """

    def __init__(self, settings):
        super().__init__()
        self._settings = settings
        self._file_rules: Dict[str, str] = {}
        self._load_file_rules()

    @property
    def settings(self):
        return self._settings

    def _load_file_rules(self) -> None:
        rules_file = self._settings.rules_file
        if rules_file is None:
            self._file_rules = {}
            return
        try:
            self._file_rules = load_rules_file(rules_file)
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Failed to read rules file {rules_file}: {e}")
            self._file_rules = {}

    def get_rules(self) -> Mapping[str, Any]:
        rules: Dict[str, Any] = dict(self._settings.rules)
        rules.update(self._file_rules)
        return rules

    def is_realtime_enabled(self) -> bool:
        return bool(self._settings.enable_realtime)

    def update(self, **changes: Any) -> None:
        """
        修改配置并通知订阅者

        Raises:
            KeyError: 未知的配置项
            pydantic.ValidationError: 值不合法
        """
        fields = type(self._settings).model_fields
        unknown = [key for key in changes if key not in fields]
        if unknown:
            raise KeyError(f"Unknown settings: {', '.join(unknown)}")

        # 先整体校验，任一字段不合法时不修改任何配置
        merged = {**self._settings.model_dump(), **changes}
        validated = type(self._settings).model_validate(merged)
        for key in changes:
            setattr(self._settings, key, getattr(validated, key))

        if 'rules_file' in changes:
            self._load_file_rules()

        logger.info(f"Settings updated: {', '.join(changes)}")
        self.notify_changed()

    def reload(self) -> None:
        """重新读取规则文件并通知订阅者"""
        self._load_file_rules()
        logger.info("Rules reloaded")
        self.notify_changed()

"""
标点替换规则表

支持:
- 从配置 (任意 key → value 映射) 构建不可变规则表
- 按插入文本精确查找替换 (实时输入路径)
- 整段文本顺序替换 (选区 / 全文批量路径)
"""

__all__ = [
    'DEFAULT_RULES',
    'Rule',
    'RuleTable',
    'apply_selection_rewrite',
    'apply_document_rewrite',
]

import logging
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, Mapping, NamedTuple, Optional, Tuple, Union

logger = logging.getLogger(__name__)


# 默认的全角标点到半角标点的映射
DEFAULT_RULES: Dict[str, str] = {
    '，': ',',
    '。': '.',
    '？': '?',
    '！': '!',
    '：': ':',
    '；': ';',
    '（': '(',
    '）': ')',
    '【': '[',
    '】': ']',
    '「': '"',
    '」': '"',
    '『': "'",
    '』': "'",
    '“': '"',
    '”': '"',
    '‘': "'",
    '’': "'",
    '《': '<',
    '》': '>',
    '、': ',',
}

RawRules = Union[Mapping[Any, Any], Iterable[Tuple[Any, Any]], None]


class Rule(NamedTuple):
    """单条规则: 源字符串 → 替换字符串"""
    source: str
    replacement: str


class RuleTable:
    """
    不可变的规则表

    规则表每次配置变化或每次改写开始时重新构建，构建后不再修改。

    用法:
        table = RuleTable.build({'，': ',', '。': '.'})
        table.lookup('，')                      # ','
        table.apply_to_text("你好，世界。")       # "你好,世界."
    """

    __slots__ = ('_mapping',)

    def __init__(self, mapping: Optional[Mapping[str, str]] = None):
        self._mapping = MappingProxyType(dict(mapping or {}))

    @classmethod
    def build(cls, raw_rules: RawRules) -> 'RuleTable':
        """
        从原始配置构建规则表

        不做 schema 校验：键不是非空字符串、或值不是字符串的条目会被忽略。
        重复的键以最后出现的为准。

        Args:
            raw_rules: 映射或 (源, 替换) 二元组序列

        Returns:
            RuleTable 实例
        """
        if not raw_rules:
            return cls()

        items = raw_rules.items() if isinstance(raw_rules, Mapping) else raw_rules

        mapping: Dict[str, str] = {}
        for entry in items:
            try:
                source, replacement = entry
            except (TypeError, ValueError):
                logger.debug(f"Ignoring malformed rule entry: {entry!r}")
                continue

            if not isinstance(source, str) or not source:
                logger.debug(f"Ignoring rule with invalid source: {source!r}")
                continue
            if not isinstance(replacement, str):
                logger.debug(f"Ignoring rule {source!r} with non-string replacement: {replacement!r}")
                continue

            mapping[source] = replacement

        return cls(mapping)

    @classmethod
    def default(cls) -> 'RuleTable':
        """默认规则表"""
        return cls(DEFAULT_RULES)

    def lookup(self, text: str) -> Optional[str]:
        """按完整源字符串精确查找替换，未命中返回 None"""
        return self._mapping.get(text)

    def apply_to_text(self, text: str) -> str:
        """
        对整段文本执行替换

        按规则表顺序逐条执行 "替换全部出现"，前面规则产生的文本
        不会被同一条规则重新扫描。

        Args:
            text: 输入文本

        Returns:
            替换后的文本
        """
        if not text:
            return text

        result = text
        for source, replacement in self._mapping.items():
            result = result.replace(source, replacement)
        return result

    def count_matches(self, text: str) -> int:
        """统计 apply_to_text 会执行的替换次数"""
        if not text:
            return 0

        count = 0
        result = text
        for source, replacement in self._mapping.items():
            count += result.count(source)
            result = result.replace(source, replacement)
        return count

    @property
    def rules(self) -> Tuple[Rule, ...]:
        return tuple(Rule(s, r) for s, r in self._mapping.items())

    @property
    def sources(self) -> Tuple[str, ...]:
        return tuple(self._mapping)

    @property
    def is_empty(self) -> bool:
        return not self._mapping

    def items(self):
        return self._mapping.items()

    def as_dict(self) -> Dict[str, str]:
        return dict(self._mapping)

    def __len__(self) -> int:
        return len(self._mapping)

    def __contains__(self, source: object) -> bool:
        return source in self._mapping

    def __iter__(self) -> Iterator[str]:
        return iter(self._mapping)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RuleTable):
            return NotImplemented
        return list(self._mapping.items()) == list(other._mapping.items())

    def __hash__(self) -> int:
        return hash(tuple(self._mapping.items()))

    def __repr__(self) -> str:
        return f"RuleTable({dict(self._mapping)!r})"


def _as_table(rules: Union['RuleTable', RawRules]) -> RuleTable:
    if isinstance(rules, RuleTable):
        return rules
    if rules is None:
        return RuleTable.default()
    return RuleTable.build(rules)


def apply_selection_rewrite(selected_text: str, rules: Union[RuleTable, RawRules] = None) -> str:
    """
    改写选中的文本

    Args:
        selected_text: 选区文本
        rules: 规则表或原始规则，为 None 时使用默认规则

    Returns:
        改写后的文本
    """
    return _as_table(rules).apply_to_text(selected_text)


def apply_document_rewrite(full_text: str, rules: Union[RuleTable, RawRules] = None) -> str:
    """
    改写整个文档的文本

    Args:
        full_text: 文档全文
        rules: 规则表或原始规则，为 None 时使用默认规则

    Returns:
        改写后的文本
    """
    return _as_table(rules).apply_to_text(full_text)

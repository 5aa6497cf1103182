"""规则文件加载

规则文件每行一条，格式为 "源字符 = 替换字符"：

```
# 中文逗号
，  =  ,
。  =  .
```

支持 # 开头的注释行与空行。替换文本可以为空 (``、 = ``)。
"""
import logging
from pathlib import Path
from typing import Dict, Union

from fixcnchar.core.errors import ConfigurationError

logger = logging.getLogger(__name__)

_SEPARATOR = ' = '


def load_rules_text(rule_text: str) -> Dict[str, str]:
    """
    解析规则文本

    Args:
        rule_text: 规则文本，每行一条，格式为 "源 = 替换"

    Returns:
        规则字典（重复的源以最后一行为准）
    """
    rules: Dict[str, str] = {}

    for lineno, raw_line in enumerate(rule_text.splitlines(), 1):
        line = raw_line.strip()
        if not line or line.startswith('#'):
            continue

        # 允许 "、 =" 这种替换为空的写法
        if line.endswith(' ='):
            line = line + ' '

        parts = line.split(_SEPARATOR, 1)
        if len(parts) != 2:
            logger.debug(f"Skipping malformed rule line {lineno}: {raw_line!r}")
            continue

        source = parts[0].strip()
        replacement = parts[1].strip()
        if source:
            rules[source] = replacement

    return rules


def load_rules_file(path: Union[str, Path], missing_ok: bool = True) -> Dict[str, str]:
    """
    从文件加载规则

    Args:
        path: 规则文件路径
        missing_ok: 文件不存在时返回空字典，否则抛出 ConfigurationError

    Returns:
        规则字典
    """
    path = Path(path)
    if not path.exists():
        if missing_ok:
            return {}
        raise ConfigurationError(f"Rules file not found: {path}")

    content = path.read_text(encoding='utf-8')
    rules = load_rules_text(content)
    logger.info(f"Loaded {len(rules)} rules from {path}")
    return rules


def dump_rules_text(rules: Dict[str, str]) -> str:
    """将规则字典序列化为规则文件文本"""
    return ''.join(f"{source} = {replacement}\n" for source, replacement in rules.items())

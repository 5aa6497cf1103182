"""fixcnchar 异常定义"""

__all__ = [
    'FixCnCharError',
    'EditRejectedError',
    'StaleTargetError',
    'ConfigurationError',
]


class FixCnCharError(Exception):
    """所有 fixcnchar 异常的基类"""


class EditRejectedError(FixCnCharError):
    """宿主拒绝了一次编辑（范围越界、重叠等）"""


class StaleTargetError(FixCnCharError):
    """目标位置的文本已经变化，修正不再适用"""

    def __init__(self, offset: int, expected: str, actual: str):
        super().__init__(
            f"Stale target at offset {offset}: expected {expected!r}, found {actual!r}"
        )
        self.offset = offset
        self.expected = expected
        self.actual = actual


class ConfigurationError(FixCnCharError):
    """显式请求的配置无法使用（如规则文件不存在）"""

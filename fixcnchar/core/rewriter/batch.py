"""
选区 / 全文批量替换

对应编辑器中的两个命令:
- 替换选区中的中文标点 (选区为空时替换全文)
- 替换整个文档中的中文标点
"""

__all__ = ['RewriteOutcome', 'BatchRewriter']

import logging
from dataclasses import dataclass
from typing import Optional

from fixcnchar.core.config_source import ConfigSource
from fixcnchar.core.editor.base import EditorHost, TextBuffer, TextEdit
from fixcnchar.core.errors import EditRejectedError
from fixcnchar.core.rules.table import RuleTable

logger = logging.getLogger(__name__)


@dataclass
class RewriteOutcome:
    """批量替换结果"""
    changed: bool
    scope: str                    # "selection" / "document" / "none"
    message: str
    replacements: int = 0


class BatchRewriter:
    """
    批量替换器

    用法:
        rewriter = BatchRewriter(host, config_source)
        outcome = rewriter.replace_in_selection()
        print(outcome.message)
    """

    def __init__(self, host: EditorHost, config_source: ConfigSource):
        self._host = host
        self._config_source = config_source

    def _rules(self) -> RuleTable:
        return RuleTable.build(self._config_source.get_rules())

    def replace_in_selection(self) -> RewriteOutcome:
        """替换当前选区，选区为空时替换全文"""
        buffer = self._host.active_buffer
        if buffer is None:
            return self._no_editor()

        start, end = self._host.get_selection(buffer.buffer_id)
        if start == end:
            return self.replace_in_document()

        return self._rewrite_range(buffer, start, end, "selection")

    def replace_in_document(self) -> RewriteOutcome:
        """替换整个文档"""
        buffer = self._host.active_buffer
        if buffer is None:
            return self._no_editor()

        return self._rewrite_range(buffer, 0, len(buffer), "document")

    def _no_editor(self) -> RewriteOutcome:
        logger.warning("No active text editor")
        return RewriteOutcome(changed=False, scope="none", message="No active text editor")

    def _rewrite_range(self, buffer: TextBuffer, start: int, end: int, scope: str) -> RewriteOutcome:
        table = self._rules()
        version = buffer.version
        text = buffer.get_text(start, end)
        replaced = table.apply_to_text(text)

        if text == replaced:
            return RewriteOutcome(
                changed=False,
                scope=scope,
                message=f"No Chinese punctuation found in {scope}",
            )

        count = table.count_matches(text)
        error: Optional[str] = None
        try:
            applied = self._host.apply_edits(
                buffer.buffer_id,
                [TextEdit(start, end, replaced)],
                expected_version=version,
            )
        except EditRejectedError as e:
            applied = False
            error = str(e)

        if not applied:
            logger.warning(f"Failed to replace punctuation in {scope} of {buffer.buffer_id}: {error}")
            return RewriteOutcome(
                changed=False,
                scope=scope,
                message=f"Failed to replace Chinese punctuation in {scope}",
            )

        logger.info(f"Replaced {count} punctuation marks in {scope} of {buffer.buffer_id}")
        return RewriteOutcome(
            changed=True,
            scope=scope,
            message=f"Chinese punctuation replaced in {scope}",
            replacements=count,
        )

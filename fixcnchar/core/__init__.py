"""Core module.

Keep imports lightweight: the HTTP layer and the file watcher are not imported
here, so the rule table and the live rewriter can be used without the service
dependency stack.
"""

from __future__ import annotations

from fixcnchar.core.config_source import ConfigSource, SettingsConfigSource, StaticConfigSource
from fixcnchar.core.rewriter import BatchRewriter, LiveRewriter, PendingCorrection
from fixcnchar.core.rules import RuleTable, apply_document_rewrite, apply_selection_rewrite

__all__ = [
    "ConfigSource",
    "SettingsConfigSource",
    "StaticConfigSource",
    "BatchRewriter",
    "LiveRewriter",
    "PendingCorrection",
    "RuleTable",
    "apply_document_rewrite",
    "apply_selection_rewrite",
]

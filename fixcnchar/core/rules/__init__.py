"""Punctuation rule tables and rule files"""
from fixcnchar.core.rules.table import (
    DEFAULT_RULES,
    Rule,
    RuleTable,
    apply_selection_rewrite,
    apply_document_rewrite,
)
from fixcnchar.core.rules.loader import load_rules_text, load_rules_file, dump_rules_text

__all__ = [
    'DEFAULT_RULES',
    'Rule',
    'RuleTable',
    'apply_selection_rewrite',
    'apply_document_rewrite',
    'load_rules_text',
    'load_rules_file',
    'dump_rules_text',
]

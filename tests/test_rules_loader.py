"""测试规则文件加载"""
import pytest
import tempfile
from pathlib import Path

from fixcnchar.core.errors import ConfigurationError
from fixcnchar.core.rules import dump_rules_text, load_rules_file, load_rules_text


class TestLoadRulesText:
    def test_basic(self):
        rules = load_rules_text("""
            ， = ,
            。 = .
        """)
        assert rules == {'，': ',', '。': '.'}

    def test_comments_and_blank_lines(self):
        """测试注释被忽略"""
        rules = load_rules_text("""
            # 逗号
            ， = ,

            # 句号
            。 = .
        """)
        assert len(rules) == 2

    def test_extra_spaces(self):
        assert load_rules_text("？   =   ?") == {'？': '?'}

    def test_empty_replacement(self):
        assert load_rules_text("、 =") == {'、': ''}

    def test_malformed_lines_skipped(self):
        rules = load_rules_text("no separator\n， = ,\n=")
        assert rules == {'，': ','}

    def test_duplicates_last_wins(self):
        assert load_rules_text("， = ,\n， = ;") == {'，': ';'}

    def test_dump_round_trip(self):
        rules = {'，': ',', '（': '('}
        assert load_rules_text(dump_rules_text(rules)) == rules


class TestLoadRulesFile:
    def test_load_rules_file(self):
        """测试从文件加载规则"""
        with tempfile.NamedTemporaryFile(mode='w', suffix='.txt', delete=False, encoding='utf-8') as f:
            f.write("， = ,\n")
            f.write("。 = .\n")
            temp_path = Path(f.name)

        try:
            rules = load_rules_file(str(temp_path))
            assert rules == {'，': ',', '。': '.'}
        finally:
            temp_path.unlink()

    def test_load_nonexistent_file(self):
        """测试加载不存在的文件"""
        assert load_rules_file("nonexistent-rules.txt") == {}

    def test_load_nonexistent_file_strict(self):
        with pytest.raises(ConfigurationError):
            load_rules_file("nonexistent-rules.txt", missing_ok=False)

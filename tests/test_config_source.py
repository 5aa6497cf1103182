"""测试配置与配置来源"""
import pytest
import tempfile
from pathlib import Path
from unittest.mock import Mock

from pydantic import ValidationError

from fixcnchar.config import Settings
from fixcnchar.core.config_source import SettingsConfigSource, StaticConfigSource
from fixcnchar.core.rules import DEFAULT_RULES


def test_settings_defaults():
    settings = Settings()
    assert settings.enable_realtime is True
    assert settings.rules == DEFAULT_RULES
    assert settings.rules_file is None
    assert settings.allow_composition_replace is False


def test_settings_rules_are_not_shared():
    first, second = Settings(), Settings()
    first.rules['，'] = ';'
    assert second.rules['，'] == ','
    assert DEFAULT_RULES['，'] == ','


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("FIXCNCHAR_ENABLE_REALTIME", "false")
    monkeypatch.setenv("FIXCNCHAR_RULES", '{"，": ";"}')
    settings = Settings()
    assert settings.enable_realtime is False
    assert settings.rules == {'，': ';'}


def test_settings_validate_assignment():
    settings = Settings()
    with pytest.raises(ValidationError):
        settings.log_level = "VERBOSE"


@pytest.fixture
def rules_file():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "rules.txt"
        path.write_text("， = ;\n…… = ...\n", encoding="utf-8")
        yield path


class TestStaticConfigSource:
    def test_defaults(self):
        source = StaticConfigSource()
        assert source.get_rules() == DEFAULT_RULES
        assert source.is_realtime_enabled()

    def test_returns_copies(self):
        source = StaticConfigSource({'，': ','})
        source.get_rules()['，'] = 'x'
        assert source.get_rules() == {'，': ','}

    def test_change_notifications(self):
        source = StaticConfigSource()
        listener = Mock()
        subscription = source.on_did_change(listener)

        source.set_rules({'，': ','})
        source.set_realtime_enabled(False)
        assert listener.call_count == 2

        subscription.dispose()
        source.set_realtime_enabled(True)
        assert listener.call_count == 2

    def test_listener_errors_do_not_stop_notification(self):
        source = StaticConfigSource()
        listener = Mock()
        source.on_did_change(Mock(side_effect=RuntimeError("boom")))
        source.on_did_change(listener)
        source.notify_changed()
        listener.assert_called_once()


class TestSettingsConfigSource:
    def test_reads_settings(self):
        source = SettingsConfigSource(Settings(rules={'，': ','}, enable_realtime=False))
        assert source.get_rules() == {'，': ','}
        assert not source.is_realtime_enabled()

    def test_rules_file_overrides(self, rules_file):
        source = SettingsConfigSource(Settings(rules={'，': ',', '。': '.'}, rules_file=rules_file))
        assert source.get_rules() == {'，': ';', '。': '.', '……': '...'}

    def test_missing_rules_file(self, tmp_path):
        source = SettingsConfigSource(Settings(rules={'，': ','}, rules_file=tmp_path / "missing.txt"))
        assert source.get_rules() == {'，': ','}

    def test_update_notifies(self):
        source = SettingsConfigSource(Settings())
        listener = Mock()
        source.on_did_change(listener)

        source.update(enable_realtime=False, rules={'。': '.'})

        listener.assert_called_once()
        assert not source.is_realtime_enabled()
        assert source.get_rules() == {'。': '.'}

    def test_update_unknown_field(self):
        source = SettingsConfigSource(Settings())
        listener = Mock()
        source.on_did_change(listener)
        with pytest.raises(KeyError):
            source.update(colour="blue")
        listener.assert_not_called()

    def test_update_invalid_value(self):
        source = SettingsConfigSource(Settings())
        with pytest.raises(ValidationError):
            source.update(enable_realtime="not a bool")

    def test_update_is_all_or_nothing(self):
        """任一字段不合法时不修改任何配置，也不通知订阅者"""
        source = SettingsConfigSource(Settings())
        listener = Mock()
        source.on_did_change(listener)

        with pytest.raises(ValidationError):
            source.update(enable_realtime=False, log_level="VERBOSE")

        assert source.is_realtime_enabled()
        assert source.settings.log_level == "INFO"
        listener.assert_not_called()

    def test_update_rules_file(self, rules_file):
        source = SettingsConfigSource(Settings(rules={}))
        source.update(rules_file=rules_file)
        assert source.get_rules()['，'] == ';'

    def test_reload(self, rules_file):
        source = SettingsConfigSource(Settings(rules={}, rules_file=rules_file))
        listener = Mock()
        source.on_did_change(listener)

        rules_file.write_text("， = !\n", encoding="utf-8")
        source.reload()

        assert source.get_rules() == {'，': '!'}
        listener.assert_called_once()

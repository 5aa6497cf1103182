"""测试规则文件监视器"""
import pytest
import tempfile
import time
from pathlib import Path
from unittest.mock import Mock

# 检查 watchdog 是否可用
try:
    import watchdog
    WATCHDOG_AVAILABLE = True
except ImportError:
    WATCHDOG_AVAILABLE = False


@pytest.fixture
def temp_watch_dir():
    """创建临时监控目录"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


class TestRulesFileWatcher:
    """规则文件监视器测试"""

    @pytest.mark.skipif(not WATCHDOG_AVAILABLE, reason="watchdog not installed")
    def test_watcher_initialization(self, temp_watch_dir):
        """测试监视器初始化"""
        from fixcnchar.core.rules.watcher import RulesFileWatcher

        watcher = RulesFileWatcher(temp_watch_dir / "rules.txt", on_change=Mock())
        assert watcher._handler.watched_files == {"rules.txt"}
        assert watcher._observer is None

    @pytest.mark.skipif(not WATCHDOG_AVAILABLE, reason="watchdog not installed")
    def test_watcher_start_stop(self, temp_watch_dir):
        """测试监视器启动和停止"""
        from fixcnchar.core.rules.watcher import RulesFileWatcher

        watcher = RulesFileWatcher(temp_watch_dir / "rules.txt", on_change=Mock())
        watcher.start()
        assert watcher._observer is not None
        watcher.stop()
        assert watcher._observer is None

    @pytest.mark.skipif(not WATCHDOG_AVAILABLE, reason="watchdog not installed")
    def test_watcher_context_manager(self, temp_watch_dir):
        """测试上下文管理器"""
        from fixcnchar.core.rules.watcher import RulesFileWatcher

        with RulesFileWatcher(temp_watch_dir / "rules.txt", on_change=Mock()) as watcher:
            assert watcher._observer is not None
        assert watcher._observer is None

    @pytest.mark.skipif(not WATCHDOG_AVAILABLE, reason="watchdog not installed")
    def test_file_handler_debounce(self, temp_watch_dir):
        """测试防抖机制"""
        from fixcnchar.core.rules.watcher import RulesFileHandler

        callback = Mock()
        handler = RulesFileHandler(
            watched_files={"rules.txt"},
            callback=callback,
            debounce_delay=0.1,  # 短延迟用于测试
        )

        # 模拟多次文件变化
        for _ in range(5):
            handler._handle_event(str(temp_watch_dir / "rules.txt"))

        # 等待防抖
        time.sleep(0.3)

        # 应该只触发一次回调
        assert callback.call_count == 1
        callback.assert_called_with(str(temp_watch_dir / "rules.txt"))

    @pytest.mark.skipif(not WATCHDOG_AVAILABLE, reason="watchdog not installed")
    def test_file_handler_filters_unwatched(self, temp_watch_dir):
        """测试过滤未监控文件"""
        from fixcnchar.core.rules.watcher import RulesFileHandler

        callback = Mock()
        handler = RulesFileHandler(
            watched_files={"rules.txt"},
            callback=callback,
            debounce_delay=0.1,
        )

        # 触发未监控的文件
        handler._handle_event(str(temp_watch_dir / "other.txt"))

        time.sleep(0.2)

        # 不应触发回调
        assert callback.call_count == 0

    @pytest.mark.skipif(not WATCHDOG_AVAILABLE, reason="watchdog not installed")
    def test_cancel_pending_timer(self, temp_watch_dir):
        from fixcnchar.core.rules.watcher import RulesFileHandler

        callback = Mock()
        handler = RulesFileHandler({"rules.txt"}, callback, debounce_delay=0.1)
        handler._handle_event(str(temp_watch_dir / "rules.txt"))
        handler.cancel()

        time.sleep(0.2)
        assert callback.call_count == 0

    @pytest.mark.skipif(not WATCHDOG_AVAILABLE, reason="watchdog not installed")
    def test_callback_errors_are_logged(self, temp_watch_dir):
        from fixcnchar.core.rules.watcher import RulesFileHandler

        handler = RulesFileHandler({"rules.txt"}, Mock(side_effect=OSError("gone")), debounce_delay=0.05)
        handler._fire(str(temp_watch_dir / "rules.txt"))
        assert handler._timers == {}

"""配置读取测试"""

from adreview.core import config


class TestConfig:
    def test_db_path_under_data_dir(self, monkeypatch, tmp_path):
        monkeypatch.setenv("ADREVIEW_DATA_DIR", str(tmp_path))
        monkeypatch.delenv("ADREVIEW_DB_PATH", raising=False)
        assert config.get_db_path() == str(tmp_path / "sqlite" / "adreview.db")

    def test_db_path_override(self, monkeypatch):
        monkeypatch.setenv("ADREVIEW_DB_PATH", "/tmp/custom.db")
        assert config.get_db_path() == "/tmp/custom.db"

    def test_expiry_warning_days(self, monkeypatch):
        monkeypatch.delenv("ADREVIEW_EXPIRY_WARNING_DAYS", raising=False)
        assert config.get_expiry_warning_days() == [15, 7, 1]

        monkeypatch.setenv("ADREVIEW_EXPIRY_WARNING_DAYS", "30, x, 3")
        assert config.get_expiry_warning_days() == [30, 3]

        monkeypatch.setenv("ADREVIEW_EXPIRY_WARNING_DAYS", "junk")
        assert config.get_expiry_warning_days() == [15, 7, 1]

    def test_invalid_int_falls_back(self, monkeypatch):
        monkeypatch.setenv("ADREVIEW_STALE_TASK_DAYS", "soon")
        assert config.get_stale_task_days() == 7
        monkeypatch.setenv("ADREVIEW_STALE_TASK_DAYS", "3")
        assert config.get_stale_task_days() == 3

    def test_scheduler_flag(self, monkeypatch):
        monkeypatch.setenv("ADREVIEW_SCHEDULER_ENABLED", "TRUE")
        assert config.is_scheduler_enabled()
        monkeypatch.setenv("ADREVIEW_SCHEDULER_ENABLED", "false")
        assert not config.is_scheduler_enabled()

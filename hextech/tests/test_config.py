"""Tests for configuration management."""
from core.config import AppConfig, ConfigManager


class TestConfigManager:
    def test_default_config(self, tmp_path):
        cm = ConfigManager(tmp_path)
        assert cm.config.mode == "offline"
        assert cm.config.provider == "gemini"
        assert not cm.is_online

    def test_default_timing(self, tmp_path):
        timing = ConfigManager(tmp_path).config.timing
        assert timing.llm_floor_ms == 1200
        assert timing.speaking_ms == 5000
        assert timing.listening_window_s == 30
        assert timing.duplex_cycle_interval_ms == 8000
        assert timing.barge_in_delay_ms == 800

    def test_save_load(self, tmp_path):
        cm = ConfigManager(tmp_path)
        cm.update(mode="online", provider="claude")

        cm2 = ConfigManager(tmp_path)
        assert cm2.config.mode == "online"
        assert cm2.config.provider == "claude"
        assert cm2.is_online

    def test_update_nested(self, tmp_path):
        cm = ConfigManager(tmp_path)
        cm.update_nested("timing", speaking_ms=3000)
        assert cm.config.timing.speaking_ms == 3000
        assert cm.config.timing.asr_ms == 600

    def test_update_ignores_unknown_keys(self, tmp_path):
        cm = ConfigManager(tmp_path)
        cm.update(volume=11)
        assert cm.config == AppConfig()

    def test_reset(self, tmp_path):
        cm = ConfigManager(tmp_path)
        cm.update(mode="online")
        cm.reset()
        assert cm.config.mode == "offline"
        assert not (tmp_path / "config.json").exists()

    def test_corrupt_file_uses_defaults(self, tmp_path):
        (tmp_path / "config.json").write_text("{not json", encoding="utf-8")
        cm = ConfigManager(tmp_path)
        assert cm.config == AppConfig()

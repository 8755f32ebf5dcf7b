import json
from pathlib import Path
from typing import Optional

from loguru import logger
from pydantic import BaseModel, Field


class APIKeysConfig(BaseModel):
    gemini: str = ""
    openai: str = ""
    claude: str = ""


class ModelsConfig(BaseModel):
    gemini: str = "gemini-1.5-flash"
    openai: str = "gpt-4o-mini"
    claude: str = "claude-haiku-4-5-20251001"


class GenerationConfig(BaseModel):
    temperature: float = 0.8
    top_p: float = 0.9
    max_tokens: int = 120


class TimingConfig(BaseModel):
    """Simulated latencies, in milliseconds unless noted."""

    asr_ms: int = 600
    vad_ms: int = 400
    nlp_ms: int = 800
    llm_floor_ms: int = 1200  # Minimum visible "thinking" time
    llm_result_ms: int = 600
    tts_ms: int = 1000
    speaking_ms: int = 5000
    listening_window_s: int = 30
    listening_tick_ms: int = 1000
    duplex_first_cycle_ms: int = 2000
    duplex_cycle_interval_ms: int = 8000
    duplex_detect_ms: int = 1000
    duplex_speaking_ms: int = 4000
    duplex_user_pause_ms: int = 1500
    duplex_reply_delay_ms: int = 1000
    barge_in_delay_ms: int = 800


class StoreConfig(BaseModel):
    log_capacity: int = 40


class ServerConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8080


class AppConfig(BaseModel):
    mode: str = "offline"  # "offline" or "online"
    provider: str = "gemini"  # "gemini", "openai", or "claude"
    api_keys: APIKeysConfig = Field(default_factory=APIKeysConfig)
    models: ModelsConfig = Field(default_factory=ModelsConfig)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    timing: TimingConfig = Field(default_factory=TimingConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)


class ConfigManager:
    """Loads and saves the assistant configuration as JSON."""

    def __init__(self, data_dir: Path):
        self.data_dir = data_dir
        self.config_path = data_dir / "config.json"
        self._config: Optional[AppConfig] = None

    @property
    def config(self) -> AppConfig:
        if self._config is None:
            self._config = self._load()
        return self._config

    def _load(self) -> AppConfig:
        """Load config from disk. Returns defaults if no config exists."""
        if self.config_path.exists():
            try:
                data = json.loads(self.config_path.read_text(encoding="utf-8"))
                logger.info("Configuration loaded from {}", self.config_path)
                return AppConfig(**data)
            except Exception as e:
                logger.error("Failed to load config: {}. Using defaults.", e)
        logger.info("No existing config found. Using defaults.")
        return AppConfig()

    def save(self) -> None:
        """Persist current config to disk."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.config_path.write_text(self.config.model_dump_json(indent=2), encoding="utf-8")
        logger.debug("Configuration saved to {}", self.config_path)

    def update(self, **kwargs) -> AppConfig:
        """Update top-level config fields and save."""
        current = self.config.model_dump()
        for key, value in kwargs.items():
            if key in current:
                if isinstance(current[key], dict) and isinstance(value, dict):
                    current[key].update(value)
                else:
                    current[key] = value
        self._config = AppConfig(**current)
        self.save()
        return self._config

    def update_nested(self, section: str, **kwargs) -> AppConfig:
        """Update fields within a nested config section."""
        current = self.config.model_dump()
        if section in current and isinstance(current[section], dict):
            current[section].update(kwargs)
        self._config = AppConfig(**current)
        self.save()
        return self._config

    def reset(self) -> None:
        """Reset config to defaults."""
        self._config = AppConfig()
        if self.config_path.exists():
            self.config_path.unlink()
        logger.info("Configuration reset to defaults.")

    @property
    def is_online(self) -> bool:
        return self.config.mode == "online"

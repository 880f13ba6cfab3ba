"""Configuration management for MicRecorder."""

import json
import math
from pathlib import Path
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# Load .env file
load_dotenv()

# Bit depth -> integer sample type delivered by the input stream
SAMPLE_DTYPES = {
    8: "int8",
    16: "int16",
    32: "int32",
}


class CaptureConfig(BaseModel):
    """Capture parameters. Frozen once constructed."""
    model_config = ConfigDict(frozen=True)

    channels: int = Field(default=2, gt=0)
    sample_rate: float = Field(default=44100.0, gt=0)
    frames_per_buffer: int = Field(default=1024, gt=0)
    bit_depth: int = 16

    @field_validator("bit_depth")
    @classmethod
    def _check_bit_depth(cls, value: int) -> int:
        if value not in SAMPLE_DTYPES:
            raise ValueError(
                f"Unsupported bit depth {value}. Expected one of {sorted(SAMPLE_DTYPES)}."
            )
        return value

    @property
    def sample_dtype(self) -> str:
        """Integer sample type matching the bit depth."""
        return SAMPLE_DTYPES[self.bit_depth]

    @property
    def buffer_shape(self) -> tuple:
        """Shape of one sample buffer: (frames, channels)."""
        return (self.frames_per_buffer, self.channels)

    def buffers_for_seconds(self, seconds: float) -> int:
        """Number of whole buffers needed to cover ``seconds`` of audio."""
        frames = seconds * self.sample_rate
        return max(1, math.ceil(frames / self.frames_per_buffer))


class OutputConfig(BaseModel):
    """Where recordings are written."""
    directory: str = "recordings"
    filename: str = "capture.wav"
    max_seconds: Optional[float] = Field(default=None, gt=0)

    @property
    def path(self) -> Path:
        return Path(self.directory) / self.filename


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class AppConfig(BaseModel):
    """Main application configuration."""
    capture: CaptureConfig = Field(default_factory=CaptureConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


class Settings(BaseSettings):
    """Environment-based overrides."""
    output_dir: Optional[str] = Field(default=None, alias="RECORDER_OUTPUT_DIR")
    log_level: Optional[str] = Field(default=None, alias="RECORDER_LOG_LEVEL")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


# Global instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get environment settings."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def apply_settings(config: AppConfig, settings: Settings) -> AppConfig:
    """Return a copy of ``config`` with environment overrides applied."""
    if settings.output_dir:
        config = config.model_copy(
            update={"output": config.output.model_copy(update={"directory": settings.output_dir})}
        )
    if settings.log_level:
        config = config.model_copy(
            update={"logging": config.logging.model_copy(update={"level": settings.log_level})}
        )
    return config


def load_config(config_path: str = "config.json") -> AppConfig:
    """Load configuration from JSON file, writing defaults if it is missing."""
    path = Path(config_path)

    if path.exists():
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return AppConfig(**data)

    config = AppConfig()
    save_config(config, config_path)
    return config


def save_config(config: AppConfig, config_path: str = "config.json") -> None:
    """Save configuration to JSON file."""
    path = Path(config_path)

    with open(path, "w", encoding="utf-8") as f:
        json.dump(config.model_dump(), f, indent=4)


"""
Copyright © 2026 Vladimir Vaulin-Belskii. All rights reserved.

Application configuration powered by environment variables.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional

DEFAULT_INITIAL_PROMPT = "以下是医生和患者的对话，请进行转录和说话人识别。"


class Settings(BaseSettings):
    """Centralized configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=(".env", "../.env"), env_prefix="SCRIBE_", case_sensitive=False, extra="ignore")

    app_name: str = "dialogue-scribe"

    backend_base_url: str = "http://localhost:8080"
    save_timeout_seconds: float = 10.0
    autosave_interval_seconds: float = 30.0

    chunk_interval_seconds: float = 1.0
    sample_rate: int = 16000
    channels: int = 1
    recording_format: str = "pcm"
    ffmpeg_binary: str = "ffmpeg"

    whisper_model: str = "base"
    model_cache_dir: Optional[str] = None
    compute_type: str = "float32"
    enable_gpu: bool = True
    enable_speaker_detection: bool = True
    medical_terminology_mode: bool = True
    language: str = "zh"
    initial_prompt: str = DEFAULT_INITIAL_PROMPT

    log_level: str = "info"
    log_file: Optional[str] = None

settings = Settings()

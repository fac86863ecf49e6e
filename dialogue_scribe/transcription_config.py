"""
Copyright © 2026 Vladimir Vaulin-Belskii. All rights reserved.

Model tiers, transcriber options and keyword sets for speaker attribution.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, fields, replace
from typing import Literal

from .config import settings

ConnectionSpeed = Literal["slow", "medium", "fast"]


@dataclass(frozen=True)
class ModelTier:
    """A whisper checkpoint and its rough size/accuracy profile."""

    name: str
    size: str
    size_mb: int
    speed: str
    accuracy: str
    description: str


WHISPER_MODELS: dict[str, ModelTier] = {
    "tiny": ModelTier(
        name="Systran/faster-whisper-tiny",
        size="39MB",
        size_mb=39,
        speed="Fastest",
        accuracy="Basic",
        description="Best for quick testing and low-resource environments",
    ),
    "small": ModelTier(
        name="Systran/faster-whisper-small",
        size="244MB",
        size_mb=244,
        speed="Fast",
        accuracy="Good",
        description="Balanced performance - recommended for most use cases",
    ),
    "base": ModelTier(
        name="Systran/faster-whisper-base",
        size="142MB",
        size_mb=142,
        speed="Medium",
        accuracy="Better",
        description="Good balance of size and accuracy",
    ),
    "medium": ModelTier(
        name="Systran/faster-whisper-medium",
        size="769MB",
        size_mb=769,
        speed="Slow",
        accuracy="High",
        description="High accuracy for production medical environments",
    ),
}

# MB/s
CONNECTION_SPEEDS: dict[str, int] = {
    "slow": 1,
    "medium": 5,
    "fast": 10,
}

MEDICAL_KEYWORDS: dict[str, tuple[str, ...]] = {
    "doctor": (
        "诊断",
        "治疗",
        "药物",
        "检查",
        "建议",
        "医生",
        "处方",
        "症状",
        "病史",
        "检验",
        "化验",
        "手术",
        "康复",
        "复查",
        "用药",
        "剂量",
        "疗程",
        "副作用",
        "禁忌",
        "注意事项",
    ),
    "patient": (
        "疼痛",
        "不舒服",
        "症状",
        "感觉",
        "担心",
        "患者",
        "头痛",
        "胸闷",
        "胸痛",
        "气短",
        "恶心",
        "呕吐",
        "腹痛",
        "发烧",
        "咳嗽",
        "乏力",
        "食欲",
        "睡眠",
        "情绪",
    ),
}

MINIMAL_KEYWORDS: dict[str, tuple[str, ...]] = {
    "doctor": ("诊断", "治疗", "药物", "检查", "建议", "医生", "处方"),
    "patient": ("疼痛", "不舒服", "症状", "感觉", "担心", "患者"),
}


@dataclass(frozen=True)
class TranscriberConfig:
    """Immutable options for one transcriber instance."""

    model: str = settings.whisper_model
    enable_gpu: bool = settings.enable_gpu
    enable_speaker_detection: bool = settings.enable_speaker_detection
    medical_terminology_mode: bool = settings.medical_terminology_mode

    def __post_init__(self) -> None:
        if self.model not in WHISPER_MODELS:
            raise ValueError(f"Unknown whisper model tier: {self.model!r} (expected one of {sorted(WHISPER_MODELS)})")

    def keywords(self) -> dict[str, tuple[str, ...]]:
        """Return the clinician/patient keyword sets selected by this config."""
        return MEDICAL_KEYWORDS if self.medical_terminology_mode else MINIMAL_KEYWORDS


DEFAULT_CONFIG = TranscriberConfig()


def merge_config(overrides: dict | None = None, base: TranscriberConfig = DEFAULT_CONFIG) -> TranscriberConfig:
    """Merge a partial dict of options over the defaults, ignoring unknown keys and ``None``."""
    if not overrides:
        return base
    known = {f.name for f in fields(TranscriberConfig)}
    changes = {key: value for key, value in overrides.items() if key in known and value is not None}
    return replace(base, **changes)


def get_model_config(model: str) -> ModelTier:
    try:
        return WHISPER_MODELS[model]
    except KeyError:
        raise ValueError(f"Unknown whisper model tier: {model!r}") from None


def estimate_model_load_time(model: str, connection_speed: ConnectionSpeed = "medium") -> dict[str, int]:
    """Rough download + initialization time in whole seconds for a model tier."""
    size_mb = get_model_config(model).size_mb
    download = size_mb / CONNECTION_SPEEDS[connection_speed]
    init = 10 + size_mb / 50
    return {
        "download_seconds": math.ceil(download),
        "initialization_seconds": math.ceil(init),
        "total_seconds": math.ceil(download + init),
    }

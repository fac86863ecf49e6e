"""
Copyright © 2026 Vladimir Vaulin-Belskii. All rights reserved.

Preflight checks for the capabilities a recording session depends on.
"""
from __future__ import annotations

import importlib.util
import logging
from dataclasses import dataclass, field
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

LOCAL_HOSTS = {"localhost", "127.0.0.1", "::1"}

MICROPHONE_ISSUE = "Microphone capture (sounddevice/PortAudio input device) not available"
INFERENCE_RUNTIME_ISSUE = "Speech inference runtime (faster-whisper/CTranslate2) not installed"
SECURE_CONTEXT_ISSUE = "HTTPS (or localhost) backend required for transcript uploads"


@dataclass(frozen=True)
class RuntimeDescriptor:
    """What the host offers. Built by ``detect_runtime`` or by hand in tests."""

    media_devices: bool
    inference_runtime: bool
    accelerator: bool
    secure_context: bool


@dataclass(frozen=True)
class CapabilityReport:
    supported: bool
    features: RuntimeDescriptor
    issues: list[str] = field(default_factory=list)


def validate_runtime_support(runtime: RuntimeDescriptor) -> CapabilityReport:
    """Check the required subset of ``runtime``. Pure; never raises.

    The accelerator is optional and never produces an issue.
    """
    issues: list[str] = []
    if not runtime.media_devices:
        issues.append(MICROPHONE_ISSUE)
    if not runtime.inference_runtime:
        issues.append(INFERENCE_RUNTIME_ISSUE)
    if not runtime.secure_context:
        issues.append(SECURE_CONTEXT_ISSUE)
    return CapabilityReport(supported=not issues, features=runtime, issues=issues)


def _probe_microphone() -> bool:
    try:
        import sounddevice as sd
    except (ImportError, OSError) as exc:
        logger.debug("sounddevice unavailable: %s", exc)
        return False
    try:
        sd.query_devices(kind="input")
    except Exception as exc:
        logger.debug("No input device: %s", exc)
        return False
    return True


def _probe_inference_runtime() -> bool:
    return all(importlib.util.find_spec(name) is not None for name in ("faster_whisper", "ctranslate2"))


def _probe_accelerator() -> bool:
    try:
        import ctranslate2
    except ImportError:
        return False
    try:
        return ctranslate2.get_cuda_device_count() > 0
    except Exception as exc:
        logger.debug("CUDA probe failed: %s", exc)
        return False


def _is_secure_context(backend_url: str) -> bool:
    try:
        parsed = urlparse(backend_url)
        hostname = parsed.hostname
    except ValueError as exc:
        logger.debug("Unparseable backend URL %r: %s", backend_url, exc)
        return False
    return parsed.scheme == "https" or (hostname or "") in LOCAL_HOSTS


def detect_runtime(backend_url: str) -> RuntimeDescriptor:
    """Probe the current host. Absence of anything yields ``False``, never an exception."""
    return RuntimeDescriptor(
        media_devices=_probe_microphone(),
        inference_runtime=_probe_inference_runtime(),
        accelerator=_probe_accelerator(),
        secure_context=_is_secure_context(backend_url),
    )

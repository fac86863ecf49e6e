"""
Copyright © 2026 Vladimir Vaulin-Belskii. All rights reserved.

Exception types raised inside the transcription core.
"""


class ScribeError(Exception):
    """Base class for recoverable transcription-core failures."""


class DeviceError(ScribeError):
    """The microphone could not be acquired or released."""


class ModelLoadError(ScribeError):
    """The speech-recognition model could not be constructed."""


class AudioDecodeError(ScribeError):
    """Recorded chunks could not be decoded into samples."""


class TranscriptSaveError(ScribeError):
    """The backend rejected or never received a transcript save."""

"""
Copyright © 2026 Vladimir Vaulin-Belskii. All rights reserved.

Keyword-based doctor/patient attribution for recognized utterances.
"""
from typing import Literal

from .transcription_config import TranscriberConfig

Speaker = Literal["doctor", "patient"]

DOCTOR: Speaker = "doctor"
PATIENT: Speaker = "patient"


def alternate_speaker(prior_segment_count: int) -> Speaker:
    """Even count -> doctor, odd -> patient."""
    return DOCTOR if prior_segment_count % 2 == 0 else PATIENT


def score_keywords(text: str, keywords: tuple[str, ...]) -> int:
    """Number of distinct keywords that appear in ``text``."""
    lowered = text.lower()
    return sum(1 for keyword in keywords if keyword in lowered)


def infer_speaker(text: str, prior_segment_count: int, config: TranscriberConfig) -> Speaker:
    """Pick the speaker for ``text``; ties and disabled detection alternate by segment count."""
    if not config.enable_speaker_detection:
        return alternate_speaker(prior_segment_count)

    keywords = config.keywords()
    doctor_score = score_keywords(text, keywords["doctor"])
    patient_score = score_keywords(text, keywords["patient"])

    if doctor_score == patient_score:
        return alternate_speaker(prior_segment_count)
    return DOCTOR if doctor_score > patient_score else PATIENT

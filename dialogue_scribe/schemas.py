"""
Copyright © 2026 Vladimir Vaulin-Belskii. All rights reserved.

Pydantic schemas for the transcript persistence API.
"""
from pydantic import BaseModel


class TranscriptSaveRequest(BaseModel):
    text: str


class TranscriptSaveResponse(BaseModel):
    message: str

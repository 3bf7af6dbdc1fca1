"""Data models for the consultation core."""

from .recording import RecordingState, RecordingSession, AudioStats
from .transcription import Transcript, SuggestionSet, MedicineSuggestion
from .billing import BillingLineItem, ConsultationBill
from .consultation import (
    ConsultationType,
    ConsultationState,
    Step,
    StepSucceeded,
    StepFailed,
    StepResult,
    Encounter,
)
from .events import ConsultationEvent, Notice

__all__ = [
    "RecordingState",
    "RecordingSession",
    "AudioStats",
    "Transcript",
    "SuggestionSet",
    "MedicineSuggestion",
    "BillingLineItem",
    "ConsultationBill",
    # State machine
    "ConsultationType",
    "ConsultationState",
    "Step",
    "StepSucceeded",
    "StepFailed",
    "StepResult",
    "Encounter",
    # Events
    "ConsultationEvent",
    "Notice",
]

"""Consultation state machine models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Union

from ..errors import ClinicFlowError
from .transcription import MedicineSuggestion, SuggestionSet, Transcript


class ConsultationType(Enum):
    ONLINE = "ONLINE"
    OFFLINE = "OFFLINE"


class ConsultationState(Enum):
    AWAITING_START = "awaiting_start"
    RECORDING = "recording"
    TRANSCRIBING = "transcribing"
    SUGGESTIONS_PENDING = "suggestions_pending"
    READY_FOR_BILLING = "ready_for_billing"
    BILLED = "billed"
    COMPLETE = "complete"
    ERROR = "error"


class Step(Enum):
    """Asynchronous steps whose outcome feeds the state machine."""
    CAPTURE = "capture"
    TRANSCRIPTION = "transcription"
    SUGGESTIONS = "suggestions"
    BILLING = "billing"


@dataclass(frozen=True)
class StepSucceeded:
    step: Step
    value: Any = None


@dataclass(frozen=True)
class StepFailed:
    step: Step
    error: ClinicFlowError


StepResult = Union[StepSucceeded, StepFailed]


@dataclass
class Encounter:
    """Clinical state of one consultation. Suggestions are merged in, never replace."""
    transcript: Optional[Transcript] = None
    suggestions: Optional[SuggestionSet] = None
    diagnosis: List[str] = field(default_factory=list)
    medicines: List[MedicineSuggestion] = field(default_factory=list)
    notes: Optional[str] = None

    def merge_suggestions(self, suggestions: SuggestionSet) -> None:
        """Append suggested items that are not already present."""
        self.suggestions = suggestions
        for item in suggestions.diagnosis:
            if item not in self.diagnosis:
                self.diagnosis.append(item)
        known = {medicine.name.lower() for medicine in self.medicines}
        for medicine in suggestions.medicines:
            if medicine.name.lower() not in known:
                self.medicines.append(medicine)
                known.add(medicine.name.lower())
        if suggestions.notes and not self.notes:
            self.notes = suggestions.notes

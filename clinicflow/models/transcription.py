"""Transcription and AI suggestion data models."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class MedicineSuggestion:
    """A single advisory medicine entry."""
    name: str
    dosage: str
    frequency: str
    duration: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MedicineSuggestion":
        """Build from a response payload. Every field is required."""
        if not isinstance(data, dict):
            raise ValueError("Medicine suggestion is not an object")
        missing = [key for key in ("name", "dosage", "frequency", "duration")
                   if not isinstance(data.get(key), str)]
        if missing:
            raise ValueError(f"Medicine suggestion missing fields: {', '.join(missing)}")
        return cls(
            name=data["name"],
            dosage=data["dosage"],
            frequency=data["frequency"],
            duration=data["duration"],
        )

    def to_dict(self) -> Dict[str, str]:
        return {
            "name": self.name,
            "dosage": self.dosage,
            "frequency": self.frequency,
            "duration": self.duration,
        }


@dataclass(frozen=True)
class SuggestionSet:
    """AI-advisory diagnoses, medicines and notes derived from a transcript."""
    diagnosis: List[str] = field(default_factory=list)
    medicines: List[MedicineSuggestion] = field(default_factory=list)
    notes: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SuggestionSet":
        if not isinstance(data, dict):
            raise ValueError("Suggestions payload is not an object")
        diagnosis = data.get("diagnosis") or []
        medicines = data.get("medicines") or []
        if not isinstance(diagnosis, list) or not isinstance(medicines, list):
            raise ValueError("Suggestions payload has malformed lists")
        notes = data.get("notes")
        return cls(
            diagnosis=[str(item) for item in diagnosis],
            medicines=[MedicineSuggestion.from_dict(item) for item in medicines],
            notes=notes if isinstance(notes, str) and notes else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "diagnosis": list(self.diagnosis),
            "medicines": [medicine.to_dict() for medicine in self.medicines],
        }
        if self.notes is not None:
            payload["notes"] = self.notes
        return payload


@dataclass(frozen=True)
class Transcript:
    """Text rendering of one stopped recording session."""
    text: str
    received_at: datetime = field(default_factory=datetime.now)
    # Some transcription backends return suggestions inline
    suggestions: Optional[SuggestionSet] = None

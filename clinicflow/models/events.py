"""Event models published on pub/sub topics."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from .consultation import ConsultationState


@dataclass
class ConsultationEvent:
    """State transition of a consultation orchestrator."""
    appointment_id: str
    previous: Optional[ConsultationState]
    current: ConsultationState
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class Notice:
    """Human-readable message for the clinician."""
    appointment_id: str
    level: str  # "info", "warning", "error", "success"
    title: str
    message: str
    timestamp: datetime = field(default_factory=datetime.now)

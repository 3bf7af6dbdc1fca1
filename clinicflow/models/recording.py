"""Recording-related data models."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class RecordingState(Enum):
    """Lifecycle of a recording session. Transitions only move forward."""
    IDLE = "idle"
    RECORDING = "recording"
    STOPPED = "stopped"


@dataclass
class RecordingSession:
    """One capture session owned by a RecordingController."""
    state: RecordingState = RecordingState.IDLE
    started_at: Optional[datetime] = None
    duration_seconds: int = 0  # Non-decreasing while recording
    total_chunks: int = 0
    peak_level: float = 0.0  # 0.0 to 1.0


@dataclass
class AudioStats:
    """Audio recording statistics."""
    state: RecordingState
    duration_seconds: int
    sample_rate: int
    chunk_size: int
    total_chunks: int
    captured_bytes: int
    peak_level: float

    @property
    def is_recording(self) -> bool:
        return self.state is RecordingState.RECORDING

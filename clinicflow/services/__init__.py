"""Services layer for consultation orchestration."""

from .recording_controller import RecordingController
from .notice_publisher import NoticePublisher
from .orchestrator import ConsultationOrchestrator

__all__ = [
    "RecordingController",
    "NoticePublisher",
    "ConsultationOrchestrator",
]

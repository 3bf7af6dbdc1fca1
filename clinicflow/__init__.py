"""ClinicFlow: consultation recording, transcription and billing orchestration."""

from .services.orchestrator import ConsultationOrchestrator
from .services.recording_controller import RecordingController
from .billing.calculator import BillingCalculator
from .models.consultation import ConsultationState, ConsultationType

__version__ = "0.1.0"

__all__ = [
    "ConsultationOrchestrator",
    "RecordingController",
    "BillingCalculator",
    "ConsultationState",
    "ConsultationType",
    "__version__",
]

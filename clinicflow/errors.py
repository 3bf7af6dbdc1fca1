"""Exception hierarchy for the consultation core."""

from typing import Optional


class ClinicFlowError(Exception):
    """Base class for all consultation core errors."""

    title = "Error"

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class DeviceUnavailable(ClinicFlowError):
    """No capture device could be acquired (permission denied, no hardware)."""

    title = "Recording Failed"


class AlreadyRecording(ClinicFlowError):
    """start() was called while a session is already recording."""

    title = "Already Recording"


class ApiError(ClinicFlowError):
    """A single remote call failed (network, timeout, non-2xx or bad body)."""

    title = "Request Failed"

    def __init__(self, reason: str, status: Optional[int] = None):
        super().__init__(reason)
        self.status = status

    @property
    def is_auth_failure(self) -> bool:
        return self.status in (401, 403)


class TranscriptionFailed(ApiError):
    title = "Transcription Failed"


class SuggestionFailed(ApiError):
    """Non-fatal: suggestions are advisory."""

    title = "Suggestions Unavailable"


class BillingSubmissionFailed(ApiError):
    title = "Billing Failed"


class InvalidAmount(ClinicFlowError):
    """Rejected synchronously, before any network call."""

    title = "Invalid Amount"


class BillLocked(ClinicFlowError):
    """The bill was already submitted and can no longer be edited."""

    title = "Bill Locked"


class InvalidTransition(ClinicFlowError):
    """An orchestrator operation was requested in a state that does not allow it."""

    title = "Not Allowed"

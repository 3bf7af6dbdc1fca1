"""Consultation orchestrator that sequences recording, transcription, suggestions and billing."""

import asyncio
import logging
from contextlib import contextmanager
from typing import Any, Awaitable, Callable, Dict, Iterator, List, Optional, Type, Union

import aiohttp

from ..api.billing_client import BillingClient
from ..api.suggestion_client import SuggestionClient
from ..api.transcription_client import TranscriptionClient
from ..audio.capture import CaptureDevice, PyAudioCaptureDevice
from ..billing.calculator import BillingCalculator, parse_amount
from ..config import ClinicFlowConfig
from ..errors import (
    ApiError,
    BillingSubmissionFailed,
    ClinicFlowError,
    DeviceUnavailable,
    InvalidAmount,
    InvalidTransition,
    SuggestionFailed,
    TranscriptionFailed,
)
from ..models.billing import BillingLineItem, ConsultationBill
from ..models.consultation import (
    ConsultationState,
    ConsultationType,
    Encounter,
    Step,
    StepFailed,
    StepResult,
    StepSucceeded,
)
from ..models.events import Notice
from ..utils.formatting import format_currency, format_duration
from .notice_publisher import NoticePublisher
from .recording_controller import RecordingController

logger = logging.getLogger(__name__)

State = ConsultationState

# Failure type for a step when the client itself did not raise one
_STEP_ERRORS: Dict[Step, Type[ApiError]] = {
    Step.TRANSCRIPTION: TranscriptionFailed,
    Step.SUGGESTIONS: SuggestionFailed,
    Step.BILLING: BillingSubmissionFailed,
}

# States from which a step failure passes through ERROR
_ERROR_SOURCES = (State.RECORDING, State.TRANSCRIBING, State.SUGGESTIONS_PENDING)

_SKIPPABLE = (State.AWAITING_START, State.TRANSCRIBING, State.SUGGESTIONS_PENDING)


class ConsultationOrchestrator:
    """State machine for a single consultation instance.

    AWAITING_START -> RECORDING -> TRANSCRIBING -> SUGGESTIONS_PENDING ->
    READY_FOR_BILLING -> BILLED -> COMPLETE. Failures of the recording,
    transcription and suggestion steps pass through ERROR and always land in
    READY_FOR_BILLING; a consultation stays billable whatever happens to audio.

    At most one network call is in flight at a time. Results are applied only
    while the orchestrator is mounted and still in the state that issued them.
    """

    def __init__(self,
                 appointment_id: str,
                 patient_id: str,
                 consultation_type: ConsultationType,
                 recorder: RecordingController,
                 transcription_client: TranscriptionClient,
                 suggestion_client: SuggestionClient,
                 billing_client: BillingClient,
                 token_provider: Callable[[], Optional[str]],
                 base_fee: float = 500,
                 publisher: Optional[NoticePublisher] = None,
                 currency_symbol: str = "₹"):
        """Initialize consultation orchestrator.

        Args:
            appointment_id: Appointment being consulted
            patient_id: Patient of the appointment
            consultation_type: ONLINE consultations record automatically on enter()
            recorder: Recording controller owned by this consultation
            transcription_client: Remote transcription step
            suggestion_client: Remote AI suggestion step
            billing_client: Billing submission endpoint
            token_provider: Returns the current bearer token from the session collaborator
            base_fee: Initial consultation fee
            publisher: Publisher for state changes and notices
            currency_symbol: Symbol used in clinician-facing amounts
        """
        self.appointment_id = appointment_id
        self.patient_id = patient_id
        self.consultation_type = consultation_type
        self.recorder = recorder
        self.transcription_client = transcription_client
        self.suggestion_client = suggestion_client
        self.billing_client = billing_client
        self.token_provider = token_provider
        self.publisher = publisher or NoticePublisher(appointment_id)
        self.currency_symbol = currency_symbol

        self.billing = BillingCalculator(base_fee)
        self.encounter = Encounter()
        self.state = State.AWAITING_START
        self.history: List[ConsultationState] = [State.AWAITING_START]
        self.notices: List[Notice] = []
        self.last_error: Optional[ClinicFlowError] = None
        self.record_id: Optional[str] = None
        self.mounted = True

        self._entered = False
        self._lock: Optional[asyncio.Lock] = None

    @classmethod
    def from_config(cls,
                    config: ClinicFlowConfig,
                    appointment_id: str,
                    patient_id: str,
                    consultation_type: ConsultationType,
                    token_provider: Callable[[], Optional[str]],
                    device: Optional[CaptureDevice] = None,
                    session: Optional[aiohttp.ClientSession] = None,
                    base_fee: Optional[float] = None) -> "ConsultationOrchestrator":
        """Build an orchestrator and its collaborators from configuration."""
        if device is None:
            device = PyAudioCaptureDevice(
                sample_rate=config.get('audio.sample_rate', 16000),
                chunk_size=config.get('audio.chunk_size', 1024),
                channels=config.get('audio.channels', 1),
            )
        recorder = RecordingController(
            device=device,
            tick_interval_seconds=config.get('recording.tick_interval_seconds', 1.0),
        )

        base_url = config.get_api_base_url()
        timeout = config.get('api.timeout_seconds', 60.0)
        if base_fee is None:
            base_fee = config.get('billing.default_base_fee', 500)

        return cls(
            appointment_id=appointment_id,
            patient_id=patient_id,
            consultation_type=consultation_type,
            recorder=recorder,
            transcription_client=TranscriptionClient(base_url, timeout, session),
            suggestion_client=SuggestionClient(base_url, timeout, session),
            billing_client=BillingClient(base_url, timeout, session),
            token_provider=token_provider,
            base_fee=base_fee,
            currency_symbol=config.get('billing.currency_symbol', "₹"),
        )

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    @property
    def recording_duration(self) -> int:
        return self.recorder.session.duration_seconds

    @property
    def formatted_duration(self) -> str:
        return format_duration(self.recording_duration)

    def enter(self) -> None:
        """Enter the consultation. ONLINE consultations start recording automatically."""
        self._require_mounted()
        if self._entered:
            return
        self._entered = True
        logger.info(f"Entering {self.consultation_type.value} consultation {self.appointment_id}")
        self.publisher.publish_state(None, self.state)

        if self.consultation_type is ConsultationType.ONLINE:
            result = self._start_capture()
            if isinstance(result, StepFailed):
                # Billable without audio
                self._notify_failure(result.error, level="warning")
                self._transition(State.READY_FOR_BILLING)

    def start_recording(self) -> StepResult:
        """Clinician-triggered start (opt-in for OFFLINE consultations).

        A device failure is reported as a notice and leaves the consultation
        in AWAITING_START so the clinician can retry or skip to billing.
        """
        self._require_state(State.AWAITING_START)
        result = self._start_capture()
        if isinstance(result, StepFailed):
            self._notify_failure(result.error, level="warning")
        return result

    def _start_capture(self) -> StepResult:
        try:
            self.recorder.start()
        except DeviceUnavailable as e:
            logger.warning(f"Capture device unavailable: {e.reason}")
            self.last_error = e
            return StepFailed(Step.CAPTURE, e)
        self._transition(State.RECORDING)
        return StepSucceeded(Step.CAPTURE)

    async def stop_recording(self) -> Optional[StepResult]:
        """Stop recording and run transcription, then suggestions.

        Returns:
            Outcome of the last step that ran, or None if a result was discarded
        """
        self._require_state(State.RECORDING)
        # Joining the capture thread blocks, so it runs off the event loop
        loop = asyncio.get_running_loop()
        audio_blob = await loop.run_in_executor(None, self.recorder.stop)
        if not self._is_relevant(State.RECORDING):
            logger.info("Discarding recording: consultation moved on")
            return None
        if self.recorder.capture_error is not None:
            logger.warning(f"Capture ended with error: {self.recorder.capture_error}")

        if audio_blob is None:
            self._notice("error", "No Recording", "No audio was recorded")
            self._transition(State.READY_FOR_BILLING)
            return StepSucceeded(Step.CAPTURE)

        self._transition(State.TRANSCRIBING)
        result = await self._run_step(
            Step.TRANSCRIPTION, State.TRANSCRIBING,
            lambda token: self.transcription_client.submit(audio_blob, token),
        )
        if result is None:
            return None
        if isinstance(result, StepFailed):
            self._fail(result)
            return result

        transcript = result.value
        self.encounter.transcript = transcript
        if transcript.suggestions is not None:
            self.encounter.merge_suggestions(transcript.suggestions)

        if not transcript.text:
            logger.info("Empty transcript, skipping suggestions")
            self._transition(State.READY_FOR_BILLING)
            return result

        self._transition(State.SUGGESTIONS_PENDING)
        return await self._request_suggestions(transcript.text)

    async def _request_suggestions(self, transcript_text: str) -> Optional[StepResult]:
        result = await self._run_step(
            Step.SUGGESTIONS, State.SUGGESTIONS_PENDING,
            lambda token: self.suggestion_client.submit(transcript_text, token),
        )
        if result is None:
            return None
        if isinstance(result, StepFailed):
            self._fail(result)
            return result

        if result.value is not None:
            self.encounter.merge_suggestions(result.value)
        self._transition(State.READY_FOR_BILLING)
        return result

    def skip_to_billing(self) -> None:
        """Move straight to billing; results still in flight are discarded."""
        self._require_state(*_SKIPPABLE)
        logger.info(f"Skipping ahead to billing from {self.state.value}")
        self._transition(State.READY_FOR_BILLING)

    # ------------------------------------------------------------------
    # Billing
    # ------------------------------------------------------------------

    def set_base_fee(self, fee: Union[float, str]) -> None:
        self._require_state(State.READY_FOR_BILLING)
        with self._reporting_invalid_amount():
            if isinstance(fee, str):
                fee = parse_amount(fee, allow_zero=True)
            self.billing.set_base_fee(fee)

    def add_line_item(self, description: str, amount: Union[float, str]) -> BillingLineItem:
        """Add an extra fee. Amounts entered as text are parsed first."""
        self._require_state(State.READY_FOR_BILLING)
        with self._reporting_invalid_amount():
            if isinstance(amount, str):
                amount = parse_amount(amount)
            return self.billing.add_line_item(description, amount)

    def remove_line_item(self, index: int) -> None:
        self._require_state(State.READY_FOR_BILLING)
        self.billing.remove_line_item(index)

    def total(self) -> float:
        return self.billing.total()

    def bill(self) -> ConsultationBill:
        return self.billing.bill()

    async def submit_billing(self) -> Optional[StepResult]:
        """Submit the bill once. Failure keeps every entered fee and allows resubmission."""
        self._require_state(State.READY_FOR_BILLING)
        bill = self.billing.bill()
        transcript = self.encounter.transcript
        suggestions = self.encounter.suggestions

        self._transition(State.BILLED)
        result = await self._run_step(
            Step.BILLING, State.BILLED,
            lambda token: self.billing_client.submit(
                self.appointment_id, self.patient_id, bill, token,
                transcript=transcript, suggestions=suggestions,
            ),
        )
        if result is None:
            return None
        if isinstance(result, StepFailed):
            self._fail(result)
            return result

        self.billing.lock()
        self.record_id = result.value
        self._notice("success", "Billing Submitted",
                     f"Total fee: {format_currency(bill.total, self.currency_symbol)}")
        self._transition(State.COMPLETE)
        return result

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def teardown(self) -> None:
        """Cancel the timer and release the device now. Late results are discarded."""
        if not self.mounted:
            return
        self.mounted = False
        self.recorder.reset()
        logger.info(f"Consultation {self.appointment_id} torn down in state {self.state.value}")

    async def _run_step(self,
                        step: Step,
                        issued_in: ConsultationState,
                        call: Callable[[str], Awaitable[Any]]) -> Optional[StepResult]:
        """Run one network call under the per-consultation lock.

        Returns:
            Tagged outcome, or None if the consultation moved on meanwhile
        """
        async with self._network_lock():
            if not self._is_relevant(issued_in):
                logger.info(f"Dropping {step.value} request: consultation moved on")
                return None

            token = self.token_provider()
            if not token:
                result: StepResult = StepFailed(step, _STEP_ERRORS[step]("Not authenticated", status=401))
            else:
                try:
                    result = StepSucceeded(step, await call(token))
                except ClinicFlowError as e:
                    result = StepFailed(step, e)
                except Exception as e:
                    logger.exception(f"Unexpected error during {step.value}")
                    result = StepFailed(step, _STEP_ERRORS[step](f"Unexpected error: {e}"))

        if not self._is_relevant(issued_in):
            logger.info(f"Discarding {step.value} result: consultation moved on")
            return None
        return result

    def _network_lock(self) -> asyncio.Lock:
        # Created lazily so it binds to the running loop
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    def _is_relevant(self, issued_in: ConsultationState) -> bool:
        return self.mounted and self.state is issued_in

    def _fail(self, result: StepFailed) -> None:
        level = "warning" if result.step is Step.SUGGESTIONS else "error"
        self._notify_failure(result.error, level=level)
        if self.state in _ERROR_SOURCES:
            self._transition(State.ERROR)
        self._transition(State.READY_FOR_BILLING)

    def _notify_failure(self, error: ClinicFlowError, level: str) -> None:
        self.last_error = error
        if level == "warning":
            logger.warning(f"{error.title}: {error.reason}")
        else:
            logger.error(f"{error.title}: {error.reason}")
        self._notice(level, error.title, error.reason)
        if isinstance(error, ApiError) and error.is_auth_failure:
            self.publisher.publish_session_expired()

    def _notice(self, level: str, title: str, message: str) -> None:
        self.notices.append(self.publisher.publish_notice(level, title, message))

    def _transition(self, new_state: ConsultationState) -> None:
        previous, self.state = self.state, new_state
        self.history.append(new_state)
        logger.info(f"Consultation {self.appointment_id}: {previous.value} -> {new_state.value}")
        self.publisher.publish_state(previous, new_state)

    def _require_mounted(self) -> None:
        if not self.mounted:
            raise InvalidTransition("Consultation has been closed")

    def _require_state(self, *allowed: ConsultationState) -> None:
        self._require_mounted()
        if self.state not in allowed:
            names = ", ".join(state.value for state in allowed)
            raise InvalidTransition(f"Cannot do that while {self.state.value} (allowed: {names})")

    @contextmanager
    def _reporting_invalid_amount(self) -> Iterator[None]:
        """Publish a notice for a rejected amount before letting it propagate."""
        try:
            yield
        except InvalidAmount as e:
            self._notice("error", e.title, e.reason)
            raise


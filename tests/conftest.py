"""Pytest configuration and fixtures for ClinicFlow tests."""

import time
import logging
import threading
from typing import Any, Dict, List, Optional

import numpy as np
import pytest
from pubsub import pub

from clinicflow.audio.capture import CaptureDevice
from clinicflow.models.consultation import ConsultationType
from clinicflow.models.transcription import MedicineSuggestion, SuggestionSet, Transcript
from clinicflow.services.notice_publisher import NOTICE_TOPIC, SESSION_EXPIRED_TOPIC, STATE_TOPIC
from clinicflow.services.orchestrator import ConsultationOrchestrator
from clinicflow.services.recording_controller import RecordingController


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without I/O")
    config.addinivalue_line("markers", "integration: multi-component tests with fakes")
    config.addinivalue_line("markers", "slow: tests that wait on real timers")
    config.addinivalue_line("markers", "hardware: tests that need a real microphone")


class FakeCaptureDevice(CaptureDevice):
    """Capture device that replays preset chunks without touching hardware."""

    def __init__(self,
                 chunks: Optional[List[bytes]] = None,
                 open_error: Optional[Exception] = None,
                 read_error: Optional[Exception] = None,
                 close_error: Optional[Exception] = None,
                 supported: bool = True):
        self.sample_rate = 16000
        self.channels = 1
        self.chunk_size = 1024
        self.sample_width = 2
        self.chunks = list(chunks or [])
        self.open_error = open_error
        self.read_error = read_error
        self.close_error = close_error
        self.supported = supported
        self.exhausted = threading.Event()
        self.open_count = 0
        self.close_count = 0
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    def is_supported(self) -> bool:
        return self.supported

    def open(self) -> None:
        if self.open_error is not None:
            raise self.open_error
        self.open_count += 1
        self._open = True

    def read(self) -> bytes:
        if self.read_error is not None:
            raise self.read_error
        if self.chunks:
            return self.chunks.pop(0)
        self.exhausted.set()
        time.sleep(0.005)
        return b''

    def close(self) -> None:
        self.close_count += 1
        self._open = False
        if self.close_error is not None:
            raise self.close_error


class FakeResponse:
    """Stand-in for aiohttp.ClientResponse."""

    def __init__(self, status: int = 200, payload: Any = None, json_error: Optional[Exception] = None):
        self.status = status
        self.payload = payload if payload is not None else {}
        self.json_error = json_error

    async def json(self, content_type: Optional[str] = "application/json") -> Any:
        if self.json_error is not None:
            raise self.json_error
        return self.payload


class _RequestContext:
    def __init__(self, response: FakeResponse):
        self.response = response

    async def __aenter__(self) -> FakeResponse:
        return self.response

    async def __aexit__(self, *exc_info) -> bool:
        return False


class FakeHttpSession:
    """Routes POSTs by URL suffix to canned responses or exceptions.

    A route may map to a list, consumed one entry per request.
    """

    def __init__(self, routes: Optional[Dict[str, Any]] = None):
        self.routes = routes or {}
        self.requests: List[Dict[str, Any]] = []

    def post(self, url: str, headers: Optional[Dict[str, str]] = None, **kwargs: Any) -> _RequestContext:
        self.requests.append({"url": url, "headers": headers or {}, **kwargs})
        for suffix, outcome in self.routes.items():
            if url.endswith(suffix):
                if isinstance(outcome, list):
                    outcome = outcome.pop(0)
                if isinstance(outcome, Exception):
                    raise outcome
                return _RequestContext(outcome)
        return _RequestContext(FakeResponse(404, {"message": "Not found"}))

    def requests_to(self, suffix: str) -> List[Dict[str, Any]]:
        return [request for request in self.requests if request["url"].endswith(suffix)]


class InFlightTracker:
    """Counts concurrent calls across stub clients."""

    def __init__(self):
        self.current = 0
        self.max_seen = 0


class StubClient:
    """Async client stub with an optional gate to hold the call open."""

    def __init__(self, result: Any = None, error: Optional[Exception] = None,
                 tracker: Optional[InFlightTracker] = None):
        self.result = result
        self.error = error
        self.tracker = tracker
        self.gate = None  # asyncio.Event, created inside the running loop
        self.started = None
        self.calls: List[Dict[str, Any]] = []

    async def submit(self, *args: Any, **kwargs: Any) -> Any:
        self.calls.append({"args": args, "kwargs": kwargs})
        if self.tracker is not None:
            self.tracker.current += 1
            self.tracker.max_seen = max(self.tracker.max_seen, self.tracker.current)
        try:
            if self.started is not None:
                self.started.set()
            if self.gate is not None:
                await self.gate.wait()
            if self.error is not None:
                raise self.error
            return self.result
        finally:
            if self.tracker is not None:
                self.tracker.current -= 1


class EventCollector:
    """Keeps every message published on a topic."""

    def __init__(self):
        self.events: List[Any] = []

    def on_event(self, event) -> None:
        self.events.append(event)


def _collect(topic: str):
    collector = EventCollector()
    pub.subscribe(collector.on_event, topic)
    try:
        yield collector
    finally:
        pub.unsubscribe(collector.on_event, topic)


@pytest.fixture
def notice_collector():
    yield from _collect(NOTICE_TOPIC)


@pytest.fixture
def state_collector():
    yield from _collect(STATE_TOPIC)


@pytest.fixture
def session_expired_collector():
    yield from _collect(SESSION_EXPIRED_TOPIC)


@pytest.fixture
def temp_data_dir(tmp_path):
    """Temporary directory for test data."""
    return tmp_path


@pytest.fixture
def sample_audio_chunk():
    """Generate a sample audio chunk for testing."""
    # Generate 1024 samples of 16-bit audio (sine wave)
    sample_rate = 16000
    duration = 1024 / sample_rate  # ~0.064 seconds
    freq = 440  # A4 note

    t = np.linspace(0, duration, 1024, False)
    wave_data = np.sin(2 * np.pi * freq * t)

    # Convert to 16-bit integers
    audio_data = (wave_data * 32767).astype(np.int16)
    return audio_data.tobytes()


@pytest.fixture
def fake_device(sample_audio_chunk):
    """Capture device that yields five chunks of sine audio."""
    return FakeCaptureDevice(chunks=[sample_audio_chunk] * 5)


@pytest.fixture
def sample_transcript():
    return Transcript(text="Patient reports a headache and mild fever for two days.")


@pytest.fixture
def sample_suggestions():
    return SuggestionSet(
        diagnosis=["Viral fever", "Tension headache"],
        medicines=[
            MedicineSuggestion(name="Paracetamol", dosage="500mg", frequency="Twice daily", duration="3 days"),
        ],
        notes="Advise rest and fluids.",
    )


@pytest.fixture
def build_orchestrator(fake_device, sample_transcript, sample_suggestions):
    """Factory for orchestrators wired to fakes; torn down after the test."""
    created = []

    def _build(consultation_type: ConsultationType = ConsultationType.OFFLINE,
               device: Optional[CaptureDevice] = None,
               transcription: Optional[StubClient] = None,
               suggestions: Optional[StubClient] = None,
               billing: Optional[StubClient] = None,
               token: Optional[str] = "token-123",
               base_fee: float = 500) -> ConsultationOrchestrator:
        recorder = RecordingController(device or fake_device, tick_interval_seconds=0.05)
        orchestrator = ConsultationOrchestrator(
            appointment_id="apt-1",
            patient_id="pat-1",
            consultation_type=consultation_type,
            recorder=recorder,
            transcription_client=transcription or StubClient(sample_transcript),
            suggestion_client=suggestions or StubClient(sample_suggestions),
            billing_client=billing or StubClient("bill-1"),
            token_provider=lambda: token,
            base_fee=base_fee,
        )
        created.append(orchestrator)
        return orchestrator

    yield _build

    for orchestrator in created:
        orchestrator.teardown()


def wait_for_audio(device: FakeCaptureDevice, timeout: float = 2.0) -> None:
    """Block until the fake device has handed out all of its chunks."""
    assert device.exhausted.wait(timeout), "Capture thread never drained the fake device"

"""Recording controller that owns the capture device and session lifecycle."""

import io
import time
import wave
import logging
import threading
from datetime import datetime
from typing import Callable, List, Optional

import numpy as np

from ..audio.capture import CaptureDevice, PyAudioCaptureDevice
from ..audio.timer import DurationTimer
from ..errors import AlreadyRecording, DeviceUnavailable
from ..models.recording import AudioStats, RecordingSession, RecordingState

logger = logging.getLogger(__name__)


class RecordingController:
    """Owns exactly one capture device and at most one recording session.

    State machine: IDLE --start--> RECORDING --stop--> STOPPED --reset--> IDLE.
    Live audio never leaves this object; stop() hands off an immutable WAV blob.
    """

    def __init__(self,
                 device: Optional[CaptureDevice] = None,
                 tick_interval_seconds: float = 1.0,
                 on_tick: Optional[Callable[[int], None]] = None):
        """Initialize recording controller.

        Args:
            device: Capture device to own. Defaults to a PyAudio microphone.
            tick_interval_seconds: Cadence of the duration tick
            on_tick: Optional callback receiving the duration after each tick
        """
        self.device = device or PyAudioCaptureDevice()
        self.on_tick = on_tick
        self.session = RecordingSession()
        self.capture_error: Optional[Exception] = None

        self._chunks: List[bytes] = []
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._capture_thread: Optional[threading.Thread] = None
        self._started_monotonic = 0.0
        self.timer = DurationTimer(self._tick, tick_interval_seconds)

    @property
    def state(self) -> RecordingState:
        return self.session.state

    def is_supported(self) -> bool:
        """Check if recording is supported on this device."""
        return self.device.is_supported()

    def start(self) -> None:
        """Acquire the device and begin recording.

        Raises:
            AlreadyRecording: If a session is already recording
            DeviceUnavailable: If the capture device cannot be acquired
        """
        if self.session.state is RecordingState.RECORDING:
            raise AlreadyRecording("A recording is already in progress")

        if self.session.state is RecordingState.STOPPED:
            # One session per controller: the previous one is discarded
            self.reset()

        try:
            self.device.open()
        except DeviceUnavailable:
            self._release_device()
            raise
        except (IOError, OSError) as e:
            self._release_device()
            raise DeviceUnavailable(f"Failed to start recording: {e}") from e

        logger.info("Starting audio recording")
        self.capture_error = None
        self._chunks = []
        self._stop_event.clear()
        self._started_monotonic = time.monotonic()
        self.session = RecordingSession(
            state=RecordingState.RECORDING,
            started_at=datetime.now(),
        )

        self._capture_thread = threading.Thread(target=self._record_continuously, daemon=True)
        self._capture_thread.name = "AudioCaptureThread"
        self._capture_thread.start()
        self.timer.start()

    def stop(self) -> Optional[bytes]:
        """Stop recording and hand off the captured audio.

        Returns:
            WAV-encoded audio, or None if not recording or nothing was captured
        """
        if self.session.state is not RecordingState.RECORDING:
            return None

        logger.info("Stopping audio recording")
        self._halt_capture()
        self._release_device()
        self._update_duration()

        with self._lock:
            audio = b''.join(self._chunks)
            self._chunks = []
            self.session.state = RecordingState.STOPPED

        logger.info(f"Recording stopped. Total chunks: {self.session.total_chunks}, "
                    f"{len(audio)} bytes, {self.session.duration_seconds}s")

        if not audio:
            logger.warning("No audio data captured")
            return None
        return self._encode_wav(audio)

    def reset(self) -> None:
        """Release everything and return to IDLE. Idempotent in any state."""
        try:
            self._halt_capture()
        finally:
            self._release_device()
            with self._lock:
                self._chunks = []
                self.session = RecordingSession()
        logger.debug("Recording controller reset")

    def status(self) -> AudioStats:
        """Get current recording statistics."""
        with self._lock:
            captured = sum(len(chunk) for chunk in self._chunks)
            return AudioStats(
                state=self.session.state,
                duration_seconds=self.session.duration_seconds,
                sample_rate=self.device.sample_rate,
                chunk_size=self.device.chunk_size,
                total_chunks=self.session.total_chunks,
                captured_bytes=captured,
                peak_level=self.session.peak_level,
            )

    def _halt_capture(self) -> None:
        self.timer.cancel()
        self._stop_event.set()
        thread, self._capture_thread = self._capture_thread, None
        if thread is not None and thread.is_alive():
            thread.join(timeout=2.0)
            if thread.is_alive():
                logger.warning("Recording thread did not stop cleanly")

    def _release_device(self) -> None:
        try:
            self.device.close()
        except Exception as e:
            logger.error(f"Error releasing capture device: {e}")

    def _record_continuously(self) -> None:
        """Internal method: continuous recording loop in background thread."""
        while not self._stop_event.is_set():
            try:
                chunk = self.device.read()
            except Exception as e:
                logger.error(f"Error reading from capture device: {e}")
                self.capture_error = e
                return

            if not chunk:
                continue

            level = self._peak_level(chunk)
            with self._lock:
                if self.session.state is not RecordingState.RECORDING:
                    return
                self._chunks.append(chunk)
                self.session.total_chunks += 1
                self.session.peak_level = level

    def _tick(self) -> None:
        duration = self._update_duration()
        if self.on_tick is not None and duration is not None:
            self.on_tick(duration)

    def _update_duration(self) -> Optional[int]:
        elapsed = int(time.monotonic() - self._started_monotonic)
        with self._lock:
            if self.session.state is not RecordingState.RECORDING:
                return None
            if elapsed > self.session.duration_seconds:
                self.session.duration_seconds = elapsed
            return self.session.duration_seconds

    def _peak_level(self, chunk: bytes) -> float:
        usable = len(chunk) - (len(chunk) % self.device.sample_width)
        if usable <= 0:
            return 0.0
        samples = np.frombuffer(chunk[:usable], dtype=np.int16)
        return float(np.abs(samples.astype(np.int32)).max()) / 32768.0

    def _encode_wav(self, audio: bytes) -> bytes:
        buffer = io.BytesIO()
        with wave.open(buffer, 'wb') as wf:
            wf.setnchannels(self.device.channels)
            wf.setsampwidth(self.device.sample_width)
            wf.setframerate(self.device.sample_rate)
            wf.writeframes(audio)
        return buffer.getvalue()

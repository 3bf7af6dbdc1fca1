"""Capture device handles owned by a single RecordingController."""

import logging
from abc import ABC, abstractmethod

from ..errors import DeviceUnavailable

logger = logging.getLogger(__name__)


class CaptureDevice(ABC):
    """Exclusively-owned audio input handle producing 16-bit PCM chunks."""

    sample_rate: int = 16000
    channels: int = 1
    chunk_size: int = 1024
    sample_width: int = 2  # bytes per sample

    @abstractmethod
    def open(self) -> None:
        """Acquire the device.

        Raises:
            DeviceUnavailable: If permission is denied or no hardware is present
        """

    @abstractmethod
    def read(self) -> bytes:
        """Blocking read of one chunk. May return b'' when nothing is available."""

    @abstractmethod
    def close(self) -> None:
        """Release the device. Safe to call when not open."""

    @property
    @abstractmethod
    def is_open(self) -> bool:
        pass

    def is_supported(self) -> bool:
        """Whether this kind of device can be used on the current machine."""
        return True


class PyAudioCaptureDevice(CaptureDevice):
    """Microphone input through PyAudio."""

    def __init__(self, sample_rate: int = 16000, chunk_size: int = 1024, channels: int = 1):
        """Initialize device parameters. Nothing is acquired until open().

        Args:
            sample_rate: Audio sample rate in Hz
            chunk_size: Size of each audio chunk in samples
            channels: Number of audio channels (1 for mono)
        """
        self.sample_rate = sample_rate
        self.chunk_size = chunk_size
        self.channels = channels
        self.sample_width = 2
        self._pyaudio_instance = None
        self._stream = None

    @staticmethod
    def is_supported() -> bool:
        """Check whether PyAudio is importable and reports an input device."""
        try:
            import pyaudio
        except ImportError:
            return False
        instance = pyaudio.PyAudio()
        try:
            instance.get_default_input_device_info()
            return True
        except (IOError, OSError):
            return False
        finally:
            instance.terminate()

    @property
    def is_open(self) -> bool:
        return self._stream is not None

    def open(self) -> None:
        try:
            import pyaudio
        except ImportError as e:
            raise DeviceUnavailable(
                "Audio capture requires PyAudio. Install clinicflow[audio]."
            ) from e

        self._pyaudio_instance = pyaudio.PyAudio()
        try:
            self._stream = self._pyaudio_instance.open(
                format=pyaudio.paInt16,
                channels=self.channels,
                rate=self.sample_rate,
                input=True,
                frames_per_buffer=self.chunk_size,
                stream_callback=None
            )
        except (IOError, OSError) as e:
            # Opening failed half-way: drop the PyAudio instance as well
            self._pyaudio_instance.terminate()
            self._pyaudio_instance = None
            raise DeviceUnavailable(
                f"Failed to start recording. Please check microphone permissions. ({e})"
            ) from e

        logger.info(f"Audio stream opened: {self.sample_rate}Hz, "
                    f"{self.chunk_size} samples/chunk")

    def read(self) -> bytes:
        if self._stream is None:
            return b''
        return self._stream.read(self.chunk_size, exception_on_overflow=False)

    def close(self) -> None:
        stream, self._stream = self._stream, None
        instance, self._pyaudio_instance = self._pyaudio_instance, None
        try:
            if stream is not None:
                stream.stop_stream()
                stream.close()
        finally:
            if instance is not None:
                instance.terminate()
                logger.debug("PyAudio instance terminated")

"""Audio capture module."""

from .capture import CaptureDevice, PyAudioCaptureDevice
from .timer import DurationTimer

__all__ = [
    'CaptureDevice',
    'PyAudioCaptureDevice',
    'DurationTimer',
]

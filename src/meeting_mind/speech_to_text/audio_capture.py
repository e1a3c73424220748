"""Audio capture from microphone and system-audio loopback devices."""

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import numpy as np
import pyaudio

from ..logging_utils import get_logger
from .config import (
    AUDIO_LEVEL_LOG_INTERVAL,
    DEFAULT_FRAMES_PER_BUFFER,
    DEFAULT_SAMPLE_RATE,
    DEVICE_ALIAS_NAMES,
    VIRTUAL_DEVICE_PATTERNS,
    VIRTUAL_LOOPBACK_PATTERNS,
)
from .energy import rms
from .exceptions import AudioCaptureError, MicrophoneNotFoundError
from .mixer import AudioMixer
from .signal_buffer import SignalBuffer

logger = get_logger(__name__)

SOURCE_SYSTEM = "system"
SOURCE_MICROPHONE = "microphone"


@dataclass
class InputDevice:
    """An audio input device reported by PortAudio."""

    index: int
    name: str
    channels: int
    default_sample_rate: float


@dataclass
class SourcePlan:
    """A capture source to open: its role and device (None = default input)."""

    role: str
    device: InputDevice | None
    is_loopback: bool = False


def is_loopback_device(name: str | None) -> bool:
    """True for virtual cables that carry system audio (VB-Cable, BlackHole)."""
    lowered = (name or "").lower()
    return any(pattern in lowered for pattern in VIRTUAL_LOOPBACK_PATTERNS)


def is_virtual_device(name: str | None) -> bool:
    """True for any virtual audio device, loopback or voice changer."""
    lowered = (name or "").lower()
    return any(pattern in lowered for pattern in VIRTUAL_DEVICE_PATTERNS)


def _is_alias(name: str) -> bool:
    return name.strip().lower() in DEVICE_ALIAS_NAMES


def find_device(devices: list[InputDevice], wanted: str | int) -> InputDevice | None:
    """
    Look up a saved device by index or name.

    Args:
        devices: Available input devices
        wanted: Device index, or a name (exact match preferred, then substring)

    Returns:
        The matching device or None
    """
    if isinstance(wanted, int) or (isinstance(wanted, str) and wanted.isdigit()):
        index = int(wanted)
        return next((d for d in devices if d.index == index), None)

    lowered = str(wanted).strip().lower()
    exact = next((d for d in devices if d.name.lower() == lowered), None)
    if exact:
        return exact
    return next((d for d in devices if lowered in d.name.lower()), None)


def find_physical_microphone(
    devices: list[InputDevice], exclude_index: int | None = None
) -> InputDevice | None:
    """First named, non-virtual, non-alias input device other than ``exclude_index``."""
    for device in devices:
        if device.index == exclude_index:
            continue
        if not device.name or _is_alias(device.name) or is_virtual_device(device.name):
            continue
        return device
    return None


def plan_sources(
    devices: list[InputDevice], saved_device: str | int | None
) -> list[SourcePlan]:
    """
    Decide which input devices to open.

    A saved device that still exists is used as the system-audio source.
    With nothing saved, a virtual loopback device is picked automatically.
    When a system-audio source is chosen, a physical microphone is mixed in
    alongside it; otherwise the default microphone is used alone.

    Args:
        devices: Available input devices
        saved_device: Configured device (None, "" or "default" means automatic)

    Returns:
        Source plans, system audio first
    """
    if saved_device in (None, "", "default"):
        saved_device = None

    target: InputDevice | None = None
    if saved_device is not None:
        target = find_device(devices, saved_device)
        if target is None:
            logger.warning(f"⚠️ Saved audio device '{saved_device}' not found, using default")
    else:
        target = next((d for d in devices if is_loopback_device(d.name)), None)

    if target is None:
        return [SourcePlan(role=SOURCE_MICROPHONE, device=None)]

    plans = [
        SourcePlan(
            role=SOURCE_SYSTEM, device=target, is_loopback=is_loopback_device(target.name)
        )
    ]
    microphone = find_physical_microphone(devices, exclude_index=target.index)
    if microphone is not None:
        plans.append(SourcePlan(role=SOURCE_MICROPHONE, device=microphone))
    return plans


class AudioCapture:
    """Opens the planned input streams and feeds their samples into the signal buffer."""

    def __init__(
        self,
        buffer: SignalBuffer,
        sample_rate: int | None = None,
        frames_per_buffer: int | None = None,
        device: str | int | None = None,
        pyaudio_factory: Callable[[], Any] = pyaudio.PyAudio,
    ) -> None:
        """
        Initialize audio capture with specified parameters.

        Args:
            buffer: Destination for captured (mixed) samples
            sample_rate: Capture sample rate in Hz
            frames_per_buffer: Samples per PortAudio callback
            device: Saved device name or index (None = automatic selection)
            pyaudio_factory: Creates the PortAudio handle
        """
        self.sample_rate = sample_rate if sample_rate is not None else DEFAULT_SAMPLE_RATE
        self.frames_per_buffer = (
            frames_per_buffer if frames_per_buffer is not None else DEFAULT_FRAMES_PER_BUFFER
        )
        if self.sample_rate <= 0:
            raise ValueError("Sample rate must be positive")
        if self.frames_per_buffer <= 0:
            raise ValueError("Frames per buffer must be positive")

        self.device = device
        self._buffer = buffer
        self._pyaudio_factory = pyaudio_factory
        self._pyaudio: Any | None = None
        self._streams: dict[str, Any] = {}
        self._mixer: AudioMixer | None = None
        self._capturing = False
        self.system_audio_warning = False

        # Debug tracking
        self._frames_received = 0
        self._last_level_log = 0.0

    def list_input_devices(self) -> list[InputDevice]:
        """
        List available input devices.

        Returns:
            Devices with at least one input channel
        """
        owns_handle = self._pyaudio is None
        handle = self._pyaudio or self._pyaudio_factory()
        try:
            return _enumerate_input_devices(handle)
        finally:
            if owns_handle:
                handle.terminate()

    def start_capture(self) -> None:
        """Start capturing from every planned source."""
        if self._capturing:
            raise AudioCaptureError("Already capturing")

        self.system_audio_warning = False
        try:
            self._pyaudio = self._pyaudio_factory()
            devices = _enumerate_input_devices(self._pyaudio)
            logger.debug(f"✅ Found {len(devices)} input devices available")

            plans = plan_sources(devices, self.device)
            self._mixer = AudioMixer(self._buffer, sample_rate=self.sample_rate)

            for plan in plans:
                self._open_source(plan)

            if not self._streams:
                raise AudioCaptureError("No audio source available")

            self._capturing = True
            self._frames_received = 0
            self._last_level_log = time.time()
            logger.debug(
                f"✅ Audio capture started (sources: {', '.join(self._streams)}, "
                f"sample_rate: {self.sample_rate})"
            )
        except Exception:
            self._close_streams()
            raise

    def _open_source(self, plan: SourcePlan) -> None:
        device_name = plan.device.name if plan.device else "default input"
        self._mixer.add_source(plan.role)
        try:
            stream = self._pyaudio.open(
                format=pyaudio.paFloat32,
                channels=1,
                rate=self.sample_rate,
                input=True,
                input_device_index=plan.device.index if plan.device else None,
                frames_per_buffer=self.frames_per_buffer,
                stream_callback=self._make_callback(plan.role),
            )
            stream.start_stream()
        except OSError as e:
            self._mixer.remove_source(plan.role)
            if plan.role == SOURCE_SYSTEM:
                if plan.is_loopback:
                    self.system_audio_warning = True
                logger.warning(
                    f"⚠️ System audio unavailable ({device_name}): {e}; "
                    f"capturing microphone only"
                )
                return
            if plan.device is None:
                if "Permission denied" in str(e):
                    logger.error("❌ Microphone permission denied")
                    raise AudioCaptureError("Permission denied") from e
                logger.error("❌ No default input device found")
                raise MicrophoneNotFoundError("No microphone found") from e
            logger.warning(f"⚠️ Could not open microphone {device_name}: {e}")
            return

        self._streams[plan.role] = stream
        logger.debug(f"🎤 Opened {plan.role} source: {device_name}")

    def _make_callback(self, role: str) -> Callable:
        mixer = self._mixer

        def callback(in_data: bytes, frame_count: int, time_info: Any, status: int) -> tuple:
            if in_data:
                samples = np.frombuffer(in_data, dtype=np.float32)
                mixer.feed(role, samples)
                self._track_level(samples)
            return (None, pyaudio.paContinue)

        return callback

    def _track_level(self, samples: np.ndarray) -> None:
        self._frames_received += 1
        now = time.time()
        if now - self._last_level_log >= AUDIO_LEVEL_LOG_INTERVAL:
            logger.trace(
                f"🔊 Frames: {self._frames_received}, current level: {rms(samples):.3f}"
            )
            self._last_level_log = now

    def stop_capture(self) -> None:
        """Stop capturing audio and release every device handle."""
        if not self._capturing:
            return
        self._capturing = False
        self._close_streams()

    def _close_streams(self) -> None:
        for role, stream in list(self._streams.items()):
            try:
                stream.stop_stream()
                stream.close()
            except OSError as e:
                logger.warning(f"⚠️ Error closing {role} stream: {e}")
        self._streams = {}

        if self._mixer:
            self._mixer.reset()
            self._mixer = None

        if self._pyaudio:
            self._pyaudio.terminate()
            self._pyaudio = None

    def is_capturing(self) -> bool:
        """
        Check if currently capturing audio.

        Returns:
            True if capturing, False otherwise
        """
        return self._capturing

    @property
    def active_sources(self) -> list[str]:
        """Roles of the streams currently open."""
        return list(self._streams)

    def get_debug_stats(self) -> dict[str, Any]:
        """
        Get debug statistics about audio capture.

        Returns:
            Dictionary with debug information
        """
        return {
            "capturing": self._capturing,
            "sample_rate": self.sample_rate,
            "frames_per_buffer": self.frames_per_buffer,
            "frames_received": self._frames_received,
            "sources": self.active_sources,
            "system_audio_warning": self.system_audio_warning,
        }


def _enumerate_input_devices(handle: Any) -> list[InputDevice]:
    devices: list[InputDevice] = []
    for i in range(handle.get_device_count()):
        try:
            info = handle.get_device_info_by_index(i)
        except OSError as e:
            logger.trace(f"  [{i}] Error getting device info: {e}")
            continue

        channels = int(info.get("maxInputChannels", 0))
        if channels <= 0:
            continue
        device = InputDevice(
            index=int(info.get("index", i)),
            name=str(info.get("name", f"Device {i}")),
            channels=channels,
            default_sample_rate=float(info.get("defaultSampleRate", 0.0)),
        )
        devices.append(device)
        logger.trace(f"  [{device.index}] {device.name} (in: {channels})")

    if not devices:
        logger.warning("⚠️ No input devices found")
    return devices

"""PCM audio decoding: base64 -> little-endian int16 -> normalized float32 buffer."""

import base64
import binascii
import logging
from dataclasses import dataclass
from pathlib import Path

import numpy as np
import soundfile as sf

logger = logging.getLogger(__name__)

_INT16_SCALE = 32768.0


class DecodeError(Exception):
    """Raised when a PCM payload cannot be decoded."""


@dataclass
class AudioBuffer:
    sample_rate: int
    channels: np.ndarray   # float32, shape (channel_count, frames)

    @property
    def channel_count(self) -> int:
        return int(self.channels.shape[0])

    @property
    def frame_count(self) -> int:
        return int(self.channels.shape[1])

    @property
    def duration_sec(self) -> float:
        return self.frame_count / self.sample_rate

    def channel(self, index: int) -> np.ndarray:
        return self.channels[index]

    def interleaved(self) -> np.ndarray:
        """Frames-major float32 array, shape (frames, channel_count), as output devices expect."""
        return np.ascontiguousarray(self.channels.T)

    def to_pcm16(self) -> bytes:
        """Re-encode to interleaved little-endian int16 PCM (rounded, clamped)."""
        scaled = np.rint(self.interleaved().astype(np.float64) * _INT16_SCALE)
        clipped = np.clip(scaled, -32768, 32767).astype("<i2")
        return clipped.tobytes()


def decode_audio(data: bytes, sample_rate: int, channel_count: int) -> AudioBuffer:
    """Decode interleaved 16-bit little-endian PCM into a per-channel float buffer.

    Samples past the last complete frame are dropped. An odd byte count is
    rejected rather than truncated, since it cannot be a whole number of samples.

    Raises:
        DecodeError: channel_count or sample_rate below 1, or odd byte length.
    """
    if channel_count < 1:
        raise DecodeError(f"channel_count must be >= 1, got {channel_count}")
    if sample_rate < 1:
        raise DecodeError(f"sample_rate must be >= 1, got {sample_rate}")
    if len(data) % 2:
        raise DecodeError(f"PCM16 payload has odd byte length {len(data)}")

    samples = np.frombuffer(data, dtype="<i2")
    frame_count = len(samples) // channel_count
    if frame_count * channel_count != len(samples):
        logger.debug(
            "Dropping %d trailing samples (partial frame)",
            len(samples) - frame_count * channel_count,
        )

    frames = samples[: frame_count * channel_count].reshape(frame_count, channel_count)
    channels = (frames.T.astype(np.float32) / _INT16_SCALE).copy()
    return AudioBuffer(sample_rate=sample_rate, channels=channels)


def decode_base64_audio(payload: str, sample_rate: int, channel_count: int) -> AudioBuffer:
    """Decode a base64 PCM payload as returned by the speech model."""
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecodeError(f"Invalid base64 audio payload: {exc}") from exc
    return decode_audio(data, sample_rate, channel_count)


def save_wav(buffer: AudioBuffer, path: Path) -> Path:
    """Write the buffer to disk as 16-bit PCM WAV."""
    path.parent.mkdir(parents=True, exist_ok=True)
    # int16 in, so libsndfile stores the samples without rescaling
    pcm = np.frombuffer(buffer.to_pcm16(), dtype="<i2").reshape(buffer.frame_count, buffer.channel_count)
    sf.write(str(path), pcm, buffer.sample_rate, subtype="PCM_16")
    logger.info("Audio saved to: %s", path)
    return path

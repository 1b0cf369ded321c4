"""Fire-and-forget playback of speech payloads on a lazily opened output stream."""

import logging
import threading
from collections.abc import Callable
from typing import Any

from aethel.audio import AudioBuffer, DecodeError, decode_base64_audio

try:
    import sounddevice as sd
except Exception:  # PortAudio missing on headless hosts
    sd = None

logger = logging.getLogger(__name__)


class PlaybackError(Exception):
    """Raised when no audio output stream can be opened."""


class AudioPlayer:
    """Owns one output stream, created on first use and reused afterwards."""

    def __init__(
        self,
        sample_rate: int = 24000,
        channels: int = 1,
        stream_factory: Callable[[int, int], Any] | None = None,
    ) -> None:
        self.sample_rate = sample_rate
        self.channels = channels
        self._stream_factory = stream_factory or _sounddevice_stream
        self._stream: Any = None
        self._init_lock = threading.Lock()
        self._write_lock = threading.Lock()

    def context(self) -> Any:
        """Return the shared output stream, opening and starting it once."""
        with self._init_lock:
            if self._stream is None:
                stream = self._stream_factory(self.sample_rate, self.channels)
                stream.start()
                self._stream = stream
                logger.debug("Audio output opened at %d Hz", self.sample_rate)
            return self._stream

    def play(self, audio_b64: str) -> threading.Thread | None:
        """Start playing a base64 PCM payload. Never raises.

        Returns the writer thread so callers that must outlive playback
        (a CLI about to exit) can join it; None when playback could not start.
        """
        try:
            buffer = decode_base64_audio(audio_b64, self.sample_rate, self.channels)
            stream = self.context()
        except (DecodeError, PlaybackError) as exc:
            logger.error("Audio playback error: %s", exc)
            return None
        except Exception as exc:
            # device errors from PortAudio surface as assorted types
            logger.error("Audio device error: %s", exc)
            return None

        thread = threading.Thread(
            target=self._write,
            args=(stream, buffer),
            name="aethel-playback",
            daemon=True,
        )
        thread.start()
        return thread

    def close(self) -> None:
        with self._init_lock:
            if self._stream is not None:
                self._stream.stop()
                self._stream.close()
                self._stream = None

    def _write(self, stream: Any, buffer: AudioBuffer) -> None:
        try:
            with self._write_lock:
                stream.write(buffer.interleaved())
        except Exception as exc:
            logger.error("Audio playback error: %s", exc)


def _sounddevice_stream(sample_rate: int, channels: int) -> Any:
    if sd is None:
        raise PlaybackError("sounddevice is unavailable (is PortAudio installed?)")
    return sd.OutputStream(samplerate=sample_rate, channels=channels, dtype="float32")

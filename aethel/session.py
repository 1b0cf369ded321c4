"""In-memory session: current result, bounded history, loading flag and error."""

import logging
import threading
import time

from aethel.models import ResonanceResult, WitInput
from aethel.playback import AudioPlayer
from aethel.resonance import AnalysisFailure, ResonanceClient

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 10
GENERIC_ERROR_MESSAGE = "Alignment error detected in resonance core."


class SessionState:
    """Holds everything the front end shows. Lost when the process exits."""

    def __init__(
        self,
        client: ResonanceClient,
        player: AudioPlayer | None = None,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> None:
        self._client = client
        self._player = player
        self.history_limit = history_limit
        self.current: ResonanceResult | None = None
        self.history: list[ResonanceResult] = []
        self.loading = False
        self.error: str | None = None
        self.input_x = ""
        self.input_y = ""
        self.last_playback: threading.Thread | None = None

    @property
    def can_submit(self) -> bool:
        return not self.loading and bool(self.input_x) and bool(self.input_y)

    async def submit(self) -> ResonanceResult | None:
        """Analyze the current inputs.

        A no-op returning None while a request is in flight or either input
        is empty. On failure sets `error` and leaves history untouched.
        """
        if not self.can_submit:
            logger.debug("Submit ignored (loading=%s)", self.loading)
            return None

        x = WitInput(data=self.input_x)
        y = WitInput(data=self.input_y)
        self.loading = True
        self.error = None
        try:
            auth_void = await self._client.analyze(x, y)
        except AnalysisFailure as exc:
            self.error = str(exc)
            return None
        except Exception:
            logger.exception("Resonance request failed")
            self.error = GENERIC_ERROR_MESSAGE
            return None
        finally:
            self.loading = False

        result = ResonanceResult(
            x=x,
            y=y,
            auth_void=auth_void,
            timestamp=time.time() * 1000,
        )
        self.current = result
        self.history = [result, *self.history][: self.history_limit]
        logger.info("Resonance stored (%d in history)", len(self.history))

        if auth_void.audio_data:
            self.replay_audio()
        return result

    def select_history(self, item: ResonanceResult) -> None:
        """Show a past result again and restore its inputs. Issues no request."""
        self.current = item
        self.input_x = item.x.data
        self.input_y = item.y.data

    def replay_audio(self) -> threading.Thread | None:
        """Play the current result's speech, if any. Returns the playback thread or None."""
        if self._player is None or self.current is None or not self.current.auth_void.audio_data:
            return None
        self.last_playback = self._player.play(self.current.auth_void.audio_data)
        return self.last_playback

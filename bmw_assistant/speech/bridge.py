"""
Speech input/output bridge.
Wraps optional recognition and synthesis engines behind a capability-checked
contract with at most one active session and one active utterance.

Version: 1.0.0
"""
import itertools
import logging
from typing import Callable, Hashable, Optional

from .engines import (
    RecognitionEngine,
    SynthesisEngine,
    detect_speech_locale,
    system_locale,
)

logger = logging.getLogger(__name__)

TranscriptListener = Callable[[str], None]


class SpeechBridge:
    """
    Finite-state wrapper over the speech engines.

    Recognition: idle -> listening -> idle (final result, error or end).
    Synthesis: idle -> speaking(key) -> idle (end, error, or toggle).

    Callbacks from a session or utterance that has since been stopped or
    replaced are ignored, so a late end event never clears newer state.
    """

    def __init__(
        self,
        recognition: Optional[RecognitionEngine] = None,
        synthesis: Optional[SynthesisEngine] = None,
        locale_tag: Optional[str] = None
    ):
        """
        Initialize speech bridge.

        Args:
            recognition: Speech-to-text engine (None = unsupported)
            synthesis: Text-to-speech engine (None = unsupported)
            locale_tag: Recognition and default playback locale (system locale if None)
        """
        self.recognition = recognition
        self.synthesis = synthesis
        self.locale_tag = locale_tag or system_locale()

        self.recognition_supported = self._detect(recognition)
        self.synthesis_supported = self._detect(synthesis)

        self.is_listening = False
        self.speaking_key: Optional[Hashable] = None

        self._tokens = itertools.count(1)
        self._session_token: Optional[int] = None
        self._utterance_token: Optional[int] = None
        self._transcript_listener: Optional[TranscriptListener] = None

        logger.info(
            f"SpeechBridge initialized (recognition: "
            f"{'enabled' if self.recognition_supported else 'disabled'}, synthesis: "
            f"{'enabled' if self.synthesis_supported else 'disabled'}, "
            f"locale: {self.locale_tag})"
        )

    @staticmethod
    def _detect(engine) -> bool:
        if engine is None:
            return False
        try:
            return bool(engine.is_supported())
        except Exception as e:
            logger.warning(f"Speech capability check failed for {type(engine).__name__}: {e}")
            return False

    @property
    def is_speaking(self) -> bool:
        return self.speaking_key is not None

    def on_transcript(self, listener: Optional[TranscriptListener]) -> None:
        """Register the single listener receiving final transcripts."""
        self._transcript_listener = listener

    # ===========================
    # Recognition
    # ===========================

    def start_listening(self) -> bool:
        """
        Start one recognition session.

        Returns:
            True if a session was started
        """
        if not self.recognition_supported or self.is_listening:
            return False

        token = next(self._tokens)
        self._session_token = token
        self.is_listening = True

        try:
            self.recognition.start(
                self.locale_tag,
                on_result=lambda transcript: self._handle_result(token, transcript),
                on_error=lambda error: self._handle_recognition_end(token, error),
                on_end=lambda: self._handle_recognition_end(token, None),
            )
        except Exception as e:
            logger.warning(f"Failed to start speech recognition: {e}")
            self._reset_listening()
            return False

        logger.debug("Speech recognition started")
        return True

    def stop_listening(self) -> None:
        """Stop the active recognition session, if any."""
        if not self.is_listening:
            return

        try:
            self.recognition.stop()
        except Exception as e:
            logger.debug(f"Ignoring error stopping recognition: {e}")
        finally:
            self._reset_listening()

    def toggle_listening(self) -> bool:
        """Start listening when idle, stop when listening. Returns the new state."""
        if self.is_listening:
            self.stop_listening()
        else:
            self.start_listening()
        return self.is_listening

    def _reset_listening(self) -> None:
        self.is_listening = False
        self._session_token = None

    def _handle_result(self, token: int, transcript: str) -> None:
        if token != self._session_token:
            return

        transcript = (transcript or "").strip()
        if not transcript:
            return

        if self._transcript_listener is not None:
            try:
                self._transcript_listener(transcript)
            except Exception as e:
                logger.error(f"Transcript listener failed: {e}", exc_info=True)

    def _handle_recognition_end(self, token: int, error: Optional[Exception]) -> None:
        if token != self._session_token:
            return

        if error is not None:
            logger.info(f"Speech recognition error: {error}")
        self._reset_listening()

    # ===========================
    # Synthesis
    # ===========================

    def speak(self, text: str, key: Hashable) -> bool:
        """
        Toggle playback of a text.

        Speaking the key that is already playing stops it. Any other key
        stops the current utterance first, then starts the new one.

        Args:
            text: Text to read aloud
            key: Identity of the spoken item (message index or id)

        Returns:
            True if an utterance for key is now playing
        """
        if not self.synthesis_supported:
            return False

        if self.speaking_key is not None and self.speaking_key == key:
            self.stop_speaking()
            return False

        self.stop_speaking()

        token = next(self._tokens)
        self._utterance_token = token
        self.speaking_key = key

        try:
            self.synthesis.speak(
                text,
                detect_speech_locale(text, self.locale_tag),
                on_end=lambda: self._handle_utterance_end(token, None),
                on_error=lambda error: self._handle_utterance_end(token, error),
            )
        except Exception as e:
            logger.warning(f"Failed to start speech synthesis: {e}")
            self._reset_speaking()
            return False

        return self.speaking_key == key

    def stop_speaking(self) -> None:
        """Cancel any playback."""
        if not self.synthesis_supported:
            return

        try:
            self.synthesis.cancel()
        except Exception as e:
            logger.debug(f"Ignoring error cancelling speech synthesis: {e}")
        finally:
            self._reset_speaking()

    def _reset_speaking(self) -> None:
        self.speaking_key = None
        self._utterance_token = None

    def _handle_utterance_end(self, token: int, error: Optional[Exception]) -> None:
        if token != self._utterance_token:
            return

        if error is not None:
            logger.info(f"Speech synthesis error: {error}")
        self._reset_speaking()

    # ===========================
    # Lifecycle
    # ===========================

    def dispose(self) -> None:
        """Stop both capabilities and drop the transcript listener."""
        self.stop_listening()
        if self.is_speaking:
            self.stop_speaking()
        self._transcript_listener = None


__all__ = ['SpeechBridge', 'TranscriptListener']

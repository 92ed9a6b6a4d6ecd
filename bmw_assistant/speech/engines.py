"""
Speech engine interfaces.
Recognition and synthesis backends are callback driven, like the platform
services they wrap; SpeechBridge turns them into a small state machine.

Version: 1.0.0
"""
import locale
import re
from abc import ABC, abstractmethod
from typing import Callable, Optional

FALLBACK_LOCALE = "en-AU"
CJK_LOCALE = "zh-CN"

_CJK_IDEOGRAPH = re.compile(r"[\u4e00-\u9fff]")

ResultCallback = Callable[[str], None]
ErrorCallback = Callable[[Exception], None]
EndCallback = Callable[[], None]


class RecognitionEngine(ABC):
    """
    Speech-to-text capture service.

    start() begins one single-result session. The engine reports the final
    transcript through on_result, failures through on_error, and always
    calls on_end when the session is over.
    """

    def is_supported(self) -> bool:
        """Whether the runtime provides this capability."""
        return True

    @abstractmethod
    def start(
        self,
        locale_tag: str,
        on_result: ResultCallback,
        on_error: ErrorCallback,
        on_end: EndCallback
    ) -> None:
        pass

    @abstractmethod
    def stop(self) -> None:
        pass


class SynthesisEngine(ABC):
    """
    Text-to-speech playback service.

    speak() queues one utterance; the engine calls on_end when playback
    finishes and on_error if it fails. cancel() stops all playback.
    """

    def is_supported(self) -> bool:
        """Whether the runtime provides this capability."""
        return True

    @abstractmethod
    def speak(
        self,
        text: str,
        locale_tag: str,
        on_end: EndCallback,
        on_error: ErrorCallback
    ) -> None:
        pass

    @abstractmethod
    def cancel(self) -> None:
        pass


def system_locale() -> str:
    """BCP 47 tag of the process locale, or the fallback locale."""
    try:
        language = locale.getlocale()[0]
    except ValueError:
        language = None

    if not language or language in ("C", "POSIX"):
        return FALLBACK_LOCALE
    return language.replace("_", "-")


def detect_speech_locale(text: str, default_locale: Optional[str] = None) -> str:
    """
    Playback locale for a text: Chinese ideographs select zh-CN, anything
    else uses the default (system) locale.
    """
    if _CJK_IDEOGRAPH.search(text or ""):
        return CJK_LOCALE
    return default_locale or system_locale()


__all__ = [
    'RecognitionEngine',
    'SynthesisEngine',
    'FALLBACK_LOCALE',
    'CJK_LOCALE',
    'system_locale',
    'detect_speech_locale',
]

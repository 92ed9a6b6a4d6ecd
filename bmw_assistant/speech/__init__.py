"""
Optional voice input/output for the assistant.
"""
from .engines import (
    RecognitionEngine,
    SynthesisEngine,
    FALLBACK_LOCALE,
    CJK_LOCALE,
    system_locale,
    detect_speech_locale,
)
from .bridge import SpeechBridge

__all__ = [
    'RecognitionEngine',
    'SynthesisEngine',
    'SpeechBridge',
    'FALLBACK_LOCALE',
    'CJK_LOCALE',
    'system_locale',
    'detect_speech_locale',
]

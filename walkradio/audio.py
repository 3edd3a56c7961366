"""Text-to-speech output for narration."""

import subprocess
from typing import Optional, Callable

from .models import NarrationEvent


class Audio:
    """Speaks narration aloud with espeak"""

    callback: Optional[Callable[[str], None]] = None  # Class-level hook, called with every spoken text

    @classmethod
    def set_callback(cls, callback: Optional[Callable[[str], None]]):
        cls.callback = callback

    @staticmethod
    def speak(text: str) -> Optional[subprocess.Popen]:
        """Start speaking text and return immediately.

        Speech runs in a child process so position ticks are not held up
        while it plays. Falls back to printing when espeak is not installed.
        """
        if Audio.callback:
            Audio.callback(text)

        try:
            return subprocess.Popen(
                ["espeak", "-s", "150", text],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except FileNotFoundError:
            print(f"[AUDIO] {text}")
        except OSError as e:
            print(f"Audio error: {e}")
            print(f"[AUDIO] {text}")
        return None

    @staticmethod
    def announce(event: NarrationEvent):
        """on_narration hook: speak successful narration, skip error entries"""
        if not event.is_error:
            Audio.speak(event.message)

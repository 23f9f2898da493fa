"""
Looping alert sound for the proximity alert.

An ``AudioCue`` behaves like a media element: ``play()`` resumes from where
``pause()`` left off, and ``volume`` can change while playing.
"""

from __future__ import annotations

import logging
import shlex
import signal
import subprocess
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class AudioCue(Protocol):
    loop: bool
    volume: float

    @property
    def paused(self) -> bool:
        ...

    def play(self) -> None:
        ...

    def pause(self) -> None:
        ...


class NullAudioCue:
    """Silent cue that only tracks playback state."""

    def __init__(self) -> None:
        self.loop = False
        self.volume = 1.0
        self._paused = True
        self.play_count = 0
        self.pause_count = 0

    @property
    def paused(self) -> bool:
        return self._paused

    def play(self) -> None:
        self.play_count += 1
        self._paused = False

    def pause(self) -> None:
        self.pause_count += 1
        self._paused = True


class SubprocessAudioCue:
    """
    Plays a sound file through an external command-line player.

    Pausing suspends the player process and playing resumes it, so the
    sound picks up where it stopped. Volume changes restart the player at
    the new level once they exceed ``volume_step``.

    Args:
        path: Sound file to play
        command: Player command line; ``{file}`` and ``{scale}`` (volume as
            an mpg123 scale factor, 0-32768) are substituted
        volume_step: Smallest volume change that restarts the player
    """

    DEFAULT_COMMAND = "mpg123 -q --loop {loop} -f {scale} {file}"

    def __init__(self, path: str, command: str = DEFAULT_COMMAND, volume_step: float = 0.05) -> None:
        self.path = path
        self.command = command
        self.volume_step = volume_step
        self.loop = False
        self._volume = 1.0
        self._playing_volume: float | None = None
        self._process: subprocess.Popen[bytes] | None = None
        self._paused = True

    @property
    def volume(self) -> float:
        return self._volume

    @volume.setter
    def volume(self, value: float) -> None:
        self._volume = max(0.0, min(1.0, value))
        if (
            not self._paused
            and self._playing_volume is not None
            and abs(self._volume - self._playing_volume) >= self.volume_step
        ):
            self._terminate()
            self._spawn()

    @property
    def paused(self) -> bool:
        return self._paused

    def play(self) -> None:
        if self._process is not None and self._process.poll() is None:
            self._process.send_signal(signal.SIGCONT)
        else:
            self._spawn()
        self._paused = False

    def pause(self) -> None:
        if self._process is not None and self._process.poll() is None:
            self._process.send_signal(signal.SIGSTOP)
        self._paused = True

    def close(self) -> None:
        self._terminate()
        self._paused = True

    def _spawn(self) -> None:
        args = [
            part.format(
                file=self.path,
                scale=int(self._volume * 32768),
                loop=-1 if self.loop else 1,
            )
            for part in shlex.split(self.command)
        ]
        try:
            self._process = subprocess.Popen(
                args, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL
            )
        except OSError as exc:
            logger.warning("Audio play failed: %s", exc)
            self._process = None
            return
        self._playing_volume = self._volume

    def _terminate(self) -> None:
        if self._process is None:
            return
        if self._process.poll() is None:
            # A stopped process cannot act on SIGTERM until resumed.
            self._process.send_signal(signal.SIGCONT)
            self._process.terminate()
            try:
                self._process.wait(timeout=2)
            except subprocess.TimeoutExpired:
                self._process.kill()
                self._process.wait()
        self._process = None
        self._playing_volume = None

"""
Local audio announcements: a ding followed by text-to-speech.

Uses whatever the platform ships with — `afplay`/`say` on macOS,
`aplay`/`paplay` + `espeak-ng` on Linux, PowerShell's SoundPlayer and
System.Speech on Windows.  Missing players are tolerated; announce() never
raises.
"""

import asyncio
import logging
import shlex
import sys
from pathlib import Path

from config import DING_WAV_PATH

logger = logging.getLogger(__name__)


def _ding_command(wav: Path) -> str:
    if sys.platform == "win32":
        return (
            'powershell -NoProfile -Command '
            f'"(New-Object Media.SoundPlayer \'{wav}\').PlaySync()"'
        )
    if sys.platform == "darwin":
        return f"afplay {shlex.quote(str(wav))}"
    quoted = shlex.quote(str(wav))
    return f"aplay {quoted} 2>/dev/null || paplay {quoted} 2>/dev/null || true"


def _speech_command(text: str) -> str:
    if sys.platform == "win32":
        escaped = text.replace("'", "''").replace('"', "")
        return (
            'powershell -NoProfile -Command "Add-Type -AssemblyName System.Speech; '
            "$s = New-Object System.Speech.Synthesis.SpeechSynthesizer; "
            f"$s.Speak('{escaped}')\""
        )
    if sys.platform == "darwin":
        return f"say {shlex.quote(text)}"
    return f"espeak-ng {shlex.quote(text)} 2>/dev/null || true"


async def _run(cmd: str) -> None:
    try:
        proc = await asyncio.create_subprocess_shell(
            cmd,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
        await proc.wait()
    except OSError as exc:
        logger.warning("Audio command failed (%s): %s", cmd.split()[0], exc)


async def play_ding(wav: Path = DING_WAV_PATH) -> None:
    if not wav.exists():
        logger.warning("ding.wav not found at %s, skipping ding", wav)
        return
    await _run(_ding_command(wav))


async def speak_text(text: str) -> None:
    await _run(_speech_command(text))


async def announce(message: str, play_audio: bool) -> None:
    """Log the message and, when play_audio is set, ding and read it aloud."""
    logger.info("[ANNOUNCE] %s", message)
    if not play_audio:
        return
    await play_ding()
    await speak_text(message)

"""Tests for notify.push and notify.audio. No real HTTP or subprocesses."""

import asyncio
import json
from unittest.mock import AsyncMock, patch

import httpx

from notify import audio
from notify.push import post_notification


def _mock_client(handler):
    real = httpx.AsyncClient

    def factory(*args, **kwargs):
        return real(*args, transport=httpx.MockTransport(handler), **kwargs)

    return patch("httpx.AsyncClient", side_effect=factory)


class TestPostNotification:
    def test_posts_once_per_user(self):
        bodies = []

        def handler(request):
            bodies.append(json.loads(request.content))
            return httpx.Response(200)

        with _mock_client(handler):
            asyncio.run(post_notification("Train late", ["alice", "bob"], url="http://push.example"))

        assert bodies == [
            {"message": "Train late", "user": "alice"},
            {"message": "Train late", "user": "bob"},
        ]

    def test_no_users_no_request(self):
        with patch("httpx.AsyncClient") as client_cls:
            asyncio.run(post_notification("x", [], url="http://push.example"))
            asyncio.run(post_notification("x", None, url="http://push.example"))
        client_cls.assert_not_called()

    def test_no_url_no_request(self):
        with patch("httpx.AsyncClient") as client_cls:
            asyncio.run(post_notification("x", ["alice"], url=""))
        client_cls.assert_not_called()

    def test_failure_for_one_user_does_not_stop_others(self):
        seen = []

        def handler(request):
            user = json.loads(request.content)["user"]
            seen.append(user)
            if user == "alice":
                return httpx.Response(500)
            return httpx.Response(200)

        with _mock_client(handler):
            asyncio.run(post_notification("x", ["alice", "bob"], url="http://push.example"))
        assert seen == ["alice", "bob"]

    def test_network_error_swallowed(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with _mock_client(handler):
            asyncio.run(post_notification("x", ["alice"], url="http://push.example"))

    def test_malformed_url_swallowed(self):
        asyncio.run(post_notification("x", ["alice"], url="http://[::1"))


class TestAnnounce:
    def test_without_audio_runs_nothing(self):
        with patch("notify.audio._run", new=AsyncMock()) as run:
            asyncio.run(audio.announce("Train late", play_audio=False))
        run.assert_not_awaited()

    def test_with_audio_dings_then_speaks(self):
        with (
            patch("notify.audio.play_ding", new=AsyncMock()) as ding,
            patch("notify.audio.speak_text", new=AsyncMock()) as speak,
        ):
            asyncio.run(audio.announce("Train late", play_audio=True))
        ding.assert_awaited_once()
        speak.assert_awaited_once_with("Train late")

    def test_missing_wav_skips_ding(self, tmp_path):
        with patch("notify.audio._run", new=AsyncMock()) as run:
            asyncio.run(audio.play_ding(tmp_path / "absent.wav"))
        run.assert_not_awaited()

    def test_speech_text_is_quoted(self):
        with patch("notify.audio.sys.platform", "linux"):
            cmd = audio._speech_command("it's 3 minutes; late")
        assert cmd.startswith("espeak-ng '")
        assert "; late" in cmd.split("||")[0]

    def test_missing_player_tolerated(self):
        with patch("asyncio.create_subprocess_shell", new=AsyncMock(side_effect=OSError("no shell"))):
            asyncio.run(audio._run("espeak-ng hi"))

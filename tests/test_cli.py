"""Tests for the nostr-media command line."""

import argparse
import json
import socket

import pytest

from conftest import SECRET_HEX
from python_nostr_media import cli
from python_nostr_media.config import DEFAULT_RELAYS, PublishConfig
from python_nostr_media.errors import PowError, SignError, ValidationError
from python_nostr_media.event import new_event
from python_nostr_media.relay import RelayResult, RelayStatus


class FakePublisher:
    """Replaces MediaPublisher: signs a canned event and fakes relay outcomes."""

    instances = []

    def __init__(self, signer, config):
        self.signer = signer
        self.config = config
        self.calls = []
        self.relays = None
        FakePublisher.instances.append(self)

    async def create_picture_event(self, **kwargs):
        self.calls.append(("picture", kwargs))
        return await self._event(20)

    async def create_video_event(self, **kwargs):
        self.calls.append(("video", kwargs))
        return await self._event(21)

    async def _event(self, kind):
        event = new_event(kind, await self.signer.get_public_key(), [["title", "cli"]], "from the cli")
        await self.signer.sign(event)
        return event

    async def publish(self, event, relays):
        self.relays = list(relays)
        return [
            RelayResult(url, RelayStatus.PUBLISHED) if i == 0
            else RelayResult(url, RelayStatus.CONNECT_FAILED, "connection refused")
            for i, url in enumerate(relays)
        ]


@pytest.fixture
def fake_publisher(monkeypatch):
    FakePublisher.instances = []
    monkeypatch.setattr(cli, "MediaPublisher", FakePublisher)
    return FakePublisher


def _refused_url(path="clip.mp4"):
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]
    return f"http://127.0.0.1:{port}/{path}"


def test_success_prints_event_and_relay_outcomes(fake_publisher, image_file, tmp_path, capsys):
    relays_file = tmp_path / "relays.json"
    relays_file.write_text(json.dumps(["wss://a.example.com", "wss://b.example.com"]))

    code = cli.main([
        "picture", "--key", SECRET_HEX, "--file", image_file, "--relay", str(relays_file), "--diff", "0",
    ])

    out, err = capsys.readouterr()
    assert code == 0
    event = json.loads(out.splitlines()[0])
    assert event["kind"] == 20
    assert event["sig"]
    assert "Published event to relay wss://a.example.com successfully" in out
    assert "Error connecting to relay wss://b.example.com: connection refused" in err

    publisher = fake_publisher.instances[0]
    assert publisher.config.difficulty == 0
    assert publisher.relays == ["wss://a.example.com", "wss://b.example.com"]
    assert publisher.calls[0] == (
        "picture",
        {
            "files": [image_file],
            "urls": [],
            "title": None,
            "description": "",
            "published_at": None,
            "hashtags": False,
        },
    )


def test_video_arguments_are_passed_through(fake_publisher, monkeypatch, capsys):
    monkeypatch.setenv("NOSTR_SECRET_KEY", SECRET_HEX)

    code = cli.main([
        "video", "--url", "https://video.example.com/clip.mp4", "--legacy", "--descriptor", "myvideo",
        "--duration", "30", "--hashtags", "--published-at", "1700000000", "-r", "wss://a.example.com",
    ])

    assert code == 0
    kind, kwargs = fake_publisher.instances[0].calls[0]
    assert kind == "video"
    assert kwargs["url"] == "https://video.example.com/clip.mp4"
    assert kwargs["file"] is None
    assert kwargs["legacy"] is True
    assert kwargs["descriptor"] == "myvideo"
    assert kwargs["duration"] == 30
    assert kwargs["hashtags"] is True
    assert kwargs["published_at"] == "1700000000"
    assert fake_publisher.instances[0].relays == ["wss://a.example.com"]


def test_no_relay_means_no_publishing(fake_publisher, image_file, capsys):
    code = cli.main(["picture", "--key", SECRET_HEX, "--file", image_file])

    assert code == 0
    assert fake_publisher.instances[0].relays == []


def test_missing_key(fake_publisher, image_file, capsys):
    code = cli.main(["picture", "--file", image_file])

    assert code == 2
    assert "ERROR: ValidationError" in capsys.readouterr().err
    assert fake_publisher.instances == []


def test_malformed_key(image_file, capsys):
    code = cli.main(["picture", "--key", "nsec1broken", "--file", image_file])

    assert code == 2
    assert "ERROR: KeyDecodeError" in capsys.readouterr().err


def test_relay_flag_without_relays(fake_publisher, image_file, capsys):
    code = cli.main(["picture", "--key", SECRET_HEX, "--file", image_file, "--relay", "not-a-relay"])

    assert code == 2
    assert fake_publisher.instances == []


def test_invalid_published_at(image_file, capsys):
    code = cli.main(["picture", "--key", SECRET_HEX, "--file", image_file, "--published-at", "noon"])

    assert code == 2
    assert "ERROR: ValidationError" in capsys.readouterr().err


def test_media_error_exit_code(tmp_path, capsys):
    notes = tmp_path / "notes.txt"
    notes.write_text("not an image")

    code = cli.main(["picture", "--key", SECRET_HEX, "--file", str(notes)])

    assert code == 3
    assert "ERROR: UnknownTypeError" in capsys.readouterr().err


def test_network_error_exit_code(capsys):
    code = cli.main(["video", "--key", SECRET_HEX, "--url", _refused_url()])

    assert code == 4
    assert "ERROR: DownloadError" in capsys.readouterr().err


def test_video_requires_exactly_one_source(capsys):
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["video", "--key", SECRET_HEX, "--file", "a.mp4", "--url", "https://x.example.com/a.mp4"])
    assert exc_info.value.code == 2

    with pytest.raises(SystemExit) as exc_info:
        cli.main(["video", "--key", SECRET_HEX])
    assert exc_info.value.code == 2


# ----------------------- Relay selection -----------------------

def _args(relay=None, relay_short=None, transmit=False):
    return argparse.Namespace(relay=relay, relay_short=relay_short, transmit=transmit)


def test_select_relays_transmit_uses_defaults():
    assert cli.select_relays(_args(transmit=True), PublishConfig()) == list(DEFAULT_RELAYS)


def test_select_relays_explicit_beats_transmit():
    relays = cli.select_relays(_args(relay="wss://a.example.com", transmit=True), PublishConfig())
    assert relays == ["wss://a.example.com"]


def test_select_relays_short_flag_fallback():
    relays = cli.select_relays(_args(relay="missing.json", relay_short="wss://b.example.com"), PublishConfig())
    assert relays == ["wss://b.example.com"]


def test_select_relays_unresolvable():
    with pytest.raises(ValidationError):
        cli.select_relays(_args(relay="missing.json"), PublishConfig())


def test_exit_code_for_other_errors():
    assert cli.exit_code_for(PowError("x")) == 1
    assert cli.exit_code_for(SignError("x")) == 1

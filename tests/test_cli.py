"""Tests for the command-line interface."""

import json
import threading
import time
from unittest.mock import patch

import pytest

from doc2audiobook.cli import main
from doc2audiobook.config import Settings
from doc2audiobook.errors import StorageError
from doc2audiobook.storage import LocalObjectStorage, owner_of, user_path

from conftest import FakeEngine, chapter_text


@pytest.fixture
def cli_service(make_service):
    service = make_service(FakeEngine(audio_sizes=[20000, 24000]))
    with patch("doc2audiobook.service.AudiobookService.from_settings", return_value=service):
        yield service


class TestCli:
    def test_list_voices(self, cli_service, capsys):
        main(["--list-voices"])
        out = capsys.readouterr().out
        assert "george" in out
        assert "Sarah" in out

    def test_convert_with_metadata(self, cli_service, tmp_path):
        source = tmp_path / "novel.txt"
        source.write_text(chapter_text(1) + "\n" + chapter_text(2), encoding="utf-8")
        meta = tmp_path / "novel.json"

        main([str(source), "-m", str(meta), "--author", "A. Writer"])

        assert len((tmp_path / "novel.mp3").read_bytes()) == 44000
        doc = json.loads(meta.read_text(encoding="utf-8"))
        assert doc["metadata"]["title"] == "novel"
        assert doc["metadata"]["author"] == "A. Writer"
        assert [c["title"] for c in doc["chapters"]] == ["Chapter 1", "Chapter 2"]

    def test_unsupported_file_exits(self, cli_service, tmp_path):
        source = tmp_path / "book.mobi"
        source.write_bytes(b"MOBI")
        with pytest.raises(SystemExit) as exc:
            main([str(source)])
        assert exc.value.code == 1

    def test_missing_file_exits(self, cli_service, tmp_path):
        with pytest.raises(SystemExit):
            main([str(tmp_path / "nope.txt")])

    def test_timeout_exits_without_waiting_for_the_job(self, make_service, tmp_path):
        release = threading.Event()

        class BlockedEngine(FakeEngine):
            def synthesize(self, *args, **kwargs):
                release.wait(10)
                return super().synthesize(*args, **kwargs)

        service = make_service(BlockedEngine())
        source = tmp_path / "novel.txt"
        source.write_text(chapter_text(1) + "\n" + chapter_text(2), encoding="utf-8")

        started = time.monotonic()
        try:
            with patch("doc2audiobook.service.AudiobookService.from_settings", return_value=service):
                with pytest.raises(SystemExit) as exc:
                    main([str(source), "--timeout", "1"])
            elapsed = time.monotonic() - started
        finally:
            release.set()

        assert exc.value.code == 1
        assert elapsed < 4
        assert not (tmp_path / "novel.mp3").exists()


class TestSettings:
    def test_from_env(self):
        settings = Settings.from_env({
            "ELEVENLABS_API_KEY": "k",
            "PORT": "9000",
            "WORKER_THREADS": "3",
            "EXACT_DURATIONS": "yes",
        })
        assert settings.require_api_key() == "k"
        assert settings.port == 9000
        assert settings.worker_threads == 3
        assert settings.exact_durations is True
        assert settings.tts_engine == "elevenlabs"

    def test_defaults(self):
        settings = Settings.from_env({})
        assert settings.elevenlabs_base_url == "https://api.elevenlabs.io"
        assert settings.exact_durations is False


class TestLocalObjectStorage:
    def test_round_trip(self, tmp_path):
        storage = LocalObjectStorage(tmp_path)
        path = user_path("u1", "doc.txt")
        storage.upload(path, b"data")

        assert storage.exists(path)
        assert storage.download(path) == b"data"
        assert owner_of(path) == "u1"

    @pytest.mark.parametrize("path", ["", "/etc/passwd", "u1/../u2/doc.txt"])
    def test_rejects_escaping_paths(self, tmp_path, path):
        with pytest.raises(StorageError):
            LocalObjectStorage(tmp_path).upload(path, b"x")

    def test_missing_object(self, tmp_path):
        with pytest.raises(StorageError, match="not found"):
            LocalObjectStorage(tmp_path).download("u1/missing")

"""Tests for audio assembly and duration helpers."""

from unittest.mock import MagicMock, patch

import pytest

from doc2audiobook.audio.assembler import assemble
from doc2audiobook.audio.audio_utils import (
    duration_function,
    estimate_duration_seconds,
    probe_duration_seconds,
)
from doc2audiobook.errors import AssemblyError


class TestAssemble:
    def test_concatenates_in_order(self):
        assert assemble([b"abc", b"", b"de"]) == b"abcde"

    def test_length_is_sum_of_parts(self):
        buffers = [b"\x01" * 20000, b"\x02" * 24000]
        assert len(assemble(buffers)) == 44000

    def test_empty_raises(self):
        with pytest.raises(AssemblyError):
            assemble([])


class TestDurations:
    def test_estimate_is_bytes_over_16000(self):
        assert estimate_duration_seconds(b"\x00" * 20000) == 1.25
        assert estimate_duration_seconds(b"") == 0.0

    def test_duration_function_selection(self):
        assert duration_function(False) is estimate_duration_seconds
        with patch("doc2audiobook.audio.audio_utils.get_ffprobe", return_value="ffprobe"):
            assert duration_function(True) is probe_duration_seconds

    def test_missing_ffmpeg_raises(self):
        with patch("doc2audiobook.audio.audio_utils.get_ffprobe", side_effect=OSError("offline")):
            with pytest.raises(RuntimeError, match="Unable to obtain ffmpeg"):
                duration_function(True)

    def test_probe_reads_ffprobe_json(self):
        completed = MagicMock(returncode=0, stdout='{"format": {"duration": "3.250000"}}')
        with (
            patch("doc2audiobook.audio.audio_utils.get_ffprobe", return_value="ffprobe"),
            patch("doc2audiobook.audio.audio_utils.subprocess.run", return_value=completed) as run,
        ):
            assert probe_duration_seconds(b"ID3fake") == 3.25

        cmd = run.call_args[0][0]
        assert cmd[0] == "ffprobe"
        assert "-show_format" in cmd

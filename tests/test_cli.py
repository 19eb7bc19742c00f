"""
End-to-end tests for the MindCast command line.

These tests run the typer commands against a temporary storage file and the
offline lexicon classifier.
"""

import json
import os

import pytest
from typer.testing import CliRunner

import mindcast.config as config
from mindcast.cli import app
from mindcast.playback import ConsoleNarrator

runner = CliRunner()

OVERWHELMED = "I feel so overwhelmed with everything going on in my life right now"


class TestCLI:
    """Integration tests covering check-in and the mood journal."""

    @pytest.fixture(autouse=True)
    def environment(self, monkeypatch, tmp_path):
        """Point storage at a temporary file and use the offline classifier."""
        monkeypatch.setattr(config, "load_dotenv", lambda: None)
        for name in list(os.environ):
            if name.startswith("MINDCAST_"):
                monkeypatch.delenv(name)
        self.storage_path = tmp_path / "storage.json"
        monkeypatch.setenv("MINDCAST_STORAGE_PATH", str(self.storage_path))

    def test_complete_workflow(self):
        """Test the workflow: empty journal -> check-in -> journal shows it."""
        # 1. Nothing recorded yet
        result = runner.invoke(app, ["history"])
        assert result.exit_code == 0
        assert "No moods recorded yet" in result.output

        # 2. Check in
        result = runner.invoke(app, ["check-in", OVERWHELMED])
        assert result.exit_code == 0, result.output
        assert "stressed" in result.output
        assert "breath" in result.output

        # 3. A second check-in
        result = runner.invoke(app, ["check-in", "I am exhausted today"])
        assert result.exit_code == 0, result.output

        # 4. The journal lists the most recent first
        result = runner.invoke(app, ["history"])
        assert result.exit_code == 0
        lines = result.output.strip().splitlines()
        assert len(lines) == 2
        assert "tired" in lines[0]
        assert "stressed" in lines[1]
        assert "..." in lines[1]

        # 5. Raw JSON output
        result = runner.invoke(app, ["history", "--json", "--limit", "1"])
        assert result.exit_code == 0
        entries = json.loads(result.output)
        assert len(entries) == 1
        assert entries[0]["transcript"] == "I am exhausted today"
        assert entries[0]["mood"] == "tired"

    def test_check_in_with_narration(self, monkeypatch):
        """Test that --play narrates the podcast to the terminal."""
        monkeypatch.setattr(ConsoleNarrator, "WORDS_PER_SECOND", 1000.0)
        result = runner.invoke(app, ["check-in", "I feel calm and peaceful", "--play"])

        assert result.exit_code == 0, result.output
        assert "calm" in result.output
        # Printed once as text, then once more as narration
        assert result.output.count("Enjoy the stillness.") == 2

    def test_narration_failure(self, monkeypatch):
        """Test that a failing narrator is reported with exit code 1."""

        async def broken_speak(self, text, **kwargs):
            raise RuntimeError("no audio device")

        monkeypatch.setattr(ConsoleNarrator, "speak", broken_speak)

        result = runner.invoke(app, ["check-in", "I feel calm", "--play"])

        assert result.exit_code == 1
        assert "calm" in result.output
        assert "Error: Failed to play audio: no audio device" in result.output
        # The check-in itself was still journaled
        result = runner.invoke(app, ["history", "--json"])
        assert [e["mood"] for e in json.loads(result.output)] == ["calm"]

    def test_invalid_settings(self, monkeypatch):
        """Test that bad configuration values give an error, not a traceback."""
        monkeypatch.setenv("MINDCAST_SPEECH_RATE", "fast")

        result = runner.invoke(app, ["history"])

        assert result.exit_code == 1
        assert "Error: MINDCAST_SPEECH_RATE must be a number" in result.output
        assert not isinstance(result.exception, ValueError)

    def test_invalid_log_level(self, monkeypatch):
        result = runner.invoke(
            app, ["check-in", "I feel calm", "--log-level", "verbose"]
        )
        assert result.exit_code == 1
        assert "Error: --log-level must be a logging level" in result.output

        monkeypatch.setenv("MINDCAST_LOG_LEVEL", "verbose")
        result = runner.invoke(app, ["history"])
        assert result.exit_code == 1
        assert "Error: MINDCAST_LOG_LEVEL must be a logging level" in result.output
        assert not self.storage_path.exists()

    def test_empty_check_in(self):
        """Test that blank input fails without touching the journal."""
        result = runner.invoke(app, ["check-in", "   "])

        assert result.exit_code == 1
        assert "Error: Please provide some input" in result.output
        assert not self.storage_path.exists()

    def test_corrupt_journal(self):
        """Test that a corrupt journal is reported and then replaced."""
        self.storage_path.write_text("{not json", encoding="utf-8")

        result = runner.invoke(app, ["history"])
        assert result.exit_code == 0
        assert "Warning:" in result.output
        assert "No moods recorded yet" in result.output

        result = runner.invoke(app, ["check-in", "I'm so happy"])
        assert result.exit_code == 0, result.output
        assert "Warning:" in result.output

        result = runner.invoke(app, ["history", "--json"])
        assert [e["mood"] for e in json.loads(result.output)] == ["happy"]

    def test_examples(self):
        result = runner.invoke(app, ["examples"])

        assert result.exit_code == 0
        assert len(result.output.strip().splitlines()) == 4

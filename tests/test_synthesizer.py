"""
Tests for the speech synthesizer backends, with pyttsx3 mocked out.
"""

import logging
import sys
import threading
import pytest
from unittest.mock import MagicMock, patch

from models.config import SpeechConfig
from speech.serializer import SpeechSerializer
from speech.synthesizer import LogSynthesizer, Pyttsx3Synthesizer, create_synthesizer


@pytest.fixture
def fake_pyttsx3():
    module = MagicMock()
    engine = MagicMock()
    module.init.return_value = engine
    with patch.dict(sys.modules, {"pyttsx3": module}):
        yield module, engine


def _speak_and_wait(synth, text):
    done = threading.Event()
    errors = []

    def on_done(error):
        errors.append(error)
        done.set()

    synth.synthesize(text, on_done)
    assert done.wait(timeout=5.0)
    return errors[0]


class TestLogSynthesizer:
    def test_completes_immediately(self, caplog):
        caplog.set_level(logging.INFO)
        synth = LogSynthesizer()
        results = []
        synth.synthesize("hello", results.append)

        assert results == [None]
        assert synth.spoken == ["hello"]
        assert "[SPEECH] hello" in caplog.text


class BlockingEngine:
    """pyttsx3 engine stand-in whose first utterance plays until released."""

    def __init__(self):
        self.spoken = []
        self.playing = threading.Event()
        self.release = threading.Event()
        self._text = None

    def setProperty(self, name, value):
        pass

    def say(self, text):
        self._text = text

    def runAndWait(self):
        self.spoken.append(self._text)
        if len(self.spoken) == 1:
            self.playing.set()
            self.release.wait(timeout=5.0)

    def stop(self):
        pass


class TestPyttsx3Synthesizer:
    def test_engine_configured_on_worker(self, fake_pyttsx3):
        _, engine = fake_pyttsx3
        synth = Pyttsx3Synthesizer(SpeechConfig(rate=150, volume=0.8, voice="english"))
        try:
            engine.setProperty.assert_any_call("rate", 150)
            engine.setProperty.assert_any_call("volume", 0.8)
            engine.setProperty.assert_any_call("voice", "english")
        finally:
            synth.close()

    def test_speaks_and_reports_success(self, fake_pyttsx3):
        _, engine = fake_pyttsx3
        synth = Pyttsx3Synthesizer(SpeechConfig())
        try:
            assert _speak_and_wait(synth, "person detected, center, 3.4 meters away") is None
            engine.say.assert_called_once_with("person detected, center, 3.4 meters away")
            engine.runAndWait.assert_called_once()
        finally:
            synth.close()

    def test_engine_error_is_reported(self, fake_pyttsx3):
        _, engine = fake_pyttsx3
        engine.runAndWait.side_effect = RuntimeError("audio device busy")
        synth = Pyttsx3Synthesizer(SpeechConfig())
        try:
            error = _speak_and_wait(synth, "hello")
            assert isinstance(error, RuntimeError)
        finally:
            synth.close()

    def test_init_failure_reports_every_utterance(self, fake_pyttsx3):
        module, _ = fake_pyttsx3
        module.init.side_effect = OSError("no driver")
        synth = Pyttsx3Synthesizer(SpeechConfig())
        try:
            error = _speak_and_wait(synth, "hello")
            assert isinstance(error, RuntimeError)
        finally:
            synth.close()

    def test_cancel_when_idle_does_not_stop_engine(self, fake_pyttsx3):
        _, engine = fake_pyttsx3
        synth = Pyttsx3Synthesizer(SpeechConfig())
        try:
            synth.cancel_current()
            engine.stop.assert_not_called()
        finally:
            synth.close()

    def test_cancel_discards_queued_jobs(self, fake_pyttsx3):
        module, _ = fake_pyttsx3
        engine = BlockingEngine()
        module.init.return_value = engine
        synth = Pyttsx3Synthesizer(SpeechConfig())
        try:
            results = []
            synth.synthesize("Z", results.append)
            assert engine.playing.wait(timeout=5.0)
            synth.synthesize("A", results.append)

            synth.cancel_current()
            engine.release.set()
            assert _speak_and_wait(synth, "B") is None

            assert engine.spoken == ["Z", "B"]
            assert results == [None, None]
        finally:
            synth.close()

    def test_interrupted_requests_behind_busy_engine_are_never_spoken(self, fake_pyttsx3):
        """Z is playing; A and B both interrupt; only Z (cut off) and B reach the engine."""
        module, _ = fake_pyttsx3
        engine = BlockingEngine()
        module.init.return_value = engine
        serializer = SpeechSerializer(Pyttsx3Synthesizer(SpeechConfig()))
        try:
            serializer.speak("Z")
            assert engine.playing.wait(timeout=5.0)
            serializer.speak("A", interrupt=True)
            serializer.speak("B", interrupt=True)
            engine.release.set()

            assert serializer.wait_until_idle(timeout=5.0)
            assert "A" not in engine.spoken
            assert engine.spoken == ["Z", "B"]
        finally:
            serializer.close()


class TestCreateSynthesizer:
    def test_log_backend(self):
        assert isinstance(create_synthesizer({"backend": "log"}), LogSynthesizer)

    def test_pyttsx3_backend(self, fake_pyttsx3):
        synth = create_synthesizer({"backend": "pyttsx3", "rate": 160})
        try:
            assert isinstance(synth, Pyttsx3Synthesizer)
            assert synth.cfg.rate == 160
        finally:
            synth.close()

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Unknown speech backend"):
            create_synthesizer({"backend": "espeak"})

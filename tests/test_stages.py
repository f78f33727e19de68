"""
Tests for the annotate/announce stages, the per-frame driver and the
detection session.
"""

import threading
import pytest

from models.detection import Direction
from pipeline.driver import FrameResult, PipelineDriver
from pipeline.stages.annotate import AnnotateStage, AnnotateStageConfig, create_annotate_stage
from pipeline.stages.announce import AnnounceStage, format_announcement
from algorithms.throttle.throttler import AnnouncementThrottler
from pipeline.session import DetectionSession
from speech.serializer import SpeechSerializer
from speech.synthesizer import LogSynthesizer
from conftest import make_annotated, make_detection


FRAME_W, FRAME_H = 1280, 720


class TestAnnotateStage:
    def test_confidence_floor_is_exclusive(self):
        stage = AnnotateStage()
        dets = [
            make_detection("person", confidence=0.6),
            make_detection("chair", confidence=0.61),
            make_detection("tv", confidence=0.2),
        ]
        annotated = stage.process(dets, FRAME_W, FRAME_H)
        assert [a.class_name for a in annotated] == ["chair"]

    def test_invalid_boxes_are_excluded(self):
        stage = AnnotateStage()
        dets = [
            make_detection("person", w=0, h=300),
            make_detection("chair", h=180),
        ]
        annotated = stage.process(dets, FRAME_W, FRAME_H)
        assert [a.class_name for a in annotated] == ["chair"]

    def test_empty_frame(self):
        assert AnnotateStage().process([], FRAME_W, FRAME_H) == []

    def test_custom_floor(self):
        stage = AnnotateStage(AnnotateStageConfig(min_confidence=0.3))
        annotated = stage.process([make_detection(confidence=0.35)], FRAME_W, FRAME_H)
        assert len(annotated) == 1

    def test_create_from_config(self):
        stage = create_annotate_stage({"min_confidence": 0.8}, {"known_heights": {"robot": 0.6}})
        dets = [make_detection("robot", confidence=0.85, h=300), make_detection(confidence=0.7)]
        annotated = stage.process(dets, FRAME_W, FRAME_H)
        assert len(annotated) == 1
        assert annotated[0].distance == pytest.approx(1.2)


class TestFormatAnnouncement:
    def test_meters(self):
        det = make_annotated("person", Direction.CENTER, distance=3.4)
        assert format_announcement(det) == "person detected, center, 3.4 meters away"

    def test_centimeters(self):
        det = make_annotated("cup", Direction.RIGHT, distance=0.5)
        assert format_announcement(det) == "cup detected, right, 50 centimeters away"


class TestAnnounceStage:
    def test_enqueues_non_interrupting_requests(self):
        synth = LogSynthesizer()
        stage = AnnounceStage(AnnouncementThrottler(3000), SpeechSerializer(synth))

        requests = stage.process([make_annotated("chair", Direction.LEFT, 2.0)], now=0)

        assert len(requests) == 1
        assert requests[0].interrupt is False
        assert synth.spoken == ["chair detected, left, 2.0 meters away"]

    def test_chair_twice_within_cooldown(self):
        """Frames 1000 ms apart with a 3000 ms cooldown produce one request."""
        synth = LogSynthesizer()
        stage = AnnounceStage(AnnouncementThrottler(3000), SpeechSerializer(synth))
        det = make_annotated("chair", Direction.LEFT)

        first = stage.process([det], now=0)
        second = stage.process([det], now=1000)

        assert len(first) == 1
        assert second == []
        assert len(synth.spoken) == 1


class TestDetectionSession:
    def test_inactive_session_announces_nothing(self):
        synth = LogSynthesizer()
        session = DetectionSession(SpeechSerializer(synth))
        assert session.announce([make_annotated()], now=0) == []
        assert synth.spoken == []

    def test_start_speaks_prompt(self):
        synth = LogSynthesizer()
        session = DetectionSession(SpeechSerializer(synth))
        session.start(prompt="Starting camera")
        assert session.is_active
        assert synth.spoken == ["Starting camera"]

    def test_start_flushes_pending_speech(self, manual_synth):
        serializer = SpeechSerializer(manual_synth)
        serializer.speak("intro")
        serializer.speak("more intro")
        session = DetectionSession(serializer)
        session.start()
        assert manual_synth.cancelled == 1
        assert serializer.pending == []

    def test_stop_discards_history(self):
        synth = LogSynthesizer()
        session = DetectionSession(SpeechSerializer(synth), min_interval_ms=3000)
        det = make_annotated("chair", Direction.LEFT)

        session.start()
        assert len(session.announce([det], now=0)) == 1
        session.stop()
        assert session.throttler is None

        session.start()
        # A new session has no cooldowns left over
        assert len(session.announce([det], now=10)) == 1

    def test_stop_flushes_speech(self, manual_synth):
        serializer = SpeechSerializer(manual_synth)
        session = DetectionSession(serializer)
        session.start()
        session.announce([make_annotated("chair"), make_annotated("tv", Direction.RIGHT)], now=0)
        assert serializer.speaking

        session.stop()
        assert not session.is_active
        assert serializer.speaking is False
        assert serializer.pending == []

    def test_start_twice_keeps_history(self):
        session = DetectionSession(SpeechSerializer(LogSynthesizer()))
        session.start()
        session.announce([make_annotated()], now=0)
        session.start()
        assert session.announce([make_annotated()], now=1) == []

    def test_stop_during_announce_leaves_nothing_queued(self, manual_synth):
        """stop() racing an in-flight announce() still ends with silence."""

        class GatedSerializer(SpeechSerializer):
            def __init__(self, synth):
                super().__init__(synth)
                self.entered = threading.Event()
                self.release = threading.Event()

            def enqueue(self, request):
                self.entered.set()
                self.release.wait(timeout=5.0)
                super().enqueue(request)

        serializer = GatedSerializer(manual_synth)
        session = DetectionSession(serializer)
        session.start()

        announcer = threading.Thread(
            target=session.announce, args=([make_annotated("chair")],), kwargs={"now": 0}
        )
        announcer.start()
        assert serializer.entered.wait(timeout=5.0)
        stopper = threading.Thread(target=session.stop)
        stopper.start()
        serializer.release.set()
        announcer.join(timeout=5.0)
        stopper.join(timeout=5.0)

        assert not session.is_active
        assert manual_synth.started == ["chair detected, left, 2.0 meters away"]
        assert manual_synth.cancelled == 1
        assert serializer.speaking is False
        assert serializer.pending == []


class TestPipelineDriver:
    def _driver(self, synth):
        session = DetectionSession(SpeechSerializer(synth), min_interval_ms=3000)
        session.start()
        return PipelineDriver(AnnotateStage(), session)

    def test_person_scenario(self):
        synth = LogSynthesizer()
        driver = self._driver(synth)
        det = make_detection("person", confidence=0.9, x=540, y=200, w=200, h=300)

        result = driver.process_frame([det], FRAME_W, FRAME_H, now=0)

        assert isinstance(result, FrameResult)
        assert len(result.annotated) == 1
        assert synth.spoken == ["person detected, center, 3.4 meters away"]

    def test_no_detections_no_requests(self):
        synth = LogSynthesizer()
        driver = self._driver(synth)
        result = driver.process_frame([], FRAME_W, FRAME_H, now=0)
        assert result.annotated == []
        assert result.announced == []
        assert synth.spoken == []

    def test_low_confidence_frame_is_silent(self):
        synth = LogSynthesizer()
        driver = self._driver(synth)
        result = driver.process_frame([make_detection(confidence=0.5)], FRAME_W, FRAME_H, now=0)
        assert result.announced == []
        assert synth.spoken == []

    def test_multiple_detections_in_detector_order(self):
        synth = LogSynthesizer()
        driver = self._driver(synth)
        dets = [
            make_detection("chair", x=0, w=100, h=180),
            make_detection("tv", x=1100, w=100, h=120),
        ]
        driver.process_frame(dets, FRAME_W, FRAME_H, now=0)
        assert synth.spoken == [
            "chair detected, left, 3.0 meters away",
            "tv detected, right, 3.0 meters away",
        ]

    def test_inactive_session_still_annotates(self):
        synth = LogSynthesizer()
        session = DetectionSession(SpeechSerializer(synth))
        driver = PipelineDriver(AnnotateStage(), session)

        result = driver.process_frame([make_detection()], FRAME_W, FRAME_H, now=0)

        assert len(result.annotated) == 1
        assert result.announced == []
        assert synth.spoken == []

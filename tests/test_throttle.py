"""
Tests for announcement cooldown throttling.
"""

import threading

import pytest

from algorithms.throttle.throttler import AnnouncementThrottler, throttle
from models.detection import AnnouncementKey, Direction
from conftest import make_annotated


class TestThrottleFunction:
    def test_first_occurrence_is_announced(self):
        det = make_annotated("chair", Direction.LEFT)
        to_announce, history = throttle([det], {}, now=1000, min_interval_ms=3000)

        assert to_announce == [det]
        assert history == {AnnouncementKey("chair", Direction.LEFT): 1000}

    def test_repeat_within_cooldown_is_suppressed(self):
        """Two frames 1000 ms apart with a 3000 ms cooldown: only the first speaks."""
        det = make_annotated("chair", Direction.LEFT)
        first, history = throttle([det], {}, now=0, min_interval_ms=3000)
        second, history = throttle([det], history, now=1000, min_interval_ms=3000)

        assert len(first) == 1
        assert second == []
        assert history[det.announcement_key] == 0

    def test_repeat_at_exact_cooldown_is_announced(self):
        det = make_annotated("chair", Direction.LEFT)
        _, history = throttle([det], {}, now=0, min_interval_ms=3000)
        again, history = throttle([det], history, now=3000, min_interval_ms=3000)

        assert again == [det]
        assert history[det.announcement_key] == 3000

    def test_input_history_is_not_modified(self):
        det = make_annotated("chair", Direction.LEFT)
        history = {}
        throttle([det], history, now=0, min_interval_ms=3000)
        assert history == {}

    def test_empty_input(self):
        history = {AnnouncementKey("person", Direction.CENTER): 5.0}
        to_announce, updated = throttle([], history, now=10, min_interval_ms=3000)
        assert to_announce == []
        assert updated == history

    def test_same_class_different_direction_are_distinct(self):
        left = make_annotated("person", Direction.LEFT)
        right = make_annotated("person", Direction.RIGHT)
        to_announce, _ = throttle([left, right], {}, now=0, min_interval_ms=3000)
        assert to_announce == [left, right]

    def test_duplicate_key_in_one_frame_announced_once(self):
        """Two chairs on the left in one frame share a key."""
        a = make_annotated("chair", Direction.LEFT, distance=1.0)
        b = make_annotated("chair", Direction.LEFT, distance=4.0)
        to_announce, _ = throttle([a, b], {}, now=0, min_interval_ms=3000)
        assert to_announce == [a]

    def test_preserves_detector_order(self):
        dets = [
            make_annotated("tv", Direction.RIGHT),
            make_annotated("bottle", Direction.CENTER),
            make_annotated("chair", Direction.LEFT),
        ]
        to_announce, _ = throttle(dets, {}, now=0, min_interval_ms=3000)
        assert [d.class_name for d in to_announce] == ["tv", "bottle", "chair"]

    @pytest.mark.parametrize("frame_ms", [50, 100, 250])
    def test_count_over_repeated_frames(self, frame_ms):
        """Seen every frame for 3x the cooldown: floor(elapsed / interval) + 1 announcements."""
        interval = 3000
        det = make_annotated("person", Direction.CENTER)
        history = {}
        count = 0
        elapsed = interval * 3
        for now in range(0, elapsed + 1, frame_ms):
            out, history = throttle([det], history, now=now, min_interval_ms=interval)
            count += len(out)
        assert count == elapsed // interval + 1


class TestAnnouncementThrottler:
    def test_process_updates_history(self):
        throttler = AnnouncementThrottler(min_interval_ms=3000)
        det = make_annotated("chair", Direction.LEFT)

        assert throttler.process([det], now=0) == [det]
        assert throttler.process([det], now=1000) == []
        assert throttler.history == {det.announcement_key: 0}

    def test_history_is_a_snapshot(self):
        throttler = AnnouncementThrottler()
        throttler.process([make_annotated()], now=0)
        snapshot = throttler.history
        snapshot.clear()
        assert len(throttler.history) == 1

    def test_reset_forgets_cooldowns(self):
        throttler = AnnouncementThrottler(min_interval_ms=3000)
        det = make_annotated("chair", Direction.LEFT)
        throttler.process([det], now=0)
        throttler.reset()
        assert throttler.process([det], now=1) == [det]

    def test_empty_frame_leaves_history(self):
        throttler = AnnouncementThrottler()
        throttler.process([make_annotated()], now=0)
        assert throttler.process([], now=10) == []
        assert len(throttler.history) == 1

    def test_concurrent_frames_announce_key_once(self):
        """Many threads racing on the same key within one window yield one announcement."""
        throttler = AnnouncementThrottler(min_interval_ms=3000)
        det = make_annotated("chair", Direction.LEFT)
        results = []
        lock = threading.Lock()

        def worker():
            out = throttler.process([det], now=100)
            with lock:
                results.extend(out)

        threads = [threading.Thread(target=worker) for _ in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(results) == 1

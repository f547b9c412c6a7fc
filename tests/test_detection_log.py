import threading
import unittest
from datetime import datetime

import numpy as np

from drone_hud.detection_log import DetectionLog, DetectionLogEntry, GeoLocation


def _entry(conf: float, location=None, image=None) -> DetectionLogEntry:
    return DetectionLogEntry(
        timestamp=datetime(2021, 3, 23, 22, 48, 53),
        time_label="10:48:53 PM",
        max_confidence=conf,
        detection_count=1,
        location=location,
        image=image,
    )


class TestDetectionLog(unittest.TestCase):
    def test_append_and_snapshot(self) -> None:
        log = DetectionLog()
        self.assertEqual(len(log), 0)
        self.assertEqual(log.append(_entry(0.9)), 1)
        self.assertEqual(log.append(_entry(0.7, GeoLocation(48.85, 2.35))), 2)

        snap = log.entries()
        log.append(_entry(0.6))
        self.assertEqual(len(snap), 2)
        self.assertEqual(len(log), 3)
        self.assertEqual([e.max_confidence for e in log], [0.9, 0.7, 0.6])

    def test_located_skips_entries_without_fix(self) -> None:
        log = DetectionLog()
        log.append(_entry(0.9))
        log.append(_entry(0.8, GeoLocation(37.7749, -122.4194, altitude=120.0)))
        located = log.located()
        self.assertEqual(len(located), 1)
        self.assertTrue(located[0].has_location)
        self.assertFalse(log.entries()[0].has_location)

    def test_entries_with_images_compare_without_image(self) -> None:
        a = _entry(0.9, image=np.zeros((2, 2, 3), dtype=np.uint8))
        b = _entry(0.9, image=np.ones((2, 2, 3), dtype=np.uint8))
        self.assertEqual(a, b)

    def test_concurrent_appends(self) -> None:
        log = DetectionLog()

        def _writer() -> None:
            for _ in range(200):
                log.append(_entry(0.5))

        threads = [threading.Thread(target=_writer) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        self.assertEqual(len(log), 800)

    def test_geolocation_validation(self) -> None:
        with self.assertRaises(ValueError):
            GeoLocation(91.0, 0.0)
        with self.assertRaises(ValueError):
            GeoLocation(0.0, -181.0)


if __name__ == "__main__":
    unittest.main()

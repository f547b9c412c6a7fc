import unittest

import numpy as np

from ssd_kit.errors import ConfigurationError
from ssd_kit.nms import NMSConfig, box_iou, nms, non_max_suppression
from ssd_kit.types import Candidate, Rect


def _cand(x: float, y: float, w: float, h: float, score: float, class_index: int = 0) -> Candidate:
    return Candidate(class_index=class_index, score=score, rect=Rect(x, y, w, h))


class TestBoxIou(unittest.TestCase):
    def test_self_iou_is_one(self) -> None:
        for rect in (Rect(0.1, 0.2, 0.3, 0.4), Rect(10, 20, 33.3, 7.1), Rect(0, 0, 1, 1)):
            with self.subTest(rect=rect):
                self.assertEqual(box_iou(rect, rect), 1.0)

    def test_disjoint_is_zero(self) -> None:
        self.assertEqual(box_iou(Rect(0, 0, 1, 1), Rect(2, 2, 1, 1)), 0.0)
        # Touching edges share no area.
        self.assertEqual(box_iou(Rect(0, 0, 1, 1), Rect(1, 0, 1, 1)), 0.0)

    def test_symmetric(self) -> None:
        a = Rect(0.0, 0.0, 0.5, 0.5)
        b = Rect(0.01, 0.01, 0.5, 0.5)
        c = Rect(0.3, 0.1, 0.7, 0.2)
        for p, q in ((a, b), (a, c), (b, c)):
            self.assertEqual(box_iou(p, q), box_iou(q, p))

    def test_known_value(self) -> None:
        # Half overlap: inter 0.5, union 1.5
        self.assertAlmostEqual(box_iou(Rect(0, 0, 1, 1), Rect(0.5, 0, 1, 1)), 1.0 / 3.0)

    def test_degenerate_boxes_have_zero_iou(self) -> None:
        flat = Rect(0, 0, 1, 0)
        inverted = Rect(0, 0, -1, 1)
        self.assertEqual(box_iou(flat, flat), 0.0)
        self.assertEqual(box_iou(flat, Rect(0, 0, 1, 1)), 0.0)
        self.assertEqual(box_iou(Rect(0, 0, 1, 1), inverted), 0.0)


class TestNonMaxSuppression(unittest.TestCase):
    def test_identical_boxes_keep_higher_score(self) -> None:
        cands = [_cand(0, 0, 1, 1, 0.6), _cand(0, 0, 1, 1, 0.9)]
        self.assertEqual(non_max_suppression(cands, NMSConfig()), [1])

    def test_equal_scores_non_overlapping_both_kept_in_index_order(self) -> None:
        cands = [_cand(0, 0, 1, 1, 0.7), _cand(5, 5, 1, 1, 0.7)]
        self.assertEqual(non_max_suppression(cands, NMSConfig()), [0, 1])

    def test_equal_scores_overlapping_lower_index_wins(self) -> None:
        cands = [_cand(0, 0, 1, 1, 0.7), _cand(0, 0, 1, 1, 0.7), _cand(0, 0, 1, 1, 0.7)]
        self.assertEqual(non_max_suppression(cands, NMSConfig()), [0])

    def test_selection_order_is_descending_score(self) -> None:
        cands = [_cand(0, 0, 1, 1, 0.2), _cand(3, 0, 1, 1, 0.9), _cand(6, 0, 1, 1, 0.5)]
        self.assertEqual(non_max_suppression(cands, NMSConfig()), [1, 2, 0])

    def test_iou_equal_to_threshold_is_kept(self) -> None:
        # IoU of these two is exactly 1/3.
        cands = [_cand(0, 0, 1, 1, 0.9), _cand(0.5, 0, 1, 1, 0.8)]
        iou = box_iou(cands[0].rect, cands[1].rect)
        self.assertEqual(non_max_suppression(cands, NMSConfig(iou_threshold=iou)), [0, 1])
        self.assertEqual(non_max_suppression(cands, NMSConfig(iou_threshold=0.3)), [0])

    def test_max_boxes_caps_selection(self) -> None:
        cands = [_cand(3.0 * i, 0, 1, 1, 0.9 - 0.1 * i) for i in range(5)]
        self.assertEqual(non_max_suppression(cands, NMSConfig(max_boxes=2)), [0, 1])

    def test_degenerate_box_never_blocks(self) -> None:
        cands = [_cand(0, 0, 0, 0, 0.99), _cand(0, 0, 1, 1, 0.5), _cand(0, 0, 1, 0, 0.4)]
        self.assertEqual(non_max_suppression(cands, NMSConfig()), [0, 1, 2])

    def test_index_subset(self) -> None:
        cands = [_cand(0, 0, 1, 1, 0.9), _cand(0, 0, 1, 1, 0.8), _cand(5, 5, 1, 1, 0.7)]
        self.assertEqual(non_max_suppression(cands, NMSConfig(), indices=[2, 1]), [1, 2])
        self.assertEqual(non_max_suppression(cands, NMSConfig(), indices=[]), [])

    def test_empty_input(self) -> None:
        self.assertEqual(non_max_suppression([], NMSConfig()), [])
        self.assertEqual(nms(np.zeros((0, 4)), np.zeros((0,)), NMSConfig()).shape, (0,))

    def test_idempotent_on_own_output(self) -> None:
        rng = np.random.default_rng(7)
        xy = rng.uniform(0.0, 0.8, size=(60, 2))
        wh = rng.uniform(0.05, 0.3, size=(60, 2))
        scores = rng.uniform(0.0, 1.0, size=60)
        cands = [_cand(float(x), float(y), float(w), float(h), float(s)) for (x, y), (w, h), s in zip(xy, wh, scores)]
        cfg = NMSConfig(iou_threshold=0.45)

        first = non_max_suppression(cands, cfg)
        survivors = [cands[i] for i in first]
        second = non_max_suppression(survivors, cfg)
        self.assertEqual(second, list(range(len(survivors))))
        for i, a in enumerate(survivors):
            for b in survivors[i + 1 :]:
                self.assertLessEqual(box_iou(a.rect, b.rect), 0.45)

    def test_per_class_suppression(self) -> None:
        cands = [
            _cand(0, 0, 1, 1, 0.9, class_index=0),
            _cand(0, 0, 1, 1, 0.8, class_index=1),
            _cand(0, 0, 1, 1, 0.7, class_index=1),
        ]
        self.assertEqual(non_max_suppression(cands, NMSConfig(class_agnostic=True)), [0])
        self.assertEqual(non_max_suppression(cands, NMSConfig(class_agnostic=False)), [0, 1])
        self.assertEqual(non_max_suppression(cands, NMSConfig(class_agnostic=False, max_boxes=1)), [0])

    def test_invalid_config(self) -> None:
        for kwargs in ({"iou_threshold": 0.0}, {"iou_threshold": 1.0}, {"iou_threshold": -0.2}, {"max_boxes": 0}):
            with self.subTest(kwargs=kwargs):
                with self.assertRaises(ConfigurationError):
                    NMSConfig(**kwargs)


class TestNumpyNms(unittest.TestCase):
    def test_xyxy_arrays(self) -> None:
        boxes = np.array(
            [
                [0, 0, 10, 10],
                [1, 1, 11, 11],
                [20, 20, 30, 30],
            ],
            dtype=np.float32,
        )
        scores = np.array([0.8, 0.9, 0.3], dtype=np.float32)
        keep = nms(boxes, scores, NMSConfig(iou_threshold=0.45))
        self.assertTrue(np.array_equal(keep, np.array([1, 2])))


if __name__ == "__main__":
    unittest.main()

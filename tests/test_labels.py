import tempfile
import unittest
from pathlib import Path

from ssd_kit.errors import ConfigurationError
from ssd_kit.metadata import load_labels


class TestLoadLabels(unittest.TestCase):
    def _write(self, text: str) -> Path:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        path = Path(tmpdir.name) / "labelmap.txt"
        path.write_text(text, encoding="utf-8")
        return path

    def test_one_label_per_line(self) -> None:
        labels = load_labels(self._write("???\nfire\nsmoke\n\n"))
        self.assertEqual(labels, ["???", "fire", "smoke"])

    def test_inner_blank_lines_keep_alignment(self) -> None:
        labels = load_labels(self._write("???\r\nfire\r\n\r\nsmoke"))
        self.assertEqual(labels, ["???", "fire", "", "smoke"])

    def test_missing_or_empty(self) -> None:
        with self.assertRaises(ConfigurationError):
            load_labels(self._write("\n\n"))
        with self.assertRaises(ConfigurationError):
            load_labels("no/such/labels.txt")


if __name__ == "__main__":
    unittest.main()

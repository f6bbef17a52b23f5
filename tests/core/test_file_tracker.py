"""Tests for FileTracker persistence and change detection."""

import hashlib
import json
from pathlib import Path

import pytest

from rag_proxy.core.document_processing import FileTracker


@pytest.fixture
def corpus(tmp_path: Path) -> Path:
    root = tmp_path / "corpus"
    (root / "sub").mkdir(parents=True)
    (root / "a.txt").write_text("alpha")
    (root / "sub" / "b.md").write_text("beta")
    return root


class TestChangeDetection:
    """Hashing and should_process."""

    def test_compute_hash_is_md5(self, corpus: Path) -> None:
        assert FileTracker.compute_hash(corpus / "a.txt") == hashlib.md5(b"alpha").hexdigest()

    def test_new_file_should_process(self, tmp_path: Path, corpus: Path) -> None:
        tracker = FileTracker(tmp_path / "tracker.json", root=corpus)
        assert tracker.should_process(corpus / "a.txt")

    def test_recorded_file_skipped_until_changed(self, tmp_path: Path, corpus: Path) -> None:
        path = corpus / "a.txt"
        tracker = FileTracker(tmp_path / "tracker.json", root=corpus)
        tracker.record_processed(path, FileTracker.compute_hash(path))

        assert not tracker.should_process(path)
        path.write_text("alpha, edited")
        assert tracker.should_process(path)

    def test_keys_relative_to_root(self, tmp_path: Path, corpus: Path) -> None:
        tracker = FileTracker(tmp_path / "tracker.json", root=corpus)
        tracker.record_processed(corpus / "sub" / "b.md", "h")

        assert "sub/b.md" in tracker
        assert corpus / "sub" / "b.md" in tracker
        assert Path("sub/b.md") in tracker
        assert corpus / "a.txt" not in tracker
        assert tracker.get_hash(corpus / "sub" / "b.md") == "h"

    def test_remove_and_clear(self, tmp_path: Path, corpus: Path) -> None:
        tracker = FileTracker(tmp_path / "tracker.json", root=corpus)
        tracker.record_processed(corpus / "a.txt", "1")
        tracker.record_processed(corpus / "sub" / "b.md", "2")

        tracker.remove(corpus / "a.txt")
        assert len(tracker) == 1
        tracker.clear()
        assert len(tracker) == 0


class TestPersistence:
    """Loading and saving the JSON file."""

    def test_round_trip_layout(self, tmp_path: Path, corpus: Path) -> None:
        tracker_path = tmp_path / "tracker.json"
        tracker = FileTracker(tracker_path, root=corpus)
        tracker.record_processed(corpus / "a.txt", "abc")
        tracker.save()

        assert json.loads(tracker_path.read_text()) == {"files": {"a.txt": "abc"}}
        reloaded = FileTracker(tracker_path, root=corpus)
        reloaded.load()
        assert reloaded.get_hash(corpus / "a.txt") == "abc"

    @pytest.mark.parametrize("content", ["", "  \n", "{}", '{"files": {}}'])
    def test_empty_files_accepted(self, tmp_path: Path, content: str) -> None:
        tracker_path = tmp_path / "tracker.json"
        tracker_path.write_text(content)
        tracker = FileTracker(tracker_path)
        tracker.load()

        assert len(tracker) == 0

    def test_flat_mapping_accepted(self, tmp_path: Path, corpus: Path) -> None:
        tracker_path = tmp_path / "tracker.json"
        tracker_path.write_text(json.dumps({"a.txt": "abc"}))
        tracker = FileTracker(tracker_path, root=corpus)
        tracker.load()

        assert tracker.get_hash(corpus / "a.txt") == "abc"

    def test_non_object_rejected(self, tmp_path: Path) -> None:
        tracker_path = tmp_path / "tracker.json"
        tracker_path.write_text("[1, 2]")

        with pytest.raises(ValueError):
            FileTracker(tracker_path).load()

    def test_missing_file_created_on_save(self, tmp_path: Path) -> None:
        tracker_path = tmp_path / "nested" / "tracker.json"
        FileTracker(tracker_path).save()

        assert json.loads(tracker_path.read_text()) == {"files": {}}

    def test_no_temp_files_left(self, tmp_path: Path, corpus: Path) -> None:
        tracker = FileTracker(tmp_path / "tracker.json", root=corpus)
        tracker.record_processed(corpus / "a.txt", "abc")
        tracker.save()

        assert sorted(p.name for p in tmp_path.iterdir()) == ["corpus", "tracker.json"]


class TestOpenContext:
    """Flush on every exit path."""

    def test_flushed_on_normal_exit(self, tmp_path: Path, corpus: Path) -> None:
        tracker_path = tmp_path / "tracker.json"
        with FileTracker.open(tracker_path, root=corpus) as tracker:
            tracker.record_processed(corpus / "a.txt", "abc")

        assert json.loads(tracker_path.read_text())["files"] == {"a.txt": "abc"}

    def test_flushed_on_exception(self, tmp_path: Path, corpus: Path) -> None:
        tracker_path = tmp_path / "tracker.json"
        with pytest.raises(RuntimeError):
            with FileTracker.open(tracker_path, root=corpus) as tracker:
                tracker.record_processed(corpus / "a.txt", "abc")
                raise RuntimeError("indexing died")

        assert json.loads(tracker_path.read_text())["files"] == {"a.txt": "abc"}

    def test_flushed_on_keyboard_interrupt(self, tmp_path: Path, corpus: Path) -> None:
        tracker_path = tmp_path / "tracker.json"
        with pytest.raises(KeyboardInterrupt):
            with FileTracker.open(tracker_path, root=corpus) as tracker:
                tracker.record_processed(corpus / "sub" / "b.md", "def")
                raise KeyboardInterrupt

        assert json.loads(tracker_path.read_text())["files"] == {"sub/b.md": "def"}

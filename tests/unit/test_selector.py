"""Tests for primary file selection."""

from __future__ import annotations

import pytest

from peerstream.models import FileSortKey
from peerstream.session.selector import FileSelector, resolve_primary
from peerstream.utils.exceptions import FileSelectionError

pytestmark = pytest.mark.unit


class TestResolvePrimary:
    def test_largest_file_wins(self, engine):
        primary = resolve_primary(engine.files)

        assert primary.index == 1
        assert primary.selected is True

    def test_first_occurrence_wins_ties(self, make_engine):
        engine = make_engine(("b.mkv", 100), ("a.mkv", 100), ("c.mkv", 50))

        assert resolve_primary(engine.files).index == 0

    def test_explicit_index(self, engine):
        primary = resolve_primary(engine.files, 2)

        assert primary.index == 2
        assert primary.selected is True
        assert engine.files[1].selected is False

    def test_explicit_index_zero_is_honored(self, engine):
        assert resolve_primary(engine.files, 0).index == 0

    @pytest.mark.parametrize("index", [3, 99, -1])
    def test_out_of_range_index(self, engine, index):
        with pytest.raises(FileSelectionError):
            resolve_primary(engine.files, index)

    @pytest.mark.parametrize("index", ["1", 1.0, True])
    def test_non_integer_index(self, engine, index):
        with pytest.raises(FileSelectionError):
            resolve_primary(engine.files, index)

    def test_no_files(self):
        with pytest.raises(FileSelectionError):
            resolve_primary([])


class TestFileSelector:
    def test_primary_before_resolve_raises(self, engine):
        selector = FileSelector(engine)

        assert selector.resolved is False
        with pytest.raises(FileSelectionError):
            _ = selector.primary

    def test_resolve(self, engine):
        selector = FileSelector(engine)

        selector.resolve()

        assert selector.resolved is True
        assert selector.primary_index == 1

    def test_set_primary_deselects_previous(self, engine):
        selector = FileSelector(engine)
        selector.resolve()

        selector.set_primary(0)

        assert selector.primary_index == 0
        assert engine.files[0].selected is True
        assert engine.files[1].selected is False

    def test_set_primary_keeps_all_selected(self, engine):
        selector = FileSelector(engine)
        selector.select_all()
        selector.resolve()

        selector.set_primary(2)

        assert all(f.selected for f in engine.files)

    def test_set_primary_out_of_range_keeps_current(self, engine):
        selector = FileSelector(engine)
        selector.resolve()

        with pytest.raises(FileSelectionError):
            selector.set_primary(10)

        assert selector.primary_index == 1

    def test_pause_and_resume(self, engine):
        selector = FileSelector(engine)
        selector.resolve()

        selector.pause()
        assert engine.files[1].selected is False

        selector.resume()
        assert engine.files[1].selected is True

    @pytest.mark.parametrize(
        ("sort", "expected"),
        [
            (FileSortKey.NONE, [0, 1, 2]),
            (FileSortKey.PATH, [1, 2, 0]),
            (FileSortKey.NAME, [1, 0, 2]),
            (FileSortKey.LENGTH, [0, 2, 1]),
        ],
    )
    def test_listing_sort_keeps_indices(self, engine, sort, expected):
        selector = FileSelector(engine, sort=sort)
        selector.resolve()

        listing = selector.listing()

        assert [f.index for f in listing] == expected
        assert selector.primary_index == 1
        assert [f.index for f in engine.files] == [0, 1, 2]

    def test_listing_predicate(self, engine):
        selector = FileSelector(engine)

        listing = selector.listing(lambda f: f.path.endswith((".mp4", ".mkv")))

        assert [f.index for f in listing] == [1, 2]

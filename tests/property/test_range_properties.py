"""Property-based tests for Range header parsing.

Tests invariants of parse_range using Hypothesis for automatic test case
generation.
"""

from hypothesis import given
from hypothesis import strategies as st

from peerstream.gateway.ranges import parse_range
from peerstream.models import RangeRequest

sizes = st.integers(min_value=1, max_value=10**12)


class TestRangeProperties:
    """Property-based tests for parse_range."""

    @given(sizes, st.data())
    def test_valid_closed_range_is_exact(self, size, data):
        """Any in-bounds start-end pair is returned unchanged."""
        start = data.draw(st.integers(min_value=0, max_value=size - 1))
        end = data.draw(st.integers(min_value=start, max_value=size - 1))

        assert parse_range(f"bytes={start}-{end}", size) == RangeRequest(start, end)

    @given(sizes, st.data())
    def test_open_range_ends_at_last_byte(self, size, data):
        start = data.draw(st.integers(min_value=0, max_value=size - 1))

        result = parse_range(f"bytes={start}-", size)

        assert result == RangeRequest(start, size - 1)
        assert result.length == size - start

    @given(sizes, st.integers(min_value=1, max_value=10**13))
    def test_suffix_range(self, size, suffix):
        result = parse_range(f"bytes=-{suffix}", size)

        assert result == RangeRequest(max(size - suffix, 0), size - 1)

    @given(sizes, st.integers(min_value=0, max_value=10**13))
    def test_start_past_end_of_file_is_unsatisfiable(self, size, extra):
        assert parse_range(f"bytes={size + extra}-", size) is None

    @given(st.integers(min_value=0, max_value=10**6), st.text(max_size=40))
    def test_result_is_always_in_bounds(self, size, header):
        """Arbitrary headers never yield a range outside the resource."""
        result = parse_range(header, size)

        if result is not None:
            assert 0 <= result.start <= result.end < size
            assert result.length >= 1

    @given(sizes, st.data())
    def test_end_is_clamped(self, size, data):
        start = data.draw(st.integers(min_value=0, max_value=size - 1))
        end = data.draw(st.integers(min_value=size, max_value=size * 2))

        assert parse_range(f"bytes={start}-{end}", size) == RangeRequest(start, size - 1)

"""Tests for Range header parsing."""

from __future__ import annotations

import pytest

from peerstream.gateway.ranges import parse_range
from peerstream.models import RangeRequest

pytestmark = pytest.mark.unit


@pytest.mark.parametrize(
    ("header", "expected"),
    [
        ("bytes=0-99", RangeRequest(0, 99)),
        ("bytes=10-19", RangeRequest(10, 19)),
        ("bytes=50-", RangeRequest(50, 99)),
        ("bytes=-10", RangeRequest(90, 99)),
        ("bytes=-500", RangeRequest(0, 99)),
        ("bytes=90-500", RangeRequest(90, 99)),
        ("BYTES = 5 - 6", RangeRequest(5, 6)),
        ("bytes=200-300, 3-4", RangeRequest(3, 4)),
        ("bytes=0-0,10-20", RangeRequest(0, 0)),
    ],
)
def test_valid_ranges(header, expected):
    assert parse_range(header, 100) == expected


@pytest.mark.parametrize(
    "header",
    [
        None,
        "",
        "bytes",
        "bytes=",
        "items=0-10",
        "bytes=abc",
        "bytes=5",
        "bytes=a-b",
        "bytes=20-10",
        "bytes=100-",
        "bytes=150-200",
        "bytes=-0",
        "bytes=--5",
        "bytes=1.5-3",
    ],
)
def test_unusable_ranges_fall_back_to_full(header):
    assert parse_range(header, 100) is None


def test_empty_resource_has_no_satisfiable_range():
    assert parse_range("bytes=0-", 0) is None
    assert parse_range("bytes=-5", 0) is None


def test_range_length():
    assert RangeRequest(10, 19).length == 10

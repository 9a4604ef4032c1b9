#!/usr/bin/env python3
"""
Validation and time unit tests.
"""

import sys
from pathlib import Path

import pytest

# Add the src directory to the path
src_path = Path(__file__).parent / "src"
sys.path.insert(0, str(src_path))

from crpt_api.utils.time_units import TimeUnit
from crpt_api.utils.validators import validate_duration, validate_endpoint, validate_request_limit


def test_endpoint_validation():
    test_urls = [
        ("https://ismp.crpt.ru/api/v3/lk/documents/create", True),
        ("http://localhost:8080/create", True),
        ("ismp.crpt.ru/api/v3/lk/documents/create", False),
        ("ftp://ismp.crpt.ru/create", False),
        ("https://bad_host!/create", False),
        ("https://example.com:abc/create", False),
        ("", False),
    ]
    for url, expected in test_urls:
        ok, _, err = validate_endpoint(url)
        assert ok == expected, f"{url!r}: {err}"


def test_endpoint_normalization_keeps_path_and_query():
    ok, normalized, _ = validate_endpoint("HTTPS://Api.Example.COM/v3/Create?pg=milk#top")
    assert ok
    assert normalized == "https://api.example.com/v3/Create?pg=milk"


def test_request_limit_validation():
    assert validate_request_limit(1)[0]
    for bad in (0, -5, 1.5, "10", True, None):
        assert not validate_request_limit(bad)[0]


def test_duration_validation():
    assert validate_duration(0.5)[0]
    for bad in (0, -1, "1", None):
        assert not validate_duration(bad)[0]


def test_time_unit_conversion():
    assert TimeUnit.MILLISECONDS.to_seconds(250) == pytest.approx(0.25)
    assert TimeUnit.MINUTES.to_seconds(2) == 120.0
    assert TimeUnit.parse(" hours ") is TimeUnit.HOURS
    assert TimeUnit.parse(TimeUnit.DAYS) is TimeUnit.DAYS
    with pytest.raises(ValueError):
        TimeUnit.parse("fortnights")


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))

from __future__ import annotations

import math

import pytest

from posture_review.coercion import is_blank, tidy_number, to_display_string, to_number


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("$1,234.56", 1234.56),
        ("abc", None),
        ("", None),
        (None, None),
        ("  42 ", 42.0),
        ("-3.5", -3.5),
        ("1-2", None),
        (7, 7.0),
        (2.25, 2.25),
        (True, 1.0),
        (float("nan"), None),
    ],
)
def test_to_number(raw, expected):
    assert to_number(raw) == expected


def test_to_number_rejects_objects_without_float():
    assert to_number(object()) is None


def test_to_display_string():
    assert to_display_string(None) == ""
    assert to_display_string(float("nan")) == ""
    assert to_display_string("High") == "High"
    assert to_display_string(3.0) == "3"
    assert to_display_string(3.5) == "3.5"
    assert to_display_string(12) == "12"
    assert to_display_string(True) == "TRUE"
    assert to_display_string(False) == "FALSE"


def test_is_blank_keeps_zero_and_whitespace():
    assert is_blank(None)
    assert is_blank("")
    assert is_blank(math.nan)
    assert not is_blank(0)
    assert not is_blank(" ")
    assert not is_blank(False)


def test_tidy_number():
    assert tidy_number(30.0) == 30
    assert isinstance(tidy_number(30.0), int)
    assert tidy_number(30.5) == 30.5

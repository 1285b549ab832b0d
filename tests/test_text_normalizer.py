"""Tests for text_normalizer."""
import pytest

from semantic_find.text_normalizer import normalize_text


@pytest.mark.parametrize(
    "text,expected",
    [
        ("automatically-stop-rds-databases", "automatically stop rds databases"),
        ("getUserProfile", "get User Profile"),
        ("snake_case_name", "snake case name"),
        ("PascalCaseThing", "Pascal Case Thing"),
        ("https://example.com/docs/getting-started", "https: example.com docs getting started"),
        ("foo_Bar", "foo Bar"),
        ("a-B", "a B"),
        ("path/toFile", "path to File"),
        ("  lots   of\t\twhitespace \n", "lots of whitespace"),
        ("parseHTTPResponse", "parse HTTPResponse"),
        ("already plain words", "already plain words"),
        ("MixedCase_with-all/the_Things", "Mixed Case with all the Things"),
    ],
)
def test_normalize_text(text: str, expected: str) -> None:
    assert normalize_text(text) == expected


@pytest.mark.parametrize("text", ["", "   ", "\t\n"])
def test_blank_input_returned_unchanged(text: str) -> None:
    assert normalize_text(text) == text


def test_no_lowercasing_or_punctuation_stripping() -> None:
    assert normalize_text("Hello, World!") == "Hello, World!"


def test_camel_case_split_is_ascii_only() -> None:
    assert normalize_text("éA") == "éA"
    assert normalize_text("aÉ") == "aÉ"


def test_only_separators_becomes_empty() -> None:
    assert normalize_text("_-/_") == ""


@pytest.mark.parametrize(
    "text",
    [
        "getUserProfile",
        "automatically-stop-rds-databases",
        "  a__b--c//dE  ",
        "_",
        "",
        "   ",
        "x/yZ_w-vQ",
        "ALLCAPS lowerUPPER",
    ],
)
def test_normalize_is_idempotent(text: str) -> None:
    once = normalize_text(text)
    assert normalize_text(once) == once

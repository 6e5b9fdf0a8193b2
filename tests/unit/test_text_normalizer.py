"""Unit tests for artist-name key normalisation."""

from __future__ import annotations

import pytest

from originmap.utils.text_normalizer import names_match, normalize_query_key


class TestNormalizeQueryKey:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("Daft Punk", "daft punk"),
            ("AC/DC", "ac/dc"),
            ("Sigur Rós", "sigur rós"),
        ],
    )
    def test_lowercases(self, name: str, expected: str) -> None:
        assert normalize_query_key(name) == expected

    def test_whitespace_is_significant(self) -> None:
        assert normalize_query_key(" Daft Punk") != normalize_query_key("Daft Punk")


class TestNamesMatch:
    def test_case_insensitive(self) -> None:
        assert names_match("the roots", "The Roots")

    def test_no_accent_folding(self) -> None:
        assert not names_match("Beyonce", "Beyoncé")

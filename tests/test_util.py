"""Tests for case id helpers."""

import pytest

from testrail_uploader.util import extract_case_id, validate_case_id


class TestValidateCaseId:
    """Tests for validate_case_id."""

    @pytest.mark.parametrize("token", ["1", "1234", "C1234", "c7", "T99"])
    def test_valid_tokens(self, token):
        """Digits with an optional single letter prefix are valid."""
        assert validate_case_id(token) is True

    @pytest.mark.parametrize(
        "token",
        [None, "", " ", "C", "CC12", "-5", "1.5", "12a", " 12", "C-1", "١٢"],
    )
    def test_invalid_tokens(self, token):
        """Blank, negative, decimal and malformed tokens are invalid."""
        assert validate_case_id(token) is False


class TestExtractCaseId:
    """Tests for extract_case_id."""

    def test_strips_prefix(self):
        """The letter prefix is dropped."""
        assert extract_case_id("C1234") == 1234

    def test_plain_number(self):
        """Bare digits parse directly."""
        assert extract_case_id("42") == 42

    def test_leading_zeros(self):
        """Leading zeros are ignored."""
        assert extract_case_id("C007") == 7

    def test_malformed_token_raises(self):
        """Malformed tokens raise ValueError."""
        with pytest.raises(ValueError):
            extract_case_id("CC12")

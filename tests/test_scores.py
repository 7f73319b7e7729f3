"""Tests for tag score bumping."""
import pytest

from src.tagging.scores import bump_tag_scores


class TestBumpTagScores:
    def test_increments_from_missing(self):
        assert bump_tag_scores({}, ["#sono"]) == {"#sono": 1}

    def test_custom_amount(self):
        assert bump_tag_scores({"#sono": 3}, ["#sono", "#lazer"], 2) == {"#sono": 5, "#lazer": 2}

    def test_decrement_floors_at_zero(self):
        assert bump_tag_scores({"#sono": 1}, ["#sono"], -3) == {"#sono": 0}

    def test_decrement_missing_creates_zero(self):
        assert bump_tag_scores({}, ["#sono"], -1) == {"#sono": 0}

    def test_unlisted_untouched(self):
        assert bump_tag_scores({"#a": 4, "#b": 2}, ["#a"], 1) == {"#a": 5, "#b": 2}

    def test_does_not_mutate_input(self):
        current = {"#a": 1}
        bump_tag_scores(current, ["#a"], 5)
        assert current == {"#a": 1}

    def test_none_inputs(self):
        assert bump_tag_scores(None, None) == {}

    def test_repeated_tag_counts_twice(self):
        assert bump_tag_scores({}, ["#a", "#a"]) == {"#a": 2}

    @pytest.mark.parametrize("amount", [-10, -1, 0, 1, 7])
    def test_never_negative(self, amount):
        scores = bump_tag_scores({"#a": 2, "#b": 0}, ["#a", "#b", "#c"], amount)
        assert all(v >= 0 for v in scores.values())

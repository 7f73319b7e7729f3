"""Tests for tag normalization, canonicalization and the rule table."""
import pytest
from dataclasses import FrozenInstanceError

from src.tagging.taxonomy import (
    DEFAULT_OFFICIAL_TAGS,
    STOPWORDS,
    TAG_RULES,
    TagRule,
    canonicalize_tag,
    canonicalize_tags,
    normalize_synonyms,
    normalize_tag,
    normalize_tags,
)


# ── normalize_tag ───────────────────────────────────────────────


class TestNormalizeTag:
    def test_prefixes_hash(self):
        assert normalize_tag("fitness") == "#fitness"

    def test_keeps_existing_hash(self):
        assert normalize_tag("#fitness") == "#fitness"

    def test_underscores_and_lowercases(self):
        assert normalize_tag("  Tempo   em Familia ") == "#tempo_em_familia"

    def test_keeps_accents(self):
        """Stored tags keep diacritics; only matching strips them."""
        assert normalize_tag("  Rotina Diária ") == "#rotina_diária"

    @pytest.mark.parametrize("raw", ["", "   ", None, "#", " # "])
    def test_empty_yields_no_tag(self, raw):
        assert normalize_tag(raw) == ""

    @pytest.mark.parametrize("raw", [
        "Saúde Mental", "#já_foi", "  a  b  c ", "##double", "x", "#", "",
    ])
    def test_idempotent(self, raw):
        once = normalize_tag(raw)
        assert normalize_tag(once) == once


class TestNormalizeTags:
    def test_drops_empties_and_dedupes(self):
        assert normalize_tags(["Sono", "", "#sono", "  ", "Lazer"]) == ["#sono", "#lazer"]

    def test_none(self):
        assert normalize_tags(None) == []


# ── canonicalize ────────────────────────────────────────────────


class TestCanonicalize:
    def test_without_synonyms(self):
        assert canonicalize_tag("Corrida") == "#corrida"

    def test_resolves_synonym(self):
        assert canonicalize_tag("corrida", {"#corrida": "#cardio"}) == "#cardio"

    def test_synonym_target_is_normalized(self):
        assert canonicalize_tag("#run", {"#run": "Cardio Leve"}) == "#cardio_leve"

    def test_single_hop(self):
        synonyms = {"#a": "#b", "#b": "#c"}
        assert canonicalize_tag("#a", synonyms) == "#b"

    def test_empty(self):
        assert canonicalize_tag("  ", {"#x": "#y"}) == ""

    def test_canonicalize_tags_dedupes(self):
        synonyms = {"#corrida": "#cardio"}
        assert canonicalize_tags(["#corrida", "#cardio", "", "#sono"], synonyms) == ["#cardio", "#sono"]

    def test_normalize_synonyms(self):
        result = normalize_synonyms({"Corrida": "cardio", " ": "#x", "#same": "same"})
        assert result == {"#corrida": "#cardio"}


# ── static tables ───────────────────────────────────────────────


class TestStaticTables:
    def test_rule_is_frozen(self):
        rule = TAG_RULES[0]
        with pytest.raises(FrozenInstanceError):
            rule.tag = "#other"

    def test_rule_tags_are_normalized(self):
        for rule in TAG_RULES:
            assert isinstance(rule, TagRule)
            assert normalize_tag(rule.tag) == rule.tag

    def test_default_official_tags(self):
        assert DEFAULT_OFFICIAL_TAGS == (
            "#fitness", "#saude", "#cardio", "#lazer", "#entretenimento",
            "#cinema", "#alimentacao", "#sono", "#educacao", "#organizacao",
        )

    def test_stopwords_are_accent_free(self):
        from src.ingest.normalize import normalize_text
        for word in STOPWORDS:
            assert normalize_text(word) == word

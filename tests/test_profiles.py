"""Tests for profile-derived semantic tags and specialty recommendations."""
import pytest
from dataclasses import FrozenInstanceError

from src.tagging.profile import (
    COMPLAINT_TO_TAGS,
    CONDITION_TO_TAGS,
    HEALTH_COMPLAINT_OPTIONS,
    NEURO_CONDITION_OPTIONS,
    TAG_TO_SPECIALTIES,
    ProfileSemantics,
    derive_semantic_tags_from_profile,
)
from src.tagging.taxonomy import normalize_tag


# ── derive_semantic_tags_from_profile ───────────────────────────


class TestDeriveSemanticTags:
    def test_anxiety_and_adhd(self):
        result = derive_semantic_tags_from_profile(
            health_complaints=["Ansiedade"],
            neuro_conditions=["TDAH"],
        )
        assert {"#saude_mental", "#ansiedade", "#tdah", "#neurodivergencia"} <= set(result.semantic_tags)
        assert {"Psicólogo", "Psiquiatra", "Neuropediatra", "Psicólogo TCC"} <= set(
            result.recommended_professional_specialties
        )

    def test_specialties_deduplicated(self):
        result = derive_semantic_tags_from_profile(
            health_complaints=["Ansiedade", "Insônia"],
            neuro_conditions=["TDAH"],
        )
        specialties = result.recommended_professional_specialties
        assert len(specialties) == len(set(specialties))
        assert specialties.count("Psicólogo") == 1

    def test_tags_deduplicated(self):
        result = derive_semantic_tags_from_profile(
            health_complaints=["Insônia", "Sono agitado"],
        )
        assert result.semantic_tags == ("#higiene_do_sono", "#sono")

    def test_extra_tags_normalized(self):
        result = derive_semantic_tags_from_profile(extra_tags=["Saude Mental", "  ", "#yoga"])
        assert result.semantic_tags == ("#saude_mental", "#yoga")
        assert result.recommended_professional_specialties == ("Psicólogo", "Psiquiatra")

    def test_unknown_selections_contribute_nothing(self):
        result = derive_semantic_tags_from_profile(
            health_complaints=["Inchaço nas pernas", "Nada disso"],
            neuro_conditions=["Prefiro não informar"],
        )
        assert result.semantic_tags == ()
        assert result.recommended_professional_specialties == ()

    def test_no_input(self):
        result = derive_semantic_tags_from_profile()
        assert result == ProfileSemantics(semantic_tags=(), recommended_professional_specialties=())

    def test_order_independent(self):
        a = derive_semantic_tags_from_profile(
            health_complaints=["Refluxo", "Ansiedade"],
            neuro_conditions=["Diabetes", "Dislexia"],
        )
        b = derive_semantic_tags_from_profile(
            health_complaints=["Ansiedade", "Refluxo"],
            neuro_conditions=["Dislexia", "Diabetes"],
        )
        assert set(a.semantic_tags) == set(b.semantic_tags)
        assert set(a.recommended_professional_specialties) == set(b.recommended_professional_specialties)

    def test_result_is_frozen(self):
        result = derive_semantic_tags_from_profile(health_complaints=["Ansiedade"])
        with pytest.raises(FrozenInstanceError):
            result.semantic_tags = ()


# ── static tables ───────────────────────────────────────────────


class TestDomainTables:
    def test_complaint_keys_are_options(self):
        assert set(COMPLAINT_TO_TAGS) <= set(HEALTH_COMPLAINT_OPTIONS)

    def test_condition_keys_are_options(self):
        assert set(CONDITION_TO_TAGS) <= set(NEURO_CONDITION_OPTIONS)

    def test_mapped_tags_are_normalized(self):
        for table in (COMPLAINT_TO_TAGS, CONDITION_TO_TAGS):
            for tags in table.values():
                for tag in tags:
                    assert normalize_tag(tag) == tag

    def test_tables_are_read_only(self):
        with pytest.raises(TypeError):
            TAG_TO_SPECIALTIES["#novo"] = ("Alguém",)

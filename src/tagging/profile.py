"""Semantic tags and recommended specialties derived from profile selections."""
from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from src.ingest.dedupe import dedupe_preserving_order
from src.tagging.taxonomy import normalize_tag, normalize_tags

HEALTH_COMPLAINT_OPTIONS: tuple[str, ...] = (
    "Cansaço crônico",
    "Falta de energia",
    "Desânimo matinal",
    "Ansiedade",
    "Estresse elevado",
    "Irritabilidade",
    "Tristeza persistente",
    "Insônia",
    "Sono agitado",
    "Dificuldade para acordar",
    "Má digestão",
    "Inchaço abdominal",
    "Intestino preso",
    "Refluxo",
    "Dor na coluna",
    "Dor nos joelhos",
    "Tensão muscular",
    "Dor de cabeça frequente",
    "Dificuldade em perder peso",
    "Queda de cabelo",
    "Unhas fracas",
    "Inchaço nas pernas",
    "Falta de concentração",
    "Esquecimento",
    "Névoa mental",
)

NEURO_CONDITION_OPTIONS: tuple[str, ...] = (
    "TDAH",
    "Autismo (TEA)",
    "Dislexia",
    "Altas Habilidades/Superdotação",
    "Síndrome de Down",
    "Síndrome de Irlen",
    "Síndrome de Tourette",
    "Fibromialgia",
    "Diabetes",
    "Hipertensão",
    "Doenças Autoimunes",
    "Prefiro não informar",
    "Outras condições",
)

COMPLAINT_TO_TAGS: Mapping[str, tuple[str, ...]] = MappingProxyType({
    "Ansiedade": ("#saude_mental", "#ansiedade"),
    "Estresse elevado": ("#saude_mental", "#estresse"),
    "Irritabilidade": ("#saude_mental",),
    "Tristeza persistente": ("#saude_mental",),
    "Má digestão": ("#saude_digestiva",),
    "Refluxo": ("#saude_digestiva",),
    "Inchaço abdominal": ("#saude_digestiva",),
    "Intestino preso": ("#saude_digestiva",),
    "Dor na coluna": ("#musculoesqueletico", "#dor_cronica"),
    "Dor nos joelhos": ("#musculoesqueletico", "#dor_cronica"),
    "Tensão muscular": ("#musculoesqueletico",),
    "Dor de cabeça frequente": ("#dor_cronica",),
    "Cansaço crônico": ("#metabolismo", "#energia"),
    "Falta de energia": ("#metabolismo", "#energia"),
    "Desânimo matinal": ("#energia",),
    "Insônia": ("#higiene_do_sono", "#sono"),
    "Sono agitado": ("#higiene_do_sono", "#sono"),
    "Dificuldade para acordar": ("#higiene_do_sono", "#sono"),
    "Queda de cabelo": ("#nutricao_estetica",),
    "Unhas fracas": ("#nutricao_estetica",),
    "Dificuldade em perder peso": ("#metabolismo", "#controle_peso"),
    "Falta de concentração": ("#foco", "#cognicao"),
    "Esquecimento": ("#foco", "#cognicao"),
    "Névoa mental": ("#foco", "#cognicao"),
})

CONDITION_TO_TAGS: Mapping[str, tuple[str, ...]] = MappingProxyType({
    "TDAH": ("#tdah", "#neurodivergencia"),
    "Autismo (TEA)": ("#autismo", "#neurodivergencia"),
    "Dislexia": ("#dislexia", "#neurodivergencia"),
    "Altas Habilidades/Superdotação": ("#superdotacao", "#neurodivergencia"),
    "Síndrome de Down": ("#down", "#sindrome"),
    "Síndrome de Irlen": ("#irlen", "#sindrome"),
    "Síndrome de Tourette": ("#tourette", "#sindrome"),
    "Fibromialgia": ("#fibromialgia", "#dor_cronica"),
    "Diabetes": ("#diabetes", "#metabolismo"),
    "Hipertensão": ("#hipertensao", "#saude_cardiovascular"),
    "Doenças Autoimunes": ("#autoimune",),
})

TAG_TO_SPECIALTIES: Mapping[str, tuple[str, ...]] = MappingProxyType({
    "#saude_mental": ("Psicólogo", "Psiquiatra"),
    "#saude_digestiva": ("Nutricionista", "Gastroenterologista"),
    "#musculoesqueletico": ("Fisioterapeuta", "Ortopedista"),
    "#metabolismo": ("Endocrinologista", "Nutricionista"),
    "#higiene_do_sono": ("Especialista em Sono", "Psicólogo"),
    "#nutricao_estetica": ("Nutricionista", "Dermatologista"),
    "#tdah": ("Neuropediatra", "Psiquiatra", "Psicólogo TCC"),
    "#autismo": ("Terapeuta Ocupacional", "Psicólogo ABA", "Neurologista"),
    "#down": ("Fonoaudiólogo", "Fisioterapeuta", "Geneticista"),
    "#dislexia": ("Psicopedagogo", "Fonoaudiólogo"),
    "#fibromialgia": ("Reumatologista", "Fisioterapeuta"),
    "#diabetes": ("Endocrinologista", "Nutricionista Clínico"),
})


@dataclass(frozen=True)
class ProfileSemantics:
    semantic_tags: tuple[str, ...]
    recommended_professional_specialties: tuple[str, ...]


def _lookup(table: Mapping[str, tuple[str, ...]], selections: Optional[Iterable[str]]) -> list[str]:
    tags: list[str] = []
    for item in selections or []:
        tags.extend(table.get(item, ()))
    return tags


def derive_semantic_tags_from_profile(
    health_complaints: Optional[Iterable[str]] = None,
    neuro_conditions: Optional[Iterable[str]] = None,
    extra_tags: Optional[Iterable[str]] = None,
) -> ProfileSemantics:
    """Map complaint/condition selections to tags, then tags to specialties.

    Unknown selections contribute nothing. Both outputs are deduplicated in
    first-seen order; the same selections always give the same sets.
    """
    raw = [
        *_lookup(COMPLAINT_TO_TAGS, health_complaints),
        *_lookup(CONDITION_TO_TAGS, neuro_conditions),
        *(normalize_tag(t) for t in (extra_tags or [])),
    ]
    semantic_tags = normalize_tags(raw)

    specialties = dedupe_preserving_order(
        specialty
        for tag in semantic_tags
        for specialty in TAG_TO_SPECIALTIES.get(tag, ())
    )
    return ProfileSemantics(
        semantic_tags=tuple(semantic_tags),
        recommended_professional_specialties=tuple(specialties),
    )

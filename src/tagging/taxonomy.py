"""Tag taxonomy: keyword rules, default official tags and tag normalization.

Tags are stored as ``#snake_case`` strings. ``normalize_tag`` only trims,
lowercases and underscores; it does not strip accents, so "Diária" and
"Diaria" stay distinct tags even though both satisfy the same keyword rule.
"""
import re
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional

from src.ingest.dedupe import dedupe_preserving_order

_WHITESPACE_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class TagRule:
    """A tag inferred whenever any of its trigger terms appears in the text."""

    tag: str
    terms: tuple[str, ...]


TAG_RULES: tuple[TagRule, ...] = (
    TagRule("#fitness", ("correr", "corrida", "academia", "musculacao", "treino", "exercicio", "natação", "natacao", "bike")),
    TagRule("#saude", ("saude", "medico", "consulta", "higiene", "dente", "dentista", "fio dental", "alimentacao")),
    TagRule("#cardio", ("correr", "corrida", "cardio", "esteira", "bike", "natação", "natacao")),
    TagRule("#lazer", ("lazer", "brincar", "passeio", "cinema", "jogo", "tv")),
    TagRule("#entretenimento", ("cinema", "filme", "series", "jogo", "streaming", "parque")),
    TagRule("#cinema", ("cinema", "filme", "pipoca")),
    TagRule("#alimentacao", ("comida", "alimentacao", "refeicao", "lanche", "nutricao")),
    TagRule("#sono", ("sono", "dormir", "cama", "descanso")),
    TagRule("#educacao", ("estudo", "escola", "lição", "licao", "leitura", "livro")),
    TagRule("#organizacao", ("arrumar", "organizar", "quarto", "casa", "guardar")),
)

DEFAULT_OFFICIAL_TAGS: tuple[str, ...] = tuple(rule.tag for rule in TAG_RULES)

# Portuguese articles, prepositions and conjunctions ignored by free-text extraction
STOPWORDS: frozenset[str] = frozenset({
    "a", "o", "as", "os", "um", "uma", "uns", "umas",
    "de", "da", "do", "das", "dos", "em", "no", "na", "nos", "nas",
    "por", "pelo", "pela", "pelos", "pelas", "para", "pra", "pro", "com", "sem",
    "sob", "sobre", "entre", "ate", "apos", "desde", "contra",
    "e", "ou", "mas", "que", "se", "porque", "como", "quando", "onde",
    "mais", "menos", "muito", "pouco", "ao", "aos", "num", "numa",
    "este", "esta", "esse", "essa", "isso", "isto", "aquele", "aquela",
    "seu", "sua", "seus", "suas", "meu", "minha", "nosso", "nossa",
    "todo", "toda", "todos", "todas",
})


def normalize_tag(raw: Optional[str]) -> str:
    """Convert a tag-like string into ``#snake_case`` form.

    Returns "" when nothing is left after trimming (including a lone "#").
    """
    clean = _WHITESPACE_RE.sub("_", (raw or "").strip().lower())
    if not clean.strip("#"):
        return ""
    return clean if clean.startswith("#") else f"#{clean}"


def normalize_tags(raw: Optional[Iterable[Optional[str]]]) -> list[str]:
    """Normalize every tag, drop empties, dedupe first-occurrence-wins."""
    normalized = (normalize_tag(t) for t in (raw or []))
    return dedupe_preserving_order(t for t in normalized if t)


def canonicalize_tag(tag: Optional[str], synonyms: Optional[Mapping[str, str]] = None) -> str:
    """Normalize a tag and resolve it through the synonym table (one hop)."""
    normalized = normalize_tag(tag)
    if not normalized:
        return ""
    mapped = (synonyms or {}).get(normalized)
    return normalize_tag(mapped) if mapped else normalized


def canonicalize_tags(
    tags: Optional[Iterable[Optional[str]]],
    synonyms: Optional[Mapping[str, str]] = None,
) -> list[str]:
    canonical = (canonicalize_tag(t, synonyms) for t in (tags or []))
    return dedupe_preserving_order(t for t in canonical if t)


def normalize_synonyms(synonyms: Optional[Mapping[str, str]]) -> dict[str, str]:
    """Normalize both sides of a synonym table, dropping entries that vanish."""
    result: dict[str, str] = {}
    for alias, target in (synonyms or {}).items():
        key = normalize_tag(alias)
        value = normalize_tag(target)
        if key and value and key != value:
            result[key] = value
    return result

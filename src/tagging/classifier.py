"""Rule-based tag inference and free-text tag extraction."""
import re
from typing import Iterable, Mapping, Optional

from src.ingest.normalize import collapse_whitespace, normalize_text
from src.tagging.taxonomy import (
    STOPWORDS,
    TAG_RULES,
    TagRule,
    canonicalize_tags,
    normalize_tag,
    normalize_tags,
)

DEFAULT_FREE_TEXT_LIMIT = 4
MIN_WORD_LENGTH = 3
MAX_BIGRAM_LENGTH = 30

_NON_ALNUM_RE = re.compile(r"[^a-z0-9\s]")


def _compile_rules(rules: Iterable[TagRule]) -> tuple[tuple[str, tuple[str, ...]], ...]:
    return tuple(
        (rule.tag, tuple(normalize_text(term) for term in rule.terms))
        for rule in rules
    )


_COMPILED_RULES = _compile_rules(TAG_RULES)


def infer_semantic_tags(*fragments: Optional[str]) -> list[str]:
    """Return every rule tag whose trigger terms occur in the joined fragments.

    Missing or empty fragments are ignored. Tags are independent facets, so one
    word can fire several rules ("corrida" gives both #fitness and #cardio).
    The list follows rule-table order but should be treated as a set.
    """
    joined = normalize_text(" ".join(f for f in fragments if f))
    if not joined:
        return []
    return [
        tag for tag, terms in _COMPILED_RULES
        if any(term and term in joined for term in terms)
    ]


def infer_and_normalize_tags(*fragments: Optional[str]) -> list[str]:
    return normalize_tags(infer_semantic_tags(*fragments))


def _candidate_words(text: str) -> list[str]:
    cleaned = collapse_whitespace(_NON_ALNUM_RE.sub("", normalize_text(text)))
    return [
        word for word in cleaned.split(" ")
        if len(word) >= MIN_WORD_LENGTH and word not in STOPWORDS
    ]


def extract_free_text_tags(text: Optional[str], limit: int = DEFAULT_FREE_TEXT_LIMIT) -> list[str]:
    """Extract up to ``limit`` unigram/bigram tags from free text.

    Unigrams and bigrams interleave in source order, so a compound such as
    #tempo_familia can take a slot before a later single word is reached.
    """
    if not text or limit <= 0:
        return []

    words = _candidate_words(text)
    out: dict[str, None] = {}

    for i, word in enumerate(words):
        if len(out) >= limit:
            break
        unigram = normalize_tag(word)
        if unigram:
            out.setdefault(unigram, None)

        if i + 1 >= len(words):
            continue
        nxt = words[i + 1]
        compound = f"{word}_{nxt}"
        if nxt in STOPWORDS or len(compound) > MAX_BIGRAM_LENGTH:
            continue
        if len(out) < limit:
            out.setdefault(normalize_tag(compound), None)

    return list(out)[:limit]


def tag_entity(
    name: Optional[str],
    category: Optional[str] = None,
    description: Optional[str] = None,
    explicit_tags: Optional[Iterable[str]] = None,
    synonyms: Optional[Mapping[str, str]] = None,
    limit: int = DEFAULT_FREE_TEXT_LIMIT,
    merge: bool = False,
) -> list[str]:
    """Tags for a habit, reward, template or product being created or edited.

    By default explicit tags win when present; otherwise rule inference on
    name and category is combined with free-text extraction from name and
    description. With ``merge`` (products) explicit tags are always unioned
    with inference over name, description and category plus the free-text
    tags. The result is canonicalized through ``synonyms``.
    """
    explicit = normalize_tags(explicit_tags)
    if merge:
        candidates = [
            *explicit,
            *infer_semantic_tags(name, description, category),
            *extract_free_text_tags(name, limit),
            *extract_free_text_tags(description, limit),
        ]
    elif explicit:
        candidates = explicit
    else:
        candidates = [
            *infer_semantic_tags(name, category),
            *extract_free_text_tags(name, limit),
            *extract_free_text_tags(description, limit),
        ]
    return canonicalize_tags(normalize_tags(candidates), synonyms)

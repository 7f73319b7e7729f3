"""Official tag catalog: curation and usage-based suggestions.

The official set is a plain set of normalized tags. Promote and remove are
idempotent set operations, so curators racing on different tags converge and
racing on the same tag resolves to whichever write lands last.
"""
import logging
import math
import sqlite3
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional

from src.app.config import get_settings
from src.ingest.dedupe import make_entity_id
from src.storage.dao import (
    TaggedEntity,
    TaggedEntityDAO,
    TagScoreDAO,
    TagTaxonomy,
    TaxonomyDAO,
)
from src.tagging.classifier import infer_semantic_tags, tag_entity
from src.tagging.scores import SCORE_EVENTS
from src.tagging.taxonomy import normalize_tag, normalize_tags

logger = logging.getLogger("tagcat.catalog")

# (kind, field) -> weight of one occurrence in suggestion counts
SUGGESTION_WEIGHTS: dict[tuple[str, str], int] = {
    ("product", "tags"): 3,
    ("professional", "tags"): 2,
    ("professional", "keywords"): 1,
    ("professional", "specialties"): 1,
    ("template", "tags"): 2,
    ("reward", "tags"): 1,
}
# kinds that fall back to rule inference on their name when untagged
INFERRED_KINDS = frozenset({"template", "reward"})
# kinds whose explicit tags are unioned with inferred ones
MERGED_KINDS = frozenset({"product"})
PROFILE_KIND = "profile"
DEFAULT_SUGGESTION_LIMIT = 30
SMALL_COMMUNITY = 30


class CatalogStoreError(Exception):
    """The taxonomy store failed; the operation can be retried."""


@dataclass(frozen=True)
class SuggestedTagCandidate:
    tag: str
    count: int
    distinct_users: int = 0


@dataclass(frozen=True)
class SuggestionThreshold:
    min_users: int
    min_occurrences: int
    total_users: int


# ── Pure curation ───────────────────────────────────────────────


def promote_tag(official_tags: Iterable[str], tag: Optional[str]) -> list[str]:
    """Official set with ``tag`` added; unchanged if present or empty."""
    current = normalize_tags(official_tags)
    normalized = normalize_tag(tag)
    if not normalized or normalized in current:
        return current
    return [*current, normalized]


def add_official_tag(official_tags: Iterable[str], raw: Optional[str]) -> list[str]:
    return promote_tag(official_tags, raw)


def remove_official_tag(official_tags: Iterable[str], tag: Optional[str]) -> list[str]:
    """Official set without ``tag``; unchanged if absent."""
    current = normalize_tags(official_tags)
    normalized = normalize_tag(tag)
    return [t for t in current if t != normalized]


# ── Suggestions ─────────────────────────────────────────────────


def suggestion_threshold(total_users: int) -> SuggestionThreshold:
    """Minimum usage a tag needs before it is suggested.

    Small communities use fixed floors; larger ones scale with the user count.
    """
    total = max(1, total_users)
    if total < SMALL_COMMUNITY:
        return SuggestionThreshold(min_users=2, min_occurrences=3, total_users=total_users)
    return SuggestionThreshold(
        min_users=max(3, math.ceil(total * 0.03)),
        min_occurrences=max(4, math.ceil(total * 0.08)),
        total_users=total_users,
    )


def distinct_users_by_tag(entities: Iterable[TaggedEntity]) -> dict[str, int]:
    """Number of distinct profile owners carrying each tag."""
    owners: dict[str, set[str]] = {}
    for entity in entities:
        if entity.kind != PROFILE_KIND:
            continue
        for tag in normalize_tags(entity.tags):
            owners.setdefault(tag, set()).add(entity.owner_id)
    return {tag: len(ids) for tag, ids in owners.items()}


def aggregate_suggested_candidates(
    entities: Iterable[TaggedEntity],
    official_tags: Iterable[str],
    scores: Optional[Mapping[str, int]] = None,
    threshold: Optional[SuggestionThreshold] = None,
    limit: int = DEFAULT_SUGGESTION_LIMIT,
) -> list[SuggestedTagCandidate]:
    """Rank non-official tags by weighted usage.

    Sorted by descending count; ties keep first-observed order.
    """
    entities = list(entities)
    official = set(normalize_tags(official_tags))
    counters: dict[str, int] = {}

    def add(tags: Iterable[str], weight: int) -> None:
        for raw in tags:
            tag = normalize_tag(raw)
            if not tag or tag in official:
                continue
            counters[tag] = counters.get(tag, 0) + weight

    for entity in entities:
        for field_name in ("tags", "keywords", "specialties"):
            weight = SUGGESTION_WEIGHTS.get((entity.kind, field_name))
            if weight is None:
                continue
            values = getattr(entity, field_name)
            if field_name == "tags" and not values and entity.kind in INFERRED_KINDS:
                values = infer_semantic_tags(entity.name)
            add(values, weight)

    for tag, score in (scores or {}).items():
        add([tag], max(1, int(score or 0)))

    distinct = distinct_users_by_tag(entities)
    candidates = [
        SuggestedTagCandidate(tag=tag, count=count, distinct_users=distinct.get(tag, 0))
        for tag, count in counters.items()
    ]
    if threshold is not None:
        candidates = [
            c for c in candidates
            if c.count >= threshold.min_occurrences and c.distinct_users >= threshold.min_users
        ]
    candidates.sort(key=lambda c: c.count, reverse=True)
    return candidates[:max(0, limit)]


def _threshold_for(entities: Iterable[TaggedEntity]) -> SuggestionThreshold:
    owners = {e.owner_id for e in entities if e.kind == PROFILE_KIND}
    return suggestion_threshold(len(owners))


# ── Store-backed catalog ────────────────────────────────────────


class TagCatalog:
    """Curation and suggestion operations against the persisted taxonomy."""

    def __init__(
        self,
        taxonomy_dao: Optional[TaxonomyDAO] = None,
        score_dao: Optional[TagScoreDAO] = None,
        entity_dao: Optional[TaggedEntityDAO] = None,
    ) -> None:
        self.taxonomy_dao = taxonomy_dao or TaxonomyDAO()
        self.score_dao = score_dao or TagScoreDAO()
        self.entity_dao = entity_dao or TaggedEntityDAO()

    def get_taxonomy(self, family_id: str) -> TagTaxonomy:
        try:
            return self.taxonomy_dao.get_taxonomy(family_id)
        except sqlite3.Error as e:
            logger.error("Failed to load taxonomy for %s: %s", family_id, e)
            raise CatalogStoreError(str(e)) from e

    def set_official_tags(
        self, family_id: str, tags: Iterable[str], updated_by: Optional[str] = None
    ) -> TagTaxonomy:
        try:
            return self.taxonomy_dao.set_official_tags(family_id, tags, updated_by)
        except sqlite3.Error as e:
            logger.error("Failed to save official tags for %s: %s", family_id, e)
            raise CatalogStoreError(str(e)) from e

    def set_synonyms(
        self, family_id: str, synonyms: Mapping[str, str], updated_by: Optional[str] = None
    ) -> TagTaxonomy:
        try:
            return self.taxonomy_dao.set_synonyms(family_id, synonyms, updated_by)
        except sqlite3.Error as e:
            logger.error("Failed to save synonyms for %s: %s", family_id, e)
            raise CatalogStoreError(str(e)) from e

    def promote(self, family_id: str, tag: str, updated_by: Optional[str] = None) -> TagTaxonomy:
        normalized = normalize_tag(tag)
        if not normalized:
            return self.get_taxonomy(family_id)
        taxonomy = self._update(family_id, lambda cur: promote_tag(cur, normalized), updated_by)
        logger.info("Promoted %s in %s", normalized, family_id)
        return taxonomy

    def add(self, family_id: str, raw: str, updated_by: Optional[str] = None) -> TagTaxonomy:
        return self.promote(family_id, raw, updated_by)

    def remove(self, family_id: str, tag: str, updated_by: Optional[str] = None) -> TagTaxonomy:
        taxonomy = self._update(family_id, lambda cur: remove_official_tag(cur, tag), updated_by)
        logger.info("Removed %s from %s", normalize_tag(tag), family_id)
        return taxonomy

    def get_scores(self, family_id: str) -> dict[str, int]:
        try:
            return self.score_dao.get_scores(family_id)
        except sqlite3.Error as e:
            logger.error("Failed to load tag scores for %s: %s", family_id, e)
            raise CatalogStoreError(str(e)) from e

    def bump_scores(self, family_id: str, tags: Iterable[str], amount: int = 1) -> dict[str, int]:
        try:
            return self.score_dao.bump(family_id, tags, amount)
        except sqlite3.Error as e:
            logger.error("Failed to bump tag scores for %s: %s", family_id, e)
            raise CatalogStoreError(str(e)) from e

    def record_event(self, family_id: str, tags: Iterable[str], event: str) -> dict[str, int]:
        """Bump ``tags`` by the delta of a usage event such as "reward_redeemed"."""
        if event not in SCORE_EVENTS:
            raise ValueError(f"Unknown score event: {event}")
        return self.bump_scores(family_id, normalize_tags(tags), SCORE_EVENTS[event])

    def reset_scores(self, family_id: str) -> None:
        try:
            self.score_dao.reset(family_id)
        except sqlite3.Error as e:
            logger.error("Failed to reset tag scores for %s: %s", family_id, e)
            raise CatalogStoreError(str(e)) from e
        logger.info("Reset tag scores for %s", family_id)

    def record_entity(
        self,
        family_id: str,
        kind: str,
        owner_id: str,
        name: str,
        category: Optional[str] = None,
        description: Optional[str] = None,
        explicit_tags: Optional[Iterable[str]] = None,
        keywords: Iterable[str] = (),
        specialties: Iterable[str] = (),
        score_delta: int = SCORE_EVENTS["entity_saved"],
        entity_id: Optional[str] = None,
    ) -> TaggedEntity:
        """Tag a created or edited entity, store it and bump its tag scores.

        Pass the caller's stable ``entity_id`` when editing so a rename updates
        the stored row; without it the id is derived from owner and name.
        """
        taxonomy = self.get_taxonomy(family_id)
        tags = tag_entity(
            name,
            category=category,
            description=description,
            explicit_tags=explicit_tags,
            synonyms=taxonomy.synonyms,
            limit=get_settings().free_text_tag_limit,
            merge=kind in MERGED_KINDS,
        )
        entity = TaggedEntity(
            id=entity_id or make_entity_id(family_id, kind, owner_id, name),
            family_id=family_id,
            kind=kind,
            owner_id=owner_id,
            name=name,
            tags=tuple(tags),
            keywords=tuple(normalize_tags(keywords)),
            specialties=tuple(normalize_tags(specialties)),
        )
        try:
            self.entity_dao.upsert(entity)
        except sqlite3.Error as e:
            logger.error("Failed to store %s %r: %s", kind, name, e)
            raise CatalogStoreError(str(e)) from e
        if tags and score_delta:
            self.bump_scores(family_id, tags, score_delta)
        return entity

    def record_profile(
        self,
        family_id: str,
        owner_id: str,
        semantic_tags: Iterable[str],
    ) -> TaggedEntity:
        entity = TaggedEntity(
            id=make_entity_id(family_id, PROFILE_KIND, owner_id, owner_id),
            family_id=family_id,
            kind=PROFILE_KIND,
            owner_id=owner_id,
            name=owner_id,
            tags=tuple(normalize_tags(semantic_tags)),
        )
        try:
            self.entity_dao.upsert(entity)
        except sqlite3.Error as e:
            logger.error("Failed to store profile of %s: %s", owner_id, e)
            raise CatalogStoreError(str(e)) from e
        return entity

    def remove_entity(
        self,
        entity_id: str,
        score_delta: int = -SCORE_EVENTS["entity_saved"],
    ) -> Optional[TaggedEntity]:
        """Delete a stored entity and take back its tags' score.

        Returns the removed entity, or None when the id is unknown.
        """
        try:
            entity = self.entity_dao.find_by_id(entity_id)
            if entity is None:
                return None
            self.entity_dao.delete(entity_id)
        except sqlite3.Error as e:
            logger.error("Failed to remove entity %s: %s", entity_id, e)
            raise CatalogStoreError(str(e)) from e
        if entity.tags and score_delta and entity.kind != PROFILE_KIND:
            self.bump_scores(entity.family_id, entity.tags, score_delta)
        logger.info("Removed %s %r from %s", entity.kind, entity.name, entity.family_id)
        return entity

    def import_scores(self, family_id: str, scores: Mapping[str, int]) -> dict[str, int]:
        """Replace the family's score board, normalizing tags and merging duplicates."""
        board: dict[str, int] = {}
        for raw, score in scores.items():
            tag = normalize_tag(raw)
            if not tag:
                continue
            board[tag] = board.get(tag, 0) + max(0, int(score or 0))
        try:
            self.score_dao.save_scores(family_id, board)
        except sqlite3.Error as e:
            logger.error("Failed to import tag scores for %s: %s", family_id, e)
            raise CatalogStoreError(str(e)) from e
        logger.info("Imported %d tag scores for %s", len(board), family_id)
        return board

    def get_suggestion_threshold(self, family_id: str) -> SuggestionThreshold:
        return _threshold_for(self._entities(family_id))

    def get_suggested_candidates(
        self,
        family_id: str,
        apply_threshold: bool = True,
    ) -> list[SuggestedTagCandidate]:
        taxonomy = self.get_taxonomy(family_id)
        entities = self._entities(family_id)
        scores = self.get_scores(family_id)
        threshold = _threshold_for(entities) if apply_threshold else None
        return aggregate_suggested_candidates(
            entities,
            taxonomy.official_tags,
            scores,
            threshold=threshold,
            limit=get_settings().suggestion_limit,
        )

    def _entities(self, family_id: str) -> list[TaggedEntity]:
        try:
            return self.entity_dao.find_all(family_id)
        except sqlite3.Error as e:
            logger.error("Failed to load tagged entities for %s: %s", family_id, e)
            raise CatalogStoreError(str(e)) from e

    def _update(self, family_id, update, updated_by) -> TagTaxonomy:
        try:
            return self.taxonomy_dao.update_official_tags(family_id, update, updated_by)
        except sqlite3.Error as e:
            logger.error("Failed to update official tags for %s: %s", family_id, e)
            raise CatalogStoreError(str(e)) from e

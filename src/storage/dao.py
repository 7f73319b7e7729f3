"""Data Access Objects for taxonomy, score and tagged-entity tables."""
import json
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable, Mapping, Optional

from src.app.config import get_settings
from src.storage.db import get_connection, transaction
from src.tagging.scores import bump_tag_scores
from src.tagging.taxonomy import DEFAULT_OFFICIAL_TAGS, normalize_synonyms, normalize_tags


@dataclass(frozen=True)
class TagTaxonomy:
    family_id: str
    official_tags: tuple[str, ...]
    synonyms: Mapping[str, str] = field(default_factory=dict)
    updated_at: Optional[str] = None
    updated_by: Optional[str] = None


@dataclass(frozen=True)
class TaggedEntity:
    id: str
    family_id: str
    kind: str
    owner_id: str
    name: str
    tags: tuple[str, ...] = ()
    keywords: tuple[str, ...] = ()
    specialties: tuple[str, ...] = ()
    updated_at: str = ""


def default_official_tags() -> list[str]:
    """Official set of a freshly created taxonomy."""
    return normalize_tags([*DEFAULT_OFFICIAL_TAGS, *get_settings().get_extra_official_tags()])


def _row_to_taxonomy(row: sqlite3.Row) -> TagTaxonomy:
    return TagTaxonomy(
        family_id=row["family_id"],
        official_tags=tuple(normalize_tags(json.loads(row["official_tags"] or "[]"))),
        synonyms=normalize_synonyms(json.loads(row["synonyms"] or "{}")),
        updated_at=row["updated_at"],
        updated_by=row["updated_by"],
    )


def _row_to_entity(row: sqlite3.Row) -> TaggedEntity:
    return TaggedEntity(
        id=row["id"],
        family_id=row["family_id"],
        kind=row["kind"],
        owner_id=row["owner_id"],
        name=row["name"],
        tags=tuple(json.loads(row["tags"] or "[]")),
        keywords=tuple(json.loads(row["keywords"] or "[]")),
        specialties=tuple(json.loads(row["specialties"] or "[]")),
        updated_at=row["updated_at"],
    )


class TaxonomyDAO:
    def get_taxonomy(self, family_id: str) -> TagTaxonomy:
        """Stored taxonomy, or the default official set when none exists yet."""
        conn = get_connection()
        try:
            row = conn.execute(
                "SELECT * FROM tag_taxonomy WHERE family_id = ?", (family_id,)
            ).fetchone()
        finally:
            conn.close()
        if row is None:
            return TagTaxonomy(family_id=family_id, official_tags=tuple(default_official_tags()))
        return _row_to_taxonomy(row)

    def set_official_tags(
        self,
        family_id: str,
        tags: Iterable[str],
        updated_by: Optional[str] = None,
    ) -> TagTaxonomy:
        """Replace the whole official set in one statement."""
        with transaction() as conn:
            self._write_official(conn, family_id, normalize_tags(tags), updated_by)
            row = conn.execute(
                "SELECT * FROM tag_taxonomy WHERE family_id = ?", (family_id,)
            ).fetchone()
        return _row_to_taxonomy(row)

    def update_official_tags(
        self,
        family_id: str,
        update: Callable[[list[str]], list[str]],
        updated_by: Optional[str] = None,
    ) -> TagTaxonomy:
        """Atomic read-modify-write of the official set."""
        with transaction() as conn:
            row = conn.execute(
                "SELECT official_tags FROM tag_taxonomy WHERE family_id = ?", (family_id,)
            ).fetchone()
            current = (
                normalize_tags(json.loads(row["official_tags"] or "[]"))
                if row is not None else default_official_tags()
            )
            self._write_official(conn, family_id, normalize_tags(update(current)), updated_by)
            row = conn.execute(
                "SELECT * FROM tag_taxonomy WHERE family_id = ?", (family_id,)
            ).fetchone()
        return _row_to_taxonomy(row)

    def set_synonyms(
        self,
        family_id: str,
        synonyms: Mapping[str, str],
        updated_by: Optional[str] = None,
    ) -> TagTaxonomy:
        now = datetime.now().isoformat()
        with transaction() as conn:
            conn.execute(
                """INSERT INTO tag_taxonomy
                   (family_id, official_tags, synonyms, updated_at, updated_by)
                   VALUES (?, ?, ?, ?, ?)
                   ON CONFLICT(family_id) DO UPDATE SET
                     synonyms=excluded.synonyms,
                     updated_at=excluded.updated_at,
                     updated_by=excluded.updated_by
                """,
                (family_id, json.dumps(default_official_tags()),
                 json.dumps(normalize_synonyms(synonyms), ensure_ascii=False),
                 now, updated_by),
            )
            row = conn.execute(
                "SELECT * FROM tag_taxonomy WHERE family_id = ?", (family_id,)
            ).fetchone()
        return _row_to_taxonomy(row)

    @staticmethod
    def _write_official(
        conn: sqlite3.Connection,
        family_id: str,
        tags: list[str],
        updated_by: Optional[str],
    ) -> None:
        conn.execute(
            """INSERT INTO tag_taxonomy
               (family_id, official_tags, synonyms, updated_at, updated_by)
               VALUES (?, ?, '{}', ?, ?)
               ON CONFLICT(family_id) DO UPDATE SET
                 official_tags=excluded.official_tags,
                 updated_at=excluded.updated_at,
                 updated_by=excluded.updated_by
            """,
            (family_id, json.dumps(tags, ensure_ascii=False),
             datetime.now().isoformat(), updated_by),
        )


class TagScoreDAO:
    def get_scores(self, family_id: str) -> dict[str, int]:
        conn = get_connection()
        try:
            rows = conn.execute(
                "SELECT tag, score FROM tag_scores WHERE family_id = ? ORDER BY rowid",
                (family_id,),
            ).fetchall()
            return {r["tag"]: r["score"] for r in rows}
        finally:
            conn.close()

    def save_scores(self, family_id: str, scores: Mapping[str, int]) -> None:
        """Replace the whole board for a family."""
        with transaction() as conn:
            self._replace(conn, family_id, scores)

    def bump(self, family_id: str, tags: Iterable[str], amount: int = 1) -> dict[str, int]:
        """Apply ``bump_tag_scores`` to the stored board atomically."""
        tags = list(tags)
        with transaction() as conn:
            rows = conn.execute(
                "SELECT tag, score FROM tag_scores WHERE family_id = ? ORDER BY rowid",
                (family_id,),
            ).fetchall()
            current = {r["tag"]: r["score"] for r in rows}
            scores = bump_tag_scores(current, tags, amount)
            self._replace(conn, family_id, scores)
        return scores

    def reset(self, family_id: str) -> None:
        with transaction() as conn:
            conn.execute("DELETE FROM tag_scores WHERE family_id = ?", (family_id,))

    @staticmethod
    def _replace(conn: sqlite3.Connection, family_id: str, scores: Mapping[str, int]) -> None:
        conn.execute("DELETE FROM tag_scores WHERE family_id = ?", (family_id,))
        conn.executemany(
            "INSERT INTO tag_scores (family_id, tag, score) VALUES (?, ?, ?)",
            [(family_id, tag, max(0, int(score))) for tag, score in scores.items()],
        )


class TaggedEntityDAO:
    def upsert(self, entity: TaggedEntity) -> None:
        conn = get_connection()
        try:
            conn.execute(
                """INSERT INTO tagged_entities
                   (id, family_id, kind, owner_id, name, tags, keywords,
                    specialties, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                   ON CONFLICT(id) DO UPDATE SET
                     kind=excluded.kind,
                     owner_id=excluded.owner_id,
                     name=excluded.name,
                     tags=excluded.tags,
                     keywords=excluded.keywords,
                     specialties=excluded.specialties,
                     updated_at=excluded.updated_at
                """,
                (entity.id, entity.family_id, entity.kind, entity.owner_id,
                 entity.name,
                 json.dumps(list(entity.tags), ensure_ascii=False),
                 json.dumps(list(entity.keywords), ensure_ascii=False),
                 json.dumps(list(entity.specialties), ensure_ascii=False),
                 entity.updated_at or datetime.now().isoformat()),
            )
        finally:
            conn.close()

    def find_by_id(self, eid: str) -> Optional[TaggedEntity]:
        conn = get_connection()
        try:
            row = conn.execute(
                "SELECT * FROM tagged_entities WHERE id = ?", (eid,)
            ).fetchone()
            if row is None:
                return None
            return _row_to_entity(row)
        finally:
            conn.close()

    def find_all(self, family_id: str, kind: Optional[str] = None) -> list[TaggedEntity]:
        conn = get_connection()
        try:
            if kind:
                rows = conn.execute(
                    "SELECT * FROM tagged_entities WHERE family_id = ? AND kind = ? ORDER BY rowid",
                    (family_id, kind),
                ).fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM tagged_entities WHERE family_id = ? ORDER BY rowid",
                    (family_id,),
                ).fetchall()
            return [_row_to_entity(r) for r in rows]
        finally:
            conn.close()

    def delete(self, eid: str) -> None:
        conn = get_connection()
        try:
            conn.execute("DELETE FROM tagged_entities WHERE id = ?", (eid,))
        finally:
            conn.close()

"""CLI entry point for the tag catalog."""
import argparse
import json
import sys

from src.app.config import get_settings
from src.app.logging import setup_logging
from src.app.paths import ensure_dirs
from src.storage.db import init_db
from src.tagging.scores import SCORE_EVENTS


def _family(args) -> str:
    return args.family or get_settings().default_family_id


def cmd_infer(args):
    """Infer rule tags from text fragments."""
    from src.tagging.classifier import infer_semantic_tags

    tags = infer_semantic_tags(*args.text)
    print(" ".join(tags) if tags else "(no tags)")


def cmd_extract(args):
    """Extract free-text tags."""
    from src.tagging.classifier import extract_free_text_tags

    limit = args.limit if args.limit is not None else get_settings().free_text_tag_limit
    tags = extract_free_text_tags(args.text, limit)
    print(" ".join(tags) if tags else "(no tags)")


def cmd_profile(args):
    """Derive semantic tags and specialties from profile selections."""
    from src.tagging.profile import derive_semantic_tags_from_profile

    result = derive_semantic_tags_from_profile(
        health_complaints=args.complaint,
        neuro_conditions=args.condition,
        extra_tags=args.tag,
    )
    if args.owner:
        from src.tagging.catalog import TagCatalog
        TagCatalog().record_profile(_family(args), args.owner, result.semantic_tags)

    print(json.dumps({
        "semantic_tags": list(result.semantic_tags),
        "recommended_professional_specialties": list(result.recommended_professional_specialties),
    }, ensure_ascii=False, indent=2))


def cmd_tag(args):
    """Tag an entity, store it and bump its tag scores."""
    from src.tagging.catalog import TagCatalog

    entity = TagCatalog().record_entity(
        _family(args),
        kind=args.kind,
        owner_id=args.owner,
        name=args.name,
        category=args.category,
        description=args.description,
        explicit_tags=args.tag,
        keywords=args.keyword,
        specialties=args.specialty,
        score_delta=args.delta,
        entity_id=args.id,
    )
    print(f"  {entity.kind} {entity.name!r} [{entity.id}]: {' '.join(entity.tags) or '(no tags)'}")


def cmd_untag(args):
    """Remove a stored entity and take back its tag scores."""
    from src.tagging.catalog import TagCatalog

    entity = TagCatalog().remove_entity(args.id, score_delta=-args.delta)
    if entity is None:
        print(f"No entity with id {args.id}")
        return
    print(f"  removed {entity.kind} {entity.name!r}")


def cmd_catalog(args):
    """Show or curate the official tag catalog."""
    from src.tagging.catalog import TagCatalog

    catalog = TagCatalog()
    family = _family(args)

    if args.action == "list":
        taxonomy = catalog.get_taxonomy(family)
        for tag in sorted(taxonomy.official_tags):
            print(f"  {tag}")
        if taxonomy.synonyms:
            print("Synonyms:")
            for alias, target in sorted(taxonomy.synonyms.items()):
                print(f"  {alias} -> {target}")
        return

    if args.action == "suggest":
        threshold = catalog.get_suggestion_threshold(family)
        candidates = catalog.get_suggested_candidates(family, apply_threshold=not args.all)
        if not args.all:
            print(f"  min_users={threshold.min_users} min_occurrences={threshold.min_occurrences}")
        if not candidates:
            print("No suggestions.")
            return
        for c in candidates:
            print(f"  [{c.count:>4}] {c.tag}  users={c.distinct_users}")
        return

    if not args.tag:
        print(f"Provide a tag for catalog {args.action}")
        return

    if args.action == "synonym":
        if not args.target:
            print("Provide --target for catalog synonym")
            return
        taxonomy = catalog.get_taxonomy(family)
        synonyms = {**taxonomy.synonyms, args.tag: args.target}
        catalog.set_synonyms(family, synonyms, updated_by=args.by)
        print(f"  {args.tag} -> {args.target}")
        return

    operations = {
        "promote": catalog.promote,
        "add": catalog.add,
        "demote": catalog.remove,
    }
    taxonomy = operations[args.action](family, args.tag, updated_by=args.by)
    print(f"Official tags ({len(taxonomy.official_tags)}): {' '.join(sorted(taxonomy.official_tags))}")


def cmd_scores(args):
    """Show, bump, record events on, reset or import tag usage scores."""
    from src.tagging.catalog import TagCatalog

    catalog = TagCatalog()
    family = _family(args)

    if args.action == "list":
        scores = catalog.get_scores(family)
        for tag, score in sorted(scores.items(), key=lambda x: x[1], reverse=True):
            print(f"  [{score:>4}] {tag}")
    elif args.action == "bump":
        from src.tagging.taxonomy import normalize_tags
        scores = catalog.bump_scores(family, normalize_tags(args.tag), args.amount)
        print(f"  {len(scores)} tags scored")
    elif args.action == "event":
        if not args.event:
            print("Provide --event for scores event")
            return
        scores = catalog.record_event(family, args.tag, args.event)
        print(f"  {args.event}: {len(scores)} tags scored")
    elif args.action == "reset":
        catalog.reset_scores(family)
        print("Scores reset.")
    elif args.action == "import":
        if not args.file:
            print("Provide --file for scores import")
            return
        with open(args.file, encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            print("Score file must hold a JSON object of tag -> score")
            return
        scores = catalog.import_scores(family, data)
        print(f"  {len(scores)} tags imported")


def cmd_serve(args):
    """Start the web server."""
    import uvicorn
    from src.web.server import app

    settings = get_settings()
    port = args.port or settings.web_port
    host = settings.web_host

    print(f"Starting server at http://{host}:{port}")
    uvicorn.run(app, host=host, port=port)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tagcat",
        description="Tag catalog: semantic tag inference and curation",
    )
    parser.add_argument("--family", default=None, help="Family/account id (default from settings)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # infer
    p_infer = subparsers.add_parser("infer", help="Infer rule tags from text")
    p_infer.add_argument("text", nargs="*")
    p_infer.set_defaults(func=cmd_infer)

    # extract
    p_extract = subparsers.add_parser("extract", help="Extract free-text tags")
    p_extract.add_argument("text")
    p_extract.add_argument("--limit", type=int, default=None)
    p_extract.set_defaults(func=cmd_extract)

    # profile
    p_profile = subparsers.add_parser("profile", help="Derive tags from profile selections")
    p_profile.add_argument("--complaint", action="append", default=[])
    p_profile.add_argument("--condition", action="append", default=[])
    p_profile.add_argument("--tag", action="append", default=[])
    p_profile.add_argument("--owner", default=None, help="Store the result as this user's profile")
    p_profile.set_defaults(func=cmd_profile)

    # tag
    p_tag = subparsers.add_parser("tag", help="Tag and record an entity")
    p_tag.add_argument("name")
    p_tag.add_argument(
        "--kind", default="habit",
        choices=["habit", "reward", "template", "product", "professional"],
    )
    p_tag.add_argument("--owner", default="local")
    p_tag.add_argument("--category", default=None)
    p_tag.add_argument("--description", default=None)
    p_tag.add_argument("--tag", action="append", default=[])
    p_tag.add_argument("--keyword", action="append", default=[])
    p_tag.add_argument("--specialty", action="append", default=[])
    p_tag.add_argument("--delta", type=int, default=SCORE_EVENTS["entity_saved"], help="Score bump for the entity's tags")
    p_tag.add_argument("--id", default=None, help="Stable entity id; keeps edits and renames on one row")
    p_tag.set_defaults(func=cmd_tag)

    # untag
    p_untag = subparsers.add_parser("untag", help="Remove a recorded entity")
    p_untag.add_argument("id")
    p_untag.add_argument("--delta", type=int, default=SCORE_EVENTS["entity_saved"], help="Score taken back from the entity's tags")
    p_untag.set_defaults(func=cmd_untag)

    # catalog
    p_catalog = subparsers.add_parser("catalog", help="Official tag catalog")
    p_catalog.add_argument(
        "action", choices=["list", "promote", "add", "demote", "suggest", "synonym"],
    )
    p_catalog.add_argument("tag", nargs="?", default=None)
    p_catalog.add_argument("--target", default=None, help="Canonical tag for synonym")
    p_catalog.add_argument("--by", default=None, help="Curator identity")
    p_catalog.add_argument("--all", action="store_true", help="Suggest without usage threshold")
    p_catalog.set_defaults(func=cmd_catalog)

    # scores
    p_scores = subparsers.add_parser("scores", help="Tag usage scores")
    p_scores.add_argument("action", choices=["list", "bump", "event", "reset", "import"])
    p_scores.add_argument("--tag", action="append", default=[])
    p_scores.add_argument("--amount", type=int, default=1)
    p_scores.add_argument("--event", default=None, choices=sorted(SCORE_EVENTS))
    p_scores.add_argument("--file", default=None, help="JSON object of tag -> score for import")
    p_scores.set_defaults(func=cmd_scores)

    # serve
    p_serve = subparsers.add_parser("serve", help="Start web server")
    p_serve.add_argument("--port", type=int, default=None)
    p_serve.set_defaults(func=cmd_serve)

    return parser


def main(argv=None):
    setup_logging()
    ensure_dirs()
    init_db()

    from src.tagging.catalog import CatalogStoreError

    args = build_parser().parse_args(argv)
    try:
        args.func(args)
    except CatalogStoreError as e:
        print(f"Catalog store error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()

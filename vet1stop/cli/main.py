"""CLI entry point for the Vet1Stop resource engine."""
import argparse
import json
import logging
import signal
import sys
import threading

from vet1stop.app.config import get_settings
from vet1stop.app.logging import setup_logging
from vet1stop.app.paths import ensure_dirs
from vet1stop.errors import InvalidFilterError, NotFoundError, RepositoryError
from vet1stop.storage.dao import SqliteResourceStore

logger = logging.getLogger("vet1stop.cli")


def _open_store() -> SqliteResourceStore:
    return SqliteResourceStore(get_settings().db_path).init()


def _print_resource(res, indent: str = "  ") -> None:
    flag = " *" if res.featured else ""
    print(f"{indent}[{res.category}] {res.title}{flag}")
    print(f"{indent}     id={res.id}  tags={','.join(res.tags)}")
    if res.url:
        print(f"{indent}     {res.url}")


def cmd_serve(args):
    """Start the web server."""
    import uvicorn
    from vet1stop.web.server import create_app

    settings = get_settings()
    port = args.port or settings.web_port
    host = settings.web_host

    print(f"Starting server at http://{host}:{port}")
    uvicorn.run(create_app(settings), host=host, port=port)


def cmd_resources(args):
    """List resources matching filter options."""
    from vet1stop.search.filters import ResourceFilter
    from vet1stop.search.service import ResourceQueryService

    params = {
        "category": args.category,
        "subcategory": args.subcategory,
        "source": args.source,
        "featured": args.featured,
        "isPremiumContent": args.premium,
        "tags": args.tags,
        "q": args.q,
        "limit": args.limit,
    }
    options = ResourceFilter.from_query_params({k: v for k, v in params.items() if v})
    service = ResourceQueryService(_open_store().catalog())
    results = service.get_resources(options)
    if not results:
        print("No resources found.")
        return
    for res in results:
        _print_resource(res)


def cmd_show(args):
    """Show one resource, optionally with related resources."""
    from vet1stop.search.service import ResourceQueryService

    service = ResourceQueryService(_open_store().catalog())
    res = service.get_resource_by_id(args.id)
    print(json.dumps(res.to_document(), indent=2, ensure_ascii=False))
    if args.related:
        related = service.get_related_resources(args.id, limit=args.limit)
        print(f"\nRelated ({len(related)}):")
        for r in related:
            _print_resource(r)


def cmd_featured(args):
    """List featured resources, optionally within one category."""
    from vet1stop.search.service import ResourceQueryService

    service = ResourceQueryService(_open_store().catalog())
    results = service.get_featured_resources(args.category, limit=args.limit)
    if not results:
        print("No featured resources.")
        return
    for res in results:
        _print_resource(res)


def cmd_counts(args):
    """Print resource counts per category."""
    from vet1stop.search.service import ResourceQueryService

    counts = ResourceQueryService(_open_store().catalog()).get_resource_counts()
    for category, count in counts.items():
        print(f"  {category}: {count}")


def cmd_categorize(args):
    """Show which category a piece of text falls into."""
    from vet1stop.tagging.classifier import categorize_text, matched_keywords

    print(categorize_text(args.text))
    for category, keywords in matched_keywords(args.text).items():
        print(f"  {category}: {', '.join(keywords)}")


def cmd_reclassify(args):
    """Move undefined resources into their categories."""
    from vet1stop.migrate.reclassify import reclassify_undefined, write_audit_log

    settings = get_settings()
    cancel = threading.Event()

    def _request_stop(signum, frame):
        logger.warning("Interrupt received, stopping after the current resource")
        cancel.set()

    # Ctrl-C stops at the next record boundary instead of mid-move.
    previous = signal.signal(signal.SIGINT, _request_stop)
    try:
        summary = reclassify_undefined(_open_store(), cancel=cancel, dry_run=args.dry_run)
    finally:
        signal.signal(signal.SIGINT, previous)

    print(f"Processed {summary.total} resource(s){' (dry run)' if summary.dry_run else ''}")
    for category, count in sorted(summary.moved.items()):
        print(f"  -> {category}: {count}")
    print(f"  uncategorized: {summary.uncategorized}")
    print(f"  errors: {summary.errors}")
    if summary.cancelled:
        print("  run was cancelled before all resources were processed")
    if summary.partial_moves:
        print(f"  partial moves needing reconciliation: {len(summary.partial_moves)}")
    if not args.no_audit:
        path = write_audit_log(summary, settings.audit_dir)
        print(f"Audit log: {path}")


def main(argv=None):
    setup_logging()
    ensure_dirs()

    parser = argparse.ArgumentParser(
        prog="vet1stop",
        description="Vet1Stop veteran resource directory engine",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # serve
    p_serve = subparsers.add_parser("serve", help="Start the JSON API server")
    p_serve.add_argument("--port", type=int, default=None)
    p_serve.set_defaults(func=cmd_serve)

    # resources
    p_res = subparsers.add_parser("resources", help="List resources")
    p_res.add_argument("--category", default=None)
    p_res.add_argument("--subcategory", default=None)
    p_res.add_argument("--source", default=None)
    p_res.add_argument("--featured", default=None, choices=["true", "false"])
    p_res.add_argument("--premium", default=None, choices=["true", "false"])
    p_res.add_argument("--tags", default=None, help="Comma-separated, all must match")
    p_res.add_argument("--q", default=None, help="Free-text search")
    p_res.add_argument("--limit", default=None)
    p_res.set_defaults(func=cmd_resources)

    # show
    p_show = subparsers.add_parser("show", help="Show a resource by id")
    p_show.add_argument("id")
    p_show.add_argument("--related", action="store_true")
    p_show.add_argument("--limit", type=int, default=get_settings().related_limit)
    p_show.set_defaults(func=cmd_show)

    # featured
    p_feat = subparsers.add_parser("featured", help="List featured resources")
    p_feat.add_argument("--category", default=None)
    p_feat.add_argument("--limit", type=int, default=get_settings().related_limit)
    p_feat.set_defaults(func=cmd_featured)

    # counts
    p_counts = subparsers.add_parser("counts", help="Resource counts per category")
    p_counts.set_defaults(func=cmd_counts)

    # categorize
    p_cat = subparsers.add_parser("categorize", help="Categorize a piece of text")
    p_cat.add_argument("text")
    p_cat.set_defaults(func=cmd_categorize)

    # reclassify
    p_recl = subparsers.add_parser("reclassify", help="Move undefined resources into categories")
    p_recl.add_argument("--dry-run", action="store_true", help="Report without moving anything")
    p_recl.add_argument("--no-audit", action="store_true", help="Skip writing the JSON audit log")
    p_recl.set_defaults(func=cmd_reclassify)

    args = parser.parse_args(argv)
    try:
        args.func(args)
    except (InvalidFilterError, NotFoundError) as e:
        print(f"Error: {e}")
        sys.exit(2)
    except RepositoryError as e:
        logger.error("Storage failure: %s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()

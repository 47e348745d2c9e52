# -*- coding: utf-8 -*-
"""
Agent Hub CLI - Manage catalogs and installed artifacts from a shell.

Usage::

    python -m agenthub add https://github.com/org/repo/raw/main/catalog.json
    python -m agenthub search "code review" --type prompt
    python -m agenthub install my-catalog code-review
    python -m agenthub updates

Author
------
Agent Hub contributors

License
-------
MIT License
Copyright (c) 2026 Agent Hub contributors
See LICENSE file for full text.

Created
-------
2026-09-23

Modified
--------
2026-10-11
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from agenthub.catalog.errors import CatalogError
from agenthub.catalog.models import InstallResult, SearchQuery


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="agenthub",
        description="Agent Hub: subscribe to artifact catalogs and install artifacts.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Settings file (default: ~/.agenthub/agenthub_config.json).",
    )
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="Catalog database (default: $AGENTHUB_CATALOG_PATH or ~/.agenthub/catalog.db).",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("add", help="Subscribe to a catalog manifest URL.")
    p.add_argument("url")
    p.add_argument("--id", dest="repo_id", default=None, help="Catalog id (derived from the URL by default).")
    p.add_argument("--token", default=None, help="Bearer token, kept in the secret store.")

    p = sub.add_parser("remove", help="Unsubscribe from a catalog.")
    p.add_argument("catalog_id")

    p = sub.add_parser("refresh", help="Refresh one catalog, or all enabled catalogs.")
    p.add_argument("catalog_id", nargs="?", default=None)

    sub.add_parser("list", help="List subscribed catalogs and their health.")

    p = sub.add_parser("search", help="Search artifacts.")
    p.add_argument("text", nargs="?", default=None)
    p.add_argument("--type", action="append", default=[], dest="types")
    p.add_argument("--category", action="append", default=[], dest="categories")
    p.add_argument("--difficulty", action="append", default=[], dest="difficulties")
    p.add_argument("--catalog", action="append", default=[], dest="catalogs")
    p.add_argument("--language", action="append", default=[], dest="languages")
    p.add_argument("--framework", action="append", default=[], dest="frameworks")
    p.add_argument("--tag", action="append", default=[], dest="tags")
    p.add_argument("--sort", default="relevance",
                   choices=["relevance", "rating", "downloads", "updated"])
    p.add_argument("--page", type=int, default=1)
    p.add_argument("--page-size", type=int, default=20)

    for name, helptext in (
        ("install", "Install an artifact."),
        ("uninstall", "Remove an installed artifact."),
        ("update", "Update an installed artifact to the catalog version."),
    ):
        p = sub.add_parser(name, help=helptext)
        p.add_argument("catalog_id")
        p.add_argument("artifact_id")

    sub.add_parser("installed", help="List installed artifacts and available updates.")
    sub.add_parser("updates", help="Check installed artifacts for updates.")

    p = sub.add_parser("open-link", help="Handle an installArtifact deep link.")
    p.add_argument("uri")
    p.add_argument("--yes", "-y", action="store_true",
                   help="Add the linked catalog without asking.")
    return parser


def _report(result: InstallResult, verb: str, what: str) -> int:
    if result.success:
        print(f"{verb} {what} -> {result.installed_path}")
        return 0
    print(f"Error: {result.error}", file=sys.stderr)
    return 1


def _confirm(url: str) -> bool:
    answer = input(
        f"The catalog is not subscribed. Add it now?\n  URL: {url}\n[y/N] "
    )
    return answer.strip().lower() in ("y", "yes")


def _run(hub, args: argparse.Namespace) -> int:
    if args.command == "add":
        catalog = hub.add_repository(args.url, repo_id=args.repo_id, token=args.token)
        if catalog.is_healthy:
            print(f"Added catalog: {catalog.id}")
            return 0
        print(f"Added catalog {catalog.id}, but sync failed: {catalog.error}", file=sys.stderr)
        return 1

    if args.command == "remove":
        hub.remove_repository(args.catalog_id)
        print(f"Removed repository: {args.catalog_id}")
        return 0

    if args.command == "refresh":
        catalogs = [hub.refresh(args.catalog_id)] if args.catalog_id else hub.refresh_all()
        failed = 0
        for catalog in catalogs:
            if catalog.is_healthy:
                print(f"{catalog.id}: ok")
            else:
                failed += 1
                print(f"{catalog.id}: error: {catalog.error}", file=sys.stderr)
        return 1 if failed else 0

    if args.command == "list":
        for catalog in hub.store.list_catalogs():
            synced = catalog.last_fetched.isoformat() if catalog.last_fetched else "never"
            flag = "" if catalog.enabled else " (disabled)"
            print(f"{catalog.id}{flag}  {catalog.status}  last synced: {synced}  {catalog.url}")
            if catalog.error:
                print(f"    error: {catalog.error}")
        return 0

    if args.command == "search":
        result = hub.search.search(SearchQuery(
            query=args.text,
            type=args.types,
            category=args.categories,
            difficulty=args.difficulties,
            catalog=args.catalogs,
            language=args.languages,
            framework=args.frameworks,
            tags=args.tags,
            sort_by=args.sort,
            page=args.page,
            page_size=args.page_size,
        ))
        for hit in result.hits:
            a = hit.artifact
            mark = "*" if hit.installed else " "
            print(f"{mark} {a.catalog_id}/{a.id}  [{a.type}]  {a.name}  v{a.version}")
        more = " (more available)" if result.has_more else ""
        print(f"{result.total} result(s), page {result.page}{more}")
        return 0

    if args.command == "install":
        return _report(hub.install(args.catalog_id, args.artifact_id),
                       "Installed", f"{args.catalog_id}/{args.artifact_id}")
    if args.command == "uninstall":
        return _report(hub.uninstall(args.catalog_id, args.artifact_id),
                       "Uninstalled", f"{args.catalog_id}/{args.artifact_id}")
    if args.command == "update":
        return _report(hub.update(args.catalog_id, args.artifact_id),
                       "Updated", f"{args.catalog_id}/{args.artifact_id}")

    if args.command in ("installed", "updates"):
        updates = hub.updates.check_for_updates(hub.config.repositories)
        if args.command == "updates":
            for u in updates:
                i = u.installation
                print(f"{i.catalog_id}/{i.artifact_id}: {i.version} -> {u.latest_version}")
                print(u.changelog or "    (no changelog available)")
            print(f"{len(updates)} update(s) available")
            return 0
        for entry in hub.updates.get_installations_with_updates(updates):
            i = entry.installation
            name = entry.artifact.name if entry.artifact else "(no longer in catalog)"
            newer = f"  -> {entry.new_version}" if entry.update_available else ""
            print(f"{i.catalog_id}/{i.artifact_id}  {name}  v{i.version}{newer}  {i.installed_path}")
        return 0

    if args.command == "open-link":
        from agenthub.catalog.deeplink import handle_install_request, parse_install_link
        request = parse_install_link(args.uri)
        confirm = (lambda url: True) if args.yes else _confirm
        return _report(handle_install_request(request, hub, confirm),
                       "Installed", f"{request.artifact_type} {request.artifact_id}")

    return 1


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    from agenthub.core.hub import AgentHub
    try:
        with AgentHub(config_path=args.config, db_path=args.db) as hub:
            return _run(hub, args)
    except CatalogError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())

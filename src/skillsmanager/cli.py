"""CLI entry point for skillsmanager."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
import uuid
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import NoReturn, cast

from skillsmanager import __version__
from skillsmanager.catalog.library import SkillLibrary, create_library
from skillsmanager.catalog.registry import LOCAL_CATALOG_ID
from skillsmanager.config import Config, load_config
from skillsmanager.server.routes_skills import parse_source, skill_to_json
from skillsmanager.skills.models import Provider, Skill

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _load(args: argparse.Namespace) -> Config:
    config = load_config(cast(Path | None, args.config))
    if cast(bool, args.verbose):
        config.log_level = "DEBUG"
    logging.basicConfig(level=config.log_level, format=LOG_FORMAT)
    return config


class CommandError(Exception):
    """Raised by a command to print an error and exit non-zero."""


def _fail(message: str) -> NoReturn:
    raise CommandError(message)


def _print_skill_row(skill: Skill) -> None:
    providers = ",".join(p.value for p in Provider if p in skill.installed_providers)
    badge = f" [{providers}]" if providers else ""
    print(f"  {skill.unique_key:<32} {skill.name}{badge}")


async def _open_library(config: Config, *, remotes: bool = True) -> SkillLibrary:
    library = create_library(config)
    if remotes:
        await library.load_all()
    else:
        await library.local_catalog.load_skills()
    return library


def _find(library: SkillLibrary, key: str, catalog: str | None) -> Skill:
    try:
        catalog_id = uuid.UUID(catalog) if catalog else None
    except ValueError:
        _fail(f"invalid catalog id: {catalog}")
    skill = library.find(key, catalog_id)
    if skill is None:
        _fail(f"skill not found: {key}")
    return skill


# -- skill commands ------------------------------------------------------------


async def _list(args: argparse.Namespace, config: Config) -> None:
    try:
        source = parse_source(cast(str | None, args.source))
    except ValueError:
        _fail(f"invalid source: {args.source}")
    library = await _open_library(config, remotes=source != LOCAL_CATALOG_ID)
    try:
        skills = library.filter_skills(source, cast(str, args.query))
        if args.json:
            print(json.dumps([skill_to_json(s) for s in skills], indent=2))
            return
        for catalog in library.catalogs:
            if catalog.error_message:
                print(f"Warning: {catalog.name}: {catalog.error_message}", file=sys.stderr)
        print(f"Skills ({len(skills)}):")
        for skill in skills:
            _print_skill_row(skill)
    finally:
        await library.aclose()


async def _show(args: argparse.Namespace, config: Config) -> None:
    library = await _open_library(config)
    try:
        skill = _find(library, cast(str, args.key), cast(str | None, args.catalog))
        if args.json:
            print(json.dumps(skill_to_json(skill), indent=2))
            return
        installed = ", ".join(p.display_name for p in Provider if p in skill.installed_providers)
        print(f"Name:        {skill.display_name}")
        print(f"Key:         {skill.unique_key}")
        print(f"Version:     {skill.version}")
        print(f"Source:      {skill.source.display_name}")
        print(f"Installed:   {installed or 'no'}")
        if skill.description:
            print(f"Description: {skill.description}")
        if skill.has_references or skill.has_scripts:
            print(f"Files:       {skill.reference_count} references, {skill.script_count} scripts")
        print()
        print(skill.content.strip())
    finally:
        await library.aclose()


async def _install(args: argparse.Namespace, config: Config) -> None:
    library = await _open_library(config)
    try:
        skill = _find(library, cast(str, args.key), cast(str | None, args.catalog))
        providers = {Provider(p) for p in cast(list[str], args.provider)}
        result = await library.install(providers, skill=skill)
        if result is None:
            _fail(library.error_message or "Installation failed")
        installed = ", ".join(p.value for p in Provider if p in result.installed_providers)
        print(f"Installed {skill.unique_key} ({installed})")
    finally:
        await library.aclose()


async def _uninstall(args: argparse.Namespace, config: Config) -> None:
    library = await _open_library(config, remotes=False)
    try:
        skill = _find(library, cast(str, args.key), None)
        result = await library.uninstall(Provider(cast(str, args.provider)), skill=skill)
        if result is None:
            _fail(library.error_message or "Uninstall failed")
        print(f"Uninstalled {skill.unique_key} from {args.provider}")
    finally:
        await library.aclose()


# -- catalog commands ----------------------------------------------------------


async def _catalog(args: argparse.Namespace, config: Config) -> None:
    action = cast(str | None, args.catalog_action)
    library = await _open_library(config, remotes=False)
    try:
        if action == "list":
            for catalog in library.remote_catalogs:
                marker = " (official)" if catalog.is_official else ""
                print(f"  {catalog.id}  {catalog.name}{marker}  {catalog.url}")
        elif action == "add":
            catalog = await library.add_catalog(cast(str, args.url), cast(str | None, args.name))
            if catalog is None:
                _fail(library.error_message or "Cannot add catalog")
            print(f"Added {catalog.name} ({catalog.skill_count} skills)")
            if catalog.error_message:
                print(f"Warning: {catalog.error_message}", file=sys.stderr)
        elif action == "remove":
            try:
                catalog_id = uuid.UUID(cast(str, args.catalog_id))
            except ValueError:
                _fail(f"invalid catalog id: {args.catalog_id}")
            if not library.remove_catalog(catalog_id):
                _fail(f"catalog not found: {args.catalog_id}")
            print(f"Removed {catalog_id}")
        else:
            _fail("catalog action required: list, add, remove")
    finally:
        await library.aclose()


def _cmd_serve(args: argparse.Namespace) -> None:
    from skillsmanager.server.runner import run_server

    config = _load(args)
    if args.port is not None:
        config.port = cast(int, args.port)
    run_server(config, host=cast(str, args.host))


def _async_command(
    handler: Callable[[argparse.Namespace, Config], Awaitable[None]],
) -> Callable[[argparse.Namespace], None]:
    def run(args: argparse.Namespace) -> None:
        config = _load(args)
        try:
            asyncio.run(handler(args, config))
        except CommandError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)

    return run


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="skillsmanager",
        description="Browse, install and edit skills for Codex and Claude Code",
    )
    _ = parser.add_argument(
        "-V", "--version", action="version", version=f"skillsmanager {__version__}"
    )
    _ = parser.add_argument("--config", type=Path, default=None, help="Path to config JSON")
    _ = parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command")
    providers = [p.value for p in Provider]

    # list subcommand
    list_p = subparsers.add_parser("list", help="List skills")
    _ = list_p.add_argument(
        "--source", default="local", help="local (default), all, or a catalog id"
    )
    _ = list_p.add_argument("-q", "--query", default="", help="Filter by name or description")
    _ = list_p.add_argument("--json", action="store_true", help="Print JSON")

    # show subcommand
    show_p = subparsers.add_parser("show", help="Show one skill")
    _ = show_p.add_argument("key", help="Skill unique key (path/id)")
    _ = show_p.add_argument("--catalog", default=None, help="Catalog id to look in")
    _ = show_p.add_argument("--json", action="store_true", help="Print JSON")

    # install subcommand
    install_p = subparsers.add_parser("install", help="Install a skill")
    _ = install_p.add_argument("key", help="Skill unique key (path/id)")
    _ = install_p.add_argument(
        "-p", "--provider", action="append", choices=providers, required=True
    )
    _ = install_p.add_argument("--catalog", default=None, help="Catalog id to install from")

    # uninstall subcommand
    uninstall_p = subparsers.add_parser("uninstall", help="Uninstall a skill from one provider")
    _ = uninstall_p.add_argument("key", help="Skill unique key (path/id)")
    _ = uninstall_p.add_argument("-p", "--provider", choices=providers, required=True)

    # catalog subcommand
    catalog_p = subparsers.add_parser("catalog", help="Manage remote catalogs")
    catalog_sub = catalog_p.add_subparsers(dest="catalog_action")
    _ = catalog_sub.add_parser("list", help="List catalogs")
    add_p = catalog_sub.add_parser("add", help="Add a GitHub repo or file:// directory")
    _ = add_p.add_argument("url")
    _ = add_p.add_argument("--name", default=None)
    rm_p = catalog_sub.add_parser("remove", help="Remove a catalog")
    _ = rm_p.add_argument("catalog_id")

    # serve subcommand
    serve_p = subparsers.add_parser("serve", help="Start the HTTP API server")
    _ = serve_p.add_argument("--port", type=int, default=None)
    _ = serve_p.add_argument("--host", default="127.0.0.1")

    args = parser.parse_args(sys.argv[1:])
    dispatch = {
        "list": _async_command(_list),
        "show": _async_command(_show),
        "install": _async_command(_install),
        "uninstall": _async_command(_uninstall),
        "catalog": _async_command(_catalog),
        "serve": _cmd_serve,
    }
    command = cast(str | None, args.command)
    handler = dispatch.get(command) if command is not None else None
    if handler:
        handler(args)
    else:
        parser.print_help()
        sys.exit(1)

"""
repo_digest: flatten a directory into a single document for an LLM.

Overview
--------
The tool walks a directory, applies `.gitignore`, artifact and user filters,
and writes one document (Markdown or XML) holding a summary, the directory
tree and the content of every eligible file. Binary files, files over
`--max-size` and SVGs (unless `--svg`) are listed in the tree without content.
The run aborts when the estimated tokens exceed `--max-tokens`, unless
`--allow-large` is given.

Usage
-----
Run `python -m repo_digest.cli --help` for full options. Common examples:
    - Markdown on stdout:
        repo-digest --path .
    - XML into a file, TypeScript sources only:
        repo-digest --path . --extension ts --output digest.xml
    - Files mentioning a term, with debug logs in a file:
        repo-digest --find "auth,login" --debug --log-file digest.log
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import ValidationError

from repo_digest import __version__
from repo_digest.exceptions import NoFilesFoundError, RootPathError, TokenLimitExceededError
from repo_digest.ingest import ingest_directory_sync
from repo_digest.logging import logger, setup_logging
from repo_digest.output_construction import build_markdown, build_xml
from repo_digest.settings import Settings

if TYPE_CHECKING:
    from collections.abc import Sequence


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="repo-digest",
        description="Flatten a directory into a Markdown or XML digest for LLM consumption.",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("--path", type=Path, default=Path(), help="Directory to analyze.")
    p.add_argument("--output", type=Path, default=None, help="Output file (stdout when omitted).")
    p.add_argument(
        "--format",
        type=str,
        choices=["md", "xml"],
        default="",
        help="Force format (inferred from --output suffix otherwise).",
    )
    p.add_argument("--name", type=str, default="", help="Document title.")
    p.add_argument("--log-file", type=str, default=None, help="Log file path.")

    p.add_argument(
        "--include",
        "-i",
        action="append",
        default=[],
        help="Include glob, file or directory (repeatable).",
    )
    p.add_argument(
        "--exclude",
        "-e",
        action="append",
        default=[],
        help="Exclude glob (repeatable).",
    )
    p.add_argument(
        "--extension",
        "-x",
        action="append",
        default=[],
        help="Only keep files with this extension (repeatable, comma list).",
    )
    p.add_argument(
        "--find",
        "-f",
        action="append",
        default=[],
        help="Keep files containing ANY of these terms (comma list).",
    )
    p.add_argument(
        "--require",
        "-r",
        action="append",
        default=[],
        help="Keep files containing ALL of these terms (comma list).",
    )

    p.add_argument(
        "--no-ignore",
        dest="ignore",
        action="store_false",
        help="Do not respect .gitignore files nor the artifact lists.",
    )
    p.add_argument(
        "--no-skip-artifacts",
        dest="skip_artifacts",
        action="store_false",
        help="Keep lockfiles, bundles and binary assets.",
    )
    p.add_argument("--svg", action="store_true", help="Include SVG file contents.")
    p.add_argument("--max-size", type=int, default=None, help="Max file size in bytes.")
    p.add_argument("--max-tokens", type=int, default=None, help="Estimated token ceiling.")
    p.add_argument("--allow-large", action="store_true", help="Ignore the token ceiling.")
    p.add_argument("--debug", action="store_true", help="Enable debug logging.")
    return p


def parse_args(argv: Sequence[str] | None = None) -> Settings:
    args = build_parser().parse_args(argv)
    return Settings(**{k: v for k, v in vars(args).items() if v is not None})


def output_format(settings: Settings) -> str:
    if settings.format:
        return settings.format
    if settings.output is not None and settings.output.suffix.lower() == ".xml":
        return "xml"
    return "md"


def main(argv: Sequence[str] | None = None) -> int:
    try:
        settings = parse_args(argv)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first["loc"])
        print(f"Error: invalid value for {field}: {first['msg']}", file=sys.stderr)
        return 1
    if settings.log_file or settings.debug:
        setup_logging(settings.log_file or None, debug=settings.debug, force=True)

    try:
        digest = ingest_directory_sync(settings.path, settings)
    except TokenLimitExceededError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        print(f"Estimated tokens: {e.estimated} (limit {e.limit}).", file=sys.stderr)
        print("Use the --allow-large flag to process this project anyway.", file=sys.stderr)
        return 1
    except (RootPathError, NoFilesFoundError) as e:
        print(f"Error: {e.message} ({e.path})", file=sys.stderr)
        return 1

    fmt = output_format(settings)
    render = build_xml if fmt == "xml" else build_markdown
    content = render(digest, name=settings.name)

    if settings.output is None:
        sys.stdout.write(content)
    else:
        settings.output.write_text(content, encoding="utf-8")
    logger.info(
        "digest_written",
        output=str(settings.output or "<stdout>"),
        format=fmt,
        files=len(digest.files),
        tokens=digest.estimated_tokens,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

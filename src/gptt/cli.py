"""
CLI entrypoint for gptt package.
"""
import argparse
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from colorama import Fore

from . import __version__
from .config import Config
from .core import (
    GpttError,
    IgnoreFilter,
    emit_prompt,
    generate_prompt,
    log,
    resolve_files,
    write_prompt,
)


def _split_patterns(value: str) -> List[str]:
    return [v for v in value.split(",") if v]


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="gptt",
        description="CLI tool for generating GPT prompts for coding projects.",
    )
    p.add_argument("--out", help="Output file for the generated prompt (default: stdout)")
    p.add_argument(
        "--in",
        dest="inputs",
        action="extend",
        type=_split_patterns,
        metavar="PATTERNS",
        help="Comma-separated glob patterns of files always included",
    )
    p.add_argument(
        "--optional",
        action="extend",
        type=_split_patterns,
        metavar="PATTERNS",
        help="Comma-separated glob patterns of files included when the prompt "
        "mentions their name (default: ./**)",
    )
    p.add_argument(
        "--exclude",
        action="extend",
        type=_split_patterns,
        metavar="PATTERNS",
        help="Comma-separated glob patterns of files to leave out",
    )
    p.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("prompt", nargs="*", help="The user request")
    return p


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    return _build_parser().parse_args(argv)


def run(ns: argparse.Namespace, root: Path) -> None:
    """Resolve, assemble and emit the prompt for one invocation."""
    config = Config.load(
        root,
        cli_out=ns.out,
        cli_in=ns.inputs,
        cli_optional=ns.optional,
        cli_exclude=ns.exclude,
    )
    log(f"Effective config: {config}", ns.verbose)

    ignore = IgnoreFilter.from_root(root)
    input_files = resolve_files(config.inputs, config.exclude, ignore, root, ns.verbose)
    optional_files = resolve_files(config.optional, config.exclude, ignore, root, ns.verbose)
    user_prompt = " ".join(ns.prompt)

    document, included = generate_prompt(
        user_prompt, input_files, optional_files, root, verbose=ns.verbose
    )

    if config.out:
        write_prompt(document, root / config.out, included, user_prompt)
        log(f"Done. {len(included)} files included.", ns.verbose, Fore.GREEN)
    else:
        emit_prompt(document)


def main(argv: Optional[Sequence[str]] = None) -> None:
    try:
        ns = _parse_args(argv)
        run(ns, Path.cwd())
    except GpttError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nCancelled.", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Error: Unexpected error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()

"""
Core logic for gptt package.
"""

from __future__ import annotations

import glob
import os
import sys
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from pathlib import Path, PurePath
from typing import Callable, Iterable, Iterator, List, Optional, Sequence, TextIO, Tuple, TypeVar

import pathspec
from colorama import Fore, Style, just_fix_windows_console

just_fix_windows_console()

T = TypeVar("T")
R = TypeVar("R")

# Exceptions
class GpttError(Exception): ...
class ConfigReadError(GpttError): ...
class ResolveError(GpttError): ...
class FileReadError(GpttError): ...
class OutputError(GpttError): ...

GITIGNORE_NAME = ".gitignore"


# Console helpers
def _paint(msg: str, color: Optional[str], stream: TextIO) -> str:
    if color and stream.isatty():
        return color + msg + Style.RESET_ALL
    return msg


def log(msg: str, verbose: bool, color: Optional[str] = None) -> None:
    """Print a ``[gptt]`` diagnostic to stderr when *verbose* is on."""
    if not verbose:
        return
    print(_paint(f"[gptt] {msg}", color, sys.stderr), file=sys.stderr)


# Ordered file set
class FileSet:
    """Insertion-ordered set of normalised relative paths."""

    def __init__(self, paths: Iterable[str] = ()) -> None:
        self._items: dict[str, None] = {}
        self.update(paths)

    def add(self, path: str) -> None:
        self._items.setdefault(normalize_path(path), None)

    def update(self, paths: Iterable[str]) -> None:
        for p in paths:
            self.add(p)

    def discard(self, path: str) -> None:
        self._items.pop(normalize_path(path), None)

    def __contains__(self, path: object) -> bool:
        return isinstance(path, str) and normalize_path(path) in self._items

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"FileSet({list(self._items)!r})"


def normalize_path(path: str) -> str:
    """``./src\\a.ts`` -> ``src/a.ts``"""
    return PurePath(os.path.normpath(path)).as_posix()


def _fan_out(fn: Callable[[T], R], items: Sequence[T]) -> List[R]:
    # map() yields in submission order regardless of completion order.
    if not items:
        return []
    with ThreadPoolExecutor() as executor:
        return list(executor.map(fn, items))


# Ignore-file utilities
def load_gitignore(root: Path) -> "pathspec.PathSpec":
    gitignore_path = root / GITIGNORE_NAME
    if not gitignore_path.exists():
        return pathspec.PathSpec.from_lines("gitwildmatch", [])
    try:
        with gitignore_path.open("r", encoding="utf-8") as fh:
            return pathspec.PathSpec.from_lines("gitwildmatch", fh)
    except (OSError, UnicodeDecodeError) as e:
        raise FileReadError(f"Could not read '{gitignore_path}': {e}") from e


class IgnoreFilter:
    """Drops paths matched by a compiled gitignore ruleset."""

    def __init__(self, spec: Optional["pathspec.PathSpec"] = None) -> None:
        if spec is None:
            spec = pathspec.PathSpec.from_lines("gitwildmatch", [])
        self.spec = spec

    @classmethod
    def from_root(cls, root: Path) -> "IgnoreFilter":
        return cls(load_gitignore(root))

    def ignores(self, path: str) -> bool:
        return self.spec.match_file(normalize_path(path))

    def filter(self, paths: Iterable[str]) -> FileSet:
        return FileSet(p for p in paths if not self.ignores(p))


# File resolution
def _split_top_level(body: str) -> List[str]:
    parts, depth, current = [], 0, ""
    for ch in body:
        if ch == "," and depth == 0:
            parts.append(current)
            current = ""
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
        current += ch
    parts.append(current)
    return parts


def expand_braces(pattern: str) -> List[str]:
    """``src/*.{ts,tsx}`` -> ``["src/*.ts", "src/*.tsx"]``

    Groups nest.  A group without a top-level comma is kept literally.
    """
    depth = 0
    start = 0
    for i, ch in enumerate(pattern):
        if ch == "{":
            if depth == 0:
                start = i
            depth += 1
        elif ch == "}" and depth:
            depth -= 1
            if depth == 0:
                options = _split_top_level(pattern[start + 1 : i])
                if len(options) > 1:
                    head, tail = pattern[:start], pattern[i + 1 :]
                    return [p for opt in options for p in expand_braces(head + opt + tail)]
    return [pattern]


def expand_pattern(pattern: str, root: Path) -> List[str]:
    """Expand one glob *pattern* under *root* into regular files only.

    ``**`` is recursive and ``{a,b}`` alternatives are expanded.  Hidden
    entries are not matched unless the pattern names them explicitly, as
    with a shell glob.
    """
    files = set()
    for alternative in expand_braces(pattern):
        try:
            matches = glob.glob(alternative, root_dir=root, recursive=True)
        except OSError as e:
            raise ResolveError(f"Could not expand pattern '{pattern}': {e}") from e
        files.update(normalize_path(m) for m in matches if (root / m).is_file())
    return sorted(files)


def resolve_files(
    patterns: Sequence[str],
    exclude_patterns: Sequence[str],
    ignore: IgnoreFilter,
    root: Path,
    verbose: bool = False,
) -> FileSet:
    """Expand *patterns*, subtract *exclude_patterns*, then apply *ignore*."""
    expand = partial(expand_pattern, root=root)

    found = FileSet()
    for matches in _fan_out(expand, list(patterns)):
        found.update(matches)

    matched = len(found)
    excluded = FileSet()
    for matches in _fan_out(expand, list(exclude_patterns)):
        excluded.update(matches)

    for p in excluded:
        found.discard(p)
    kept = ignore.filter(found)
    log(
        f"{matched} files matched {list(patterns)}, "
        f"{len(kept)} kept after exclude/.gitignore filtering.",
        verbose,
    )
    return kept


# Prompt rendering
def render_block(path: str, content: str) -> str:
    """Wrap *content* of *path* in a ``### File:`` section.

    Markdown keeps its own formatting; everything else goes in a fence.
    """
    marker = f"\n[End of {path}]\n"
    body = content.strip()
    if PurePath(path).suffix == ".md":
        return f"\n\n### File: {path}\n\n{body}\n\n{marker}"
    return f"\n\n### File: {path}\n```\n{body}\n```\n\n{marker}"


def read_block(path: str, root: Path, verbose: bool = False) -> str:
    """Render the block for *path*, or ``""`` if it vanished since resolution."""
    try:
        text = (root / path).read_text(encoding="utf-8", errors="replace")
    except FileNotFoundError:
        log(f"! {path} disappeared before it could be read", verbose, Fore.YELLOW)
        return ""
    except OSError as e:
        raise FileReadError(f"Could not read '{path}': {e}") from e
    return render_block(path, text)


def mentions(user_prompt: str, path: str) -> bool:
    """True if the base filename of *path* appears verbatim in *user_prompt*."""
    return PurePath(path).name in user_prompt


def generate_prompt(
    user_prompt: str,
    inputs: Iterable[str],
    optional: Iterable[str],
    root: Path,
    verbose: bool = False,
) -> Tuple[str, List[str]]:
    """Assemble the prompt document.

    Returns the document and the paths that ended up in it, inputs first.
    """
    input_set = FileSet(inputs)
    picked = [p for p in FileSet(optional) if p not in input_set and mentions(user_prompt, p)]
    for p in picked:
        log(f"+ {p} (mentioned in prompt)", verbose)

    # Vanished files render as "" and are left out of the included list.
    paths = [*input_set, *picked]
    blocks = _fan_out(partial(read_block, root=root, verbose=verbose), paths)
    included = [p for p, block in zip(paths, blocks) if block]

    parts = [f"## User Request:\n{user_prompt}\n\n---\n", *blocks]
    parts.append(f"\n\n---\n## Instructions:\n{user_prompt}")
    return "".join(parts), included


# Output
def write_prompt(
    document: str,
    out_path: Path,
    included: Sequence[str],
    user_prompt: str,
) -> None:
    """Write *document* to *out_path* and report what went into it."""
    try:
        if not out_path.parent.exists():
            out_path.parent.mkdir(parents=True, exist_ok=True)
        with out_path.open("w", encoding="utf-8", newline="\n") as out_fh:
            out_fh.write(document)
    except (OSError, PermissionError) as e:
        raise OutputError(f"Could not write to output file '{out_path}': {e}") from e

    print(_paint(f"Prompt written to {out_path}", Fore.GREEN, sys.stdout))
    print("Included files:")
    for p in included:
        print(f"  - {p}")
    print(f"User prompt: {user_prompt}")


def emit_prompt(document: str) -> None:
    print(document)

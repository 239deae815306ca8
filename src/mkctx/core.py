"""
Core logic for mkctx package.
"""

from __future__ import annotations

import fnmatch
import math
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

from colorama import Fore, Style

# Exceptions
class MkctxError(Exception): ...
class ConfigFileError(MkctxError): ...
class OutputError(MkctxError): ...

# Defaults & helpers
OUTPUT_FILENAME = "context.md"

# Version-control metadata and OS desktop/thumbnail caches, always skipped.
ALWAYS_IGNORED: Sequence[str] = (".git", ".DS_Store", "Thumbs.db")

_SEPARATORS = {"/", os.sep}


@dataclass(frozen=True)
class Config:
    src: str = "."
    ignore: str = ""
    output: str = "."
    first_comment: str = ""
    last_comment: str = ""


def warn(msg: str) -> None:
    print(Fore.YELLOW + f"[mkctx] ! {msg}" + Style.RESET_ALL)


def _normalize(path: str) -> str:
    return path.replace("\\", "/")


# Ignore patterns
class PatternKind(Enum):
    WILDCARD = "wildcard"
    DIRECTORY = "directory"
    SUBSTRING = "substring"


@dataclass(frozen=True)
class IgnorePattern:
    """One entry of the comma-separated ``ignore`` setting.

    * ``WILDCARD``: contains ``*``; shell-glob match on the base name.
    * ``DIRECTORY``: ends with a separator; the stripped name must occur
      somewhere in the path.
    * ``SUBSTRING``: the raw text must occur somewhere in the path.
    """

    raw: str
    kind: PatternKind
    needle: str

    @classmethod
    def parse(cls, raw: str) -> "IgnorePattern":
        if not raw:
            raise ValueError("empty ignore pattern")
        if "*" in raw:
            # "[^...]" negates a set in shell globs; fnmatch spells it "[!...]"
            return cls(raw, PatternKind.WILDCARD, raw.replace("[^", "[!"))
        if raw[-1] in _SEPARATORS:
            return cls(raw, PatternKind.DIRECTORY, _normalize(raw[:-1]))
        return cls(raw, PatternKind.SUBSTRING, _normalize(raw))

    def matches(self, path: str, is_dir: bool = False) -> bool:
        path = _normalize(path)
        if self.kind is PatternKind.WILDCARD:
            # base names only: a directory called "x.log" is not a log file
            if is_dir:
                return False
            return fnmatch.fnmatchcase(path.rsplit("/", 1)[-1], self.needle)
        return self.needle in path


def parse_ignore_spec(spec: str) -> List[IgnorePattern]:
    """Split *spec* on commas into patterns, dropping blank entries."""
    if not spec:
        return []
    return [
        IgnorePattern.parse(item.strip())
        for item in spec.split(",")
        if item.strip()
    ]


def should_ignore(
    path: str,
    patterns: Iterable[IgnorePattern],
    is_dir: bool = False,
) -> bool:
    normalized = _normalize(path)
    if any(marker in normalized for marker in ALWAYS_IGNORED):
        return True
    return any(p.matches(normalized, is_dir=is_dir) for p in patterns)


# File discovery
def _join(parent: str, name: str) -> str:
    return str(Path(parent) / name)


def _list_dir(directory: str, verbose: bool = False) -> List[os.DirEntry]:
    try:
        with os.scandir(directory) as it:
            return sorted(it, key=lambda e: e.name)
    except OSError as e:
        if verbose:
            warn(f"Could not list {directory}: {e}")
        return []


def discover(
    root: str,
    patterns: Sequence[IgnorePattern],
    verbose: bool = False,
) -> List[str]:
    """Return every non-ignored regular file under *root*, in name order.

    Ignored directories are pruned. Directories that cannot be listed are
    skipped, so a missing root simply yields nothing.
    """
    root_path = Path(root)
    if root_path.is_file():
        if should_ignore(str(root_path), patterns):
            return []
        return [str(root_path)]

    found: List[str] = []
    # (path, is_dir) nodes still to visit, next one last
    pending: List[Tuple[str, bool]] = [(str(root_path), True)]

    while pending:
        path, is_dir = pending.pop()
        if not is_dir:
            found.append(path)
            continue

        children: List[Tuple[str, bool]] = []
        for entry in _list_dir(path, verbose=verbose):
            child = _join(path, entry.name)
            try:
                child_is_dir = entry.is_dir(follow_symlinks=False)
                is_file = not child_is_dir and entry.is_file()
            except OSError:
                continue
            if not (child_is_dir or is_file):
                continue
            if should_ignore(child, patterns, is_dir=child_is_dir):
                continue
            children.append((child, child_is_dir))
        pending.extend(reversed(children))

    return found


# Content assembly
@dataclass(frozen=True)
class Section:
    path: str
    language: str
    content: str


def language_tag(path: str) -> str:
    """``a.go`` -> ``go``; ``README`` -> ``text``; ``.gitignore`` -> ``gitignore``."""
    name = _normalize(path).rsplit("/", 1)[-1]
    _, dot, ext = name.rpartition(".")
    return ext if dot and ext else "text"


def _read_entry(path: str, verbose: bool = False) -> Optional[str]:
    try:
        raw = Path(path).read_bytes()
    except OSError as e:
        if verbose:
            warn(f"Could not read {path}: {e}")
        return None
    # surrogateescape keeps undecodable bytes intact on the way back out
    return raw.decode("utf-8", errors="surrogateescape")


def read_sections(entries: Iterable[str], verbose: bool = False) -> Iterator[Section]:
    """Yield a :class:`Section` per readable entry; unreadable ones are dropped."""
    for path in entries:
        content = _read_entry(path, verbose=verbose)
        if content is None:
            continue
        yield Section(path, language_tag(path), content)


def render(sections: Iterable[Section], config: Config) -> str:
    parts: List[str] = []
    if config.first_comment:
        parts.append(config.first_comment + "\n\n")
    for s in sections:
        parts.append(f"```{s.language}\n// {s.path}\n{s.content}\n```\n\n")
    if config.last_comment:
        parts.append(config.last_comment)
    return "".join(parts)


def assemble(entries: Iterable[str], config: Config, verbose: bool = False) -> str:
    return render(read_sections(entries, verbose=verbose), config)


# Run summary helpers
def format_size(num_bytes: int) -> str:
    if num_bytes <= 0:
        return "0 B"
    size = float(num_bytes)
    for unit in ("B", "KB", "MB"):
        if size < 1024:
            return f"{size:.2f} {unit}"
        size /= 1024
    return f"{size:.2f} GB"


def estimate_tokens(text: str) -> int:
    return math.ceil(len(text) / 4)


# Main writer
@dataclass(frozen=True)
class RunResult:
    output_path: Path
    files: int = 0
    size: int = 0
    tokens: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def write_artifact(content: str, out_path: Path) -> None:
    out_dir = out_path.parent
    try:
        out_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise OutputError(f"Could not create output directory '{out_dir}': {e}")

    try:
        with out_path.open(
            "w", encoding="utf-8", errors="surrogateescape", newline="\n"
        ) as out_fh:
            out_fh.write(content)
    except OSError as e:
        raise OutputError(f"Could not write to output file '{out_path}': {e}")


def _same_file(path: str, target: Path) -> bool:
    try:
        return Path(path).resolve() == target
    except (OSError, RuntimeError):
        return False


def run(config: Config, verbose: bool = False) -> RunResult:
    """Run discover -> assemble -> write for *config*."""
    out_path = Path(config.output or ".") / OUTPUT_FILENAME
    patterns = parse_ignore_spec(config.ignore)

    if verbose:
        print(f"[mkctx] Scanning {config.src or '.'} …")

    entries = discover(config.src or ".", patterns, verbose=verbose)
    # never embed a previous run's artifact
    target = out_path.resolve()
    entries = [p for p in entries if not _same_file(p, target)]

    sections = list(read_sections(entries, verbose=verbose))
    content = render(sections, config)

    if verbose:
        print(f"[mkctx] {len(entries)} files found, {len(sections)} readable.")

    try:
        write_artifact(content, out_path)
    except OutputError as e:
        return RunResult(output_path=out_path, error=str(e))

    return RunResult(
        output_path=out_path,
        files=len(sections),
        size=len(content.encode("utf-8", errors="surrogateescape")),
        tokens=estimate_tokens(content),
    )

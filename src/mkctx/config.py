"""
Configuration file handling: ``mkctx.config.json`` and the ``.gitignore`` entry.
"""

from __future__ import annotations

import json
from dataclasses import asdict, fields, replace
from pathlib import Path
from typing import Dict, List

import pathspec  # type: ignore

from .core import Config, ConfigFileError, warn

CONFIG_FILE = "mkctx.config.json"
OUTPUT_DIR = "mkctx"
GITIGNORE_ENTRY = f"{OUTPUT_DIR}/"
GITIGNORE_BLOCK = f"# mkctx - generated context\n{GITIGNORE_ENTRY}\n"

# Values written by ``mkctx config``; richer than the in-process defaults.
SCAFFOLD_CONFIG = Config(
    src="./src",
    ignore="*.log, temp/, node_modules/, .git/",
    output="./mkctx",
    first_comment="/* Project Context */",
    last_comment="/* End of Context */",
)


def read_config_file(config_path: Path) -> Dict[str, str]:
    """Return the string fields of the JSON object stored at *config_path*."""
    if not config_path.is_file():
        raise ConfigFileError(f"Config file '{config_path}' does not exist")
    try:
        with config_path.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
    except (OSError, UnicodeDecodeError, ValueError) as e:
        raise ConfigFileError(f"Could not read config file '{config_path}': {e}")
    if not isinstance(data, dict):
        raise ConfigFileError(f"'{config_path}' does not contain a JSON object")

    known = {f.name for f in fields(Config)}
    return {k: v for k, v in data.items() if k in known and isinstance(v, str)}


def load_config(config_path: Path = Path(CONFIG_FILE), verbose: bool = False) -> Config:
    """Load *config_path*, falling back to defaults for anything missing."""
    try:
        values = read_config_file(config_path)
    except ConfigFileError as e:
        if verbose and config_path.exists():
            warn(f"{e}; using defaults")
        return Config()

    config = Config(**values)
    # empty src/output mean "current directory"
    return replace(config, src=config.src or ".", output=config.output or ".")


# .gitignore handling
def load_gitignore(root: Path) -> "pathspec.PathSpec":
    """Compile the project's ``.gitignore`` into a :class:`pathspec.PathSpec`."""
    gitignore_path = root / ".gitignore"
    if not gitignore_path.exists():
        return pathspec.PathSpec.from_lines("gitwildmatch", [])

    with gitignore_path.open("r", encoding="utf-8") as fh:
        return pathspec.PathSpec.from_lines("gitwildmatch", fh)


def _already_ignored(content: str, root: Path) -> bool:
    if GITIGNORE_ENTRY in content:
        return True
    return load_gitignore(root).match_file(f"{OUTPUT_DIR}/context.md")


def update_gitignore(root: Path = Path("."), verbose: bool = False) -> bool:
    """Append the output directory to ``.gitignore`` unless already covered.

    Returns True when the file was written.
    """
    gitignore_path = root / ".gitignore"
    try:
        if gitignore_path.exists():
            content = gitignore_path.read_text(encoding="utf-8")
            if _already_ignored(content, root):
                return False
            content += "\n" + GITIGNORE_BLOCK
        else:
            content = GITIGNORE_BLOCK
        with gitignore_path.open("w", encoding="utf-8", newline="\n") as fh:
            fh.write(content)
    except (OSError, UnicodeDecodeError) as e:
        if verbose:
            warn(f"Could not update {gitignore_path}: {e}")
        return False
    return True


def create_config(root: Path = Path("."), verbose: bool = False) -> List[str]:
    """Scaffold the config file, the output directory and the .gitignore entry.

    Every step is best-effort; the names of the steps that succeeded are
    returned.
    """
    created: List[str] = []

    config_path = root / CONFIG_FILE
    try:
        with config_path.open("w", encoding="utf-8", newline="\n") as fh:
            json.dump(asdict(SCAFFOLD_CONFIG), fh, indent=2)
        created.append(CONFIG_FILE)
    except OSError as e:
        if verbose:
            warn(f"Could not write {config_path}: {e}")

    try:
        (root / OUTPUT_DIR).mkdir(parents=True, exist_ok=True)
        created.append(f"{OUTPUT_DIR}/ folder")
    except OSError as e:
        if verbose:
            warn(f"Could not create {root / OUTPUT_DIR}: {e}")

    if update_gitignore(root, verbose=verbose):
        created.append("Entry in .gitignore")

    return created

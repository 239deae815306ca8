"""
CLI entrypoint for mkctx package.
"""
import argparse
import sys
from pathlib import Path
from typing import List, Optional

from colorama import Fore, Style, just_fix_windows_console

from . import __version__
from .config import CONFIG_FILE, create_config, load_config
from .core import format_size, run


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="mkctx",
        description="Generate a context.md containing the project's file contents.",
    )
    p.add_argument(
        "command",
        nargs="?",
        help=(
            f"'config' writes {CONFIG_FILE}, the mkctx/ folder and a .gitignore entry; "
            "anything else generates context.md"
        ),
    )
    p.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return p.parse_args(argv)


def _scaffold(verbose: bool) -> None:
    created = create_config(Path("."), verbose=verbose)
    print(Fore.GREEN + "✅ Configuration created:" + Style.RESET_ALL)
    for item in created:
        print(f"   - {item}")


def _generate(verbose: bool) -> None:
    config = load_config(Path(CONFIG_FILE), verbose=verbose)
    result = run(config, verbose=verbose)
    if not result.ok:
        print(
            Fore.RED + f"❌ Error creating file: {result.error}" + Style.RESET_ALL,
            file=sys.stderr,
        )
        return

    print(Fore.GREEN + f"✅ Context generated at: {result.output_path}" + Style.RESET_ALL)
    print(
        f"   {result.files} files, {format_size(result.size)}, "
        f"~{result.tokens:,} tokens"
    )


def main(argv: Optional[List[str]] = None) -> None:
    try:
        ns = _parse_args(argv)
        just_fix_windows_console()
        if ns.command == "config":
            _scaffold(ns.verbose)
        else:
            _generate(ns.verbose)

    except KeyboardInterrupt:
        print("\nCancelled.", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        sys.exit(1)

if __name__ == "__main__":
    main()

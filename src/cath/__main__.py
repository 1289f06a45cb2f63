"""Main entry point for cath."""

import argparse
import logging
from logging.handlers import RotatingFileHandler
import os
import sys
from typing import Sequence, TextIO

from hilite.grammar_registry import GrammarRegistry
from hilite.hilite_exceptions import HiliteError
from hilite.text_lines import lines_with_endings
from hilite.theme_registry import ThemeRegistry

from cath.cath_settings import CathSettings, DEFAULT_SETTINGS_PATH, SettingsError
from cath.line_range import LineRange
from cath.viewer import FileViewer, ViewOptions


def setup_logging(verbose: bool) -> None:
    """
    Configure logging to stderr.

    Warnings go to stderr, or everything when verbose.

    Args:
        verbose: Log debug messages to stderr
    """
    console = logging.StreamHandler(sys.stderr)
    console.setLevel(logging.DEBUG if verbose else logging.WARNING)
    console.setFormatter(logging.Formatter('%(name)s: %(levelname)s: %(message)s'))
    logging.basicConfig(level=logging.DEBUG, handlers=[console], force=True)


def add_log_file(log_file: str) -> None:
    """
    Also write every log message to a rotating log file.

    Args:
        log_file: Path of the log file; missing directories are created
    """
    log_dir = os.path.dirname(log_file)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    # Keep up to 5 log files, max 1MB each
    handler = RotatingFileHandler(
        log_file,
        maxBytes=1024*1024,
        backupCount=4,
        encoding='utf-8'
    )
    handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
    logging.getLogger().addHandler(handler)


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    parser = argparse.ArgumentParser(
        prog="cath",
        description="A simple cat-like utility with syntax highlighting",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s main.py                  # Show a file with highlighting
  %(prog)s -l -s 10 -e 20 main.py   # Show lines 10 to 20 with line numbers
  %(prog)s -L rust notes.txt        # Highlight as Rust
  %(prog)s --list-themes            # Show available themes
        """
    )

    parser.add_argument('file_path', metavar='FILE', nargs='?', help='Input file to read')
    parser.add_argument('--plain', '-p', action='store_true',
                        help='Output without syntax highlighting')
    parser.add_argument('--line-numbers', '-l', action='store_true', default=None,
                        help='Show line numbers')
    parser.add_argument('--start-line', '-s', type=int, help='Start line number')
    parser.add_argument('--end-line', '-e', type=int, help='End line number')
    parser.add_argument('--language', '-L', help='Language name or file extension to highlight as')
    parser.add_argument('--theme', '-t', help='Theme name')
    parser.add_argument('--background', action='store_true', default=None,
                        help="Paint the theme's background colour")
    parser.add_argument('--config', help=f'Settings file path (default {DEFAULT_SETTINGS_PATH})')
    parser.add_argument('--list-languages', action='store_true', help='List available languages and exit')
    parser.add_argument('--list-themes', action='store_true', help='List available themes and exit')
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose output')
    return parser


def list_languages(registry: GrammarRegistry, out: TextIO) -> None:
    """Write one line per grammar: its name and file extensions."""
    for grammar in registry.grammars():
        extensions = ', '.join(sorted(grammar.file_extensions))
        out.write(f"{grammar.name} [{extensions}]\n" if extensions else f"{grammar.name}\n")


def list_themes(registry: ThemeRegistry, out: TextIO) -> None:
    """Write one line per theme name."""
    for name in registry.names():
        out.write(f"{name}\n")


def read_file(file_path: str) -> str:
    """
    Read a file's text.

    Line endings are kept as they are.  Bytes that are not valid UTF-8 are replaced.

    Raises:
        OSError: If the file cannot be read
    """
    with open(file_path, 'r', encoding='utf-8', errors='replace', newline='') as f:
        return f.read()


def main(argv: Sequence[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.file_path and not (args.list_languages or args.list_themes):
        parser.error("the following arguments are required: FILE")

    setup_logging(args.verbose)

    try:
        settings = CathSettings.load(args.config or DEFAULT_SETTINGS_PATH, required=args.config is not None)

    except SettingsError as e:
        print(f"cath: {e}", file=sys.stderr)
        return 1

    if settings.log_file:
        add_log_file(settings.log_file)

    logger = logging.getLogger("cath")

    try:
        grammar_registry = GrammarRegistry.load_defaults(settings.grammar_dirs)
        theme_registry = ThemeRegistry.load_defaults(settings.theme_dirs)

    except HiliteError as e:
        logger.debug("Failed to load definitions: %s", e.error_details)
        print(f"cath: {e}", file=sys.stderr)
        return 1

    if args.list_languages or args.list_themes:
        if args.list_languages:
            list_languages(grammar_registry, sys.stdout)

        if args.list_themes:
            list_themes(theme_registry, sys.stdout)

        return 0

    theme_name = args.theme or settings.theme
    theme = theme_registry.find_by_name(theme_name)
    if theme is None and not args.plain:
        print(
            f"cath: unknown theme '{theme_name}' (available: {', '.join(theme_registry.names())})",
            file=sys.stderr
        )
        return 1

    try:
        text = read_file(args.file_path)

    except OSError as e:
        print(f"cath: {args.file_path}: {e.strerror or e}", file=sys.stderr)
        return 1

    options = ViewOptions(
        plain=args.plain,
        line_numbers=settings.line_numbers if args.line_numbers is None else args.line_numbers,
        background=settings.background if args.background is None else args.background,
        line_range=LineRange.from_options(args.start_line, args.end_line)
    )

    viewer = FileViewer(grammar_registry, options)
    try:
        if args.plain:
            viewer.write_plain(lines_with_endings(text), sys.stdout)

        else:
            assert theme is not None
            viewer.show(text, args.file_path, theme, sys.stdout, args.language)

        sys.stdout.flush()

    except BrokenPipeError:
        # The reader went away (e.g. piped into head); discard anything still buffered
        devnull = os.open(os.devnull, os.O_WRONLY)
        os.dup2(devnull, sys.stdout.fileno())
        return 0

    return 0


if __name__ == "__main__":
    sys.exit(main())

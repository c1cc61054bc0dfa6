#!/usr/bin/env python3
"""
pdfeditor CLI: rotate, delete and reorder PDF pages from the terminal.

Usage:
    pdfeditor INPUT [-o OUTPUT] [edit options]

Edit options are applied in the order they are given. Page numbers are
1-based positions in the page order at the moment the option runs.

Examples:
    # Rotate page 2 twice, delete page 1, move the last page before the second
    pdfeditor input.pdf -o out.pdf --rotate 2 --rotate 2 --delete 1 --reorder 3:2

    # Swap the first page with its right neighbour
    pdfeditor input.pdf -o out.pdf --move 1:+1

    # Show the resulting page list without saving
    pdfeditor input.pdf --reorder 5:1:before --dry-run
"""

import argparse
import logging
import os
import sys
from pathlib import Path

from pdfeditor import setup_i18n
from pdfeditor.editor.page_model import DropSide
from pdfeditor.services.reconstruction import DocumentInfo
from pdfeditor.services.renderer import PageBoxRenderer
from pdfeditor.services.save_target import DirectorySaveTarget, PathSaveTarget
from pdfeditor.session import EditorSession
from pdfeditor.utils.config_manager import ConfigManager
from pdfeditor.utils.exceptions import PdfEditorError
from pdfeditor.utils.i18n import _
from pdfeditor.utils.logger import setup_logging

_EXAMPLES = """\
examples:
  pdfeditor input.pdf -o out.pdf --rotate 2 --rotate 2 --delete 1 --reorder 3:2
  pdfeditor input.pdf -o out.pdf --move 1:+1
  pdfeditor input.pdf --reorder 5:1:before --dry-run
"""

# ---------------------------------------------------------------------------
# Argument parsers (shared)
# ---------------------------------------------------------------------------


def _parse_page_list(text: str) -> list[int]:
    """Parse a page specification string into a sorted list of page numbers.

    Supports: "3", "1-5", "1,3,7", "1-3,7,10-12"

    Args:
        text: Page specification string.

    Returns:
        Sorted list of 1-indexed page numbers.
    """
    pages: set[int] = set()
    for part in text.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            if "-" in part:
                start_s, end_s = part.split("-", 1)
                s, e = int(start_s.strip()), int(end_s.strip())
                pages.update(range(s, e + 1))
            else:
                pages.add(int(part))
        except ValueError:
            raise ValueError(
                f"Invalid page specification '{part}'. "
                "Use numbers and ranges like '1-5' or '1,3,7'."
            ) from None
    return sorted(p for p in pages if p >= 1)


def _parse_move(text: str) -> tuple[int, int]:
    """Parse "POS:DIR" where DIR is -1/+1 (or left/right)."""
    try:
        pos_s, dir_s = text.split(":", 1)
        position = int(pos_s.strip())
    except ValueError:
        raise ValueError(f"Invalid move '{text}'. Use POS:DIR, e.g. '3:-1' or '2:right'.") from None

    direction = {"left": -1, "right": 1, "-1": -1, "+1": 1, "1": 1}.get(dir_s.strip().lower())
    if direction is None:
        raise ValueError(f"Invalid move direction '{dir_s}'. Use -1, +1, left or right.")
    return position, direction


def _parse_reorder(text: str) -> tuple[int, int, DropSide]:
    """Parse "SRC:DST[:before|after]"."""
    parts = [p.strip() for p in text.split(":")]
    if len(parts) not in (2, 3):
        raise ValueError(f"Invalid reorder '{text}'. Use SRC:DST or SRC:DST:before|after.")
    try:
        source, target = int(parts[0]), int(parts[1])
    except ValueError:
        raise ValueError(f"Invalid reorder '{text}'. Page positions must be numbers.") from None

    side = DropSide.AUTO
    if len(parts) == 3:
        try:
            side = DropSide(parts[2].lower())
        except ValueError:
            raise ValueError(f"Invalid drop side '{parts[2]}'. Use before or after.") from None
    return source, target, side


class _EditAction(argparse.Action):
    """Collects edit options into one ordered list of (kind, value) pairs."""

    def __init__(self, option_strings, dest, kind=None, parser_func=None, **kwargs):
        self._kind = kind
        self._parser_func = parser_func
        super().__init__(option_strings, dest, **kwargs)

    def __call__(self, parser, namespace, values, option_string=None):
        try:
            value = self._parser_func(values) if self._parser_func else values
        except ValueError as e:
            parser.error(str(e))
        edits = list(getattr(namespace, self.dest, None) or [])
        edits.append((self._kind, value))
        setattr(namespace, self.dest, edits)


# ---------------------------------------------------------------------------
# Argument parser construction
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    p = argparse.ArgumentParser(
        prog="pdfeditor",
        description=_("Rotate, delete and reorder the pages of a PDF."),
        epilog=_EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    p.add_argument("-v", "--verbose", action="store_true", help=_("Verbose logging (DEBUG)"))
    p.add_argument(
        "--config",
        type=Path,
        default=None,
        metavar="FILE",
        help=_("Settings file (JSON). Default: built-in settings"),
    )
    p.add_argument("input", type=Path, help=_("Input PDF file"))
    p.add_argument(
        "-o",
        "--output",
        type=Path,
        default=None,
        help=_("Output PDF file. Default: next to the input, with the configured prefix."),
    )

    edits = p.add_argument_group(_("Page edits (applied in order)"))
    edits.add_argument(
        "--rotate",
        dest="edits",
        action=_EditAction,
        parser_func=_parse_page_list,
        kind="rotate",
        metavar="PAGES",
        help=_("Rotate pages 90° clockwise (e.g. '2', '1-3,5')"),
    )
    edits.add_argument(
        "--rotate-left",
        dest="edits",
        action=_EditAction,
        parser_func=_parse_page_list,
        kind="rotate-left",
        metavar="PAGES",
        help=_("Rotate pages 90° counter-clockwise"),
    )
    edits.add_argument(
        "--delete",
        dest="edits",
        action=_EditAction,
        parser_func=_parse_page_list,
        kind="delete",
        metavar="PAGES",
        help=_("Toggle deletion of pages"),
    )
    edits.add_argument(
        "--move",
        dest="edits",
        action=_EditAction,
        parser_func=_parse_move,
        kind="move",
        metavar="POS:DIR",
        help=_("Swap a page with its neighbour: POS:DIR (DIR is -1/+1/left/right)"),
    )
    edits.add_argument(
        "--reorder",
        dest="edits",
        action=_EditAction,
        parser_func=_parse_reorder,
        kind="reorder",
        metavar="SRC:DST",
        help=_("Drop page SRC onto page DST: SRC:DST[:before|after]"),
    )

    out = p.add_argument_group(_("Output options"))
    out.add_argument("--author", type=str, default="", help=_("Author stored in the output"))
    out.add_argument("--title", type=str, default="", help=_("Title stored in the output"))
    out.add_argument(
        "--prefix",
        type=str,
        default=None,
        help=_("Filename prefix when no output is given (default: 'edited_')"),
    )
    out.add_argument(
        "--dry-run",
        action="store_true",
        help=_("Print the resulting page list without writing a file"),
    )
    p.set_defaults(edits=[])
    return p


# ---------------------------------------------------------------------------
# Edit application
# ---------------------------------------------------------------------------


def _page_ids(session: EditorSession, positions: list[int], logger: logging.Logger) -> list[int]:
    """Resolve 1-based display positions to page ids."""
    collection = session.collection
    ids = []
    for position in positions:
        page_id = collection.id_at(position - 1) if collection else None
        if page_id is None:
            logger.warning(f"Page {position} does not exist; skipped")
            continue
        ids.append(page_id)
    return ids


def apply_edits(
    session: EditorSession, edits: list[tuple[str, object]], logger: logging.Logger
) -> int:
    """Apply parsed edit options to a loaded session.

    Returns:
        Number of edits that changed the document
    """
    changed = 0
    for kind, value in edits:
        if kind in ("rotate", "rotate-left", "delete"):
            operation = {
                "rotate": session.rotate,
                "rotate-left": session.rotate_left,
                "delete": session.toggle_deleted,
            }[kind]
            for page_id in _page_ids(session, value, logger):
                changed += operation(page_id)
        elif kind == "move":
            position, direction = value
            if session.move(position - 1, direction):
                changed += 1
            else:
                logger.warning(f"Cannot move page {position} by {direction:+d}; skipped")
        elif kind == "reorder":
            source, target, side = value
            ids = _page_ids(session, [source, target], logger)
            if len(ids) == 2 and session.reorder(ids[0], ids[1], side):
                changed += 1
            else:
                logger.debug(f"Reorder {source}:{target} left the order unchanged")
    return changed


def _print_pages(session: EditorSession) -> None:
    for display_index, page in session.list_pages():
        status = _("deleted") if page.deleted else ""
        print(
            f"{display_index + 1:>4}  source page {page.original_index + 1:>4}  "
            f"{page.rotation:>3}°  {status}".rstrip()
        )


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_i18n()
    setup_logging(args.verbose)
    logger = logging.getLogger("pdfeditor.cli")

    if not args.input.exists():
        print(f"Error: {args.input} not found", file=sys.stderr)
        return 1

    config = ConfigManager(str(args.config)) if args.config is not None else None

    if args.output is not None:
        target = PathSaveTarget(str(args.output))
    else:
        folder = config.get("output.destination_folder", "") if config else ""
        target = DirectorySaveTarget(folder or os.path.dirname(os.path.abspath(args.input)))

    session = None
    try:
        session = EditorSession(
            renderer=PageBoxRenderer(),
            save_target=target,
            config=config,
            filename_prefix=args.prefix,
        )
        session.load(str(args.input))
        changed = apply_edits(session, args.edits, logger)
        logger.debug(f"{changed} edit(s) changed the document")

        if args.dry_run:
            _print_pages(session)
            return 0

        info = None
        if args.author or args.title:
            info = DocumentInfo(author=args.author, title=args.title)

        outcome = session.save(info=info)
        if outcome is None or outcome.path is None:
            print(_("Error: the document was not saved"), file=sys.stderr)
            return 1

        print(f"Saved {outcome.page_count} page(s) → {outcome.path}")
        return 0

    except PdfEditorError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        logger.debug(f"Details: {e}")
        return 1
    finally:
        if session is not None:
            session.shutdown()


if __name__ == "__main__":
    sys.exit(main())

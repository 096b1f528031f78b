import argparse
import logging
import signal
import sys

from klip.clipboard import ClipboardError
from klip.config import DB_PATH, IMAGE_DIR, LOG_PATH, PREVIEW_LENGTH
from klip.models import Clip, ClipType
from klip.service import DUPLICATE, QueryService
from klip.storage import ClipStore, StorageError
from klip.utils import ensure_dirs, truncate_text

logger = logging.getLogger("klip")


def format_clip(clip: Clip) -> str:
    """One line of `klip list` output."""
    when = clip.created_at.astimezone().strftime("%Y-%m-%d %H:%M")
    star = "*" if clip.is_favorite else " "
    if clip.clip_type == ClipType.IMAGE:
        preview = "[Image]"
    else:
        preview = truncate_text(clip.content, PREVIEW_LENGTH)
    return f"{clip.id}  {when} {star} {preview}"


def run_app() -> None:
    """Capture clipboard history in the foreground until interrupted."""
    ensure_dirs()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.FileHandler(LOG_PATH),
            logging.StreamHandler(sys.stderr),
        ],
    )

    from klip.clipboard import PasteboardClipboard
    from klip.monitor import ClipboardMonitor

    store = ClipStore(DB_PATH, IMAGE_DIR)
    monitor = ClipboardMonitor(store, PasteboardClipboard(), on_change=lambda: logger.info("clipboard-changed"))
    signal.signal(signal.SIGTERM, lambda _signum, _frame: monitor.stop())

    thread = monitor.start()
    logger.info("Watching clipboard, history in %s", DB_PATH)
    try:
        while thread.is_alive():
            thread.join(0.5)
    except KeyboardInterrupt:
        pass
    finally:
        monitor.stop()
        store.close()


def run_command(args: argparse.Namespace) -> int:
    """Run one history command against the store."""
    with ClipStore(DB_PATH, IMAGE_DIR) as store:
        clipboard = None
        if args.command == "copy":
            from klip.clipboard import PasteboardClipboard

            clipboard = PasteboardClipboard()
        service = QueryService(store, clipboard)

        if args.command == "list":
            for clip in service.get_clips(args.search, args.date):
                print(format_clip(clip))
        elif args.command == "dates":
            for day in service.get_dates_with_clips():
                print(day)
        elif args.command == "add":
            result = service.add_clip(args.text)
            print(result)
            return 1 if result == DUPLICATE else 0
        elif args.command == "edit":
            service.update_clip_content(args.id, args.text)
        elif args.command == "delete":
            service.delete_clip(args.id)
        elif args.command == "favorite":
            state = service.toggle_favorite(args.id)
            print("Favorite" if state else "Not favorite")
        elif args.command == "copy":
            clip = service.get_clip(args.id)
            if clip is None:
                print(f"error: no clip with id {args.id}", file=sys.stderr)
                return 1
            if clip.clip_type == ClipType.IMAGE and clip.image_path:
                service.copy_image_to_clipboard(clip.image_path)
            else:
                service.copy_to_clipboard(clip.content)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="klip",
        description="Klip - searchable clipboard history",
    )
    sub = parser.add_subparsers(dest="command", metavar="command")

    sub.add_parser("run", help="Capture clipboard history (default)")

    list_parser = sub.add_parser("list", help="Show recent clips")
    list_parser.add_argument("-s", "--search", help="Case and accent insensitive text filter")
    list_parser.add_argument("-d", "--date", help="Only clips from this day (YYYY-MM-DD)")

    sub.add_parser("dates", help="List days that have clips")

    add_parser = sub.add_parser("add", help="Save text as a clip")
    add_parser.add_argument("text")

    edit_parser = sub.add_parser("edit", help="Replace the text of a clip")
    edit_parser.add_argument("id")
    edit_parser.add_argument("text")

    for name, help_text in (
        ("delete", "Delete a clip"),
        ("favorite", "Toggle the favorite flag of a clip"),
        ("copy", "Copy a clip back to the clipboard"),
    ):
        id_parser = sub.add_parser(name, help=help_text)
        id_parser.add_argument("id")

    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)

    if args.command in (None, "run"):
        run_app()
        return

    try:
        sys.exit(run_command(args))
    except (StorageError, ClipboardError, ImportError, ValueError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()

"""CLI entry point for KachoriOS."""

from __future__ import annotations

import argparse
import asyncio
import getpass
import json
import logging
import re
import sys

from dotenv import load_dotenv

from .app import KachoriApp
from .camera import CapturedFrame, WebcamCapture
from .config import load_config
from .db.count_log import CountLogEntry, LogStore
from .errors import CredentialRejected
from .modes import Mode
from .pipeline import CaptureStatus

_ADJUST = re.compile(r"^([+-])(\d*)$")

_SHELL_HELP = """\
Commands:
  /assistant            show the assistant (default)
  /counter              show the counter
  /orders, /insights    list what the assistant has logged
  /quit                 leave
Counter mode:
  capture [FILE]        take a photo (or use FILE) and count it
  + / - / +N / -N       correct the pending count
  save [NOTES]          save the pending count
  retry                 discard the pending count
  logs                  show saved counts
  delete ID             delete one saved count
  clear                 delete all saved counts
Assistant mode: anything else is sent to the assistant.
"""


def main(argv: list[str] | None = None) -> None:
    load_dotenv()

    parser = argparse.ArgumentParser(
        prog="kachori",
        description="KachoriOS: count stock with a camera and run the shop assistant",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="Path to a TOML config file",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable info logging"
    )

    sub = parser.add_subparsers(dest="command")

    # unlock
    unlock_parser = sub.add_parser("unlock", help="Save the Gemini API key")
    unlock_parser.add_argument("key", nargs="?", help="API key (prompted if omitted)")

    # cameras
    sub.add_parser("cameras", help="List available cameras")

    # count
    count_parser = sub.add_parser("count", help="Capture, count, verify and save")
    count_parser.add_argument("--image", type=str, help="Use an existing image file")
    count_parser.add_argument(
        "--yes", "-y", action="store_true", help="Save the detected count without review"
    )
    count_parser.add_argument("--notes", type=str, default=None, help="Notes to save")
    count_parser.add_argument("--json", action="store_true", help="Print the entry as JSON")

    # logs
    logs_parser = sub.add_parser("logs", help="Show saved counts")
    logs_parser.add_argument("--json", action="store_true", help="Output JSON")
    logs_parser.add_argument(
        "--images", action="store_true", help="Include image data URIs in JSON"
    )

    # delete
    delete_parser = sub.add_parser("delete", help="Delete one saved count")
    delete_parser.add_argument("id", type=str)

    # clear
    clear_parser = sub.add_parser("clear", help="Delete all saved counts")
    clear_parser.add_argument("--yes", "-y", action="store_true", help="Skip confirmation")

    # shell
    sub.add_parser("shell", help="Interactive counter and assistant")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "cameras":
        _cmd_cameras()
        return

    config = load_config(args.config)
    # An image file stands in for the camera, so don't open the device.
    use_file = getattr(args, "image", None) is not None
    app = KachoriApp(config, camera_factory=(lambda: None) if use_file else None)
    try:
        app.load()

        if args.command == "unlock":
            _cmd_unlock(app, args)
            return

        if app.locked:
            print(
                "KachoriOS is locked. Run 'kachori unlock' with your Gemini API key.",
                file=sys.stderr,
            )
            sys.exit(1)

        match args.command:
            case "count":
                asyncio.run(_cmd_count(app, args))
            case "logs":
                _cmd_logs(app, args)
            case "delete":
                _cmd_delete(app, args.id)
            case "clear":
                _cmd_clear(app, args.yes)
            case "shell":
                asyncio.run(_cmd_shell(app))
    finally:
        app.storage.close()


def _cmd_cameras() -> None:
    cameras = WebcamCapture.list_cameras()
    if not cameras:
        print("No cameras found.")
        return
    print(f"Available cameras: {len(cameras)}")
    for idx in cameras:
        print(f"  camera {idx}")


def _cmd_unlock(app: KachoriApp, args) -> None:
    if not app.locked:
        if app.gate.source == "config":
            print(
                "Unlocked with the key from GEMINI_API_KEY or the config file. "
                "It is not saved; unset it to save a key here."
            )
        else:
            print("Already unlocked.")
        return
    key = args.key or getpass.getpass("Paste API key (starts with AIza...): ")
    try:
        app.unlock(key)
    except CredentialRejected as e:
        print(f"Key rejected: {e}", file=sys.stderr)
        sys.exit(1)
    print("Unlocked. Key saved.")


async def _cmd_count(app: KachoriApp, args) -> None:
    app.set_mode(Mode.COUNTER)
    counter = app.modes.counter

    print("Analyzing...")
    try:
        frame = CapturedFrame.from_file(args.image) if args.image else None
        await counter.capture(frame)
    except (OSError, RuntimeError) as e:
        print(f"Capture error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        app.set_mode(Mode.ASSISTANT)

    pipeline = app.pipeline
    if pipeline.status is CaptureStatus.ERROR:
        print(f"SYSTEM ERROR: {pipeline.error_message}", file=sys.stderr)
        sys.exit(1)

    if args.yes:
        entry = app.verification.commit(notes=args.notes)
    else:
        entry = await _verify_interactively(app, args.notes)

    if entry is None:
        print("Discarded.")
    elif args.json:
        print(json.dumps(_entry_json(entry, images=False), ensure_ascii=False, indent=2))
    else:
        print(f"Saved {entry.count} ({entry.id})")


async def _verify_interactively(app: KachoriApp, notes: str | None) -> CountLogEntry | None:
    verification = app.verification
    while verification.pending is not None:
        print(f"AI DETECTED: {verification.pending.count}")
        try:
            answer = (await asyncio.to_thread(input, "[+/-] adjust, [s]ave, [r]etry > ")).strip()
        except EOFError:
            verification.discard()
            return None

        m = _ADJUST.match(answer)
        if m:
            step = int(m.group(2) or 1)
            verification.adjust(step if m.group(1) == "+" else -step)
        elif answer.lower() in ("s", "save"):
            return verification.commit(notes=notes)
        elif answer.lower() in ("r", "retry"):
            verification.discard()
            return None
    return None


def _cmd_logs(app: KachoriApp, args) -> None:
    entries = app.log_store.entries
    if args.json:
        data = [_entry_json(e, images=args.images) for e in entries]
        print(json.dumps(data, ensure_ascii=False, indent=2))
        return
    _print_logs(app.log_store)


def _print_logs(log_store: LogStore) -> None:
    if not log_store:
        print("No counts saved yet.")
        return
    print(f"{len(log_store)} saved count(s), total {log_store.total_count()}:")
    for e in log_store:
        notes = f"  {e.notes}" if e.notes else ""
        print(f"  {e.timestamp[:19]}  {e.count:>5}  {e.id}{notes}")


def _cmd_delete(app: KachoriApp, entry_id: str) -> None:
    if app.log_store.delete(entry_id):
        print(f"Deleted {entry_id}")
    else:
        print(f"No entry with id {entry_id}", file=sys.stderr)


def _cmd_clear(app: KachoriApp, assume_yes: bool) -> None:
    def confirm() -> bool:
        if assume_yes:
            return True
        answer = input("Are you sure you want to clear all history? [y/N] ")
        return answer.strip().lower() in ("y", "yes")

    if app.log_store.clear(confirm):
        print("History cleared.")
    else:
        print("Nothing deleted.")


def _entry_json(entry: CountLogEntry, images: bool) -> dict:
    d = entry.to_dict()
    if not images:
        d.pop("imageUrl", None)
    return d


async def _cmd_shell(app: KachoriApp) -> None:
    try:
        await app.start()
    except (ImportError, ValueError) as e:
        print(f"Assistant could not start: {e}", file=sys.stderr)
        sys.exit(1)

    print(_SHELL_HELP)
    try:
        while True:
            mode = app.modes.mode
            try:
                line = (await asyncio.to_thread(input, f"[{mode.value}] > ")).strip()
            except EOFError:
                break
            if not line:
                continue

            match line.split(maxsplit=1)[0]:
                case "/quit" | "/exit":
                    break
                case "/help":
                    print(_SHELL_HELP)
                case "/counter":
                    app.set_mode(Mode.COUNTER)
                case "/assistant":
                    app.set_mode(Mode.ASSISTANT)
                case "/orders":
                    _print_orders(app)
                case "/insights":
                    _print_insights(app)
                case _ if mode is Mode.COUNTER:
                    await _counter_command(app, line)
                case _:
                    try:
                        reply = await app.modes.assistant.send(line)
                    except Exception as e:
                        print(f"Assistant error: {e}", file=sys.stderr)
                        continue
                    if reply:
                        print(reply)
    finally:
        await app.close()


async def _counter_command(app: KachoriApp, line: str) -> None:
    command, _, rest = line.partition(" ")
    rest = rest.strip()
    verification = app.verification

    m = _ADJUST.match(command)
    if m:
        step = int(m.group(2) or 1)
        count = verification.adjust(step if m.group(1) == "+" else -step)
        print("Nothing to adjust." if count is None else f"Count: {count}")
        return

    match command:
        case "capture":
            counter = app.modes.counter
            if counter.busy:
                print("Still analyzing, please wait.")
                return
            try:
                frame = CapturedFrame.from_file(rest) if rest else None
                await counter.capture(frame)
            except (OSError, RuntimeError) as e:
                print(f"Capture error: {e}", file=sys.stderr)
                return
            pipeline = app.pipeline
            if pipeline.status is CaptureStatus.ERROR:
                print(f"SYSTEM ERROR: {pipeline.error_message}", file=sys.stderr)
            elif pipeline.pending is not None:
                print(f"AI DETECTED: {pipeline.pending.count}  (+/-, save, retry)")
        case "save":
            entry = verification.commit(notes=rest or None)
            print("Nothing to save." if entry is None else f"Saved {entry.count} ({entry.id})")
        case "retry":
            verification.discard()
            print("Discarded.")
        case "logs":
            _print_logs(app.log_store)
        case "delete":
            _cmd_delete(app, rest)
        case "clear":
            confirm = await asyncio.to_thread(
                input, "Are you sure you want to clear all history? [y/N] "
            )
            cleared = app.log_store.clear(lambda: confirm.strip().lower() in ("y", "yes"))
            print("History cleared." if cleared else "Nothing deleted.")
        case _:
            print("Unknown command. Type /help.")


def _print_orders(app: KachoriApp) -> None:
    orders = app.aggregator.recent_orders
    if not orders:
        print("No orders yet.")
        return
    for order in orders:
        items = ", ".join(f"{i.quantity}x {i.name}" for i in order.items)
        total = f"  Rs {order.total_amount:g}" if order.total_amount is not None else ""
        print(f"  {order.timestamp[11:19]}  [{order.status}] {items}{total}")


def _print_insights(app: KachoriApp) -> None:
    insights = app.aggregator.recent_insights
    if not insights:
        print("No insights yet.")
        return
    for insight in insights:
        severity = f" ({insight.severity})" if insight.severity else ""
        print(f"  {insight.timestamp[11:19]}  [{insight.category}]{severity} {insight.content}")

"""CLI entry point."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from typing import Optional

from .auth import StaticAuth, TokenAuth
from .capture import CaptureCoordinator
from .config import Config, load_config, save_config
from .extractor import RemoteExtractor
from .logging_utils import setup_logging
from .models import EntityKind
from .notifier import ERROR, Notification, Notifier
from .recorder import SoundDeviceInput, list_input_devices
from .remote import RemoteClient
from .renderer import render_insights
from .signals import RefreshSignal
from .store import RestStore
from .sync import InsightSynchronizer
from .transcriber import build_transcriber

DEFAULT_CONFIG = "dayscribe_config.yml"


def _print_notification(note: Notification) -> None:
    stream = sys.stderr if note.level == ERROR else sys.stdout
    print(f"[{note.level}] {note.message}", file=stream)


def _load(path: str) -> Config:
    if os.path.exists(path):
        return load_config(path)
    return Config()


def _open_client(cfg: Config) -> Optional[RemoteClient]:
    if not cfg.store.url:
        return None
    return RemoteClient.from_config(cfg.store)


def _build_coordinator(
    cfg: Config,
    client: Optional[RemoteClient],
    notifier: Notifier,
    signal: RefreshSignal,
) -> CaptureCoordinator:
    audio_input = SoundDeviceInput(
        sample_rate_hz=cfg.audio.sample_rate_hz,
        channels=cfg.audio.channels,
        device_name=cfg.audio.device_name,
    )
    if client is None:
        extractor = None
        auth = StaticAuth(None)
    else:
        extractor = RemoteExtractor(client, function_name=cfg.functions.process_journal)
        auth = TokenAuth(client)
    return CaptureCoordinator(
        audio_input=audio_input,
        transcriber=build_transcriber(cfg, client),
        extractor=extractor,
        auth=auth,
        signal=signal,
        notifier=notifier,
        max_recording_seconds=cfg.audio.max_recording_seconds,
    )


async def _record(cfg: Config, args, notifier: Notifier) -> int:
    client = _open_client(cfg)
    if client is None and (args.submit or cfg.transcription.backend == "remote"):
        print("Set store.url in the config to reach the backend.", file=sys.stderr)
        return 1
    try:
        coordinator = _build_coordinator(cfg, client, notifier, RefreshSignal())
        if not await coordinator.start_capture():
            return 1
        try:
            if args.duration:
                print(f"Recording for {args.duration}s...")
                await asyncio.sleep(args.duration)
            else:
                await asyncio.to_thread(input, "Recording... press Enter to stop. ")
            ok = await coordinator.stop_capture()
        finally:
            coordinator.close()
        if not ok:
            return 1
        print(coordinator.text)
        if args.submit and not await coordinator.submit():
            return 1
        return 0
    finally:
        if client is not None:
            await client.close()


async def _journal(cfg: Config, text: str, notifier: Notifier) -> int:
    client = _open_client(cfg)
    if client is None:
        print("Set store.url in the config to reach the backend.", file=sys.stderr)
        return 1
    async with client:
        coordinator = _build_coordinator(cfg, client, notifier, RefreshSignal())
        coordinator.text = text
        return 0 if await coordinator.submit() else 1


async def _insights(cfg: Config, args, notifier: Notifier) -> int:
    client = _open_client(cfg)
    if client is None:
        print("Set store.url in the config to reach the backend.", file=sys.stderr)
        return 1
    async with client:
        auth = TokenAuth(client)
        sync = InsightSynchronizer(RestStore(client), auth, notifier=notifier)
        if await auth.get_current_user() is None:
            print("Not signed in; set store.access_token in the config.", file=sys.stderr)
            return 1
        await sync.load()

        ok = True
        if args.command == "toggle":
            try:
                ok = await sync.toggle_task(args.task_id)
            except KeyError as exc:
                print(exc.args[0], file=sys.stderr)
                return 1
        elif args.command == "edit":
            try:
                sync.begin_edit(EntityKind.parse(args.kind), args.record_id)
            except (KeyError, ValueError) as exc:
                print(exc.args[0], file=sys.stderr)
                return 1
            sync.set_edit_buffer(args.text)
            ok = await sync.save_edit()
        elif args.command == "delete":
            try:
                kind = EntityKind.parse(args.kind)
            except ValueError as exc:
                print(exc.args[0], file=sys.stderr)
                return 1
            ok = await sync.delete(kind, args.record_id)

        print(render_insights(sync.tasks, sync.events, sync.notes, sync.health, sync.cursor))
        return 0 if ok else 1


def main(argv: Optional[list] = None) -> int:
    parser = argparse.ArgumentParser(prog="dayscribe")
    parser.add_argument("--config", default=DEFAULT_CONFIG, help="Config file.")
    parser.add_argument("--verbose", action="store_true", help="Debug logging.")
    sub = parser.add_subparsers(dest="command")

    devices_cmd = sub.add_parser("devices")
    devices_cmd.add_argument("--match", help="Filter device names by substring.")
    devices_cmd.add_argument(
        "--detail",
        action="store_true",
        help="Show detailed device channel info.",
    )

    record_cmd = sub.add_parser("record")
    record_cmd.add_argument(
        "--duration", type=int, help="Seconds. Omit to stop with Enter."
    )
    record_cmd.add_argument(
        "--submit", action="store_true", help="Process the transcript as a journal entry."
    )

    journal_cmd = sub.add_parser("journal")
    journal_cmd.add_argument("text", nargs="?", help="Journal text.")
    journal_cmd.add_argument("--file", help="Read the journal text from a file.")

    sub.add_parser("insights")

    toggle_cmd = sub.add_parser("toggle")
    toggle_cmd.add_argument("task_id", help="Task id.")

    edit_cmd = sub.add_parser("edit")
    edit_cmd.add_argument("kind", help="tasks, calendar_events, notes or health_mentions.")
    edit_cmd.add_argument("record_id", help="Record id.")
    edit_cmd.add_argument("text", help="New title or content.")

    delete_cmd = sub.add_parser("delete")
    delete_cmd.add_argument("kind", help="tasks, calendar_events, notes or health_mentions.")
    delete_cmd.add_argument("record_id", help="Record id.")

    config_cmd = sub.add_parser("config")
    config_cmd.add_argument("--init", action="store_true", help="Write a default config.")
    config_cmd.add_argument("--force", action="store_true", help="Overwrite an existing file.")

    args = parser.parse_args(argv)

    if args.command == "config":
        if args.init:
            if os.path.exists(args.config) and not args.force:
                print(f"{args.config} exists; use --force to overwrite.")
                return 1
            save_config(args.config, Config())
            print(f"Wrote {args.config}")
            return 0
        cfg = _load(args.config)
        print(f"Config: {args.config}")
        print(f"Backend: {cfg.store.url or '(not set)'}")
        print(f"Transcription: {cfg.transcription.backend}")
        print(f"Signed in: {'yes' if cfg.store.access_token else 'no'}")
        return 0

    if args.command == "devices":
        devices = list_input_devices()
        if args.match:
            devices = [
                d for d in devices if args.match.lower() in d.get("name", "").lower()
            ]
        for device in devices:
            name = device.get("name", "Unknown")
            index = device.get("index", "?")
            channels = device.get("max_input_channels", 0)
            line = f"[{index}] {name} (inputs: {channels})"
            if args.detail:
                extra = []
                if "default_samplerate" in device:
                    extra.append(f"rate={device.get('default_samplerate')}")
                if "hostapi" in device:
                    extra.append(f"hostapi={device.get('hostapi')}")
                if extra:
                    line = f"{line} [{', '.join(extra)}]"
            print(line)
        return 0

    if args.command is None:
        parser.print_help()
        return 0

    cfg = _load(args.config)
    setup_logging(
        cfg.log_dir,
        logging.DEBUG if args.verbose else logging.INFO,
        console=args.verbose,
    )
    notifier = Notifier(listener=_print_notification)

    if args.command == "record":
        return asyncio.run(_record(cfg, args, notifier))

    if args.command == "journal":
        text = args.text or ""
        if args.file:
            with open(args.file, "r", encoding="utf-8") as handle:
                text = handle.read()
        return asyncio.run(_journal(cfg, text, notifier))

    if args.command in ("insights", "toggle", "edit", "delete"):
        return asyncio.run(_insights(cfg, args, notifier))

    parser.print_help()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

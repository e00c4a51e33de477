from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path

from captionflow.config import Settings
from captionflow.factory import create_tracker
from captionflow.models.utterance import ActiveUtterance, CaptionSnapshot, FinalizedUtterance
from captionflow.utils.logging_setup import setup_logging


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Replay recorded caption snapshots through CaptionFlow.")
    parser.add_argument(
        "--input",
        required=True,
        help='JSONL file, one {"speaker_name", "text", "avatar_ref"?, "delay_s"?} object per line',
    )
    parser.add_argument("--delay-s", type=float, default=0.5, help="Pause between snapshots")
    parser.add_argument(
        "--finalize-timeout-s",
        type=float,
        default=None,
        help="Override speaker inactivity timeout",
    )
    parser.add_argument("--input-language", default=None, help="Caption language")
    parser.add_argument("--output-language", default=None, help="Translation language")
    return parser.parse_args()


def _load_snapshots(path: Path) -> list[tuple[CaptionSnapshot, float | None]]:
    out: list[tuple[CaptionSnapshot, float | None]] = []
    for lineno, line in enumerate(path.read_text(encoding="utf-8").splitlines(), start=1):
        if not line.strip():
            continue
        try:
            item = json.loads(line)
        except json.JSONDecodeError as exc:
            raise SystemExit(f"{path}:{lineno}: invalid JSON: {exc}") from exc
        snapshot = CaptionSnapshot(
            speaker_name=str(item.get("speaker_name") or ""),
            text=str(item.get("text") or ""),
            avatar_ref=item.get("avatar_ref"),
        )
        delay = item.get("delay_s")
        out.append((snapshot, float(delay) if delay is not None else None))
    return out


def _print_snapshot(
    active: dict[str, ActiveUtterance],
    history: dict[str, list[FinalizedUtterance]],
) -> None:
    closed = sum(1 for items in history.values() for item in items if not item.is_open)
    parts = [f"{sid}: {u.translated_text[:60]!r}" for sid, u in active.items()]
    print(f"active={len(active)} closed={closed} " + " | ".join(parts))


async def _run() -> int:
    args = _parse_args()
    input_path = Path(args.input)
    if not input_path.exists():
        raise SystemExit(f"Input not found: {input_path}")

    settings = Settings()
    if args.finalize_timeout_s is not None:
        settings.segmentation.finalize_timeout_s = float(args.finalize_timeout_s)
    if args.input_language:
        settings.translation.input_language = str(args.input_language)
    if args.output_language:
        settings.translation.output_language = str(args.output_language)
    setup_logging(settings)

    snapshots = _load_snapshots(input_path)
    tracker = create_tracker(settings, display=_print_snapshot)
    try:
        for snapshot, delay_s in snapshots:
            tracker.handle_snapshot(snapshot)
            await asyncio.sleep(args.delay_s if delay_s is None else delay_s)

        # Let every open utterance reach its finalize timer.
        await asyncio.sleep(float(settings.segmentation.finalize_timeout_s) + 0.5)
        await tracker.drain()

        for speaker_id, records in tracker.history.snapshot().items():
            for record in reversed(records):
                print(f"[{speaker_id}] {record.source_text}")
                print(f"[{speaker_id}] -> {record.translated_text}")
        for speaker_id, utterance in tracker.active_utterances().items():
            print(f"[{speaker_id}] (active) {utterance.source_text} -> {utterance.translated_text}")
    finally:
        await tracker.aclose()
        await tracker.pipeline.provider.close()
    return 0


def main() -> None:
    raise SystemExit(asyncio.run(_run()))


if __name__ == "__main__":
    main()

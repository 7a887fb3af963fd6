#!/usr/bin/env python3
"""
Fingerspell - ASL fingerspelling recognizer
Command-line entry point.

Hand detection lives outside this package; the CLI works on landmark
frames recorded to a JSON Lines file, one frame per line:

    null                                   no hand this tick
    [[x, y, z], ... 21 points]             hand frame
    {"t": 0.033, "landmarks": [...]}       hand frame (or null) with a time

Usage:
    fingerspell replay frames.jsonl              # Print the spelled text
    fingerspell train A frames.jsonl             # Add every frame as an A sample
    fingerspell status                           # Show trained letters
    fingerspell clear                            # Delete all training samples
    fingerspell --data-dir /tmp/fs status        # Use another sample store
"""

import sys
import json
import argparse
import logging

from fingerspell import __version__
from fingerspell.core.events import EventBus, Events
from fingerspell.core.pipeline import FingerspellPipeline
from fingerspell.utils.config import Config
from fingerspell.utils.logger import setup_logging

logger = logging.getLogger(__name__)

DEFAULT_FPS = 30.0


def read_frames(path, fps: float = DEFAULT_FPS):
    """Yield (timestamp, frame) pairs from a JSON Lines frames file.

    Lines without a ``t`` field are spaced at 1/fps seconds. Blank lines
    are skipped.

    Raises:
        ValueError: On a line that is not valid JSON or has a bad timestamp.
    """
    step = 1.0 / fps if fps > 0 else 0.0
    index = 0
    with open(path, "r") as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                record = json.loads(line)
            except ValueError as e:
                raise ValueError("%s:%d: invalid JSON (%s)" % (path, line_no, e))

            if isinstance(record, dict):
                try:
                    timestamp = float(record.get("t", index * step))
                except (TypeError, ValueError):
                    raise ValueError("%s:%d: bad timestamp %r" % (path, line_no, record.get("t")))
                frame = record.get("landmarks")
            else:
                timestamp = index * step
                frame = record
            index += 1
            yield timestamp, frame


def build_pipeline(config: Config) -> FingerspellPipeline:
    return FingerspellPipeline.from_config(config, event_bus=EventBus())


def cmd_replay(pipeline: FingerspellPipeline, args) -> int:
    bus = EventBus()
    bus.subscribe(Events.LETTER_EMITTED,
                  lambda letter, text, confidence: logger.info(
                      "Emitted %s (%.2f) -> %s", letter, confidence, text))

    pipeline.start_session()
    ticks = 0
    for timestamp, frame in read_frames(args.frames, fps=args.fps):
        pipeline.process_tick(frame, now=timestamp)
        ticks += 1
    text = pipeline.stop_session()

    logger.info("Replayed %d frames, backend: %s", ticks, pipeline.stats["backend"])
    print(text)
    return 0


def cmd_train(pipeline: FingerspellPipeline, args) -> int:
    added = rejected = 0
    for _, frame in read_frames(args.frames):
        if frame is None:
            continue
        if pipeline.add_training_sample(args.letter, frame):
            added += 1
        else:
            rejected += 1

    if added == 0 and rejected == 0:
        logger.warning("No hand frames in %s", args.frames)
    logger.info("Added %d samples for %s (%d rejected)", added, args.letter.upper(), rejected)
    print(pipeline.training_status())
    return 0 if pipeline.store.last_error is None else 1


def cmd_status(pipeline: FingerspellPipeline, args) -> int:
    print(pipeline.training_status())
    return 0


def cmd_clear(pipeline: FingerspellPipeline, args) -> int:
    pipeline.clear_samples()
    print(pipeline.training_status())
    return 0 if pipeline.store.last_error is None else 1


COMMANDS = {
    "replay": cmd_replay,
    "train": cmd_train,
    "status": cmd_status,
    "clear": cmd_clear,
}


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="fingerspell",
        description="ASL fingerspelling recognizer over hand-landmark frames",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "--config", type=str, default=None,
        help="Path to config.yaml"
    )
    parser.add_argument(
        "--log-level", type=str, default=None,
        help="Override logging level (DEBUG, INFO, WARNING, ...)"
    )
    parser.add_argument(
        "--log-file", type=str, default=None,
        help="Also write logs to this rotating file"
    )
    parser.add_argument(
        "--data-dir", type=str, default=None,
        help="Directory holding the training sample store"
    )

    sub = parser.add_subparsers(dest="command", required=True)

    replay = sub.add_parser("replay", help="Recognize a recorded frames file")
    replay.add_argument("frames", help="JSON Lines frames file")
    replay.add_argument(
        "--fps", type=float, default=DEFAULT_FPS,
        help="Frame rate assumed for lines without a timestamp"
    )

    train = sub.add_parser("train", help="Add every frame in a file as a sample")
    train.add_argument("letter", help="Letter A-Z the frames show")
    train.add_argument("frames", help="JSON Lines frames file")

    sub.add_parser("status", help="Show training status")
    sub.add_parser("clear", help="Delete all training samples")

    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    overrides = {}
    if args.data_dir is not None:
        overrides["storage"] = {"data_dir": args.data_dir}

    config = Config()
    config.load(config_path=args.config, overrides=overrides)

    log_cfg = config.logging
    setup_logging(
        level=args.log_level or log_cfg.get("level", "INFO"),
        log_file=args.log_file or log_cfg.get("file"),
        max_size_mb=log_cfg.get("max_size_mb", 10),
        backup_count=log_cfg.get("backup_count", 3),
    )

    logger.debug("Fingerspell %s: %s", __version__, args.command)

    pipeline = build_pipeline(config)
    try:
        return COMMANDS[args.command](pipeline, args)
    except (OSError, ValueError) as e:
        logger.error("%s failed: %s", args.command, e)
        return 1


if __name__ == "__main__":
    sys.exit(main())

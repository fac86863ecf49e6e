"""
Copyright © 2026 Vladimir Vaulin-Belskii. All rights reserved.

Command-line entrypoint: capability check, load-time estimate and recording.
"""
import argparse
import asyncio
import logging
import sys

from .capabilities import detect_runtime, validate_runtime_support
from .config import settings
from .persistence import render_transcript
from .transcriber import DialogueTranscriber
from .transcription_config import CONNECTION_SPEEDS, WHISPER_MODELS, estimate_model_load_time, get_model_config

logger = logging.getLogger("dialogue_scribe")


def configure_logging() -> None:
    handlers = [logging.StreamHandler()]
    if settings.log_file:
        handlers.append(logging.FileHandler(settings.log_file))

    logging.basicConfig(
        level=logging.WARNING,
        handlers=handlers,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logging.getLogger("dialogue_scribe").setLevel(settings.log_level.upper())


def _check(args: argparse.Namespace) -> int:
    report = validate_runtime_support(detect_runtime(settings.backend_base_url))
    for name, value in vars(report.features).items():
        print(f"{name:20} {'yes' if value else 'no'}")
    for issue in report.issues:
        print(f"- {issue}")
    print("supported" if report.supported else "not supported")
    return 0 if report.supported else 1


def _estimate(args: argparse.Namespace) -> int:
    tier = get_model_config(args.model)
    estimate = estimate_model_load_time(args.model, args.speed)
    print(f"{tier.name} ({tier.size}, speed: {tier.speed}, accuracy: {tier.accuracy})")
    print(f"download ~{estimate['download_seconds']}s, init ~{estimate['initialization_seconds']}s, total ~{estimate['total_seconds']}s")
    return 0


async def _record(args: argparse.Namespace) -> int:
    overrides = {
        "model": args.model,
        "enable_gpu": False if args.no_gpu else None,
        "enable_speaker_detection": False if args.no_speaker_detection else None,
        "medical_terminology_mode": False if args.minimal_keywords else None,
    }
    async with DialogueTranscriber(overrides, case_id=args.case_id) as transcriber:
        if not transcriber.capabilities.supported:
            for issue in transcriber.capabilities.issues:
                print(f"- {issue}", file=sys.stderr)
            return 1
        if not await transcriber.ready():
            print("Speech model could not be loaded, see log for details", file=sys.stderr)
            return 1

        await transcriber.start_transcription()
        if not transcriber.is_currently_transcribing():
            print("Microphone could not be opened, see log for details", file=sys.stderr)
            return 1

        await asyncio.to_thread(input, "Recording... press Enter to stop. ")
        await transcriber.stop_transcription()
        print(render_transcript(transcriber.get_transcription_segments()))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="dialogue-scribe", description="Doctor/patient dialogue transcription")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("check", help="Report whether this host can record and transcribe")

    estimate = sub.add_parser("estimate", help="Estimate model download and load time")
    estimate.add_argument("--model", choices=sorted(WHISPER_MODELS), default=settings.whisper_model)
    estimate.add_argument("--speed", choices=sorted(CONNECTION_SPEEDS), default="medium")

    record = sub.add_parser("record", help="Record a conversation until Enter is pressed")
    record.add_argument("--case-id", default=None)
    record.add_argument("--model", choices=sorted(WHISPER_MODELS), default=None)
    record.add_argument("--no-gpu", action="store_true")
    record.add_argument("--no-speaker-detection", action="store_true")
    record.add_argument("--minimal-keywords", action="store_true")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging()
    if args.command == "check":
        return _check(args)
    if args.command == "estimate":
        return _estimate(args)
    return asyncio.run(_record(args))


if __name__ == "__main__":
    sys.exit(main())

"""Command-line interface for doc2audiobook."""

import argparse
import json
import logging
import shutil
import sys
import tempfile
from pathlib import Path

from doc2audiobook import __version__
from doc2audiobook.config import Settings
from doc2audiobook.errors import AudiobookError
from doc2audiobook.poller import PollOutcome, poll_conversion

LOCAL_USER = "local"

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="doc2audiobook",
        description="Narrate TXT, DOCX and PDF documents into MP3 audiobooks",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    parser.add_argument("input_file", nargs="?", help="Document to narrate (.txt, .docx, .pdf)")
    parser.add_argument(
        "output_file",
        nargs="?",
        help="Output MP3 (default: input name with .mp3)",
    )
    parser.add_argument("-v", "--voice", default="george", help="Stock voice key (default: george)")
    parser.add_argument(
        "-s", "--speed",
        type=float,
        default=1.0,
        help="Reading speed, 0.7-1.2 (default: 1.0)",
    )
    parser.add_argument(
        "--list-voices",
        action="store_true",
        help="List the available stock voices and exit",
    )
    parser.add_argument("-m", "--metadata", default=None, help="Also write ACX metadata JSON here")
    for field in ("title", "author", "narrator", "language", "publisher", "isbn"):
        parser.add_argument(f"--{field}", default=None, help=f"Metadata {field} override")
    parser.add_argument(
        "--exact-durations",
        action="store_true",
        help="Measure chapter durations with ffprobe instead of estimating",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=3600,
        help="Seconds to wait for the conversion (default: 3600)",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")

    args = parser.parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )

    from doc2audiobook.service import AudiobookService

    settings = Settings.from_env()
    settings.exact_durations = settings.exact_durations or args.exact_durations
    work_dir = tempfile.mkdtemp(prefix="d2a_")
    settings.storage_dir = work_dir

    try:
        service = AudiobookService.from_settings(settings)
    except AudiobookError as e:
        logging.error("Error: %s", e)
        shutil.rmtree(work_dir, ignore_errors=True)
        sys.exit(1)

    # a timed-out or interrupted run exits without waiting for the worker
    finished = False
    try:
        if args.list_voices:
            print(f"\nAvailable voices ({service.engine.name}):\n")
            for v in service.voices.stock_voices():
                print(f"  {v.id:<12} {v.name:<10} {v.description}")
            finished = True
            return

        if not args.input_file:
            parser.error("Specify the document to convert")

        input_path = Path(args.input_file)
        if not input_path.exists():
            parser.error(f"File not found: {input_path}")

        output_path = Path(args.output_file) if args.output_file else input_path.with_suffix(".mp3")
        overrides = {f: getattr(args, f) for f in ("title", "author", "narrator", "language", "publisher", "isbn")}

        if not _convert(service, args, input_path, output_path, overrides):
            sys.exit(1)
        finished = True
    except KeyboardInterrupt:
        print("\n\nConversion interrupted.")
        sys.exit(1)
    finally:
        service.close(wait=finished)
        shutil.rmtree(work_dir, ignore_errors=True)

    print(f"\nAudiobook created: {output_path}")


def _convert(service, args, input_path: Path, output_path: Path, overrides: dict) -> bool:
    from doc2audiobook.progress import ProgressReporter

    try:
        doc_path = service.upload_document(LOCAL_USER, input_path.name, input_path.read_bytes())
        accepted = service.start_conversion(
            LOCAL_USER, doc_path, args.voice, filename=input_path.name, speed=args.speed,
        )
    except AudiobookError as e:
        logging.error("Error: %s", e)
        if args.verbose:
            logging.exception("Details:")
        return False

    job_id = accepted["jobId"]
    interval = 1.0
    reporter = ProgressReporter(accepted["totalSegments"])
    try:
        result = poll_conversion(
            lambda: service.get_job_status(LOCAL_USER, job_id),
            interval=interval,
            max_attempts=max(1, int(args.timeout / interval)),
            on_update=reporter.update,
        )
    finally:
        reporter.close()

    if result.outcome != PollOutcome.DONE:
        detail = result.job.error if result.job and result.job.error else ""
        logging.error("%s %s", result.message, detail)
        return False

    output_path.write_bytes(service.get_finished_audio(LOCAL_USER, job_id))

    if args.metadata:
        document = service.export_metadata(LOCAL_USER, job_id, overrides)
        Path(args.metadata).write_text(json.dumps(document, indent=2), encoding="utf-8")
        logger.info("Metadata written: %s", args.metadata)

    return True


if __name__ == "__main__":
    main()

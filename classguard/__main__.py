"""
Classification Guard command-line entry point.
"""
import sys
import json
import signal
import logging
import argparse
import threading
from typing import List, Optional

from .config import Config
from .core import AlreadyClassifiedError, ClassificationLevel, DecisionLevel, StorageError
from .engine import DlpCore
from .utils import normalize_path, setup_logging

logger = logging.getLogger('classguard')

EXIT_OK = 0
EXIT_REFUSED = 1
EXIT_ERROR = 2


def _parse_level(value: str) -> Optional[ClassificationLevel]:
    if value.lower() in ('none', 'unclassified'):
        return None
    level = ClassificationLevel.parse(value)
    if level is None:
        raise argparse.ArgumentTypeError(f"invalid classification level: {value}")
    return level


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='classguard',
        description='Permanent file classification and data loss prevention'
    )
    parser.add_argument('-c', '--config', help='Path to a YAML configuration file')
    parser.add_argument('--log-level', help='Override the configured log level')

    subparsers = parser.add_subparsers(dest='command', required=True)

    classify = subparsers.add_parser('classify', help='Permanently classify a file')
    classify.add_argument('path')
    classify.add_argument('level', type=_parse_level,
                          help=', '.join(level.value for level in ClassificationLevel))

    show = subparsers.add_parser('show', help='Show the classification record of a file')
    show.add_argument('path')

    verify = subparsers.add_parser('verify', help='Verify the integrity of a classification')
    verify.add_argument('path')

    evaluate = subparsers.add_parser('evaluate', help='Evaluate an action against a classification')
    evaluate.add_argument('level', type=_parse_level)
    evaluate.add_argument('action')

    guard = subparsers.add_parser('guard', help='Protect the given open documents until interrupted')
    guard.add_argument('paths', nargs='+')

    return parser


def _run_guard(core: DlpCore, paths: List[str]) -> int:
    stop = threading.Event()

    def handle_signal(signum, frame):
        logger.info(f"Received signal {signum}, shutting down")
        stop.set()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    for guard in (core.clipboard_guard, core.duplication_guard):
        guard.register_handler(lambda event: print(event['message'], file=sys.stderr))

    documents = [normalize_path(p) for p in paths]
    core.coordinator.open_documents = lambda: documents

    state = core.on_open_document_set_changed()
    logger.info(f"Protection state: {state.name}")
    while not stop.wait(1.0):
        pass
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = Config(config_path=args.config)
    setup_logging(
        log_level=args.log_level or config.get('logging.level', 'INFO'),
        log_file=config.get('logging.file'),
        log_format=config.get('logging.format')
    )

    with DlpCore(config) as core:
        if args.command == 'classify':
            if args.level is None:
                print("A classification level is required", file=sys.stderr)
                return EXIT_ERROR
            try:
                record = core.classify(args.path, args.level)
            except AlreadyClassifiedError as e:
                print(str(e), file=sys.stderr)
                return EXIT_REFUSED
            except StorageError as e:
                print(f"Classification failed: {e}", file=sys.stderr)
                return EXIT_ERROR
            print(f"File permanently classified as: {record.level.value}")
            return EXIT_OK

        if args.command == 'show':
            print(json.dumps(core.describe(args.path), indent=2))
            return EXIT_OK

        if args.command == 'verify':
            if core.verify(args.path):
                print("Classification integrity verified")
                return EXIT_OK
            print("Classification missing or tampered", file=sys.stderr)
            return EXIT_REFUSED

        if args.command == 'evaluate':
            decision = core.evaluate_action(args.level, args.action)
            print(json.dumps({
                'allowed': decision.allowed,
                'requiresConfirmation': decision.requires_confirmation,
                'message': decision.message,
                'level': decision.level.value
            }, indent=2))
            return EXIT_REFUSED if decision.level is DecisionLevel.BLOCK else EXIT_OK

        if args.command == 'guard':
            return _run_guard(core, args.paths)

    return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())

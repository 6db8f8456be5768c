import sys
import argparse
import logging
from pathlib import Path
from typing import Optional, TextIO

from GALGAL.config import Config
from GALGAL.src.core.catalog import CatalogClassifier
from GALGAL.src.core.scheduler import PairScanner
from GALGAL.src.core.schema import ColumnSchema
from GALGAL.src.core.types import ScanError, SchemaError
from GALGAL.src.drivers.streams import StreamSink, read_lines

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_SKIPPED = 1
EXIT_CONFIG = 2
EXIT_SCAN_FAILED = 3


class LevelPrefixFormatter(logging.Formatter):
    """Renders records as ``Warning: message``."""

    def format(self, record):
        message = super().format(record)
        return f"{record.levelname.capitalize()}: {message}"


def setup_logging(verbose: bool = False, stream: Optional[TextIO] = None) -> None:
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(LevelPrefixFormatter("%(message)s"))
    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(logging.INFO if verbose else logging.WARNING)


def run(config: Config, stdin: TextIO, stdout: TextIO, strict: bool = False) -> int:
    try:
        config.validate()
        schema = ColumnSchema.from_config(config)
    except SchemaError as e:
        logger.error("Invalid column layout: %s", e)
        return EXIT_CONFIG
    except ValueError as e:
        logger.error("Invalid configuration: %s", e)
        return EXIT_CONFIG

    classifier = CatalogClassifier(config, schema)
    catalog = classifier.ingest(read_lines(stdin))
    stdout.write(catalog.summary() + "\n")
    stdout.flush()

    sink = StreamSink(stdout)
    try:
        PairScanner(config).scan(catalog.lenses, catalog.sources, sink)
    except ScanError as e:
        logger.error("Pair scan failed: %s", e)
        return EXIT_SCAN_FAILED
    finally:
        sink.close()

    if strict and catalog.skipped_lines:
        logger.warning("%d catalog lines were skipped", catalog.skipped_lines)
        return EXIT_SKIPPED
    return EXIT_OK


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Decompose source shear and flexion around every lens in a catalog read from stdin."
    )
    parser.add_argument("--config", type=Path, default=None, help="JSON configuration file")
    parser.add_argument("--workers", type=int, default=None, help="Number of lens producer threads")
    parser.add_argument("--strict", action="store_true", help="Exit with status 1 if any line was skipped")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log progress to stderr")
    args = parser.parse_args(argv)

    setup_logging(args.verbose)

    config = Config.load(args.config)
    if args.workers is not None:
        config.MAX_WORKERS = args.workers
        config.normalize()

    sys.exit(run(config, sys.stdin, sys.stdout, strict=args.strict))

if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""
CLI entry point for the entity embedding trainer.

Learns one embedding per entity with regularized logistic regression and
negative sampling over pretrained word vectors.

Usage:
    python -m entity_embed train -i descriptions.tsv -v words.vec -o entity.embeddings
    python -m entity_embed train --config config/embed.yaml --workers 8 --merge
    python -m entity_embed merge -o entity.embeddings --workers 8
"""

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from .config import EmbedConfig, TrainSettings
from .core.exceptions import EmbedError, EmbedConfigError
from .core.logging import configure_logging
from .core.models import RunStatus
from .runner import ShardRunner
from .storage import merge_shards
from .vectors import Word2VecStore


logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_TIMEOUT = 2

# CLI destination -> TrainSettings field
TRAIN_OVERRIDES = {
    "input": "corpus",
    "vectors": "vectors",
    "output": "output",
    "vector_format": "vector_format",
    "rho": "rho",
    "max_words": "max_words_per_entity",
    "workers": "workers",
    "seed": "seed",
    "regularization": "regularization",
    "max_iterations": "max_iterations",
    "tolerance": "tolerance",
    "timeout": "timeout_seconds",
    "flush_every": "flush_every",
}


def setup_logging(verbose: bool = False, structured: bool = False, level: str = "INFO") -> None:
    """Configure logging."""
    log_level = logging.DEBUG if verbose else getattr(logging, str(level).upper(), logging.INFO)
    configure_logging(level=log_level, structured=structured)


def apply_cli_overrides(settings: TrainSettings, args: argparse.Namespace) -> TrainSettings:
    """Overlay explicitly given CLI flags on config-derived settings."""
    changes = {}
    for dest, field_name in TRAIN_OVERRIDES.items():
        value = getattr(args, dest, None)
        if value is not None:
            changes[field_name] = value
    if getattr(args, "merge", False):
        changes["merge"] = True
    return replace(settings, **changes)


def cmd_train(args: argparse.Namespace, config: EmbedConfig) -> int:
    """Train embeddings for every entity in the corpus."""
    settings = apply_cli_overrides(config.to_settings(), args)
    try:
        settings.validate()
    except EmbedConfigError as e:
        logger.error(f"Invalid configuration: {e}")
        return EXIT_FAILED

    vectors = Word2VecStore.load(settings.vectors, binary=settings.binary_vectors())
    runner = ShardRunner(vectors, settings.to_runner_config())
    metrics = runner.run(settings.corpus, settings.output)

    logger.info(f"Final metrics: {metrics.to_dict()}")

    if metrics.status == RunStatus.TIMED_OUT:
        logger.error("Run timed out; shard files are partial")
        return EXIT_TIMEOUT
    if metrics.status != RunStatus.COMPLETED:
        logger.error(f"Run incomplete, failed shards: {metrics.failed_ranks()}")
        return EXIT_FAILED

    if settings.merge:
        merge_shards(settings.output, settings.workers, settings.output)
    return EXIT_OK


def cmd_merge(args: argparse.Namespace, config: EmbedConfig) -> int:
    """Concatenate shard files into a single embeddings file."""
    output = args.output or config.get("output.prefix")
    workers = args.workers or config.get("runner.workers", 8)
    if not output:
        logger.error("Output prefix is required")
        return EXIT_FAILED

    try:
        merge_shards(output, int(workers), args.destination)
    except FileNotFoundError as e:
        logger.error(str(e))
        return EXIT_FAILED
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        type=Path,
        help="Path to configuration YAML file",
    )
    common.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose/debug logging",
    )
    common.add_argument(
        "--log-json",
        action="store_true",
        help="Emit JSON-structured log lines",
    )

    parser = argparse.ArgumentParser(
        prog="entity_embed",
        description="Learns entity embeddings from descriptions and word vectors",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    train = subparsers.add_parser("train", parents=[common], help="Train entity embeddings")
    train.add_argument("-i", "--input", type=Path, help="Entity description file (id<TAB>text)")
    train.add_argument("-v", "--vectors", type=Path, help="Word vector file (word2vec format)")
    train.add_argument("-o", "--output", type=Path, help="Output prefix; shards get .<rank>")
    train.add_argument(
        "-r", "--rho", type=int,
        help="Negative samples per entity (<0 samples one per positive word)",
    )
    train.add_argument(
        "-m", "--max", dest="max_words", type=int,
        help="Max words per entity (<=0 uses all words)",
    )
    train.add_argument("-t", "--workers", type=int, help="Number of worker threads/shards")
    train.add_argument("--seed", type=int, help="Run-level random seed")
    train.add_argument("--regularization", type=float, help="L2 trade-off parameter")
    train.add_argument("--max-iterations", type=int, help="Gradient step cap per entity")
    train.add_argument("--tolerance", type=float, help="Convergence threshold")
    train.add_argument("--timeout", type=float, help="Wall-clock limit for the run, in seconds")
    train.add_argument("--flush-every", type=int, help="Flush shards every N embeddings")
    train.add_argument(
        "--vector-format", choices=["auto", "text", "binary"],
        help="Word vector file format (default: by file suffix)",
    )
    train.add_argument("--merge", action="store_true", help="Merge shards into the output path")
    train.set_defaults(func=cmd_train)

    merge = subparsers.add_parser("merge", parents=[common], help="Merge shard files")
    merge.add_argument("-o", "--output", type=Path, help="Output prefix the shards share")
    merge.add_argument("-t", "--workers", type=int, help="Number of shards")
    merge.add_argument("-d", "--destination", type=Path, help="Merged file (default: the prefix)")
    merge.set_defaults(func=cmd_merge)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        config = EmbedConfig(config_path=args.config)
    except EmbedConfigError as e:
        setup_logging(verbose=args.verbose, structured=args.log_json)
        logger.error(str(e))
        return EXIT_FAILED

    setup_logging(
        verbose=args.verbose,
        structured=args.log_json or bool(config.get("logging.structured", False)),
        level=config.get("logging.level", "INFO"),
    )
    logger.debug("Configuration loaded")

    try:
        return args.func(args, config)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return EXIT_FAILED
    except EmbedError as e:
        logger.error(f"Fatal error: {e}")
        return EXIT_FAILED
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        return EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())

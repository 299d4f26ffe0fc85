"""
Sharded parallel runner for training entity embeddings.

This module provides a ThreadPoolExecutor-based runner that:
- Counts corpus records once and splits them into contiguous shards
- Locates each shard's byte offset so workers seek instead of re-scanning
- Runs one worker per shard, each with its own seeded random generator
- Bounds the whole pool with a wall-clock timeout and cancels cooperatively
- Isolates worker failures so sibling shards keep running
"""

import logging
import signal
import threading
import uuid
from concurrent.futures import ThreadPoolExecutor, Future, wait
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional, Union

import numpy as np

from ..core.exceptions import SamplingError
from ..core.logging import worker_context
from ..core.models import (
    EntityRecord, FitResult, RunMetrics, RunStatus,
    ShardRange, ShardResult, ShardStatus
)
from ..core.vector_store import VectorStore
from ..corpus.reader import count_records, iter_lines, locate_offsets, parse_record
from ..storage.shard_writer import ShardWriter, shard_path
from ..training.examples import build_examples
from ..training.logistic import (
    DEFAULT_MAX_ITERATIONS, DEFAULT_REGULARIZATION, DEFAULT_TOLERANCE,
    score, train_logistic_regression
)
from .partition import compute_shards


logger = logging.getLogger(__name__)


@dataclass
class RunnerConfig:
    """
    Configuration for the shard runner.

    Attributes:
        workers: Number of shards and worker threads
        rho: Negative samples per entity (negative = one per positive)
        max_words_per_entity: Cap on positives per entity (non-positive = all)
        seed: Run-level seed; each worker derives its own from (seed, rank)
        regularization: Logistic regression loss/regularizer trade-off
        max_iterations: Gradient step cap per entity
        tolerance: Convergence threshold on the loss change
        timeout_seconds: Wall-clock bound for the whole pool (None = unbounded)
        flush_every: Flush shard files after this many embeddings
        progress_every: Log worker progress after this many records
    """
    workers: int = 8
    rho: int = -1
    max_words_per_entity: int = -1
    seed: int = 1234
    regularization: float = DEFAULT_REGULARIZATION
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    tolerance: float = DEFAULT_TOLERANCE
    timeout_seconds: Optional[float] = 48 * 3600
    flush_every: int = 1000
    progress_every: int = 10000


def worker_rng(seed: int, rank: int) -> np.random.Generator:
    """Random generator for one worker, independent across ranks."""
    return np.random.default_rng([seed, rank])


class ShardRunner:
    """
    Multi-worker runner that trains one embedding per corpus entity.

    The vector store is the only object shared between workers and it is
    read-only. Each worker owns its generator, shard writer and counters.
    """

    def __init__(
        self,
        vectors: VectorStore,
        config: Optional[RunnerConfig] = None,
    ):
        """
        Initialize the shard runner.

        Args:
            vectors: Loaded word vector store
            config: Runner configuration (uses defaults if not provided)
        """
        self.vectors = vectors
        self.config = config or RunnerConfig()

        self._executor: Optional[ThreadPoolExecutor] = None
        self._futures: Dict[int, Future] = {}
        self._cancel_event = threading.Event()
        self._run_metrics: Optional[RunMetrics] = None

    def run(
        self,
        corpus_path: Union[str, Path],
        output: Union[str, Path],
        run_id: Optional[str] = None,
    ) -> RunMetrics:
        """
        Train embeddings for every entity of the corpus.

        Args:
            corpus_path: Tab-separated entity description file
            output: Output prefix; shard ``r`` is written to ``<output>.<r>``
            run_id: Optional run identifier (auto-generated if not provided)

        Returns:
            RunMetrics with per-shard results and the run status
        """
        if run_id is None:
            run_id = str(uuid.uuid4())

        corpus_path = Path(corpus_path)
        num_workers = self.config.workers
        logger.info(f"Starting embedding run: {run_id}")
        logger.info(f"Configuration: workers={num_workers}, rho={self.config.rho}, "
                    f"max_words_per_entity={self.config.max_words_per_entity}, "
                    f"seed={self.config.seed}")

        # Sequential prerequisite: boundaries depend on the global count
        count = count_records(corpus_path)
        shards = compute_shards(count, num_workers)
        offsets = locate_offsets(corpus_path, [s.start for s in shards])

        self._run_metrics = RunMetrics(
            run_id=run_id,
            total_records=count,
            dimension=self.vectors.dimension,
        )
        for shard in shards:
            self._run_metrics.shards[shard.rank] = ShardResult(
                rank=shard.rank,
                output_path=str(shard_path(output, shard.rank)),
            )

        self._cancel_event.clear()
        restore_signals = self._install_signal_handlers()
        timed_out = False

        try:
            self._executor = ThreadPoolExecutor(
                max_workers=num_workers,
                thread_name_prefix="embed-worker",
            )

            for shard in shards:
                future = self._executor.submit(
                    self._run_shard,
                    shard,
                    offsets[shard.start],
                    corpus_path,
                    output,
                    count,
                    self._run_metrics.shards[shard.rank],
                )
                self._futures[shard.rank] = future
                logger.debug(f"Submitted shard {shard.rank}: "
                             f"[{shard.start}, {shard.end if shard.end is not None else 'EOF'})")

            logger.info("Waiting for worker completion")
            _, not_done = wait(self._futures.values(), timeout=self.config.timeout_seconds)
            if not_done:
                timed_out = True
                logger.error(
                    f"Timeout after {self.config.timeout_seconds}s, "
                    f"cancelling {len(not_done)} unfinished workers"
                )
                self.cancel()
                wait(not_done)
        finally:
            restore_signals()
            self._cleanup()

        metrics = self._run_metrics
        metrics.ended_at = datetime.now(timezone.utc)
        if timed_out:
            metrics.status = RunStatus.TIMED_OUT
        elif any(s.status != ShardStatus.COMPLETED for s in metrics.shards.values()):
            metrics.status = RunStatus.PARTIAL
        else:
            metrics.status = RunStatus.COMPLETED

        logger.info(f"Run complete: {run_id} ({metrics.status.value})")
        logger.info(f"Metrics: written={metrics.records_written}, "
                    f"skipped={metrics.records_skipped}, "
                    f"failed_shards={metrics.failed_ranks()}")
        return metrics

    def _run_shard(
        self,
        shard: ShardRange,
        start_offset: int,
        corpus_path: Path,
        output: Union[str, Path],
        total_records: int,
        result: ShardResult,
    ) -> ShardResult:
        """
        Worker body: train and write every entity of one shard.

        Failures are logged and recorded on ``result``; they never propagate
        to the pool, so sibling shards are unaffected.
        """
        context = worker_context(self._run_metrics.run_id if self._run_metrics else None, shard.rank)
        logger.info(f"Worker {shard.rank} starting at line {shard.start}", extra=context)

        result.status = ShardStatus.RUNNING
        result.started_at = datetime.now(timezone.utc)
        rng = worker_rng(self.config.seed, shard.rank)
        limit = None if shard.end is None else shard.end - shard.start

        try:
            with ShardWriter(
                output,
                shard.rank,
                total_records=total_records,
                dimension=self.vectors.dimension,
                flush_every=self.config.flush_every,
            ) as writer:
                for line in iter_lines(corpus_path, start_offset, limit):
                    if self._cancel_event.is_set():
                        result.status = ShardStatus.CANCELLED
                        logger.warning(
                            f"Worker {shard.rank} cancelled after "
                            f"{result.records_read} records",
                            extra=context,
                        )
                        break

                    result.records_read += 1
                    record = parse_record(line)
                    fit = self.process_record(record, rng) if record else None
                    if fit is None:
                        result.records_skipped += 1
                    else:
                        writer.write(record.entity_id, fit.weights)
                        result.records_written += 1

                    if self.config.progress_every and result.records_read % self.config.progress_every == 0:
                        logger.info(
                            f"Worker {shard.rank} progress: {result.records_read} read, "
                            f"{result.records_written} written",
                            extra=worker_context(
                                context["run_id"], shard.rank,
                                records_read=result.records_read,
                                records_written=result.records_written,
                            ),
                        )

            if result.status == ShardStatus.RUNNING:
                result.status = ShardStatus.COMPLETED

        except Exception as e:
            result.status = ShardStatus.FAILED
            result.error_message = str(e)
            logger.exception(f"Worker {shard.rank} crashed: {e}", extra=context)
        finally:
            result.ended_at = datetime.now(timezone.utc)
            logger.info(
                f"Worker {shard.rank} stopped ({result.status.value}). "
                f"Read: {result.records_read}, written: {result.records_written}, "
                f"skipped: {result.records_skipped}",
                extra=context,
            )

        return result

    def process_record(
        self,
        record: EntityRecord,
        rng: np.random.Generator,
    ) -> Optional[FitResult]:
        """
        Build examples for one entity and fit its embedding.

        Returns:
            FitResult, or None when no description token is in the vocabulary
            or no negative word is left to sample
        """
        try:
            examples = build_examples(
                record.tokens,
                self.vectors,
                rng,
                rho=self.config.rho,
                max_words_per_entity=self.config.max_words_per_entity,
            )
        except SamplingError as e:
            logger.warning(f"Skipping {record.entity_id}: {e}")
            return None
        if examples.is_empty():
            return None

        fit = train_logistic_regression(
            examples,
            self.vectors.dimension,
            rng,
            regularization=self.config.regularization,
            max_iterations=self.config.max_iterations,
            tolerance=self.config.tolerance,
        )
        if logger.isEnabledFor(logging.DEBUG):
            positive_scores = score(fit.weights, examples.features[:examples.num_positive])
            logger.debug(
                f"{record.entity_id}: {len(examples)} examples, "
                f"{fit.iterations} iterations, loss={fit.loss:.6f}, "
                f"mean positive score={float(np.mean(positive_scores)):.4f}"
            )
        return fit

    def _install_signal_handlers(self):
        """Route SIGINT/SIGTERM to cooperative cancellation while running."""
        if threading.current_thread() is not threading.main_thread():
            return lambda: None

        original_sigint = signal.getsignal(signal.SIGINT)
        original_sigterm = signal.getsignal(signal.SIGTERM)

        def _handle_shutdown_signal(signum, frame):
            logger.info(f"Received signal {signum}, cancelling workers...")
            self.cancel()

        signal.signal(signal.SIGINT, _handle_shutdown_signal)
        signal.signal(signal.SIGTERM, _handle_shutdown_signal)

        def _restore():
            signal.signal(signal.SIGINT, original_sigint)
            signal.signal(signal.SIGTERM, original_sigterm)

        return _restore

    def _cleanup(self) -> None:
        """Shut down the executor once every worker has exited."""
        if self._executor:
            self._executor.shutdown(wait=True, cancel_futures=True)
            self._executor = None
        self._futures.clear()

    # =========================================================================
    # Control Methods
    # =========================================================================

    def cancel(self) -> None:
        """
        Ask every worker to stop.

        Workers finish the entity in hand, close their shard cleanly and exit.
        """
        logger.info("Cancelling workers...")
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

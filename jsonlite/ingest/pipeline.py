"""
Two-stage ingestion pipeline.

Stage A decodes the input stream on a background thread and feeds a
bounded queue; stage B drains the queue on the calling thread inside the
load transaction. A failure in either stage stops the other, and both
have finished before ``run`` returns.
"""

import contextvars
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import List, Optional

from jsonlite.common import metrics
from jsonlite.common.logging_config import PerformanceTracker, clear_run_id, set_run_id
from jsonlite.ingest.decoder import JsonStreamDecoder
from jsonlite.ingest.loader import Loader
from jsonlite.queue.bounded import BoundedQueue

logger = logging.getLogger(__name__)


@dataclass
class IngestResult:
    """Summary of a committed ingestion run."""
    run_id: str
    rows: int
    columns_added: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0


class _FirstError:
    """Keeps the earliest error reported by either stage."""

    def __init__(self):
        self._lock = threading.Lock()
        self.error: Optional[BaseException] = None

    def set(self, error: BaseException) -> None:
        with self._lock:
            if self.error is None:
                self.error = error


class IngestPipeline:
    """
    Runs the decode and load stages of one ingestion call.

    The pipeline is cheap to build; a new bounded queue and decoder are
    created for every run.
    """

    def __init__(
        self,
        loader: Loader,
        queue_capacity: int = 1000,
        read_buffer_size: int = 64 * 1024,
        poll_interval: float = 0.1,
    ):
        """
        Initialize pipeline.

        Args:
            loader: Loader that owns the load transaction
            queue_capacity: Records held between the stages before decoding blocks
            read_buffer_size: Decoder read buffer size in bytes
            poll_interval: Seconds between cancellation checks of blocked stages
        """
        self.loader = loader
        self.queue_capacity = queue_capacity
        self.read_buffer_size = read_buffer_size
        self.poll_interval = poll_interval

    def run(self, stream) -> IngestResult:
        """
        Ingest a newline-delimited JSON stream in one transaction.

        Args:
            stream: Readable binary stream

        Returns:
            IngestResult of the committed run

        Raises:
            The first error raised by either stage (DecodeError,
            SchemaError, InsertError, or an I/O error from the stream)
        """
        run_id = set_run_id()
        started = time.time()
        records = BoundedQueue(self.queue_capacity, self.poll_interval)
        first_error = _FirstError()
        decoder = JsonStreamDecoder(stream, self.read_buffer_size)

        producer = threading.Thread(
            target=contextvars.copy_context().run,
            args=(self._decode_stage, decoder, records, first_error),
            name=f"jsonlite-decode-{run_id}",
            daemon=True,
        )

        load_result = None
        try:
            with PerformanceTracker("ingest", logger, table=self.loader.schema.table_name):
                producer.start()
                try:
                    load_result = self.loader.load(records)
                except BaseException as e:
                    first_error.set(e)
                    records.cancel()
                finally:
                    producer.join()

                if first_error.error is not None:
                    raise first_error.error
        except BaseException:
            if metrics.metrics_enabled(self.loader.settings):
                metrics.ingest_runs_total.labels(status="failure").inc()
            raise
        finally:
            duration = time.time() - started
            if metrics.metrics_enabled(self.loader.settings):
                metrics.ingest_duration_seconds.observe(duration)
            clear_run_id()

        if metrics.metrics_enabled(self.loader.settings):
            metrics.ingest_runs_total.labels(status="success").inc()

        return IngestResult(
            run_id=run_id,
            rows=load_result.rows,
            columns_added=load_result.columns_added,
            duration_seconds=duration,
        )

    def _decode_stage(
        self,
        decoder: JsonStreamDecoder,
        records: BoundedQueue,
        first_error: _FirstError,
    ) -> None:
        try:
            for record in decoder:
                if not records.put(record):
                    logger.debug(
                        f"Load stage stopped; decode stage exiting after line {record.line}")
                    return
        except BaseException as e:
            first_error.set(e)
            records.fail(e)
        else:
            records.close()

from __future__ import annotations

import logging
import os
import shutil
import threading
import uuid
from collections.abc import Iterable
from concurrent.futures import Future, ThreadPoolExecutor

from itemstore_core.errors import TransferError
from itemstore_core.observability import log_event, outcome_log_fields
from itemstore_core.store.object_client import ObjectClient
from itemstore_core.transfer.tasks import TransferKind, TransferOutcome, TransferTask

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENCY = 10
QUEUE_DEPTH_FACTOR = 2


def upload_file(client: ObjectClient, task: TransferTask) -> None:
    with open(task.local_path, "rb") as handle:
        client.put_object(
            task.bucket,
            task.key,
            handle,
            metadata=task.metadata,
            storage_class=task.storage_class,
            server_side_encryption=task.server_side_encryption,
        )


def download_file(client: ObjectClient, task: TransferTask) -> None:
    """Stream one object into a sibling temp file, then move it over the target.

    A failed or interrupted GET never leaves a partial file at ``local_path``.
    """

    target = task.local_path
    target.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = target.with_name(f".{target.name}.{uuid.uuid4().hex}.part")
    try:
        with open(tmp_path, "wb") as handle:
            stream = client.get_object(task.bucket, task.key)
            try:
                shutil.copyfileobj(stream, handle)
            finally:
                stream.close()
        if task.last_modified is not None:
            stamp = task.last_modified.timestamp()
            os.utime(tmp_path, (stamp, stamp))
        os.replace(tmp_path, target)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


def perform_transfer(client: ObjectClient, kind: TransferKind, task: TransferTask) -> None:
    """Run one transfer, wrapping any failure as a TransferError naming the key."""

    try:
        if kind is TransferKind.UPLOAD:
            upload_file(client, task)
        else:
            download_file(client, task)
    except TransferError:
        raise
    except Exception as exc:  # noqa: BLE001
        raise TransferError(
            f"Failed to {kind.value} s3://{task.bucket}/{task.key}: {exc}",
            key=task.key,
            kind=kind,
        ) from exc


class TransferCoordinator:
    """Runs transfer tasks on a bounded worker pool and aggregates one outcome.

    Tasks may come from a lazy, unbounded sequence: ``submit`` blocks once
    ``max_concurrency * QUEUE_DEPTH_FACTOR`` tasks are queued or running.
    A failure never cancels in-flight tasks. With ``stop_on_failure`` set,
    no new task is dispatched after the first failure is recorded.

    A coordinator is single use: ``finish`` may be called once.
    """

    def __init__(
        self,
        client: ObjectClient,
        kind: TransferKind | str,
        *,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        stop_on_failure: bool = True,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        self.kind = TransferKind(kind)
        self.max_concurrency = max_concurrency
        self.stop_on_failure = stop_on_failure
        self._client = client
        self._executor = ThreadPoolExecutor(
            max_workers=max_concurrency,
            thread_name_prefix=f"itemstore-{self.kind.value}",
        )
        self._slots = threading.BoundedSemaphore(max_concurrency * QUEUE_DEPTH_FACTOR)
        self._lock = threading.Lock()
        self._outcome = TransferOutcome(kind=self.kind)
        self._closed = False

    def __enter__(self) -> TransferCoordinator:
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:  # noqa: ANN001
        if self._closed:
            return False
        self._closed = True
        if exc_type is None or issubclass(exc_type, Exception):
            self._executor.shutdown(wait=True)
        else:
            # Interrupted: cancel queued work without waiting for it.
            self._executor.shutdown(wait=False, cancel_futures=True)
        return False

    @property
    def has_failed(self) -> bool:
        with self._lock:
            return self._outcome.first_error is not None

    def submit(self, task: TransferTask) -> bool:
        """Dispatch one task. Returns False when dispatch has stopped after a failure."""

        if self._closed:
            raise RuntimeError("TransferCoordinator already finished")
        if self.stop_on_failure and self.has_failed:
            return False

        self._slots.acquire()
        with self._lock:
            self._outcome.attempted += 1
        try:
            future = self._executor.submit(self._execute, task)
        except BaseException:
            with self._lock:
                self._outcome.attempted -= 1
            self._slots.release()
            raise
        future.add_done_callback(self._release_slot)
        return True

    def run(self, tasks: Iterable[TransferTask]) -> TransferOutcome:
        for task in tasks:
            if not self.submit(task):
                break
        return self.finish()

    def finish(self) -> TransferOutcome:
        """Wait for every dispatched task and return the final outcome."""

        if self._closed:
            raise RuntimeError("TransferCoordinator already finished")
        self._closed = True
        try:
            self._executor.shutdown(wait=True)
        except BaseException:
            # Interrupted while draining: cancel queued work without waiting for it.
            self._executor.shutdown(wait=False, cancel_futures=True)
            raise
        with self._lock:
            outcome = self._outcome
        log_event(logger, "transfer.finish", **outcome_log_fields(outcome))
        return outcome

    def _release_slot(self, _future: Future) -> None:
        self._slots.release()

    def _execute(self, task: TransferTask) -> None:
        try:
            perform_transfer(self._client, self.kind, task)
        except TransferError as error:
            self._record_failure(error)
            return
        with self._lock:
            self._outcome.succeeded += 1

    def _record_failure(self, error: TransferError) -> None:
        with self._lock:
            self._outcome.failed += 1
            first = self._outcome.first_error is None
            if first:
                self._outcome.first_error = error
        if first:
            logger.warning("transfer.failure kind=%s key=%s error=%s", self.kind.value, error.key, error)
        else:
            logger.warning("Additional %s failure for key=%s: %s", self.kind.value, error.key, error)

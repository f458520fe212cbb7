import logging
import threading
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from questions_app.services.errors import NoOpError, NotFoundError, OrderingError, PersistenceError
from questions_app.services.ordering import OrderedCollectionStore, Snapshot, apply_move

logger = logging.getLogger(__name__)

MOVE = 'move'
REMOVE = 'remove'
REFRESH = 'refresh'


@dataclass(eq=False)
class PendingOperation:
    """
    An in-flight reorder.

    before/after stay None until the request is dispatched: they are computed
    from the sequence the previous request resolved to, not from the moment
    the move was issued.
    """
    item_id: Any
    target_index: int
    before: Optional[Snapshot] = None
    after: Optional[Snapshot] = None


@dataclass
class ReconcileEvent:
    """
    Outcome of one remote operation, handed to the presentation layer.

    - kind: 'move', 'remove' or 'refresh'.
    - succeeded: False when the backend call failed (error is then set).
    - order: the store's sequence once reconciliation finished.
    """
    kind: str
    succeeded: bool
    item_id: Any = None
    error: Optional[OrderingError] = None
    order: Snapshot = ()
    operation: Optional[PendingOperation] = None


ReconcileListener = Callable[[ReconcileEvent], None]


class ReorderSynchronizer:
    """
    Keeps an OrderedCollectionStore in step with the backend's persisted order.

    Moves are applied to the store at once (optimistic) and their requests go
    through a single-worker executor, so at most one request is in flight and
    requests leave in the order the moves were issued. A failed reorder
    reloads the last confirmed sequence, then the backend's own order when the
    refetch works, and re-applies moves that are still queued.
    """

    def __init__(self, store: OrderedCollectionStore, client,
                 on_reconcile: Optional[ReconcileListener] = None):
        self.store = store
        self.client = client
        self._listeners: List[ReconcileListener] = [on_reconcile] if on_reconcile else []
        self._lock = threading.RLock()
        self._queue = deque()  # PendingOperations not yet resolved, oldest first
        self._confirmed: Snapshot = store.snapshot()
        self._futures: List[Future] = []
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix='reorder-sync')
        self._worker_ident: Optional[int] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def confirmed_order(self) -> Snapshot:
        """Last sequence the backend acknowledged (or returned)"""
        with self._lock:
            return self._confirmed

    @property
    def pending(self) -> List[PendingOperation]:
        with self._lock:
            return list(self._queue)

    def add_listener(self, listener: ReconcileListener) -> None:
        self._listeners.append(listener)

    def current_order(self) -> Snapshot:
        return self.store.current_order()

    def move_item(self, item_id, target_index: int) -> Future:
        """
        Applies the move locally and queues its persistence request.

        NotFoundError, NoOpError and TypeError are raised here, before anything
        is queued. The returned future resolves once the move is reconciled.
        """
        with self._lock:
            self._ensure_open()
            self.store.move_item(item_id, target_index)
            operation = PendingOperation(item_id=item_id, target_index=target_index)
            self._queue.append(operation)
            logger.info('Queued move of %r to index %s (%s pending).', item_id, target_index, len(self._queue))
            return self._submit(self._persist_move, operation)

    def remove_item(self, item_id) -> Future:
        """Deletes the item remotely; the store only changes after the backend confirms"""
        with self._lock:
            self._ensure_open()
            self.store.index_of(item_id)  # NotFoundError for unknown ids
            return self._submit(self._persist_remove, item_id)

    def refresh(self) -> Future:
        """Fetches the authoritative order and loads it into the store"""
        with self._lock:
            self._ensure_open()
            return self._submit(self._refresh)

    def in_worker(self) -> bool:
        """True when called from the thread that runs the network lane (e.g. inside on_reconcile)"""
        return threading.get_ident() == self._worker_ident

    def join(self, timeout: Optional[float] = None) -> bool:
        """
        Waits for every submitted operation; returns False if the timeout expired first.
        Raises RuntimeError on the worker thread, where waiting would wait on itself.
        """
        if self.in_worker():
            raise RuntimeError('join() cannot be called from a reconciliation callback.')
        with self._lock:
            futures = list(self._futures)
        _, not_done = wait(futures, timeout=timeout)
        return not not_done

    def close(self) -> None:
        """Disposes the synchronizer; responses still in flight are discarded"""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._queue.clear()
        self._executor.shutdown(wait=False, cancel_futures=True)
        logger.debug('Reorder synchronizer closed.')

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError('Reorder synchronizer is closed.')

    def _submit(self, fn, *args) -> Future:
        future = self._executor.submit(self._run, fn, *args)
        self._futures = [f for f in self._futures if not f.done()]
        self._futures.append(future)
        return future

    def _run(self, fn, *args) -> None:
        self._worker_ident = threading.get_ident()
        fn(*args)

    def _persist_move(self, operation: PendingOperation) -> None:
        with self._lock:
            if self._closed:
                return
            operation.before = self._confirmed
            try:
                operation.after = apply_move(self._confirmed, operation.item_id, operation.target_index)
            except NoOpError:
                # an earlier rollback already left the item at its target
                logger.info('Move of %r became a no-op, nothing to send.', operation.item_id)
                self._discard(operation)
                return
            except NotFoundError as exc:
                logger.warning('Dropping move of %r: item no longer exists.', operation.item_id)
                self._discard(operation)
                event = ReconcileEvent(MOVE, False, operation.item_id, exc, self.store.snapshot(), operation)
            else:
                event = None
        if event is not None:
            self._emit(event)
            return

        logger.info('Persisting order after moving %r to index %s.', operation.item_id, operation.target_index)
        try:
            self.client.reorder(operation.after)
        except PersistenceError as exc:
            self._rollback(operation, exc)
            return

        with self._lock:
            if self._closed:
                return
            self._confirmed = operation.after
            self._discard(operation)
            order = self.store.snapshot()
        logger.debug('Backend acknowledged move of %r.', operation.item_id)
        self._emit(ReconcileEvent(MOVE, True, operation.item_id, None, order, operation))

    def _rollback(self, operation: PendingOperation, error: PersistenceError) -> None:
        logger.warning('Reorder of %r failed, rolling back: %s', operation.item_id, error)
        with self._lock:
            if self._closed:
                return
            self._discard(operation)
            self.store.load(operation.before)

        try:
            fetched = self.client.fetch_items()
        except PersistenceError as exc:
            logger.warning('Refetch after failed reorder failed too, keeping last confirmed order: %s', exc)
            fetched = None

        with self._lock:
            if self._closed:
                return
            if fetched is not None:
                self.store.load(fetched)
            self._confirmed = self.store.snapshot()
            self._rebase()
            order = self.store.snapshot()
        self._emit(ReconcileEvent(MOVE, False, operation.item_id, error, order, operation))

    def _rebase(self) -> None:
        """Re-applies still queued moves on top of the freshly loaded sequence"""
        for queued in list(self._queue):
            try:
                self.store.move_item(queued.item_id, queued.target_index)
            except (NoOpError, NotFoundError) as exc:
                logger.info('Queued move of %r does not apply after reload: %s', queued.item_id, exc)

    def _persist_remove(self, item_id) -> None:
        with self._lock:
            if self._closed:
                return
        try:
            self.client.delete_item(item_id)
        except PersistenceError as exc:
            logger.warning('Removing %r failed: %s', item_id, exc)
            with self._lock:
                if self._closed:
                    return
                order = self.store.snapshot()
            self._emit(ReconcileEvent(REMOVE, False, item_id, exc, order))
            return

        with self._lock:
            if self._closed:
                return
            self._confirmed = OrderedCollectionStore(
                item for item in self._confirmed if item.id != item_id).snapshot()
            if item_id in self.store:
                self.store.remove_item(item_id)
            else:
                logger.warning('Item %r was already gone from the local order.', item_id)
            order = self.store.snapshot()
        logger.info('Removed %r.', item_id)
        self._emit(ReconcileEvent(REMOVE, True, item_id, None, order))

    def _refresh(self) -> None:
        with self._lock:
            if self._closed:
                return
        try:
            fetched = self.client.fetch_items()
        except PersistenceError as exc:
            logger.warning('Fetching the order failed: %s', exc)
            with self._lock:
                if self._closed:
                    return
                order = self.store.snapshot()
            self._emit(ReconcileEvent(REFRESH, False, None, exc, order))
            return

        with self._lock:
            if self._closed:
                return
            self.store.load(fetched)
            self._confirmed = self.store.snapshot()
            self._rebase()
            order = self.store.snapshot()
        self._emit(ReconcileEvent(REFRESH, True, None, None, order))

    def _discard(self, operation: PendingOperation) -> None:
        if operation in self._queue:
            self._queue.remove(operation)

    def _emit(self, event: ReconcileEvent) -> None:
        for listener in list(self._listeners):
            listener(event)

import logging
from concurrent.futures import Future
from typing import Callable, Iterable, List, Mapping, NamedTuple, Optional

from questions_app.services.api_client import QuestionApiClient
from questions_app.services.errors import NoOpError, PersistenceError
from questions_app.services.ordering import Item, OrderedCollectionStore, Snapshot
from questions_app.services.synchronizer import MOVE, REFRESH, REMOVE, ReconcileEvent, ReorderSynchronizer

logger = logging.getLogger(__name__)

SUCCESS = 'success'
ERROR = 'error'


class Notification(NamedTuple):
    """A user-visible message the presentation layer shows as a toast"""
    level: str
    message: str


# messages shown by the dashboard after each kind of reconciliation
FAILURE_MESSAGES = {
    MOVE: 'Failed to update question order',
    REMOVE: 'Failed to remove question',
    REFRESH: 'Failed to fetch questions',
}
SUCCESS_MESSAGES = {
    REMOVE: 'Question removed from quiz',
}


class QuizQuestionsController:
    """
    Page-level controller for the questions of one quiz.

    Composes the store (what the page shows), the synchronizer (how changes
    reach the backend) and the API client, and turns reconciliation outcomes
    into notifications.

    Usage:
        controller = QuizQuestionsController(quiz_id, access_token=token, on_notify=show_toast)
        controller.load().result()
        controller.handle_drag_end(active_id, over_id)
    """

    def __init__(self, quiz_id, client: Optional[QuestionApiClient] = None,
                 access_token: Optional[str] = None,
                 on_notify: Optional[Callable[[Notification], None]] = None):
        self.quiz_id = quiz_id
        self.client = client or QuestionApiClient.for_quiz(quiz_id, access_token=access_token)  # default HTTP client
        self.store = OrderedCollectionStore()  # starts empty until load()
        self.synchronizer = ReorderSynchronizer(self.store, self.client, on_reconcile=self._on_reconcile)
        self.notifications: List[Notification] = []  # history, newest last
        self._on_notify = on_notify

    def load(self) -> Future:
        """Fetches the quiz's questions; resolves once they are in the store"""
        return self.synchronizer.refresh()

    def current_order(self) -> Snapshot:
        return self.store.current_order()

    def subscribe(self, listener) -> Callable[[], None]:
        """Registers a listener called with every new sequence (re-render hook)"""
        return self.store.subscribe(listener)

    def move_item(self, item_id, target_index: int) -> Future:
        return self.synchronizer.move_item(item_id, target_index)

    def handle_drag_end(self, active_id, over_id) -> Optional[Future]:
        """
        Adapts a drag-and-drop result (dragged id, id of the row it was dropped on)
        to move_item. Returns None when the drop changes nothing.
        """
        if over_id is None or active_id == over_id:
            return None  # dropped outside the list or onto itself
        target_index = self.store.index_of(over_id)  # the dragged row takes the target row's place
        try:
            return self.move_item(active_id, target_index)
        except NoOpError:
            return None

    def remove_item(self, item_id) -> Future:
        return self.synchronizer.remove_item(item_id)

    def available_questions(self) -> List[Item]:
        """Questions that can still be added to the quiz; empty (with an error toast) if the fetch fails"""
        try:
            return self.client.fetch_available_items()
        except PersistenceError as exc:
            logger.warning('Fetching available questions for quiz %s failed: %s', self.quiz_id, exc)
            self._notify(Notification(ERROR, 'Failed to fetch available questions'))
            return []

    def add_questions(self, question_ids: Iterable) -> bool:
        """
        Attaches existing questions to the quiz, then reloads the order from the backend.
        Blocks until the backend answered; returns True on success.

        Must be called from the caller's thread: inside an on_notify callback
        it raises RuntimeError instead of waiting on itself.
        """
        self.synchronizer.join()  # let queued reorders reach the backend first
        try:
            self.client.add_items(question_ids)
        except PersistenceError as exc:
            logger.warning('Adding questions to quiz %s failed: %s', self.quiz_id, exc)
            self._notify(Notification(ERROR, 'Failed to add questions'))
            return False
        self._notify(Notification(SUCCESS, 'Questions added to quiz'))
        self.load().result()
        return True

    def create_question(self, question: Mapping) -> bool:
        """
        Creates a new question inside the quiz, then reloads the order.
        Same threading rule as add_questions; a malformed form raises ValidationError.
        """
        self.synchronizer.join()
        try:
            self.client.create_item(dict(question))
        except PersistenceError as exc:
            logger.warning('Creating a question in quiz %s failed: %s', self.quiz_id, exc)
            self._notify(Notification(ERROR, exc.backend_message or 'Failed to create question'))
            return False
        self._notify(Notification(SUCCESS, 'Question created and added to quiz'))
        self.load().result()
        return True

    def close(self) -> None:
        """Tears the page down; late responses no longer touch the store"""
        self.synchronizer.close()

    def _on_reconcile(self, event: ReconcileEvent) -> None:
        if not event.succeeded:
            self._notify(Notification(ERROR, FAILURE_MESSAGES[event.kind]))
            return
        message = SUCCESS_MESSAGES.get(event.kind)
        if message:
            self._notify(Notification(SUCCESS, message))

    def _notify(self, notification: Notification) -> None:
        self.notifications.append(notification)
        if self._on_notify is not None:
            self._on_notify(notification)

import threading
import pytest

from questions_app.api.tests.fakes import WAIT
from questions_app.services.controller import ERROR, SUCCESS, Notification, QuizQuestionsController
from questions_app.services.errors import NotFoundError
from questions_app.services.ordering import Item


@pytest.fixture
def toasts():
    """Collects notifications the way the page would show them"""
    return []


@pytest.fixture
def controller(fake_client, toasts):
    """Returns a loaded controller for quiz 42 backed by the fake client"""
    page = QuizQuestionsController(42, client=fake_client, on_notify=toasts.append)
    page.load().result(WAIT)
    yield page
    page.close()


def order(page):
    return [item.id for item in page.current_order()]


def test_load_fetches_questions(controller, fake_client):
    """Opening the page loads the backend's order"""
    assert order(controller) == ['A', 'B', 'C']
    assert fake_client.fetches == 1


def test_drag_end_moves_dragged_row_to_drop_target(controller, fake_client, toasts):
    """Dropping C onto A moves C to A's index; a successful reorder shows no toast"""
    future = controller.handle_drag_end('C', 'A')
    assert order(controller) == ['C', 'A', 'B']
    future.result(WAIT)
    assert fake_client.reorders == [[('C', 1), ('A', 2), ('B', 3)]]
    assert toasts == []


@pytest.mark.parametrize('over_id', [None, 'B'])
def test_drag_end_without_change_does_nothing(controller, fake_client, over_id):
    """Dropping outside the list or onto itself sends nothing"""
    assert controller.handle_drag_end('B', over_id) is None
    assert controller.synchronizer.join(WAIT)
    assert fake_client.started == 0


def test_drag_end_onto_unknown_row_raises(controller):
    """A drop target that is not in the list is a UI-state bug and is surfaced"""
    with pytest.raises(NotFoundError):
        controller.handle_drag_end('A', 'Z')


def test_failed_reorder_notifies_and_restores_order(controller, fake_client, toasts):
    """The dashboard shows 'Failed to update question order' and the server order again"""
    fake_client.reorder_failures = [True]
    controller.move_item('A', 2).result(WAIT)
    assert order(controller) == ['A', 'B', 'C']
    assert toasts == [Notification(ERROR, 'Failed to update question order')]


def test_remove_success_and_failure_notifications(controller, fake_client, toasts):
    """Removing shows a success toast, a failed removal an error toast"""
    controller.remove_item('B').result(WAIT)
    fake_client.fail_delete = True
    controller.remove_item('C').result(WAIT)
    assert order(controller) == ['A', 'C']
    assert toasts == [
        Notification(SUCCESS, 'Question removed from quiz'),
        Notification(ERROR, 'Failed to remove question'),
    ]


def test_add_questions_reloads_order(controller, fake_client, toasts):
    """Added questions appear after the refetch"""
    assert controller.add_questions(['D']) is True
    assert order(controller) == ['A', 'B', 'C', 'D']
    assert fake_client.added == ['D']
    assert toasts == [Notification(SUCCESS, 'Questions added to quiz')]


def test_add_questions_failure_notifies(controller, fake_client, toasts):
    """A rejected add leaves the list as is and shows an error toast"""
    fake_client.fail_add = True
    assert controller.add_questions(['D']) is False
    assert order(controller) == ['A', 'B', 'C']
    assert toasts == [Notification(ERROR, 'Failed to add questions')]


def test_failed_load_notifies(fake_client, toasts):
    """A page that cannot fetch its questions shows 'Failed to fetch questions'"""
    fake_client.fail_fetch = True
    page = QuizQuestionsController(42, client=fake_client, on_notify=toasts.append)
    try:
        page.load().result(WAIT)
        assert page.current_order() == ()
        assert page.notifications == [Notification(ERROR, 'Failed to fetch questions')]
    finally:
        page.close()


def test_subscribers_see_optimistic_and_rolled_back_orders(controller, fake_client):
    """Re-render hooks receive every intermediate order, including the rollback"""
    renders = []
    controller.subscribe(lambda snap: renders.append([item.id for item in snap]))
    fake_client.reorder_failures = [True]
    controller.move_item('C', 0).result(WAIT)
    assert renders[0] == ['C', 'A', 'B']
    assert renders[-1] == ['A', 'B', 'C']


def test_close_drops_late_response(controller, fake_client, toasts):
    """Leaving the page while a request is in flight discards its outcome"""
    fake_client.gate = threading.Event()
    fake_client.reorder_failures = [True]
    future = controller.move_item('B', 0)
    assert fake_client.entered.wait(WAIT)
    controller.close()
    fake_client.gate.set()
    future.result(WAIT)
    assert toasts == []


def test_default_client_is_built_from_settings(settings):
    """Without an explicit client the controller targets the configured backend"""
    settings.QUESTIONS_API_BASE_URL = 'http://backend.test/api/admin'
    page = QuizQuestionsController(9, access_token='tok')
    try:
        assert page.client.collection_url == 'http://backend.test/api/admin/quiz/9/questions'
        assert page.client.session.auth.token == 'tok'
    finally:
        page.close()


def test_integer_ids_scenario(toasts):
    """Questions 1, 2, 3: moving 3 to the front sends the documented body"""
    from questions_app.api.tests.fakes import FakeClient
    backend = FakeClient([Item(id=1), Item(id=2), Item(id=3)])
    page = QuizQuestionsController(1, client=backend, on_notify=toasts.append)
    try:
        page.load().result(WAIT)
        page.move_item(3, 0).result(WAIT)
        assert [(item.id, item.rank) for item in page.current_order()] == [(3, 1), (1, 2), (2, 3)]
        assert backend.reorders == [[(3, 1), (1, 2), (2, 3)]]
    finally:
        page.close()


def test_available_questions_returns_backend_list(controller, fake_client, toasts):
    """The add dialog lists the questions the backend offers"""
    fake_client.available = [Item(id='D', payload={'title': 'Question D'})]
    assert [item.id for item in controller.available_questions()] == ['D']
    assert toasts == []


def test_available_questions_failure_notifies(controller, fake_client, toasts):
    """A failed fetch shows 'Failed to fetch available questions' and yields nothing"""
    fake_client.fail_available = True
    assert controller.available_questions() == []
    assert toasts == [Notification(ERROR, 'Failed to fetch available questions')]


def test_create_question_reloads_order(controller, fake_client, toasts):
    """A created question is appended by the backend and shows up after the refetch"""
    assert controller.create_question({'title': 'New one', 'content': 'Body'}) is True
    assert fake_client.created == [{'title': 'New one', 'content': 'Body'}]
    assert order(controller) == ['A', 'B', 'C', 'new-1']
    assert toasts == [Notification(SUCCESS, 'Question created and added to quiz')]


@pytest.mark.parametrize('backend_message, shown', [
    ('Title is required', 'Title is required'),
    ('', 'Failed to create question'),
])
def test_create_question_failure_shows_backend_message(controller, fake_client, toasts, backend_message, shown):
    """The backend's message is shown when it sent one, the generic text otherwise"""
    fake_client.fail_create = backend_message
    assert controller.create_question({'title': 'T', 'content': 'C'}) is False
    assert order(controller) == ['A', 'B', 'C']
    assert toasts == [Notification(ERROR, shown)]


def test_add_questions_from_notification_callback_is_refused(fake_client):
    """Calling add_questions on the worker thread raises instead of deadlocking"""
    refused = []

    def on_notify(notification):
        try:
            page.add_questions(['D'])
        except RuntimeError as exc:
            refused.append(exc)

    page = QuizQuestionsController(42, client=fake_client, on_notify=on_notify)
    try:
        page.load().result(WAIT)
        fake_client.reorder_failures = [True]
        page.move_item('A', 2).result(WAIT)
        assert len(refused) == 1
        assert fake_client.added == []
    finally:
        page.close()

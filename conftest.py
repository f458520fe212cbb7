import pytest  # required to define shared fixtures

from questions_app.services.ordering import Item


@pytest.fixture
def abc_items():
    """Three questions A, B, C in that order, with a little payload each"""
    return [
        Item(id='A', rank=1, payload={'title': 'Question A'}),
        Item(id='B', rank=2, payload={'title': 'Question B'}),
        Item(id='C', rank=3, payload={'title': 'Question C'}),
    ]


@pytest.fixture
def fake_client(abc_items):
    """Returns a fake backend whose persisted order is A, B, C"""
    from questions_app.api.tests.fakes import FakeClient
    return FakeClient(abc_items)

import logging
from typing import Iterable, List, Optional

import requests
from django.conf import settings
from rest_framework.exceptions import ValidationError

from core.utils.authentication import CookieJWTAuth
from questions_app.api.serializers import (
    AddQuestionsSerializer, CreateQuestionSerializer, ItemListSerializer, ReorderRequestSerializer,
)
from questions_app.services.errors import PersistenceError
from questions_app.services.ordering import Item, as_orders

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = 'http://localhost:3000/api/admin'
DEFAULT_TIMEOUT = 5.0


def collection_url_for_quiz(quiz_id, base_url: Optional[str] = None) -> str:
    """Returns the question collection URL of one quiz"""
    base = base_url or getattr(settings, 'QUESTIONS_API_BASE_URL', DEFAULT_BASE_URL)
    return f'{base.rstrip("/")}/quiz/{quiz_id}/questions'


def available_url_for(collection_url: str) -> str:
    """Returns the sibling URL listing the questions not yet in the quiz"""
    return f'{collection_url.rstrip("/").rsplit("/", 1)[0]}/available-questions'


class QuestionApiClient:
    """
    HTTP collaborator for one ordered collection (the questions of a quiz).

    Endpoints, relative to collection_url:
      - GET    {collection}                  -> list of items
      - POST   {collection}/reorder          -> {"orders": [{"itemId", "rank"}, ...]}
      - DELETE {collection}/item/{item_id}
      - POST   {collection}                  -> {"questionIds": [...]} or a new question
      - GET    {quiz}/available-questions    -> questions that can still be added

    Every failure (connection error, timeout, non-2xx status, malformed body)
    is raised as PersistenceError.
    """

    def __init__(self, collection_url: str, access_token: Optional[str] = None,
                 timeout: Optional[float] = None, session: Optional[requests.Session] = None,
                 available_url: Optional[str] = None):
        self.collection_url = collection_url.rstrip('/')
        self.available_url = available_url or available_url_for(self.collection_url)
        self.timeout = timeout if timeout is not None else float(
            getattr(settings, 'QUESTIONS_API_TIMEOUT', DEFAULT_TIMEOUT))  # seconds
        self.session = session or requests.Session()
        if access_token:
            self.session.auth = CookieJWTAuth(access_token)  # cookie + bearer header

    @classmethod
    def for_quiz(cls, quiz_id, **kwargs) -> 'QuestionApiClient':
        base_url = kwargs.pop('base_url', None)
        return cls(collection_url_for_quiz(quiz_id, base_url), **kwargs)

    def fetch_items(self) -> List[Item]:
        """Returns the authoritative order as Items, in response order"""
        return self._fetch_list(self.collection_url)

    def fetch_available_items(self) -> List[Item]:
        """Returns the questions that exist but are not part of this quiz yet"""
        return self._fetch_list(self.available_url)

    def _fetch_list(self, url: str) -> List[Item]:
        response = self._request('GET', url)
        try:
            data = response.json()
        except ValueError as exc:
            raise PersistenceError('Backend returned a non-JSON question list.',
                                   status_code=response.status_code) from exc

        serializer = ItemListSerializer(data=data)
        try:
            serializer.is_valid(raise_exception=True)
        except ValidationError as exc:
            raise PersistenceError(f'Backend returned a malformed question list: {exc.detail}',
                                   status_code=response.status_code) from exc
        items = serializer.validated_data
        logger.debug('Fetched %s items from %s.', len(items), url)
        return items

    def reorder(self, items: Iterable[Item]) -> None:
        """Persists the full ordering; the backend replaces all ranks at once"""
        try:
            body = self.reorder_body(items)
        except ValidationError as exc:
            logger.error('Refusing to send an invalid reorder body: %s', exc.detail)
            raise PersistenceError(f'Invalid reorder body: {exc.detail}') from exc
        self._request('POST', f'{self.collection_url}/reorder', json=body)

    def delete_item(self, item_id) -> None:
        self._request('DELETE', f'{self.collection_url}/item/{item_id}')

    def add_items(self, item_ids: Iterable) -> None:
        serializer = AddQuestionsSerializer(data={'questionIds': list(item_ids)})
        serializer.is_valid(raise_exception=True)  # caller error, not a backend failure
        self._request('POST', self.collection_url, json={'questionIds': serializer.validated_data['questionIds']})

    def create_item(self, question: dict) -> None:
        """Creates a new question and attaches it to the quiz in one POST"""
        serializer = CreateQuestionSerializer(data=question)
        serializer.is_valid(raise_exception=True)  # caller error, not a backend failure
        self._request('POST', self.collection_url, json=dict(serializer.validated_data))

    @staticmethod
    def reorder_body(items: Iterable[Item]) -> dict:
        """Builds and validates the reorder request body from an ordered sequence"""
        serializer = ReorderRequestSerializer(data={'orders': as_orders(items)})
        serializer.is_valid(raise_exception=True)
        return {'orders': [dict(entry) for entry in serializer.validated_data['orders']]}

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.Timeout as exc:
            logger.warning('%s %s timed out after %ss.', method, url, self.timeout)
            raise PersistenceError(f'{method} {url} timed out.') from exc
        except requests.RequestException as exc:
            logger.warning('%s %s failed: %s', method, url, exc)
            raise PersistenceError(f'{method} {url} failed: {exc}') from exc

        if not 200 <= response.status_code < 300:
            logger.warning('%s %s answered %s.', method, url, response.status_code)
            raise PersistenceError(f'{method} {url} answered {response.status_code}.',
                                   status_code=response.status_code,
                                   backend_message=self._error_message(response))
        return response

    @staticmethod
    def _error_message(response) -> Optional[str]:
        try:
            body = response.json()
        except ValueError:
            return None
        if isinstance(body, dict) and body.get('message'):
            return str(body['message'])
        return None

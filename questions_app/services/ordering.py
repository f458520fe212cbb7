import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from core.utils.validators import validate_item_id
from questions_app.services.errors import NoOpError, NotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Item:
    """
    One entry of an ordered collection (e.g. a question inside a quiz).

    Fields:
    - id: stable unique identifier (string or integer, whatever the backend uses).
    - rank: 1-based position inside the collection.
    - payload: opaque descriptive attributes (title, type, points, ...), never read here.
    """
    id: Any
    rank: int = 0
    payload: Mapping[str, Any] = field(default_factory=dict, compare=False)


Snapshot = Tuple[Item, ...]
Listener = Callable[[Snapshot], None]


def _ranked(items: Iterable[Item]) -> List[Item]:
    """Returns the items with rank = position + 1, reusing instances that already match"""
    result = []
    for position, item in enumerate(items, start=1):
        result.append(item if item.rank == position else replace(item, rank=position))
    return result


def _clamp(index: int, length: int) -> int:
    return max(0, min(index, length - 1))


class OrderedCollectionStore:
    """
    Holds the client-side ordered sequence of items.

    Every completed mutation leaves the ranks exactly {1..N}; listeners
    registered with subscribe() receive the new snapshot afterwards.
    """

    def __init__(self, items: Iterable[Item] = ()):
        self._items: List[Item] = self._validated(items)
        self._listeners: List[Listener] = []

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Item]:
        return iter(self.snapshot())

    def __contains__(self, item_id) -> bool:
        return any(item.id == item_id for item in self._items)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Registers a change listener and returns a callable that removes it again"""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def snapshot(self) -> Snapshot:
        """Returns an immutable copy of the current sequence"""
        return tuple(self._items)

    def current_order(self) -> Snapshot:
        return self.snapshot()

    def index_of(self, item_id) -> int:
        for index, item in enumerate(self._items):
            if item.id == item_id:
                return index
        raise NotFoundError(item_id)

    def load(self, items: Iterable[Item]) -> None:
        """Replaces the whole collection; input order is authoritative, input ranks are ignored"""
        self._items = self._validated(items)
        logger.debug('Loaded %s items.', len(self._items))
        self._changed()

    def move_item(self, item_id, target_index: int) -> Snapshot:
        """
        Moves an item to target_index (clamped to the valid range) and re-ranks the collection.

        Raises NotFoundError for an unknown id and NoOpError when the item
        already sits at the (clamped) target; neither mutates anything.
        """
        if isinstance(target_index, bool) or not isinstance(target_index, int):
            raise TypeError(f'target_index must be an int, got {type(target_index).__name__}.')
        current = self.index_of(item_id)
        target = _clamp(target_index, len(self._items))
        if target == current:
            raise NoOpError(item_id, current)

        items = list(self._items)
        moved = items.pop(current)
        items.insert(target, moved)
        self._items = _ranked(items)
        logger.debug('Moved item %r from index %s to %s.', item_id, current, target)
        self._changed()
        return self.snapshot()

    def insert_item(self, item: Item, index: Optional[int] = None) -> Snapshot:
        """Inserts a new item at index (appends when omitted) and re-ranks the collection"""
        validate_item_id(item.id)
        if item.id in self:
            raise ValueError(f'Item {item.id!r} is already in the collection.')
        items = list(self._items)
        if index is None:
            items.append(item)
        else:
            items.insert(_clamp(index, len(items) + 1), item)
        self._items = _ranked(items)
        self._changed()
        return self.snapshot()

    def remove_item(self, item_id) -> Item:
        """Deletes an item; every later item moves up by one rank"""
        index = self.index_of(item_id)
        items = list(self._items)
        removed = items.pop(index)
        self._items = _ranked(items)
        logger.debug('Removed item %r at index %s.', item_id, index)
        self._changed()
        return removed

    def _validated(self, items: Iterable[Item]) -> List[Item]:
        items = list(items)
        seen = set()
        for item in items:
            validate_item_id(item.id)  # DRF ValidationError, same rule the request bodies use
            if item.id in seen:
                raise ValueError(f'Duplicate item id {item.id!r}.')
            seen.add(item.id)
        return _ranked(items)

    def _changed(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)


def apply_move(items: Iterable[Item], item_id, target_index: int) -> Snapshot:
    """Returns the sequence that moving item_id to target_index would produce, without a store"""
    return OrderedCollectionStore(items).move_item(item_id, target_index)


def as_orders(items: Iterable[Item]) -> List[Dict[str, Any]]:
    """Builds the full (itemId, rank) list carried by a reorder request"""
    return [{'itemId': item.id, 'rank': item.rank} for item in items]

class OrderingError(Exception):
    """Base class for every failure raised by the question ordering services"""
    pass


class NotFoundError(OrderingError, LookupError):
    """Raised when an operation references an item that is not in the collection"""

    def __init__(self, item_id):
        self.item_id = item_id
        super().__init__(f'Item {item_id!r} is not in the collection.')


class NoOpError(OrderingError):
    """Raised when a move would leave the item where it already is (nothing to do)"""

    def __init__(self, item_id, index: int):
        self.item_id = item_id
        self.index = index
        super().__init__(f'Item {item_id!r} is already at index {index}.')


class PersistenceError(OrderingError):
    """Raised for any network or backend failure while persisting or fetching the order"""

    def __init__(self, message: str, status_code=None, backend_message=None):
        self.status_code = status_code  # None when the backend never answered
        self.backend_message = backend_message  # "message" field of an error body, if any
        super().__init__(message)

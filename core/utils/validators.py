from rest_framework.exceptions import ValidationError


def validate_item_id(value):
    """Checks that an item id is a non-empty string or an integer (booleans are rejected)"""
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise ValidationError({"id": "Item id must be a string or an integer."})
    if isinstance(value, str) and not value.strip():
        raise ValidationError({"id": "Item id must not be empty."})


def validate_unique_ids(ids):
    """Checks that no item id appears twice"""
    seen = set()
    for item_id in ids:
        if item_id in seen:
            raise ValidationError({"id": f"Duplicate item id {item_id!r}."})
        seen.add(item_id)


def validate_contiguous_ranks(ranks):
    """Checks that the ranks are exactly 1..N, without gaps or duplicates"""
    ranks = list(ranks)
    if sorted(ranks) != list(range(1, len(ranks) + 1)):
        raise ValidationError(
            {"rank": "Ranks must be contiguous from 1 without gaps or duplicates."})

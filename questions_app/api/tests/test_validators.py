import pytest
from rest_framework.exceptions import ValidationError
from core.utils.validators import (
    validate_contiguous_ranks,
    validate_item_id,
    validate_unique_ids,
)


@pytest.mark.parametrize('value', ['', '   ', None, True, 1.5, ['a']])
def test_validate_item_id_rejects_invalid(value):
    """Ensures validate_item_id raises ValidationError for anything but non-empty strings and integers"""
    with pytest.raises(ValidationError):
        validate_item_id(value)


@pytest.mark.parametrize('value', ['q1', 0, 42])
def test_validate_item_id_accepts_strings_and_ints(value):
    """Sanity check that plain ids pass without raising"""
    validate_item_id(value)


def test_validate_unique_ids_rejects_duplicates():
    """Ensures the same id twice is rejected"""
    with pytest.raises(ValidationError):
        validate_unique_ids(['a', 'b', 'a'])
    validate_unique_ids(['a', 'b', 1])


@pytest.mark.parametrize('ranks', [[1, 1], [2], [1, 3], [0, 1]])
def test_validate_contiguous_ranks_rejects_gaps_and_duplicates(ranks):
    """Ensures ranks must be exactly 1..N"""
    with pytest.raises(ValidationError):
        validate_contiguous_ranks(ranks)


@pytest.mark.parametrize('ranks', [[], [1], [3, 1, 2]])
def test_validate_contiguous_ranks_accepts_permutations(ranks):
    """Any order of 1..N is accepted, including the empty collection"""
    validate_contiguous_ranks(ranks)

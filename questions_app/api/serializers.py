from rest_framework import serializers # DRF serializers base
from core.utils.validators import validate_contiguous_ranks, validate_item_id, validate_unique_ids
from questions_app.services.ordering import Item


class ItemIdField(serializers.Field):
    """
    Accepts the backend's item identifiers as they come (string or integer).
    """
    def to_internal_value(self, data):
        validate_item_id(data) # raises ValidationError on bad ids
        return data

    def to_representation(self, value):
        return value


class ItemSerializer(serializers.Serializer):
    """
    Parses one entry of GET {collection} into an Item.

    Known keys:
      - 'id' (required)
      - 'rank', or 'order' as sent by the original dashboard API (optional, informational only)
    Every other key is kept untouched in the Item payload.
    """
    id = ItemIdField()
    rank = serializers.IntegerField(min_value=1, required=False)
    order = serializers.IntegerField(min_value=1, required=False)

    def to_internal_value(self, data):
        if not isinstance(data, dict):
            raise serializers.ValidationError({'non_field_errors': ['Expected an object for each item.']})
        validated = super().to_internal_value(data) # id/rank/order only
        payload = {key: value for key, value in data.items() if key not in self.fields} # opaque rest
        rank = validated.get('rank', validated.get('order', 0))
        return Item(id=validated['id'], rank=rank, payload=payload)


class ItemListSerializer(serializers.ListSerializer):
    """
    Parses the full collection and rejects duplicate ids.
    Items are returned in response order, which is authoritative.
    """
    child = ItemSerializer()

    def validate(self, attrs):
        validate_unique_ids(item.id for item in attrs)
        return attrs


class OrderEntrySerializer(serializers.Serializer):
    """
    One (itemId, rank) pair of a reorder request.
    """
    itemId = ItemIdField()
    rank = serializers.IntegerField(min_value=1)


class ReorderRequestSerializer(serializers.Serializer):
    """
    Body of POST {collection}/reorder: the full new ordering, not a delta.
    """
    orders = OrderEntrySerializer(many=True)

    def validate_orders(self, value):
        validate_unique_ids(entry['itemId'] for entry in value) # one entry per item
        validate_contiguous_ranks(entry['rank'] for entry in value) # 1..N exactly
        return value


class AddQuestionsSerializer(serializers.Serializer):
    """
    Body of POST {collection}: ids of existing questions to attach to the quiz.
    """
    questionIds = serializers.ListField(child=ItemIdField(), allow_empty=False)


QUESTION_TYPES = ('MULTIPLE_CHOICE', 'TRUE_FALSE', 'FILL_IN_BLANK')
DIFFICULTY_LEVELS = ('EASY', 'MEDIUM', 'HARD')


class CreateQuestionSerializer(serializers.Serializer):
    """
    Body of POST {collection} when a brand new question is created for the quiz.
    Blank answer options are dropped before sending.
    """
    title = serializers.CharField()
    content = serializers.CharField()
    type = serializers.ChoiceField(choices=QUESTION_TYPES, default='MULTIPLE_CHOICE')
    options = serializers.ListField(child=serializers.CharField(allow_blank=True, trim_whitespace=False), default=list)
    correctAnswer = serializers.CharField(allow_blank=True, default='')
    explanation = serializers.CharField(allow_blank=True, default='')
    difficulty = serializers.ChoiceField(choices=DIFFICULTY_LEVELS, default='MEDIUM')
    points = serializers.FloatField(min_value=0, default=1.0)

    def validate_options(self, value):
        return [option for option in value if option.strip()] # empty rows of the form

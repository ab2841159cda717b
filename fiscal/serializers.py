# fiscal/serializers.py
from rest_framework import serializers

from fiscal.models import RangeKind


class AllocatedNumberOutputSerializer(serializers.Serializer):
    kind = serializers.ChoiceField(choices=RangeKind.choices)
    number = serializers.CharField()


class ReleaseNumberInputSerializer(serializers.Serializer):
    # prefix/width are checked by the ledger against the range
    number = serializers.CharField(max_length=32, trim_whitespace=True)


class ReleaseNumberOutputSerializer(serializers.Serializer):
    kind = serializers.ChoiceField(choices=RangeKind.choices)
    number = serializers.CharField()
    recorded = serializers.BooleanField()


class ConfigureRangeInputSerializer(serializers.Serializer):
    range_start = serializers.CharField(max_length=32, trim_whitespace=True)
    range_end = serializers.CharField(max_length=32, trim_whitespace=True)
    rotate = serializers.BooleanField(required=False, default=False)


class RangeStatusOutputSerializer(serializers.Serializer):
    kind = serializers.CharField()
    state = serializers.CharField()
    range_start = serializers.CharField(allow_null=True)
    range_end = serializers.CharField(allow_null=True)
    last_assigned = serializers.CharField(allow_null=True)
    next_number = serializers.CharField(allow_null=True)
    remaining = serializers.IntegerField()
    released_count = serializers.IntegerField()
    released_numbers = serializers.ListField(child=serializers.CharField())

"""
This module provides Django Rest Framework serializers for the hourly log application.
They validate request payloads and shape model instances for responses; the
business rules themselves live in store, targets and imports.
"""
# Third-party imports
from rest_framework import serializers

# Local application imports
from .constants import OUTPUT_FIELDS, QUANTITY_FIELDS
from .models import DailyTargetValue, HourlyLog, ProductionMachineGroup
from .time_anchor import format_local_hour, utc_to_local_display

DATE_INPUT_FORMATS = ['%Y-%m-%d']


class HourlyLogSerializer(serializers.ModelSerializer):
    """
    Read-only representation of an hourly log.

    Adds local date/hour, names and the derived totals.
    """
    production_id = serializers.IntegerField(source='assignment.production_id', read_only=True)
    production_name = serializers.CharField(source='assignment.production.name', read_only=True)
    machine_group_name = serializers.SerializerMethodField()
    date = serializers.SerializerMethodField()
    hour = serializers.SerializerMethodField()
    recorded_hour = serializers.SerializerMethodField()
    total_output = serializers.IntegerField(read_only=True)
    total_target = serializers.IntegerField(read_only=True)

    class Meta:
        model = HourlyLog
        fields = [
            'id', 'assignment_id', 'production_id', 'production_name', 'machine_group_name',
            'recorded_at', 'recorded_hour', 'date', 'hour',
            'qty', 'qty_normal', 'qty_reject', 'grades', 'grade', 'ukuran', 'notes',
            'target_qty', 'target_qty_normal', 'target_qty_reject',
            'total_output', 'total_target', 'created_at', 'updated_at',
        ]
        read_only_fields = fields

    def get_machine_group_name(self, obj):
        return obj.assignment.machine_group.display_name

    def get_date(self, obj):
        return utc_to_local_display(obj.recorded_at)[0]

    def get_hour(self, obj):
        return utc_to_local_display(obj.recorded_at)[1]

    def get_recorded_hour(self, obj):
        return format_local_hour(obj.recorded_at)


class HourlyInputSerializer(serializers.Serializer):
    """
    Payload for creating or updating an hourly log.

    Output values are only type-checked here; whether the machine group records
    them is checked by the store against the group's input config.
    """
    assignment_id = serializers.IntegerField(min_value=1)
    date = serializers.DateField(input_formats=DATE_INPUT_FORMATS)
    hour = serializers.IntegerField(min_value=0, max_value=23)
    qty = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    qty_normal = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    qty_reject = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    grades = serializers.DictField(child=serializers.IntegerField(min_value=0), required=False, allow_null=True)
    grade = serializers.CharField(max_length=50, required=False, allow_null=True, allow_blank=True)
    ukuran = serializers.CharField(max_length=50, required=False, allow_null=True, allow_blank=True)
    notes = serializers.CharField(max_length=500, required=False, allow_null=True, allow_blank=True)

    def validate(self, attrs):
        if not any(attrs.get(name) not in (None, '', {}) for name in OUTPUT_FIELDS):
            raise serializers.ValidationError("At least one output value is required")
        return attrs

    def output_fields(self):
        """Output values given in the payload, blanks dropped."""
        return {
            name: value
            for name, value in self.validated_data.items()
            if name in OUTPUT_FIELDS and value not in (None, '')
        }


class HourlyUpdateSerializer(HourlyInputSerializer):
    """Same as HourlyInputSerializer; the assignment of an existing log cannot change."""
    assignment_id = None
    date = serializers.DateField(input_formats=DATE_INPUT_FORMATS, required=False)
    hour = serializers.IntegerField(min_value=0, max_value=23, required=False)


class DuplicateCheckSerializer(serializers.Serializer):
    assignment_id = serializers.IntegerField(min_value=1)
    date = serializers.DateField(input_formats=DATE_INPUT_FORMATS)
    hour = serializers.IntegerField(min_value=0, max_value=23)


class BulkDeleteSerializer(serializers.Serializer):
    ids = serializers.ListField(child=serializers.IntegerField(min_value=1), allow_empty=False)


class DailyTargetValueSerializer(serializers.ModelSerializer):
    field_name = serializers.ChoiceField(choices=QUANTITY_FIELDS)
    target_value = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    actual_value = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    notes = serializers.CharField(max_length=500, required=False, allow_blank=True, default='')

    class Meta:
        model = DailyTargetValue
        fields = ['field_name', 'target_value', 'actual_value', 'notes']


class DailyTargetUpdateSerializer(serializers.Serializer):
    date = serializers.DateField(input_formats=DATE_INPUT_FORMATS)
    values = DailyTargetValueSerializer(many=True, allow_empty=False)

    def validate_values(self, value):
        names = [item['field_name'] for item in value]
        if len(names) != len(set(names)):
            raise serializers.ValidationError("Each field may only appear once")
        return value


class AssignmentSerializer(serializers.ModelSerializer):
    """Assignment with its defaults, for the production defaults screen."""
    production_name = serializers.CharField(source='production.name', read_only=True)
    machine_group_name = serializers.CharField(source='machine_group.display_name', read_only=True)
    input_config = serializers.SerializerMethodField()

    class Meta:
        model = ProductionMachineGroup
        fields = ['id', 'production_id', 'production_name', 'machine_group_id', 'machine_group_name',
                  'machine_count', 'default_targets', 'input_config']
        read_only_fields = fields

    def get_input_config(self, obj):
        return obj.machine_group.config.to_dict()


class ProductionDefaultsSerializer(serializers.ModelSerializer):
    machine_count = serializers.IntegerField(min_value=1, required=False)

    class Meta:
        model = ProductionMachineGroup
        fields = ['machine_count', 'default_targets']

    def validate_default_targets(self, value):
        """Only quantity fields, each a non-negative integer or null."""
        if not isinstance(value, dict):
            raise serializers.ValidationError("Default targets must be an object")
        cleaned = {}
        for name, target in value.items():
            if name not in QUANTITY_FIELDS:
                raise serializers.ValidationError(f"Unknown target field '{name}'")
            if target is None:
                continue
            if isinstance(target, bool) or not isinstance(target, int) or target < 0:
                raise serializers.ValidationError(f"Default target for '{name}' must be a non-negative integer")
            cleaned[name] = target
        return cleaned


class ImportRowsSerializer(serializers.Serializer):
    """JSON alternative to a file upload: rows keyed by spreadsheet heading."""
    rows = serializers.ListField(child=serializers.DictField(), allow_empty=False)

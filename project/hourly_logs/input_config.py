"""
Per machine group input schema.

A machine group records one of a handful of field layouts (quantity only,
normal/reject split, grade distribution, ...). The layout is stored as JSON on
the machine group and read back as an immutable InputConfig.
"""
# Standard library imports
from dataclasses import dataclass, field
from enum import Enum

# Local application imports
from .constants import INPUT_FIELDS, QUANTITY_FIELDS


class InputType(str, Enum):
    QTY_ONLY = 'qty_only'
    NORMAL_REJECT = 'normal_reject'
    GRADES = 'grades'
    GRADE_QTY = 'grade_qty'
    QTY_UKURAN = 'qty_ukuran'
    CUSTOM = 'custom'


def default_input_config():
    """Stored config for a machine group that only records a plain quantity."""
    return {'type': InputType.QTY_ONLY.value, 'fields': ['qty'], 'grade_types': []}


def determine_type(fields):
    """
    Classify a field list.

    Parameters:
        fields: iterable of field names

    Returns:
        InputType matching the layout, CUSTOM when no layout matches
    """
    fields = list(fields)
    field_set = set(fields)
    if fields == ['qty']:
        return InputType.QTY_ONLY
    if {'qty_normal', 'qty_reject'} <= field_set:
        return InputType.NORMAL_REJECT
    if 'grades' in field_set:
        return InputType.GRADES
    if {'grade', 'qty'} <= field_set:
        return InputType.GRADE_QTY
    if {'qty', 'ukuran'} <= field_set:
        return InputType.QTY_UKURAN
    return InputType.CUSTOM


def validate_fields(fields):
    """
    Return a list of problems with a field list; empty when it is usable.
    """
    errors = []
    if not fields:
        errors.append("At least one input field is required")
    unknown = [name for name in fields if name not in INPUT_FIELDS]
    if unknown:
        errors.append(f"Unknown input fields: {', '.join(unknown)}")
    if 'grade' in fields and 'grades' in fields:
        errors.append("'grade' and 'grades' cannot be used together")
    return errors


@dataclass(frozen=True)
class InputConfig:
    type: InputType
    fields: tuple
    grade_types: tuple = field(default=())

    @classmethod
    def from_dict(cls, data):
        """Build from the stored JSON; missing or empty config means qty only."""
        if not data or not data.get('fields'):
            data = default_input_config()
        fields = tuple(data['fields'])
        return cls(
            type=determine_type(fields),
            fields=fields,
            grade_types=tuple(data.get('grade_types') or ()),
        )

    def to_dict(self):
        return {
            'type': self.type.value,
            'fields': list(self.fields),
            'grade_types': list(self.grade_types),
        }

    @property
    def quantity_fields(self):
        """Integer quantity fields this group records, in canonical order."""
        return tuple(name for name in QUANTITY_FIELDS if name in self.fields)

    @property
    def output_fields(self):
        return tuple(name for name in self.fields if name != 'keterangan')

    def accepts(self, field_name):
        return field_name in self.fields

    def is_valid_grade(self, label):
        """Any label is accepted when the group has no grade list."""
        if not self.grade_types:
            return True
        return label in self.grade_types


def canonical_name(name):
    """Stored form of a machine group name."""
    return ' '.join(str(name).split()).lower()


def display_name(name):
    """Sentence case for presentation, e.g. 'hot press' -> 'Hot press'."""
    if not name:
        return name
    return name[:1].upper() + name[1:]

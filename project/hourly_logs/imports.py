"""
Bulk import of hourly logs from spreadsheet rows.

Validation and commit are separate steps. ``ImportValidator.validate_rows``
checks every row and collects all of its errors without writing anything;
``commit`` inserts the rows of a report only when no row is invalid.
"""
# Standard library imports
import logging
import math
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import NamedTuple

# Third-party imports
import tablib

# Local application imports
from .constants import HOUR_LABEL_FORMAT, QUANTITY_FIELDS, STATUS_ACTIVE
from .exceptions import DuplicateEntry, InvalidArgument, ValidationFailed
from .models import HourlyLog, MachineGroup, Production, ProductionMachineGroup
from .store import create_hourly_log
from .targets import TargetResolver
from .time_anchor import local_tz, to_storage_hour

logger = logging.getLogger(__name__)

# Tried in this order; the first match wins
DATETIME_FORMATS = (
    '%Y-%m-%d %H:%M:%S',
    '%Y-%m-%d %H:%M',
    '%Y-%m-%d %H',
    '%d/%m/%Y %H:%M:%S',
    '%d/%m/%Y %H:%M',
    '%d/%m/%Y %H',
    '%m/%d/%Y %H:%M:%S',
    '%m/%d/%Y %H:%M',
    '%Y/%m/%d %H:%M:%S',
    '%Y/%m/%d %H:%M',
    '%d-%m-%Y %H:%M:%S',
    '%d-%m-%Y %H:%M',
)

# Spreadsheet serial of 1970-01-01 (serials count days from 1899-12-30)
UNIX_EPOCH_SERIAL = 25569

HEADER_ALIASES = {
    'datetime': 'datetime',
    'date_time': 'datetime',
    'recorded_at': 'datetime',
    'production': 'production',
    'machine_group': 'machine_group',
    'machinegroup': 'machine_group',
    'qty': 'qty',
    'qty_normal': 'qty_normal',
    'qtynormal': 'qty_normal',
    'normal': 'qty_normal',
    'qty_reject': 'qty_reject',
    'qtyreject': 'qty_reject',
    'reject': 'qty_reject',
    'notes': 'notes',
    'notes_keterangan': 'notes',
    'keterangan': 'notes',
}

FIELD_LABELS = {
    'qty': 'Qty',
    'qty_normal': 'Qty Normal',
    'qty_reject': 'Qty Reject',
}

TEMPLATE_HEADERS = ['DateTime', 'Production', 'Machine Group', 'Qty', 'Qty Normal', 'Qty Reject',
                    'Notes (Keterangan)']

NUMERIC_PATTERN = re.compile(r'^\d+(\.\d+)?$')


def slugify_heading(heading):
    return re.sub(r'[^a-z0-9]+', '_', str(heading or '').strip().lower()).strip('_')


def normalize_row(raw):
    """Map spreadsheet headings to field names; unknown headings are kept slugified."""
    row = {}
    for heading, value in raw.items():
        slug = slugify_heading(heading)
        row[HEADER_ALIASES.get(slug, slug)] = value
    return row


def _blank(value):
    return value is None or (isinstance(value, str) and not value.strip())


def serial_to_datetime(serial):
    """
    Spreadsheet serial date to a naive wall-clock datetime.

    Raises:
        InvalidArgument: the serial is not finite or lies outside the datetime range
    """
    serial = float(serial)
    if not math.isfinite(serial):
        raise InvalidArgument(f"Invalid serial date {serial}")
    try:
        seconds = round((serial - UNIX_EPOCH_SERIAL) * 86400)
        return datetime(1970, 1, 1) + timedelta(seconds=seconds)
    except (OverflowError, ValueError):
        raise InvalidArgument(f"Serial date {serial} is out of range") from None


def parse_datetime_cell(value):
    """
    Parse a DateTime cell to a naive local datetime truncated to the hour.

    Accepts native datetime cells, numeric serials and the DATETIME_FORMATS
    strings. Aware datetimes are converted to local time.

    Raises:
        InvalidArgument: the value cannot be read as a date and time
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(local_tz()).replace(tzinfo=None)
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, datetime.min.time())
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        if value <= 0:
            raise InvalidArgument(f"Invalid serial date {value}")
        parsed = serial_to_datetime(value)
    else:
        text = str(value).strip()
        if NUMERIC_PATTERN.match(text):
            return parse_datetime_cell(float(text))
        for fmt in DATETIME_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue
        else:
            raise InvalidArgument(f"Unrecognised date and time '{text}'")
    return parsed.replace(minute=0, second=0, microsecond=0)


def parse_quantity(value):
    """
    Read a quantity cell.

    Returns:
        None for an empty cell, otherwise a non-negative int

    Raises:
        InvalidArgument: not a non-negative whole number
    """
    if _blank(value):
        return None
    if isinstance(value, bool):
        raise InvalidArgument("Boolean is not a quantity")
    if isinstance(value, int):
        number = value
    elif isinstance(value, float):
        if not value.is_integer():
            raise InvalidArgument(f"{value} is not a whole number")
        number = int(value)
    else:
        text = str(value).strip()
        try:
            number = int(text)
        except ValueError:
            try:
                as_float = float(text)
            except ValueError:
                raise InvalidArgument(f"'{text}' is not a number") from None
            if not as_float.is_integer():
                raise InvalidArgument(f"{text} is not a whole number")
            number = int(as_float)
    if number < 0:
        raise InvalidArgument(f"{number} is negative")
    return number


@dataclass
class ImportRow:
    row_number: int
    raw: dict
    parsed: dict = field(default_factory=dict)
    errors: list = field(default_factory=list)
    assignment: object = None
    local_datetime: datetime = None

    @property
    def is_valid(self):
        return not self.errors

    @property
    def fields(self):
        return {name: self.parsed.get(name) for name in QUANTITY_FIELDS if self.parsed.get(name) is not None}

    def to_dict(self):
        return {
            'row_number': self.row_number,
            'raw': {key: str(value) if isinstance(value, (date, datetime)) else value
                    for key, value in self.raw.items()},
            'parsed': self.parsed,
            'errors': list(self.errors),
            'is_valid': self.is_valid,
        }


@dataclass
class ImportReport:
    rows: list

    @property
    def valid_rows(self):
        return [row for row in self.rows if row.is_valid]

    @property
    def summary(self):
        valid = len(self.valid_rows)
        invalid = len(self.rows) - valid
        return {
            'total': len(self.rows),
            'valid': valid,
            'invalid': invalid,
            'can_import': invalid == 0 and valid > 0,
        }

    def to_dict(self):
        return {
            'summary': self.summary,
            'rows': [row.to_dict() for row in self.rows],
        }


class ImportResult(NamedTuple):
    imported: int
    skipped: int


class ImportValidator:
    """
    Validates candidate hourly log rows.

    Reference data is loaded once when the validator is created and is not
    refreshed; use a new validator for each import.
    """

    def __init__(self):
        self.productions = {
            production.name: production
            for production in Production.objects.filter(status=STATUS_ACTIVE)
        }
        self.machine_groups = {group.name: group for group in MachineGroup.objects.all()}
        self.assignments = {
            (assignment.production_id, assignment.machine_group_id): assignment
            for assignment in ProductionMachineGroup.objects.select_related('production', 'machine_group')
        }

    def validate_rows(self, rows):
        """
        Validate a batch of rows (dicts keyed by spreadsheet heading).

        Row numbers start at 2, the first data row under the heading row.
        Completely empty rows are skipped but still counted for numbering.

        Returns:
            ImportReport
        """
        checked = []
        seen = {}
        for index, raw in enumerate(rows):
            if all(_blank(value) for value in raw.values()):
                continue
            row = self._validate_row(index + 2, raw)
            if row.assignment is not None and row.local_datetime is not None:
                key = (row.assignment.pk, row.parsed['recorded_at'])
                if key in seen:
                    row.errors.append(
                        f"Duplicate entry: row {seen[key]} in this file already targets this "
                        f"Production/Machine Group at {row.local_datetime.strftime(HOUR_LABEL_FORMAT)}"
                    )
                else:
                    seen[key] = row.row_number
            checked.append(row)

        report = ImportReport(checked)
        logger.info("Validated import batch: %s", report.summary)
        return report

    def _validate_row(self, row_number, raw):
        values = normalize_row(raw)
        row = ImportRow(row_number=row_number, raw=dict(raw))
        errors = row.errors

        # DateTime
        cell = values.get('datetime')
        if _blank(cell):
            errors.append("DateTime is required")
        else:
            try:
                row.local_datetime = parse_datetime_cell(cell)
            except InvalidArgument:
                errors.append("Invalid DateTime format. Use YYYY-MM-DD HH:00:00")
            else:
                row.parsed['datetime'] = row.local_datetime.strftime(HOUR_LABEL_FORMAT)

        # Production
        production = None
        production_name = values.get('production')
        if _blank(production_name):
            errors.append("Production is required")
        else:
            production_name = str(production_name).strip()
            row.parsed['production'] = production_name
            production = self.productions.get(production_name)
            if production is None:
                errors.append(f"Production '{production_name}' not found (case-sensitive)")

        # Machine group
        machine_group = None
        group_name = values.get('machine_group')
        if _blank(group_name):
            errors.append("Machine Group is required")
        else:
            group_name = str(group_name).strip()
            row.parsed['machine_group'] = group_name
            machine_group = self.machine_groups.get(group_name)
            if machine_group is None:
                errors.append(f"Machine Group '{group_name}' not found (case-sensitive)")

        if production is not None and machine_group is not None:
            row.assignment = self.assignments.get((production.pk, machine_group.pk))
            if row.assignment is None:
                errors.append(
                    f"Machine Group '{group_name}' is not assigned to Production '{production_name}'"
                )

        # Quantities
        for name in QUANTITY_FIELDS:
            try:
                row.parsed[name] = parse_quantity(values.get(name))
            except InvalidArgument:
                row.parsed[name] = None
                errors.append(f"{FIELD_LABELS[name]} must be a non-negative integer")
                continue
            if (row.parsed[name] is not None and machine_group is not None
                    and not machine_group.config.accepts(name)):
                errors.append(f"Machine Group '{group_name}' does not record {FIELD_LABELS[name]}")

        notes = values.get('notes')
        row.parsed['notes'] = None if _blank(notes) else str(notes).strip()

        # Duplicate against committed logs
        if row.assignment is not None and row.local_datetime is not None:
            recorded_at = to_storage_hour(row.local_datetime.date(), row.local_datetime.hour)
            row.parsed['recorded_at'] = recorded_at.isoformat()
            if HourlyLog.objects.filter(assignment=row.assignment, recorded_at=recorded_at).exists():
                errors.append(
                    f"Duplicate entry: record already exists for this Production/Machine Group "
                    f"at {row.local_datetime.strftime(HOUR_LABEL_FORMAT)}"
                )
        return row


def validate_rows(rows):
    return ImportValidator().validate_rows(rows)


def commit(report, user=None):
    """
    Insert the rows of a validated report.

    Raises:
        ValidationFailed: the report has invalid rows or nothing to import

    A row whose hour was taken after validation is counted as skipped.
    """
    if not report.summary['can_import']:
        raise ValidationFailed(report)

    resolver = TargetResolver()
    imported = skipped = 0
    for row in report.valid_rows:
        try:
            create_hourly_log(
                row.assignment,
                row.local_datetime.date(),
                row.local_datetime.hour,
                fields=row.fields,
                notes=row.parsed.get('notes'),
                user=user,
                resolver=resolver,
            )
        except DuplicateEntry as exc:
            logger.warning("Skipped import row %s: %s", row.row_number, exc)
            skipped += 1
        else:
            imported += 1
    logger.info("Import committed: %d imported, %d skipped", imported, skipped)
    return ImportResult(imported, skipped)


def read_spreadsheet(upload):
    """
    Read an uploaded .xlsx or .csv file into a list of row dicts keyed by heading.

    Raises:
        InvalidArgument: the file cannot be read
    """
    name = (getattr(upload, 'name', '') or '').lower()
    content = upload.read()
    try:
        if name.endswith('.csv'):
            if isinstance(content, bytes):
                content = content.decode('utf-8-sig')
            dataset = tablib.Dataset().load(content, format='csv')
        else:
            dataset = tablib.Dataset().load(content, format='xlsx')
    except Exception as exc:
        logger.warning("Could not read import file %s: %s", name, exc)
        raise InvalidArgument("Unable to read the uploaded file. Upload an .xlsx or .csv file") from exc
    headers = dataset.headers or []
    return [dict(zip(headers, values)) for values in dataset]


def import_template():
    """Workbook with the input sheet plus reference sheets of productions and machine groups."""
    template = tablib.Dataset(title='Hourly Input', headers=TEMPLATE_HEADERS)
    template.append(['2026-01-15 08:00:00', 'Plywood', 'db', '', 100, 5, 'Example row 1'])
    template.append(['2026-01-15 09:00:00', 'Plywood', 'db', '', 150, 10, 'Example row 2'])

    productions = tablib.Dataset(title='Productions', headers=['Production'])
    for production in Production.objects.filter(status=STATUS_ACTIVE).order_by('name'):
        productions.append([production.name])

    machine_groups = tablib.Dataset(title='Machine Groups', headers=['Machine Group', 'Production', 'Fields'])
    for assignment in ProductionMachineGroup.objects.select_related('production', 'machine_group').order_by(
        'production__name', 'machine_group__name'
    ):
        machine_groups.append([
            assignment.machine_group.name,
            assignment.production.name,
            ', '.join(assignment.machine_group.config.output_fields),
        ])

    return tablib.Databook((template, productions, machine_groups))

"""
Constants used throughout the application.
"""

# Production status values
STATUS_ACTIVE = 'active'
STATUS_INACTIVE = 'inactive'

PRODUCTION_STATUSES = (
    (STATUS_ACTIVE, 'Active'),
    (STATUS_INACTIVE, 'Inactive'),
)

# Output fields a machine group can record, mapped to their labels
INPUT_FIELDS = {
    'qty': 'Quantity (Qty)',
    'qty_normal': 'Quantity Normal',
    'qty_reject': 'Quantity Reject',
    'grades': 'Grades (Multiple)',
    'grade': 'Grade (Single)',
    'ukuran': 'Size/Dimension (Ukuran)',
    'keterangan': 'Description (Keterangan)',
}

# Fields holding integer quantities; these are the ones that carry targets
QUANTITY_FIELDS = ('qty', 'qty_normal', 'qty_reject')

# Fields that can hold output on an hourly log ('keterangan' maps to notes)
OUTPUT_FIELDS = ('qty', 'qty_normal', 'qty_reject', 'grades', 'grade', 'ukuran')

# Target columns snapshotted onto each hourly log
TARGET_SNAPSHOT_FIELDS = {
    'qty': 'target_qty',
    'qty_normal': 'target_qty_normal',
    'qty_reject': 'target_qty_reject',
}

# Summary status labels
STATUS_ACHIEVED = 'achieved'
STATUS_BELOW = 'below'

# Display format for a recorded hour
HOUR_LABEL_FORMAT = '%Y-%m-%d %H:00'

# Sort allow-lists, first entry is the default
HOURLY_LOG_SORTS = ('recorded_at', 'created_at', 'updated_at')
MACHINE_GROUP_SORTS = ('total_output', 'total_target', 'variance', 'machine_count',
                       'production_name', 'machine_group_name')
PRODUCTION_SORTS = ('total_output', 'total_target', 'variance', 'group_count', 'production_name')
GROUP_LOG_SORTS = ('recorded_hour', 'total_output', 'total_target', 'variance', 'production_name',
                   'machine_group_name')
PRODUCTION_LOG_SORTS = ('recorded_hour', 'total_output', 'total_target', 'variance', 'production_name')
DAILY_SUMMARY_SORTS = ('production_name', 'machine_group_name', 'actual_total', 'target_total',
                       'variance', 'achievement_percentage')

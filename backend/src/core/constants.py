"""Scheduling constants and limits."""

# Database field lengths
MAX_STRING_LENGTH = 255
MAX_REASON_LENGTH = 100
MAX_NOTES_LENGTH = 1000

# Database connection settings
DB_POOL_RECYCLE_SECONDS = 300  # 5 minutes

# Appointment durations (minutes)
MIN_APPOINTMENT_DURATION_MINUTES = 15
MAX_APPOINTMENT_DURATION_MINUTES = 480  # 8 hours

# Recurrence rules
MIN_RECURRENCE_INTERVAL = 1
MAX_RECURRENCE_INTERVAL = 52

# Upper bound on date-range queries (slots / availability range endpoints)
MAX_DATE_RANGE_DAYS = 62

# Statuses that occupy a calendar slot for conflict purposes
ACTIVE_BOOKING_STATUS_VALUES = ("scheduled", "confirmed", "checked_in", "in_progress")

# Conflict reason reported for an overlapping booking
BOOKING_CONFLICT_REASON = "Practitioner has another appointment"

# Cancellation reason recorded on the old booking when rescheduling
RESCHEDULE_CANCELLATION_REASON = "rescheduled"

# Audit action emitted when some children of a recurring series fail to persist
RECURRING_PARTIAL_FAILURE_ACTION = "create_recurring_partial_failure"

# Tenant header for the HTTP layer
TENANT_HEADER = "X-Tenant-ID"

"""Process exit codes for the logsync CLI."""

SUCCESS = 0
USAGE_ERROR = 2
CONFLICT = 3
STORAGE_ERROR = 4
LOCK_INVARIANT_VIOLATION = 5
CONFIG_ERROR = 6

"""Constants for taskseries.

This module centralizes magic values and defaults used throughout the application.
"""

from taskseries.models.task import Recurrence, TaskStatus


# Task defaults
DEFAULT_DURATION_MINUTES = 60
DEFAULT_STATUS = TaskStatus.TODO
DEFAULT_RECURRENCE = Recurrence.NONE

# Identifiers
TEMP_ID_PREFIX = "temp-"  # Locally generated ids for optimistic inserts
PROJECTED_ID_MARKER = "-projected-"  # "<real-id>-projected-<date>" ids produced by calendar views

# Store
TASKS_COLLECTION = "tasks"

# Bulk operations
DEFAULT_BULK_UPDATE_MAX_WORKERS = 8

# Per-owner managers kept in memory by the API registry
DEFAULT_MAX_MANAGERS = 1024

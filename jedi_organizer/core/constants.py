"""
FILE: jedi_organizer/core/constants.py
PURPOSE: Constants used throughout the application
EXPORTS:
  - TASK_STATUSES / TASK_TYPES: Task vocabularies
  - PROJECT_STATUSES: Project vocabulary
  - ENERGY_MIN/ENERGY_MAX, PRIORITY_MIN/PRIORITY_MAX, RATING_MIN/RATING_MAX
  - DEFAULT_* values for new entities
DEPENDENCIES:
  - None (stdlib only)
NOTES:
  - Centralized constants to avoid magic strings
  - Status values are stored verbatim in the database
"""

# Task status constants
TASK_TODO = "TODO"
TASK_IN_PROGRESS = "IN_PROGRESS"
TASK_WAITING = "WAITING"
TASK_COMPLETED = "COMPLETED"
TASK_CANCELLED = "CANCELLED"
TASK_STATUSES = (TASK_TODO, TASK_IN_PROGRESS, TASK_WAITING, TASK_COMPLETED, TASK_CANCELLED)

# Statuses an unscheduled task must have to show up in today's actionable list
ACTIONABLE_STATUSES = (TASK_TODO, TASK_IN_PROGRESS)

# Task type constants
TYPE_ACTION = "ACTION"
TYPE_WAITING_FOR = "WAITING_FOR"
TYPE_REFERENCE = "REFERENCE"
TYPE_SOMEDAY_MAYBE = "SOMEDAY_MAYBE"
TASK_TYPES = (TYPE_ACTION, TYPE_WAITING_FOR, TYPE_REFERENCE, TYPE_SOMEDAY_MAYBE)

# Project status constants
PROJECT_ACTIVE = "ACTIVE"
PROJECT_ON_HOLD = "ON_HOLD"
PROJECT_COMPLETED = "COMPLETED"
PROJECT_ARCHIVED = "ARCHIVED"
PROJECT_STATUSES = (PROJECT_ACTIVE, PROJECT_ON_HOLD, PROJECT_COMPLETED, PROJECT_ARCHIVED)

# Numeric ranges (inclusive)
ENERGY_MIN, ENERGY_MAX = 1, 5
PRIORITY_MIN, PRIORITY_MAX = 1, 5
RATING_MIN, RATING_MAX = 1, 5
HIGH_PRIORITY_THRESHOLD = 2  # priority 1 is highest
REMINDER_HOUR_MIN, REMINDER_HOUR_MAX = 0, 23

# Field limits
TITLE_MAX_LENGTH = 200
TASK_DESCRIPTION_MAX_LENGTH = 1000
PROJECT_DESCRIPTION_MAX_LENGTH = 2000
CONTEXT_MAX_LENGTH = 100
CONTEXT_PATTERN = r"^[a-zA-Z0-9\s\-_@]*$"

# Default values
DEFAULT_TASK_STATUS = TASK_TODO
DEFAULT_TASK_TYPE = TYPE_ACTION
DEFAULT_ENERGY = 3
DEFAULT_PROJECT_STATUS = PROJECT_ACTIVE
DEFAULT_PRIORITY = 3

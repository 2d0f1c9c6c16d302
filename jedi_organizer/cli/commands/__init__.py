"""
FILE: jedi_organizer/cli/commands/__init__.py
PURPOSE: CLI command modules
NOTES:
  - Each module registers its commands on the apps defined in cli.main
    as a side effect of being imported
"""

from . import projects, system, tasks, users, workflow

__all__ = [
    "projects",
    "system",
    "tasks",
    "users",
    "workflow",
]

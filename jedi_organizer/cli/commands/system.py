"""
FILE: jedi_organizer/cli/commands/system.py
PURPOSE: System commands (version)
"""

from ..main import app, console, __version__


@app.command()
def version():
    """Show Jedi Organizer version."""
    console.print(f"Jedi Organizer v{__version__}")

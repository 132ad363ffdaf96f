"""pipewatch TUI Screens.

Domain Structure:
    - run_details/ - Live run view with the node side panel
    - mixins/      - Reusable screen mixins

Note: Keybindings live in the keyboard/ package.
"""

from __future__ import annotations

from pipewatch.screens.run_details import RunDetailsScreen

__all__ = ["RunDetailsScreen"]

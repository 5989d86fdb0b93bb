"""Local documentation previewer.

Serves a directory over HTTP; Markdown files are rendered in the browser.
"""

from .app import create_app
from .router import Outcome, Resolution, Router, pick_index

__version__ = "0.1.0"

__all__ = ["create_app", "Outcome", "Resolution", "Router", "pick_index"]

"""Terminal dashboard."""

from bullscope.ui.app import run_dashboard
from bullscope.ui.controller import Controller

__all__ = ["Controller", "run_dashboard"]

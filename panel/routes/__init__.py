"""
Route package initialization.
"""
from .control import router as control_router
from .notify import router as notify_router
from .results import router as results_router
from .ui import router as ui_router

__all__ = ["control_router", "notify_router", "results_router", "ui_router"]

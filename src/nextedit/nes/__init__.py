"""Next edit suggestion lifecycle: requests, storage, promotion, and application."""

from .context import InFlightRequest, NesContext
from .controller import ESCAPE_KEY, NesController
from .edit import EditRecord
from .engine import PromotionEngine, apply_target
from .focus import FocusTracker
from .requests import RequestCoordinator, TriggerKind
from .scheduler import Debouncer, TaskQueue
from .store import EditStore

__all__ = [
    "Debouncer",
    "ESCAPE_KEY",
    "EditRecord",
    "EditStore",
    "FocusTracker",
    "InFlightRequest",
    "NesContext",
    "NesController",
    "PromotionEngine",
    "RequestCoordinator",
    "TaskQueue",
    "TriggerKind",
    "apply_target",
]

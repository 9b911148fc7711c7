"""nextedit: coordinate next edit suggestions between a language backend and an editor."""

from .app import configure_logging, create_controller, load_settings
from .nes.controller import NesController

__all__ = ["NesController", "configure_logging", "create_controller", "load_settings"]

__version__ = "0.1.0"

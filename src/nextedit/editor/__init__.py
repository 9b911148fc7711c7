"""Editor package containing document models, the workspace, and patches."""

from . import document_model, patches, workspace

__all__ = ["document_model", "patches", "workspace"]

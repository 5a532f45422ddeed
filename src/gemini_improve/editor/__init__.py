"""Editor package containing document models, widgets and the result sink."""

from . import document_model, editor_widget, workspace

__all__ = ["document_model", "editor_widget", "workspace"]

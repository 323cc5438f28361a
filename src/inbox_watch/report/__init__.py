"""Console report rendering."""

from .renderer import (
    confidence_band,
    render_classification,
    render_classification_error,
    render_message,
    render_report,
)

__all__ = [
    "confidence_band",
    "render_classification",
    "render_classification_error",
    "render_message",
    "render_report",
]

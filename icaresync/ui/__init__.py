"""UI."""

from icaresync.ui.reporter import Reporter

__all__ = ["Reporter"]

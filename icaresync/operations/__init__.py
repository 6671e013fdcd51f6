"""File operations.

Public API:
    - Converter: Base class for file converters
    - ExternalToolConverter: Converter running a command-line tool
"""

from icaresync.operations.convert import Converter, ExternalToolConverter

__all__ = [
    "Converter",
    "ExternalToolConverter",
]

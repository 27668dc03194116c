"""Operations exposed to the outer layer, one service per resource."""

from .commands import CommandService, LocatedCommand, utc_now
from .databases import DatabaseService

__all__ = [
    "CommandService",
    "DatabaseService",
    "LocatedCommand",
    "utc_now",
]

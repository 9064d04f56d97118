"""SocketIO server package for snapsolve.

Components:
- server: Socket.IO server exposing the UI commands and wiring the pipeline
- notifier: pushes pipeline events to the UI room
"""

from . import notifier
from . import server

__all__ = [
    'notifier',
    'server'
]

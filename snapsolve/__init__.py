"""snapsolve: screenshot-driven coding problem solver.

Screenshots of a coding problem are captured into bounded queues, sent to an
OpenAI-compatible vision model for problem extraction, and turned into a
solution (and later a debugged solution) that is pushed to the UI over
Socket.IO.
"""

__version__ = "0.1.0"

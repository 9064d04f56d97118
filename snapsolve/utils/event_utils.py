import enum


class EventType(enum.Enum):
    """
    Enumerates the events emitted to the UI over Socket.IO.
    Events signify that something *has happened*. Payloads provide context.
    """
    # Preconditions
    OUT_OF_CREDITS = "out-of-credits" # Payload: none
    NO_SCREENSHOTS = "processing-no-screenshots" # Payload: none (also used for cancellation)

    # Solve pipeline
    SOLVE_STARTED = "initial-start" # Payload: none
    PROBLEM_EXTRACTED = "problem-extracted" # Payload: ProblemInfo
    SOLUTION_SUCCESS = "solution-success" # Payload: ProblemInfo
    SOLUTION_ERROR = "solution-error" # Payload: str

    # Debug pipeline
    DEBUG_STARTED = "debug-start" # Payload: none
    DEBUG_SUCCESS = "debug-success" # Payload: ProblemInfo
    DEBUG_ERROR = "debug-error" # Payload: str

    # State
    CREDITS_UPDATED = "credits-updated" # Payload: int
    VIEW_RESET = "reset-view" # Payload: none
    SCREENSHOT_TAKEN = "screenshot-taken" # Payload: {"path": str, "preview": str}

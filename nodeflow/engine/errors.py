"""
Exceptions raised by the execution engine.
"""


class ExecutionCancelled(Exception):
    """Raised when a run is cancelled through its cancellation event"""


class SandboxError(Exception):
    """Raised when user code cannot be compiled or exceeds its budget"""


class CollaboratorError(Exception):
    """Raised when an external collaborator answers with a non-2xx status"""

    def __init__(self, message: str, status_code: int = 0, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body

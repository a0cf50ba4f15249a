from typing import Any, List, Optional


class ApiError(Exception):
    """Raised by core operations; rendered as a failure envelope at the HTTP boundary."""

    def __init__(self, status_code: int, message: str = "Something went wrong", errors: Optional[List[Any]] = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.errors = errors or []

from typing import Dict, Optional


class ValidationFailure(ValueError):
    """Raised when input is rejected before any calculation or persistence.

    ``errors`` maps the offending field name to a human readable message so
    callers can label the failure next to the right input.
    """

    def __init__(self, errors: Dict[str, str], message: Optional[str] = None):
        self.errors = dict(errors)
        super().__init__(message or "; ".join(self.errors.values()))

    @classmethod
    def single(cls, field: str, message: str) -> "ValidationFailure":
        return cls({field: message})

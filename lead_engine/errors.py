"""
Error taxonomy for the Lead Quality Engine
"""

from typing import Any, Dict


class LeadEngineError(Exception):
    """Base error; ``context`` carries ids and field names for display"""

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = {k: v for k, v in context.items() if v is not None}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.message,
            "type": type(self).__name__,
            "context": self.context,
        }


class ValidationError(LeadEngineError):
    """Lead is missing a required field or holds a malformed value"""


class InvalidStateError(LeadEngineError):
    """Duplicate group is not in a status that allows the action"""


class NotFoundError(LeadEngineError):
    """Referenced lead or group does not exist"""

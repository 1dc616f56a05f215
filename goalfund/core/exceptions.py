"""
Error taxonomy for the goal funding core.

Every error raised by the settings store, goal registry and allocation engine
derives from GoalFundError. Route handlers never catch these; the handlers
registered in goalfund.main turn them into JSON responses.
"""
from typing import Any, Dict, List, Optional


class GoalFundError(Exception):
    """Base class for goal funding errors"""

    status_code: int = 400
    code: str = "goal_fund_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"code": self.code, "detail": self.message}
        if self.details:
            body.update(self.details)
        return body


class ValidationError(GoalFundError):
    """Rejected input; nothing was written"""

    status_code = 422
    code = "validation_error"


class ConfigurationError(GoalFundError):
    """Budget settings could not be loaded at allocation time"""

    status_code = 503
    code = "configuration_error"


class DuplicateGoalConflict(GoalFundError):
    """An active goal with the same normalized title already exists.

    The caller must ask the user to pick one of ``options``; the core never
    merges or creates on its own.
    """

    status_code = 409
    code = "duplicate_goal"
    options: List[str] = ["modify_existing", "rename", "abort"]

    def __init__(self, title: str, existing_goal_id: Any, existing_title: str):
        super().__init__(
            f"An active goal named '{existing_title}' already exists",
            details={
                "title": title,
                "existing_goal_id": str(existing_goal_id),
                "existing_title": existing_title,
                "options": list(self.options),
            },
        )
        self.title = title
        self.existing_goal_id = existing_goal_id
        self.existing_title = existing_title


class ConcurrencyConflict(GoalFundError):
    """Goal capacity changed between planning and writing allocations"""

    status_code = 409
    code = "concurrency_conflict"


class GoalNotFound(GoalFundError):
    status_code = 404
    code = "goal_not_found"


class TransactionNotFound(GoalFundError):
    status_code = 404
    code = "transaction_not_found"


class IntentParserUnavailable(GoalFundError):
    """The natural-language parser timed out or answered with an error"""

    status_code = 504
    code = "intent_parser_unavailable"

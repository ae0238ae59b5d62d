class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

class ParseError(AppError):
    """Raised when an uploaded workbook cannot be read or holds no usable sheet."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=400, details=details)

class RangeError(AppError):
    """Raised for a malformed week-range sheet label such as "Weeks 5-3"."""
    def __init__(self, sheet_name: str, reason: str):
        self.sheet_name = sheet_name
        self.reason = reason
        super().__init__(
            f'Invalid week range in sheet "{sheet_name}": {reason}',
            status_code=400,
            details={"sheet": sheet_name, "reason": reason},
        )

class ValidationError(AppError):
    """Raised when a timetable commit is blocked by rows with errors."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=422, details=details)

class VenueConflictError(AppError):
    """Raised when a venue booking overlaps an existing one."""
    def __init__(self, message: str, conflicts: list[dict] | None = None, details: dict = None):
        self.conflicts = conflicts or []
        payload = {"conflicts": self.conflicts}
        payload.update(details or {})
        super().__init__(message, status_code=409, details=payload)

class ResourceNotFoundError(AppError):
    """Raised when a requested resource is not found."""
    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(f"{resource_type} with id {resource_id} not found", status_code=404)


class RangeExhaustedWarning(UserWarning):
    """A resolved week starts after the term ends and was dropped."""
    def __init__(self, sheet_name: str, week_index: int, week_start):
        self.sheet_name = sheet_name
        self.week_index = week_index
        self.week_start = week_start
        super().__init__(
            f'Week {week_index} of sheet "{sheet_name}" starts {week_start.isoformat()}, after the term ends'
        )

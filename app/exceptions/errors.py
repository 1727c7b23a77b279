from fastapi import status
from fastapi.responses import JSONResponse

class ApplicationException(Exception):
    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        code: str = "APPLICATION_ERROR",
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code

    def to_response(self):
        return JSONResponse(
            status_code=self.status_code,
            content={
                "success": False,
                "error": {"code": self.code, "message": self.message},
            }
        )


class NotFoundError(ApplicationException):
    """Raised for SESSION_NOT_FOUND, CYCLE_NOT_FOUND, SCHEDULE_NOT_FOUND, CHILD_NOT_FOUND and TRANSITION_NOT_FOUND."""

    def __init__(self, code: str, message: str):
        super().__init__(message, status.HTTP_404_NOT_FOUND, code)


class InvalidStateTransitionError(ApplicationException):
    def __init__(self, current_state, target_state=None, event=None):
        current = getattr(current_state, "value", current_state)
        target = getattr(target_state, "value", target_state)
        if target is not None:
            message = f"Cannot transition session from {current} to {target}"
        else:
            message = f"Event '{getattr(event, 'value', event)}' is not allowed while session is {current}"
        super().__init__(message, status.HTTP_400_BAD_REQUEST, "INVALID_STATE_TRANSITION")
        self.current_state = current_state
        self.target_state = target_state
        self.event = event


class ForbiddenError(ApplicationException):
    def __init__(self, message: str = "You do not have permission to modify this child's data"):
        super().__init__(message, status.HTTP_403_FORBIDDEN, "FORBIDDEN")


class ValidationError(ApplicationException):
    def __init__(self, message: str):
        super().__init__(message, status.HTTP_400_BAD_REQUEST, "VALIDATION_ERROR")


class ConflictError(ApplicationException):
    def __init__(self, code: str, message: str):
        super().__init__(message, status.HTTP_409_CONFLICT, code)


class UnknownScheduleTypeError(ApplicationException):
    """Schedule types are validated on input, so reaching this is a programming error."""

    def __init__(self, schedule_type):
        super().__init__(
            f"Unknown schedule type: {schedule_type}",
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "UNKNOWN_SCHEDULE_TYPE",
        )
        self.schedule_type = schedule_type

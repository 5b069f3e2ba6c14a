class AppError(Exception):
    """Base class for all application exceptions."""

    status_code: int = 500
    code: str = "internal_error"

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        status_code: int | None = None,
        details: dict | None = None,
    ):
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(AppError):
    """Raised when a request is well-formed but semantically invalid."""

    status_code = 400
    code = "invalid_request"


class ResourceNotFoundError(AppError):
    """Raised when a requested resource is not found."""

    status_code = 404

    def __init__(self, resource_type: str, resource_id: int | str):
        super().__init__(
            f"{resource_type} with id {resource_id} not found",
            code=f"{resource_type.lower().replace(' ', '_')}_not_found",
            details={"resource": resource_type, "id": resource_id},
        )


class ConfigurationError(AppError):
    """Raised when the semester is not configured well enough to schedule."""

    status_code = 422
    code = "configuration_invalid"


class CoverageShortfallError(AppError):
    """Raised when timetable submission or fill rate falls short of policy."""

    status_code = 422
    code = "submission_incomplete"


class ScheduleStateError(AppError):
    """Raised when an operation is not allowed in the schedule's current status."""

    status_code = 409
    code = "schedule_state_invalid"


class ReasonRequiredError(ScheduleStateError):
    status_code = 400
    code = "reason_required"

    def __init__(self) -> None:
        super().__init__("A reason is required to modify a published schedule")


class CandidateUnavailableError(AppError):
    """Raised when the requested member cannot take the duty cell."""

    status_code = 409
    code = "candidate_unavailable"


class PhaseTransitionError(AppError):
    status_code = 409
    code = "phase_transition_invalid"


class RuleNotConfigurableError(AppError):
    status_code = 409
    code = "rule_not_configurable"


class ConcurrencyConflictError(AppError):
    """Raised when a concurrent writer changed the schedule first; safe to retry."""

    status_code = 409
    code = "concurrent_modification"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, details={"retryable": True, **(details or {})})


class SchedulerTimeoutError(AppError):
    """Raised when a scheduling run exceeds the configured time limit."""

    status_code = 503
    code = "solver_timeout"

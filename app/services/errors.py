"""
Error taxonomy for F1 Pick'em services

Service operations return ``(value, error)`` pairs instead of raising these,
so callers (HTTP handlers, the CLI) decide how to surface them. Each error
knows its HTTP status and renders to a JSON-ready dict.
"""

from app.utils.timezone_utils import format_utc


class PickemError(Exception):
    code = "ERROR"
    http_status = 500

    def to_dict(self):
        return {"error": str(self), "code": self.code}


class NotFound(PickemError):
    code = "NOT_FOUND"
    http_status = 404

    def __init__(self, entity, entity_id=None):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(entity, entity_id)

    def __str__(self):
        if self.entity_id is not None:
            return f"{self.entity} with id {self.entity_id} not found"
        return f"{self.entity} not found"


class ValidationError(PickemError):
    code = "VALIDATION_ERROR"
    http_status = 400

    def __init__(self, message, field=None):
        self.message = message
        self.field = field
        super().__init__(message, field)

    def __str__(self):
        return f"{self.field}: {self.message}" if self.field else self.message

    def to_dict(self):
        data = super().to_dict()
        if self.field:
            data["field"] = self.field
        return data


class PickWindowClosed(PickemError):
    code = "PICK_WINDOW_CLOSED"
    http_status = 400

    def __init__(self, reason, opens_at=None):
        self.reason = reason  # "too_early" or "too_late"
        self.opens_at = opens_at if reason == "too_early" else None
        super().__init__(reason, self.opens_at)

    def __str__(self):
        if self.reason == "too_early":
            if self.opens_at is not None:
                return f"Pick window not yet open. Opens {format_utc(self.opens_at)}"
            return "Pick window not yet open"
        return "Pick window has closed"

    def to_dict(self):
        data = super().to_dict()
        data["reason"] = self.reason
        if self.opens_at is not None:
            data["opens_at"] = format_utc(self.opens_at)
        return data


class DriverUnavailable(PickemError):
    code = "DRIVER_UNAVAILABLE"
    http_status = 400

    def __init__(self, driver_id):
        self.driver_id = driver_id
        super().__init__(driver_id)

    def __str__(self):
        return f"Driver {self.driver_id} is not available"

    def to_dict(self):
        data = super().to_dict()
        data["driver_id"] = self.driver_id
        return data


class Conflict(PickemError):
    code = "CONFLICT"
    http_status = 409

    def __init__(self, message):
        self.message = message
        super().__init__(message)

    def __str__(self):
        return self.message


def is_positive_int(value):
    return isinstance(value, int) and not isinstance(value, bool) and value > 0

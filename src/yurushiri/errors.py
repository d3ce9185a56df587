"""Domain errors raised by services and translated by the routers"""


class EventNotFoundError(ValueError):
    """The referenced event does not exist (or was deleted)"""

    def __init__(self, event_id):
        super().__init__(f"Event not found: {event_id}")
        self.event_id = event_id


class EventFullError(ValueError):
    """The event is at capacity and the user holds no registration yet"""

    def __init__(self, message: str = "満席のため申し込みできません"):
        super().__init__(message)


class RegistrationValidationError(ValueError):
    """A required registration field is missing or invalid"""

    def __init__(self, message: str = "必須項目を入力してください"):
        super().__init__(message)


class DifyError(RuntimeError):
    """The AI chat/file API could not be reached or answered non-2xx"""


class AuthError(RuntimeError):
    """The auth service rejected the request or could not be reached"""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class StorageError(RuntimeError):
    """Object storage upload/removal failed"""

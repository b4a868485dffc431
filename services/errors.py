"""Error types raised by the service layer and rendered by app.py."""


class CalendarError(Exception):
    status_code = 500

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        return {'error': self.message}


class ValidationError(CalendarError):
    status_code = 400


class UnauthorizedError(CalendarError):
    status_code = 401


class NotFoundError(CalendarError):
    status_code = 404

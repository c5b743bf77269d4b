"""Domain exceptions raised by the service layer.

Learn: Services know nothing about HTTP. They raise these and the app's
exception handlers (see main.py) turn each class into its status code, so
route handlers don't need try/except around every call.
"""


class ServiceError(Exception):
    status_code = 500

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class InvalidInputError(ServiceError):
    status_code = 400


class PermissionDeniedError(ServiceError):
    status_code = 403


class NotFoundError(ServiceError):
    status_code = 404


class ConflictError(ServiceError):
    status_code = 409


class PayloadTooLargeError(ServiceError):
    status_code = 413

# supermarket_ai/services/__init__.py


class ServiceError(Exception):
    """Failure that is shown to the user as-is (toast text + HTTP status)."""

    def __init__(self, message: str, status: int = 400):
        super().__init__(message)
        self.message = message
        self.status = status

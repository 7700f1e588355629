from fastapi import status


class DispatchError(Exception):
    """Base class for errors the API reports back to the client."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(DispatchError):
    status_code = status.HTTP_404_NOT_FOUND


class UserNotFoundError(NotFoundError):
    def __init__(self, username: str):
        super().__init__(f"User with name {username} not found")
        self.username = username


class AlreadyExistsError(DispatchError):
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidStateError(DispatchError):
    status_code = status.HTTP_400_BAD_REQUEST


class ValidationError(DispatchError):
    status_code = status.HTTP_400_BAD_REQUEST

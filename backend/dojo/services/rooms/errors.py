class RoomError(Exception):
    """Base for rejections that are reported back to the caller only."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(RoomError):
    pass


class Forbidden(RoomError):
    pass


class Conflict(RoomError):
    pass


class InvalidPayload(RoomError):
    def __init__(self, field: str):
        super().__init__(f'Invalid payload: {field}')
        self.field = field

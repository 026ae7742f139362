class ChatError(Exception):
    """Base class for errors the messaging API reports to clients."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ChatError):
    # malformed or oversized input, user-correctable
    status_code = 400


class NotFoundError(ChatError):
    status_code = 404


class ForbiddenError(ChatError):
    # blocked relationship or a conversation the caller is not part of
    status_code = 403


class TransientStoreError(ChatError):
    # datastore unavailable; never retried here
    status_code = 503

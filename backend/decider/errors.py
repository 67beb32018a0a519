"""Errors raised by session commands.

Every error is local and recoverable: the command that raised it leaves the
session untouched, and the channel reports it to the originating connection
as an ``error`` message.
"""


class SessionError(Exception):
    code = 'error'

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict:
        return {'type': 'error', 'code': self.code, 'message': self.message}


class NotJoined(SessionError):
    code = 'not_joined'

    def __init__(self, message: str = 'Not joined'):
        super().__init__(message)


class NotFound(SessionError):
    code = 'not_found'


class Unauthorized(SessionError):
    code = 'unauthorized'


class InvalidInput(SessionError):
    code = 'invalid_input'


class WrongPhase(SessionError):
    code = 'wrong_phase'


class PreconditionFailed(SessionError):
    code = 'precondition_failed'

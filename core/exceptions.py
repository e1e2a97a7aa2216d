# core/exceptions.py
"""
Error taxonomy for mailing list operations
"""

from typing import Any, Dict, Optional


class MailerError(Exception):
    """Base exception for mailing list operations"""

    kind = 'MailerError'

    def __init__(self, message: str, payload: Any = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.payload = payload
        self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        data = {'type': self.kind, 'message': self.message}
        if self.payload is not None:
            data['payload'] = self.payload
        if self.status_code is not None:
            data['status_code'] = self.status_code
        return data


class InvalidCredentials(MailerError):
    """API key or domain missing, malformed or rejected by the provider"""

    kind = 'InvalidCredentials'


class ProviderError(MailerError):
    """Any failed call to the mail provider; payload is the raw provider body"""

    kind = 'ProviderError'


class EmptyResult(MailerError):
    """The provider returned no items where items were expected"""

    kind = 'EmptyResult'


class AttachmentFailure(MailerError):
    """A single attachment could not be staged or read back"""

    kind = 'AttachmentFailure'

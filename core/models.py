# core/models.py
"""
Data model for mailing list requests

Nothing here is persisted: every object lives for a single request.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from core.exceptions import InvalidCredentials, MailerError
from core.text_converter import DEFAULT_WORDWRAP, html_to_text

DOMAIN_PATTERN = re.compile(r'^(?=.{1,253}$)([a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?\.)+[a-z]{2,63}$', re.IGNORECASE)


class AccessLevel(Enum):
    """Who may post to a mailing list"""
    READONLY = "readonly"
    MEMBERS = "members"
    EVERYONE = "everyone"

    @classmethod
    def parse(cls, value: Optional[str]) -> 'AccessLevel':
        if not value:
            return cls.READONLY
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(f"Unknown access level: {value}")


@dataclass(frozen=True)
class Credentials:
    """Per-request Mailgun credentials"""
    api_key: str
    domain: str

    @classmethod
    def from_values(cls, values: Mapping[str, Any]) -> 'Credentials':
        """
        Build credentials from form, JSON or query values

        Accepts both ``api_key`` and the older ``apiKey`` field name.

        Raises:
            InvalidCredentials: If the key or domain is missing or malformed
        """
        api_key = values.get('api_key') or values.get('apiKey') or ''
        domain = values.get('domain') or ''
        if not isinstance(api_key, str) or not isinstance(domain, str):
            raise InvalidCredentials("API key and domain must be strings")

        api_key = api_key.strip()
        domain = domain.strip().lower()

        if not api_key or not domain:
            raise InvalidCredentials("API key and domain are required")
        if any(ch.isspace() for ch in api_key):
            raise InvalidCredentials("API key is malformed")
        if not DOMAIN_PATTERN.match(domain):
            raise InvalidCredentials(f"Domain is malformed: {domain}")

        return cls(api_key=api_key, domain=domain)


@dataclass(frozen=True)
class MailingListDescriptor:
    """A mailing list as known to the provider"""
    name: str
    address: str
    description: str = ''
    access_level: AccessLevel = AccessLevel.READONLY
    members_count: Optional[int] = None

    @classmethod
    def from_input(cls, name: str, domain: str, description: str = '',
                   access_level: Optional[str] = None) -> 'MailingListDescriptor':
        name = (name or '').strip()
        if not name:
            raise ValueError("Mailing list name is required")
        return cls(
            name=name,
            address=f"{name}@{domain}",
            description=(description or '').strip(),
            access_level=AccessLevel.parse(access_level),
        )

    @classmethod
    def from_provider(cls, item: Dict[str, Any]) -> 'MailingListDescriptor':
        try:
            access_level = AccessLevel.parse(item.get('access_level'))
        except ValueError:
            access_level = AccessLevel.READONLY
        return cls(
            name=item.get('name') or '',
            address=item.get('address') or '',
            description=item.get('description') or '',
            access_level=access_level,
            members_count=item.get('members_count'),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'name': self.name,
            'address': self.address,
            'description': self.description,
            'access_level': self.access_level.value,
        }
        if self.members_count is not None:
            data['members_count'] = self.members_count
        return data


@dataclass(frozen=True)
class Member:
    """A mailing list member, owned by the provider"""
    address: str
    name: str = ''
    vars: Dict[str, Any] = field(default_factory=dict)
    subscribed: bool = True

    @classmethod
    def from_input(cls, value: Union[str, Mapping[str, Any]]) -> 'Member':
        """Accepts a bare address or a mapping with address/name/vars"""
        if isinstance(value, str):
            address = value.strip()
            if not address:
                raise ValueError("Member address is required")
            return cls(address=address)
        if not isinstance(value, Mapping):
            raise ValueError(f"Unsupported member entry: {value!r}")

        address = value.get('address') or ''
        name = value.get('name') or ''
        member_vars = value.get('vars') or {}
        if not isinstance(address, str) or not isinstance(name, str):
            raise ValueError("Member address and name must be strings")
        if not isinstance(member_vars, Mapping):
            raise ValueError("Member vars must be an object")

        address = address.strip()
        if not address:
            raise ValueError("Member address is required")
        subscribed = value.get('subscribed', True)
        if isinstance(subscribed, str):
            subscribed = subscribed.lower() not in ('no', 'false', '0')
        return cls(
            address=address,
            name=name.strip(),
            vars=dict(member_vars),
            subscribed=bool(subscribed),
        )

    @classmethod
    def from_provider(cls, item: Dict[str, Any]) -> 'Member':
        return cls(
            address=item.get('address') or '',
            name=item.get('name') or '',
            vars=dict(item.get('vars') or {}),
            subscribed=bool(item.get('subscribed', True)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'address': self.address,
            'name': self.name,
            'vars': dict(self.vars),
            'subscribed': self.subscribed,
        }


@dataclass
class AttachmentRef:
    """An uploaded file staged for a single outgoing message"""
    filename: str
    content_type: str
    raw_bytes: bytes
    storage_path: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.raw_bytes)


@dataclass(frozen=True)
class OutgoingMessage:
    """
    A message ready to hand to the provider

    Build with compose() so the plain text body is always derived from
    the HTML body.
    """
    sender: str
    to: Sequence[str]
    subject: str
    text: str
    html: str
    attachments: Sequence[AttachmentRef] = ()

    @classmethod
    def compose(cls,
                sender: str,
                to: Union[str, Sequence[str]],
                subject: str,
                html: str,
                attachments: Sequence[AttachmentRef] = (),
                wordwrap: int = DEFAULT_WORDWRAP) -> 'OutgoingMessage':
        recipients = [to] if isinstance(to, str) else list(to)
        recipients = [r.strip() for r in recipients if r and r.strip()]
        html = html or ''
        return cls(
            sender=(sender or '').strip(),
            to=tuple(recipients),
            subject=subject or '',
            text=html_to_text(html, wordwrap=wordwrap),
            html=html,
            attachments=tuple(attachments),
        )


@dataclass
class ViewModel:
    """Data handed to the template renderer"""
    api_key: str
    domain: str
    form: Dict[str, Any]
    mailing_lists: List[Dict[str, str]]
    mailing_options: str
    msg: str
    err: bool

    def to_context(self) -> Dict[str, Any]:
        return {
            'api_key': self.api_key,
            'domain': self.domain,
            'req_data': self.form,
            'mailing_list': self.mailing_lists,
            'mailing_options': self.mailing_options,
            'msg': self.msg,
            'err': self.err,
        }


@dataclass
class OperationResult:
    """Outcome of a single orchestrator operation"""
    success: bool
    data: Any = None
    error: Optional[MailerError] = None

    @classmethod
    def ok(cls, data: Any = None) -> 'OperationResult':
        return cls(success=True, data=data)

    @classmethod
    def failed(cls, error: MailerError, data: Any = None) -> 'OperationResult':
        return cls(success=False, data=data, error=error)


@dataclass
class SendOutcome:
    """Result of a send: the list lookup used for re-rendering plus the send itself"""
    lists: OperationResult
    sent: OperationResult
    skipped_attachments: List[str] = field(default_factory=list)

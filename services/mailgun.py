# services/mailgun.py
"""
Mailgun REST API client

A client is built per request from that request's credentials by
create_mailgun_client(); nothing is shared between requests.
"""

import json
import logging
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import quote

import httpx

from core.exceptions import InvalidCredentials, ProviderError
from core.models import Credentials, MailingListDescriptor, Member, OutgoingMessage

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = 'https://api.mailgun.net/v3'
DEFAULT_TIMEOUT = 30.0
DEFAULT_PAGE_LIMIT = 100


def _response_payload(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


def _list_path(address: str) -> str:
    return f"/lists/{quote(address, safe='@')}"


class MailgunClient:
    """
    Thin wrapper around the Mailgun v3 endpoints used by the sender

    Every method returns parsed provider data or raises InvalidCredentials
    (HTTP 401/403) or ProviderError (any other failure, with the raw
    provider body attached).
    """

    def __init__(self,
                 credentials: Credentials,
                 base_url: str = DEFAULT_BASE_URL,
                 timeout: float = DEFAULT_TIMEOUT,
                 page_limit: int = DEFAULT_PAGE_LIMIT,
                 transport: Optional[httpx.BaseTransport] = None):
        self.credentials = credentials
        self.page_limit = page_limit
        self._http = httpx.Client(
            base_url=base_url,
            auth=('api', credentials.api_key),
            timeout=timeout,
            transport=transport,
        )

    def __enter__(self) -> 'MailgunClient':
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self) -> None:
        self._http.close()

    def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = self._http.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Mailgun {method} {path} failed: {e}")
            raise ProviderError(f"Mailgun request failed: {e}") from e

        payload = _response_payload(response)

        if response.status_code in (401, 403):
            logger.warning(f"Mailgun rejected credentials for domain {self.credentials.domain}")
            raise InvalidCredentials(
                "Mailgun rejected the API key or domain",
                payload=payload,
                status_code=response.status_code,
            )

        if response.is_error:
            logger.error(f"Mailgun {method} {path} returned {response.status_code}: {payload}")
            raise ProviderError(
                f"Mailgun returned HTTP {response.status_code}",
                payload=payload,
                status_code=response.status_code,
            )

        return payload

    # Mailing lists

    def list_mailing_lists(self, limit: Optional[int] = None) -> List[MailingListDescriptor]:
        body = self._request('GET', '/lists/pages', params={'limit': limit or self.page_limit})
        items = body.get('items') if isinstance(body, dict) else None
        return [MailingListDescriptor.from_provider(item) for item in items or []]

    def create_mailing_list(self, descriptor: MailingListDescriptor) -> MailingListDescriptor:
        body = self._request('POST', '/lists', data={
            'address': descriptor.address,
            'name': descriptor.name,
            'description': descriptor.description,
            'access_level': descriptor.access_level.value,
        })
        created = body.get('list') if isinstance(body, dict) else None
        return MailingListDescriptor.from_provider(created) if created else descriptor

    def delete_mailing_list(self, address: str) -> Dict[str, Any]:
        return self._request('DELETE', _list_path(address))

    # Members

    def list_members(self, address: str, limit: Optional[int] = None) -> List[Member]:
        body = self._request(
            'GET',
            f"{_list_path(address)}/members/pages",
            params={'limit': limit or self.page_limit},
        )
        items = body.get('items') if isinstance(body, dict) else None
        return [Member.from_provider(item) for item in items or []]

    def add_members(self, address: str, members: Iterable[Member], upsert: bool = True) -> Dict[str, Any]:
        """Bulk add members; with upsert existing members are updated in place"""
        return self._request('POST', f"{_list_path(address)}/members.json", data={
            'members': json.dumps([member.to_dict() for member in members]),
            'upsert': 'yes' if upsert else 'no',
        })

    # Messages

    def send_message(self, message: OutgoingMessage) -> Dict[str, Any]:
        data = {
            'from': message.sender,
            'to': list(message.to),
            'subject': message.subject,
            'text': message.text,
            'html': message.html,
        }
        files = [
            ('attachment', (attachment.filename, attachment.raw_bytes, attachment.content_type))
            for attachment in message.attachments
        ]
        path = f"/{quote(self.credentials.domain)}/messages"
        if files:
            return self._request('POST', path, data=data, files=files)
        return self._request('POST', path, data=data)


def create_mailgun_client(credentials: Credentials,
                          base_url: str = DEFAULT_BASE_URL,
                          timeout: float = DEFAULT_TIMEOUT,
                          page_limit: int = DEFAULT_PAGE_LIMIT,
                          transport: Optional[httpx.BaseTransport] = None) -> MailgunClient:
    """
    Build a Mailgun client for one request

    Args:
        credentials: API key and sending domain from the request
        base_url: API root, e.g. the EU endpoint https://api.eu.mailgun.net/v3
        timeout: HTTP timeout in seconds
        page_limit: Default page size for list endpoints
        transport: Optional httpx transport (used by tests)

    Returns:
        A MailgunClient; close it, or use it as a context manager
    """
    return MailgunClient(
        credentials,
        base_url=base_url,
        timeout=timeout,
        page_limit=page_limit,
        transport=transport,
    )

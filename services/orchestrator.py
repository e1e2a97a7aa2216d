# services/orchestrator.py
"""
Request orchestration for mailing list operations

Each operation builds a fresh provider client from the request's
credentials, sequences the dependent provider calls, and returns an
OperationResult. Provider failures are caught here and never propagate
past the request boundary.
"""

import logging
import mimetypes
import os
from typing import Any, Callable, Iterable, List, Optional, Sequence, Union

from core.exceptions import AttachmentFailure, EmptyResult, MailerError
from core.models import (
    AttachmentRef, Credentials, MailingListDescriptor, Member, OperationResult,
    OutgoingMessage, SendOutcome,
)
from core.presenter import render_options
from core.text_converter import DEFAULT_WORDWRAP
from services.attachment_store import AttachmentStore
from services.mailgun import MailgunClient

logger = logging.getLogger(__name__)

ClientFactory = Callable[[Credentials], MailgunClient]

EMPTY_LISTS = {'mailing_lists': [], 'mailing_options': ''}


def _content_type(upload: Any, filename: str) -> str:
    content_type = getattr(upload, 'mimetype', None) or getattr(upload, 'content_type', None)
    if content_type:
        return content_type
    guessed, _ = mimetypes.guess_type(filename)
    return guessed or 'application/octet-stream'


class RequestOrchestrator:
    """
    Sequences provider calls for one request at a time

    Holds no per-request state; the client factory and attachment store are
    shared, clients are not.
    """

    def __init__(self,
                 client_factory: ClientFactory,
                 store: AttachmentStore,
                 wordwrap: int = DEFAULT_WORDWRAP):
        self.client_factory = client_factory
        self.store = store
        self.wordwrap = wordwrap

    def _call(self, credentials: Credentials, operation: str,
              fn: Callable[[MailgunClient], Any]) -> OperationResult:
        try:
            with self.client_factory(credentials) as client:
                return OperationResult.ok(fn(client))
        except EmptyResult as e:
            logger.info(f"{operation} for {credentials.domain}: {e.message}")
            return OperationResult.failed(e)
        except MailerError as e:
            logger.error(f"{operation} for {credentials.domain} failed: {e.message}")
            return OperationResult.failed(e)

    @staticmethod
    def _fetch_lists(client: MailgunClient) -> dict:
        lists = client.list_mailing_lists()
        if not lists:
            raise EmptyResult("No mailing lists found")
        return {'mailing_lists': lists, 'mailing_options': render_options(lists)}

    def create_mailing_list(self, credentials: Credentials,
                            descriptor: MailingListDescriptor) -> OperationResult:
        """Create a list; the provider's error payload is kept on failure"""
        result = self._call(
            credentials, 'Create mailing list',
            lambda client: client.create_mailing_list(descriptor),
        )
        if result.success:
            logger.info(f"Created mailing list {descriptor.address}")
        return result

    def add_members(self, credentials: Credentials, list_address: str,
                    members: Sequence[Member]) -> OperationResult:
        """Upsert members into a list; returns the members that were sent"""
        def _add(client: MailgunClient) -> List[Member]:
            body = client.add_members(list_address, members, upsert=True)
            message = body.get('message') if isinstance(body, dict) else body
            logger.info(f"Added {len(members)} member(s) to {list_address}: {message}")
            return list(members)

        return self._call(credentials, 'Add members', _add)

    def delete_mailing_list(self, credentials: Credentials, list_address: str) -> OperationResult:
        return self._call(
            credentials, 'Delete mailing list',
            lambda client: client.delete_mailing_list(list_address),
        )

    def list_mailing_lists(self, credentials: Credentials) -> OperationResult:
        """
        Fetch mailing lists and the matching <option> markup

        Returns:
            OperationResult whose data is {'mailing_lists', 'mailing_options'}.
            When the provider has no lists the result fails with EmptyResult
            and the data is still present, with both values empty.
        """
        result = self._call(credentials, 'List mailing lists', self._fetch_lists)
        if not result.success:
            result.data = dict(EMPTY_LISTS)
        return result

    def list_members(self, credentials: Credentials, list_address: str) -> OperationResult:
        return self._call(
            credentials, 'List members',
            lambda client: client.list_members(list_address),
        )

    def _resolve_lists(self, client: MailgunClient) -> OperationResult:
        try:
            return OperationResult.ok(self._fetch_lists(client))
        except MailerError as e:
            logger.warning(f"Mailing list lookup before send failed: {e.message}")
            return OperationResult.failed(e, data=dict(EMPTY_LISTS))

    def _stage_attachments(self, uploads: Iterable[Any], staged: List[str],
                           skipped: List[str]) -> List[AttachmentRef]:
        attachments = []
        for upload in uploads or ():
            filename = getattr(upload, 'filename', None) or ''
            if not filename:
                # Empty file inputs arrive as nameless parts
                continue

            try:
                content = upload.read()
                path = self.store.write(filename, content)
                staged.append(path)
                raw_bytes = self.store.read(path)
            except (AttachmentFailure, OSError) as e:
                logger.warning(f"Skipping attachment {filename}: {e}")
                skipped.append(filename)
                continue

            attachments.append(AttachmentRef(
                filename=os.path.basename(filename),
                content_type=_content_type(upload, filename),
                raw_bytes=raw_bytes,
                storage_path=path,
            ))
        return attachments

    def send_message(self,
                     credentials: Credentials,
                     from_email: str,
                     to: Union[str, Sequence[str]],
                     subject: str,
                     html_body: str,
                     uploads: Optional[Iterable[Any]] = None) -> SendOutcome:
        """
        Send an HTML message with attachments to a mailing list

        Sequence: look up mailing lists for re-rendering, stage each
        attachment, derive the plain text body, send. A broken attachment is
        skipped rather than blocking delivery. Staged files are removed once
        the send call completes.

        Args:
            credentials: Request credentials
            from_email: Sender address
            to: Mailing list address or explicit recipients
            subject: Message subject
            html_body: HTML message body
            uploads: File uploads (objects with filename, mimetype, read())

        Returns:
            SendOutcome with the list lookup and send results
        """
        staged: List[str] = []
        skipped: List[str] = []

        try:
            with self.client_factory(credentials) as client:
                lists = self._resolve_lists(client)
                attachments = self._stage_attachments(uploads, staged, skipped)

                message = OutgoingMessage.compose(
                    sender=from_email,
                    to=to,
                    subject=subject,
                    html=html_body,
                    attachments=attachments,
                    wordwrap=self.wordwrap,
                )

                if not message.to:
                    sent = OperationResult.failed(MailerError("A recipient mailing list is required"))
                else:
                    sent = self._send(client, message)
        finally:
            for path in staged:
                self.store.remove(path)

        return SendOutcome(lists=lists, sent=sent, skipped_attachments=skipped)

    def _send(self, client: MailgunClient, message: OutgoingMessage) -> OperationResult:
        try:
            body = client.send_message(message)
        except MailerError as e:
            logger.error(f"Send to {', '.join(message.to)} failed: {e.message}")
            return OperationResult.failed(e)

        logger.info(
            f"Message sent to {', '.join(message.to)} "
            f"with {len(message.attachments)} attachment(s)"
        )
        return OperationResult.ok(body)

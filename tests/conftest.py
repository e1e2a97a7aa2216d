"""
Pytest configuration and fixtures for all tests.
"""

import os
import sys

import pytest

# Project root on the path so the flat top-level packages import
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from core.models import Credentials, MailingListDescriptor, Member  # noqa: E402


class FakeMailgunClient:
    """In-memory stand-in for MailgunClient that records every call."""

    def __init__(self, lists=None, members=None):
        self.lists = list(lists or [])
        self.members = list(members or [])
        self.errors = {}
        self.created = []
        self.deleted = []
        self.added = []
        self.sent = []
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.closed = True

    def _maybe_raise(self, method):
        if method in self.errors:
            raise self.errors[method]

    def list_mailing_lists(self, limit=None):
        self._maybe_raise('list_mailing_lists')
        return list(self.lists)

    def create_mailing_list(self, descriptor):
        self._maybe_raise('create_mailing_list')
        self.created.append(descriptor)
        return descriptor

    def delete_mailing_list(self, address):
        self._maybe_raise('delete_mailing_list')
        self.deleted.append(address)
        return {'address': address, 'message': 'Mailing list has been removed'}

    def list_members(self, address, limit=None):
        self._maybe_raise('list_members')
        return list(self.members)

    def add_members(self, address, members, upsert=True):
        self._maybe_raise('add_members')
        self.added.append((address, list(members), upsert))
        return {'message': 'Mailing list has been updated'}

    def send_message(self, message):
        self._maybe_raise('send_message')
        self.sent.append(message)
        return {'id': '<20240101.1@mg.example.com>', 'message': 'Queued. Thank you.'}


@pytest.fixture
def credentials():
    return Credentials(api_key='key-test123', domain='mg.example.com')


@pytest.fixture
def credential_fields():
    return {'api_key': 'key-test123', 'domain': 'mg.example.com'}


@pytest.fixture
def fake_client():
    return FakeMailgunClient(
        lists=[
            MailingListDescriptor(name='news', address='news@mg.example.com'),
            MailingListDescriptor(name='staff', address='staff@mg.example.com'),
        ],
        members=[
            Member(address='alice@example.com', name='Alice'),
            Member(address='bob@example.com', name='Bob', vars={'plan': 'pro'}),
        ],
    )


@pytest.fixture
def factory_calls():
    return []


@pytest.fixture
def client_factory(fake_client, factory_calls):
    def _factory(creds):
        factory_calls.append(creds)
        return fake_client
    return _factory


@pytest.fixture
def upload_dir(tmp_path):
    return tmp_path / 'uploads'


@pytest.fixture
def app(upload_dir, client_factory, monkeypatch):
    """Testing app whose Mailgun clients are the fake client."""
    monkeypatch.setenv('UPLOAD_DIR', str(upload_dir))
    from app import create_app
    return create_app('testing', client_factory=client_factory)


@pytest.fixture
def client(app):
    return app.test_client()

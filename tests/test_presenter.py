"""
Tests for view model and envelope presentation.
"""

import pytest

from core.exceptions import EmptyResult, InvalidCredentials, ProviderError
from core.models import MailingListDescriptor, OperationResult, SendOutcome
from core import presenter


@pytest.fixture
def lists():
    return [
        MailingListDescriptor(name='news', address='news@mg.example.com'),
        MailingListDescriptor(name='staff', address='staff@mg.example.com'),
        MailingListDescriptor(name='beta', address='beta@mg.example.com'),
    ]


@pytest.fixture
def lists_result(lists):
    return OperationResult.ok({
        'mailing_lists': lists,
        'mailing_options': presenter.render_options(lists),
    })


@pytest.fixture
def form_fields():
    return {
        'api_key': 'key-test123',
        'domain': 'x.com',
        'from_email': 'a@x.com',
        'mailing_list': 'list@x.com',
        'subject': 'Hi',
        'message': '<p>Hello</p>',
    }


class TestRenderOptions:
    """Test <option> markup for mailing lists."""

    def test_one_option_per_list(self, lists):
        markup = presenter.render_options(lists)
        assert markup.count('<option ') == len(lists)
        assert '<option value="news@mg.example.com">news@mg.example.com</option>' in markup

    def test_selected_option(self, lists):
        markup = presenter.render_options(lists, selected='staff@mg.example.com')
        assert markup.count('<option ') == len(lists)
        assert markup.count(' selected') == 1
        assert '<option value="staff@mg.example.com" selected>staff@mg.example.com</option>' in markup

    def test_unknown_selection_marks_nothing(self, lists):
        markup = presenter.render_options(lists, selected='other@mg.example.com')
        assert 'selected' not in markup

    def test_empty(self):
        assert presenter.render_options([]) == ''

    def test_values_are_escaped(self):
        markup = presenter.render_options([
            MailingListDescriptor(name='x', address='"><script>@x.com'),
        ])
        assert '<script>' not in markup
        assert '&#34;&gt;&lt;script&gt;@x.com' in markup


class TestPresentLists:
    """Test view models after a mailing list lookup."""

    def test_success(self, lists_result, form_fields):
        view = presenter.present_lists(lists_result, form_fields)
        assert view.msg == presenter.LIST_PAGE_MESSAGE
        assert view.err is False
        assert len(view.mailing_lists) == 3
        assert view.mailing_lists[0] == {'name': 'news', 'email': 'news@mg.example.com'}
        assert view.api_key == 'key-test123'
        assert view.domain == 'x.com'

    def test_empty_result_is_renderable(self, form_fields):
        result = OperationResult.failed(
            EmptyResult("No mailing lists found"),
            data={'mailing_lists': [], 'mailing_options': ''},
        )
        view = presenter.present_lists(result, form_fields)
        assert view.mailing_lists == []
        assert view.mailing_options == ''
        assert view.msg == presenter.EMPTY_LISTS_MESSAGE
        assert view.err is False

    def test_invalid_credentials(self, form_fields):
        result = OperationResult.failed(InvalidCredentials("rejected"))
        view = presenter.present_lists(result, form_fields)
        assert view.msg == presenter.INVALID_CREDENTIALS_MESSAGE
        assert view.err is True

    def test_provider_error(self, form_fields):
        result = OperationResult.failed(ProviderError("boom", payload={'message': 'boom'}))
        view = presenter.present_lists(result, form_fields)
        assert view.err is True
        assert view.mailing_lists == []


class TestPresentSend:
    """Test view models after a send attempt."""

    def test_success(self, lists_result, form_fields):
        outcome = SendOutcome(
            lists=lists_result,
            sent=OperationResult.ok({'id': '<1@x.com>', 'message': 'Queued. Thank you.'}),
        )
        view = presenter.present_send(outcome, form_fields)
        assert view.msg == 'Message successfully sent.'
        assert view.err is False
        assert view.form['subject'] == 'Hi'
        assert view.mailing_options == lists_result.data['mailing_options']

    def test_sent_list_stays_selected(self, lists, lists_result, form_fields):
        form_fields['mailing_list'] = 'beta@mg.example.com'
        outcome = SendOutcome(lists=lists_result, sent=OperationResult.ok({}))

        view = presenter.present_send(outcome, form_fields)

        assert view.mailing_options.count('<option ') == len(lists)
        assert '<option value="beta@mg.example.com" selected>' in view.mailing_options

    def test_failure(self, lists_result, form_fields):
        outcome = SendOutcome(
            lists=lists_result,
            sent=OperationResult.failed(ProviderError("Mailgun returned HTTP 400")),
        )
        view = presenter.present_send(outcome, form_fields)
        assert view.msg == 'Error. Something went wrong.'
        assert view.err is True
        assert len(view.mailing_lists) == 3

    def test_file_fields_not_echoed(self, lists_result, form_fields):
        outcome = SendOutcome(lists=lists_result, sent=OperationResult.ok({}))
        view = presenter.present_send(outcome, {**form_fields, 'file': object()})
        assert 'file' not in view.form

    def test_context_keys(self, lists_result, form_fields):
        outcome = SendOutcome(lists=lists_result, sent=OperationResult.ok({}))
        context = presenter.present_send(outcome, form_fields).to_context()
        assert set(context) == {
            'api_key', 'domain', 'req_data', 'mailing_list', 'mailing_options', 'msg', 'err',
        }


class TestEnvelope:
    """Test JSON status envelopes."""

    def test_success(self, lists):
        body, status_code = presenter.envelope(OperationResult.ok(lists[0]))
        assert status_code == 200
        assert body == {'status': 'Success', 'data': lists[0].to_dict()}

    def test_custom_success_code(self):
        _, status_code = presenter.envelope(OperationResult.ok([]), success_code=201)
        assert status_code == 201

    def test_provider_payload_unchanged(self):
        payload = {'message': 'Mailing list news@mg.example.com not found'}
        error = ProviderError("Mailgun returned HTTP 404", payload=payload, status_code=404)
        body, status_code = presenter.envelope(OperationResult.failed(error))
        assert status_code == 400
        assert body['status'] == 'Error'
        assert body['error']['type'] == 'ProviderError'
        assert body['error']['payload'] == payload
        assert body['error']['status_code'] == 404

    def test_invalid_credentials_status(self):
        body, status_code = presenter.envelope(OperationResult.failed(InvalidCredentials("rejected")))
        assert status_code == 401
        assert body['error']['type'] == 'InvalidCredentials'

# core/presenter.py
"""
Maps operation outcomes to view models and JSON envelopes.

Everything in this module is a pure function: no provider calls, no I/O.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from markupsafe import escape

from core.exceptions import EmptyResult, InvalidCredentials, MailerError
from core.models import MailingListDescriptor, OperationResult, SendOutcome, ViewModel

LIST_PAGE_MESSAGE = 'Send Custom Message to Mailing List.'
SEND_SUCCESS_MESSAGE = 'Message successfully sent.'
SEND_FAILURE_MESSAGE = 'Error. Something went wrong.'
EMPTY_LISTS_MESSAGE = 'No mailing lists found.'
INVALID_CREDENTIALS_MESSAGE = 'Invalid Mailing credentials'

# Form fields never echoed back into the page
_NOT_ECHOED = {'file'}


def render_options(lists: Iterable[MailingListDescriptor], selected: Optional[str] = None) -> str:
    """
    One <option> per mailing list, keyed and labelled by list address

    The option whose address equals ``selected`` is marked selected.
    """
    options = []
    for item in lists:
        marker = ' selected' if selected and item.address == selected else ''
        options.append(
            f'<option value="{escape(item.address)}"{marker}>{escape(item.address)}</option>'
        )
    return ''.join(options)


def list_entries(lists: Iterable[MailingListDescriptor]) -> List[Dict[str, str]]:
    return [{'name': item.name, 'email': item.address} for item in lists]


def _echo(form_fields: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    return {k: v for k, v in (form_fields or {}).items() if k not in _NOT_ECHOED}


def _lists_of(result: Optional[OperationResult]) -> Tuple[List[MailingListDescriptor], str]:
    data = (result.data if result else None) or {}
    return data.get('mailing_lists') or [], data.get('mailing_options') or ''


def _view_model(form_fields, lists, options, msg, err) -> ViewModel:
    echoed = _echo(form_fields)
    selected = echoed.get('mailing_list')
    if lists and isinstance(selected, str):
        options = render_options(lists, selected)
    return ViewModel(
        api_key=echoed.get('api_key') or echoed.get('apiKey') or '',
        domain=echoed.get('domain') or '',
        form=echoed,
        mailing_lists=list_entries(lists),
        mailing_options=options,
        msg=msg,
        err=err,
    )


def present_lists(result: OperationResult, form_fields: Mapping[str, Any]) -> ViewModel:
    """View model for the message page after a mailing list lookup"""
    lists, options = _lists_of(result)

    if result.success:
        return _view_model(form_fields, lists, options, LIST_PAGE_MESSAGE, False)
    if isinstance(result.error, EmptyResult):
        return _view_model(form_fields, [], '', EMPTY_LISTS_MESSAGE, False)
    if isinstance(result.error, InvalidCredentials):
        return _view_model(form_fields, [], '', INVALID_CREDENTIALS_MESSAGE, True)
    return _view_model(form_fields, lists, options, SEND_FAILURE_MESSAGE, True)


def present_send(outcome: SendOutcome, form_fields: Mapping[str, Any]) -> ViewModel:
    """View model for the message page after a send attempt"""
    lists, options = _lists_of(outcome.lists)

    if outcome.sent.success:
        return _view_model(form_fields, lists, options, SEND_SUCCESS_MESSAGE, False)
    if isinstance(outcome.sent.error, InvalidCredentials):
        return _view_model(form_fields, lists, options, INVALID_CREDENTIALS_MESSAGE, True)
    return _view_model(form_fields, lists, options, SEND_FAILURE_MESSAGE, True)


def present_error(error: MailerError, form_fields: Mapping[str, Any]) -> ViewModel:
    """View model for a request rejected before any provider call"""
    msg = INVALID_CREDENTIALS_MESSAGE if isinstance(error, InvalidCredentials) else error.message
    return _view_model(form_fields, [], '', msg, True)


def to_jsonable(value: Any) -> Any:
    if hasattr(value, 'to_dict'):
        return value.to_dict()
    if isinstance(value, dict):
        return {k: to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value


def envelope(result: OperationResult, success_code: int = 200) -> Tuple[Dict[str, Any], int]:
    """
    JSON status envelope for an operation result.

    Returns:
        Tuple of (body, HTTP status code). Errors keep the provider payload
        exactly as received.
    """
    if result.success:
        return {'status': 'Success', 'data': to_jsonable(result.data)}, success_code

    error = result.error
    status_code = 401 if isinstance(error, InvalidCredentials) else 400
    return {'status': 'Error', 'error': error.to_dict()}, status_code

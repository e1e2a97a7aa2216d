# api/lists.py
"""
Mailing list management API

JSON routes for creating and deleting lists and for reading and upserting
members. Every response is a status envelope: {status, data} or
{status, error}.
"""

import json
import logging
import re
from typing import Any, Dict, List

from flask import Blueprint, current_app, g, jsonify

from core.models import MailingListDescriptor, Member
from core.presenter import envelope
from middleware.security import require_credentials

lists_bp = Blueprint('lists', __name__)
logger = logging.getLogger(__name__)


def _orchestrator():
    return current_app.extensions['orchestrator']


def _validation_error(message: str):
    return jsonify({
        'status': 'Error',
        'error': {'type': 'ValidationError', 'message': message},
    }), 400


def text_field(values: Dict[str, Any], *names: str) -> str:
    """
    First non-empty value among ``names``, stripped

    Raises:
        ValueError: If the value is not a string
    """
    for name in names:
        value = values.get(name)
        if value is None or value == '':
            continue
        if not isinstance(value, str):
            raise ValueError(f"Field '{name}' must be a string")
        return value.strip()
    return ''


def parse_members(raw: Any) -> List[Member]:
    """
    Parse members from a JSON array, a JSON string, or a comma or newline
    separated list of addresses

    Raises:
        ValueError: If no members are given or an entry has no address
    """
    if isinstance(raw, str):
        raw = raw.strip()
        if raw.startswith('['):
            try:
                raw = json.loads(raw)
            except ValueError:
                raise ValueError("Members must be a JSON array or a list of addresses")
        else:
            raw = [part for part in re.split(r'[,\n]', raw) if part.strip()]

    if not raw or not isinstance(raw, list):
        raise ValueError("At least one member is required")

    return [Member.from_input(item) for item in raw]


@lists_bp.route('/list/create', methods=['POST'])
@require_credentials()
def create_list():
    """
    Create a mailing list

    Form/JSON fields: api_key, domain, name, description,
    accessLevel (readonly, members or everyone)
    """
    values = g.form_values
    try:
        descriptor = MailingListDescriptor.from_input(
            name=text_field(values, 'name'),
            domain=g.credentials.domain,
            description=text_field(values, 'description'),
            access_level=text_field(values, 'accessLevel', 'access_level'),
        )
    except ValueError as e:
        return _validation_error(str(e))

    result = _orchestrator().create_mailing_list(g.credentials, descriptor)
    body, status_code = envelope(result)
    return jsonify(body), status_code


@lists_bp.route('/list/add-members', methods=['POST'])
@require_credentials()
def add_members():
    """Upsert members into a list. Fields: address, members"""
    values = g.form_values
    try:
        address = text_field(values, 'address', 'mailing_list')
        if not address:
            return _validation_error("Mailing list address is required")
        members = parse_members(values.get('members'))
    except ValueError as e:
        return _validation_error(str(e))

    result = _orchestrator().add_members(g.credentials, address, members)
    body, status_code = envelope(result, success_code=201)
    return jsonify(body), status_code


@lists_bp.route('/list/delete', methods=['DELETE'])
@require_credentials()
def delete_list():
    """Delete a mailing list. Field: mailing_list_address"""
    try:
        address = text_field(g.form_values, 'mailing_list_address', 'address')
    except ValueError as e:
        return _validation_error(str(e))
    if not address:
        return _validation_error("Mailing list address is required")

    result = _orchestrator().delete_mailing_list(g.credentials, address)
    body, status_code = envelope(result)
    return jsonify(body), status_code


@lists_bp.route('/list/members', methods=['GET'])
@require_credentials()
def list_members():
    """Members of a list. Field: mailing_list"""
    try:
        address = text_field(g.form_values, 'mailing_list')
    except ValueError as e:
        return _validation_error(str(e))
    if not address:
        return _validation_error("Mailing list address is required")

    result = _orchestrator().list_members(g.credentials, address)
    body, status_code = envelope(result)
    return jsonify(body), status_code

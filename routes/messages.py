# routes/messages.py
"""
HTML pages: credential form, mailing list picker and message sending
"""

import logging

from flask import Blueprint, current_app, g, render_template, request

from core.exceptions import InvalidCredentials
from core.presenter import present_lists, present_send
from middleware.security import limiter, require_credentials

messages_bp = Blueprint('messages', __name__)
logger = logging.getLogger(__name__)


def _orchestrator():
    return current_app.extensions['orchestrator']


@messages_bp.route('/', methods=['GET'])
def index():
    return render_template('index.html', msg=None, err=False, req_data={})


@messages_bp.route('/', methods=['POST'])
@messages_bp.route('/list', methods=['GET'])
@require_credentials(html_template='index.html')
def mailing_lists():
    """Look up the account's mailing lists and show the message form"""
    result = _orchestrator().list_mailing_lists(g.credentials)
    view = present_lists(result, g.form_values)

    if isinstance(result.error, InvalidCredentials):
        return render_template('index.html', **view.to_context()), 401
    return render_template('message.html', **view.to_context())


@messages_bp.route('/message', methods=['POST'])
@limiter.limit(lambda: current_app.config['RATELIMIT_SEND'])
@require_credentials(html_template='index.html')
def send_message():
    """Send the submitted HTML message, with attachments, to a mailing list"""
    values = g.form_values
    outcome = _orchestrator().send_message(
        g.credentials,
        from_email=values.get('from_email', ''),
        to=values.get('mailing_list') or values.get('to', ''),
        subject=values.get('subject', ''),
        html_body=values.get('message', ''),
        uploads=request.files.getlist('file'),
    )

    if outcome.skipped_attachments:
        logger.warning(f"Sent without attachments: {', '.join(outcome.skipped_attachments)}")

    view = present_send(outcome, values)
    return render_template('message.html', **view.to_context())

"""
Tests for the application factory.
"""

from services.orchestrator import RequestOrchestrator


def test_health(client):
    response = client.get('/health')
    assert response.status_code == 200
    assert response.get_json()['status'] == 'healthy'


def test_security_headers(client):
    response = client.get('/health')
    assert response.headers['X-Content-Type-Options'] == 'nosniff'
    assert response.headers['X-Frame-Options'] == 'DENY'


def test_not_found_is_json(client):
    response = client.get('/does-not-exist')
    assert response.status_code == 404
    assert response.get_json()['error'] == 'Not Found'


def test_method_not_allowed_is_json(client):
    response = client.get('/message')
    assert response.status_code == 405
    assert response.get_json()['status'] == 'Error'


def test_testing_config(app, upload_dir):
    assert app.config['TESTING'] is True
    assert app.config['UPLOAD_DIR'] == str(upload_dir)
    orchestrator = app.extensions['orchestrator']
    assert isinstance(orchestrator, RequestOrchestrator)
    assert orchestrator.store.upload_dir == upload_dir
    assert orchestrator.wordwrap == 130


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv('UPLOAD_DIR', str(tmp_path))
    monkeypatch.setenv('MAILGUN_API_BASE_URL', 'https://api.eu.mailgun.net/v3')
    monkeypatch.setenv('MAILGUN_TIMEOUT', '5')
    from app import create_app

    app = create_app('testing')

    assert app.config['MAILGUN_API_BASE_URL'] == 'https://api.eu.mailgun.net/v3'
    assert app.config['MAILGUN_TIMEOUT'] == 5.0


def test_default_client_factory_uses_config(monkeypatch, tmp_path, credentials):
    monkeypatch.setenv('UPLOAD_DIR', str(tmp_path))
    monkeypatch.setenv('MAILGUN_API_BASE_URL', 'https://api.eu.mailgun.net/v3')
    from app import create_app

    app = create_app('testing')
    client = app.extensions['orchestrator'].client_factory(credentials)
    try:
        assert str(client._http.base_url) == 'https://api.eu.mailgun.net/v3/'
        assert client.credentials == credentials
    finally:
        client.close()

import pytest

from academy import create_app
from academy.extensions import db


@pytest.fixture(autouse=True)
def app():
    app = create_app('testing')
    with app.app_context():
        db.drop_all()
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def sent_notifications(monkeypatch):
    """Capture lifecycle notifications instead of logging them."""
    from academy.extensions import notification_service

    sent = []

    def cancelled(session, recipients, reason):
        sent.append(('cancelled', session.id, sorted(recipients), reason))
        return len(recipients)

    def postponed(original, replacement, recipients):
        sent.append(('postponed', original.id, replacement.id, sorted(recipients)))
        return len(recipients)

    monkeypatch.setattr(notification_service, 'notify_session_cancelled', cancelled)
    monkeypatch.setattr(notification_service, 'notify_session_postponed', postponed)
    return sent

import os
import sys

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest  # noqa: E402
from sqlalchemy.exc import SQLAlchemyError  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from app import create_app  # noqa: E402
from models import db  # noqa: E402


@pytest.fixture
def app():
    """App on a fresh in-memory database for every test."""
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def store(app):
    return app.extensions['catalog']


@pytest.fixture
def failing_commit(monkeypatch):
    """Make every session commit fail as if the disk were unavailable."""
    def commit(self):
        raise SQLAlchemyError('disk I/O error')

    monkeypatch.setattr(Session, 'commit', commit)
    return monkeypatch

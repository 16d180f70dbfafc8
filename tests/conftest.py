"""
Test configuration and fixtures for the Sportbook application.
"""
import pytest
import os
from datetime import datetime, timedelta

# Set environment variables for testing
os.environ['SECRET_KEY'] = 'test-secret-key-for-testing-only'

from sportbook import create_app, db
from tests.fixtures.factories import (
    ProfileFactory, InstructorFactory, EventFactory, RegistrationFactory
)
from tests.fixtures.auth import login_as


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app('testing')

    with app.app_context():
        # Ensure all models are registered with SQLAlchemy
        from sportbook import models

        db.create_all()

        import sqlalchemy as sa
        tables = sa.inspect(db.engine).get_table_names()
        if 'events' not in tables:
            raise RuntimeError(f"Database setup failed. Tables created: {tables}")

        yield app

        db.drop_all()


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def db_session(app):
    """Create database session for testing."""
    with app.app_context():
        yield db.session

        # Clear all tables for clean state between tests
        try:
            db.session.rollback()
            for table in reversed(db.metadata.sorted_tables):
                db.session.execute(table.delete())
            db.session.commit()
        except Exception:
            db.session.rollback()
        finally:
            db.session.remove()


@pytest.fixture(autouse=True)
def clear_log_buffer(app):
    """Start every test with an empty log buffer."""
    app.extensions['log_buffer'].clear()
    yield


@pytest.fixture
def test_user(db_session):
    """Create a participant profile."""
    return ProfileFactory.create(name='Test User', password='testpassword123')


@pytest.fixture
def other_user(db_session):
    return ProfileFactory.create(name='Other User', password='otherpassword123')


@pytest.fixture
def instructor(db_session):
    """Create an instructor profile."""
    return InstructorFactory.create(name='Test Instructor', password='instructorpass123')


@pytest.fixture
def other_instructor(db_session):
    return InstructorFactory.create(name='Other Instructor', password='instructorpass456')


@pytest.fixture
def test_event(db_session, instructor):
    """Create an upcoming event with room for three participants."""
    return EventFactory.create(
        instructor=instructor,
        title='Morning Park Run',
        activity_type='running',
        difficulty='beginner',
        date=datetime.utcnow() + timedelta(days=3),
        price=None,
        max_participants=3
    )


@pytest.fixture
def registered_event(db_session, test_event, test_user):
    """The test event with test_user holding a confirmed registration."""
    RegistrationFactory.create(event=test_event, user=test_user)
    return test_event


@pytest.fixture
def authenticated_client(client, test_user):
    """Create an authenticated participant session."""
    return login_as(client, test_user)


@pytest.fixture
def instructor_client(client, instructor):
    """Create an authenticated instructor session."""
    return login_as(client, instructor)

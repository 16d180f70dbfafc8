"""
Integration tests for authentication routes.
"""
import pytest
import json
import sqlalchemy as sa
from sportbook.models import Profile
from tests.fixtures.factories import EventFactory, RegistrationFactory


@pytest.mark.integration
class TestAuthRoutes:

    def test_signup_participant(self, client, db_session):
        response = client.post('/auth/signup', json={
            'email': 'New.Runner@Example.com',
            'password': 'runfast2024',
            'name': 'New Runner'
        })

        assert response.status_code == 201
        profile = json.loads(response.data)['profile']
        assert profile['email'] == 'new.runner@example.com'
        assert profile['role'] == 'user'
        assert 'bio' not in profile

        session_response = client.get('/auth/session')
        assert session_response.status_code == 200

    def test_signup_instructor(self, client, db_session):
        response = client.post('/auth/signup', json={
            'email': 'coach@example.com',
            'password': 'coaching123',
            'name': 'Coach Carter',
            'role': 'instructor',
            'bio': 'Running coach',
            'experience_years': 12,
            'certifications': ['UKA Level 2'],
            'specialties': ['running', 'fitness']
        })

        assert response.status_code == 201
        profile = json.loads(response.data)['profile']
        assert profile['role'] == 'instructor'
        assert profile['experience_years'] == 12
        assert profile['certifications'] == ['UKA Level 2']

    def test_signup_duplicate_email(self, client, db_session, test_user):
        response = client.post('/auth/signup', json={
            'email': test_user.email,
            'password': 'password123',
            'name': 'Copy Cat'
        })

        assert response.status_code == 400
        assert 'email' in json.loads(response.data)['errors']

    def test_signup_weak_password(self, client, db_session):
        response = client.post('/auth/signup', json={
            'email': 'weak@example.com', 'password': 'short', 'name': 'Weak'
        })

        assert response.status_code == 400
        assert 'password' in json.loads(response.data)['errors']
        assert db_session.scalar(sa.select(sa.func.count(Profile.id))) == 0

    def test_signup_unknown_role(self, client, db_session):
        response = client.post('/auth/signup', json={
            'email': 'admin@example.com', 'password': 'password123', 'name': 'Admin', 'role': 'admin'
        })
        assert response.status_code == 400

    def test_login_and_logout(self, client, db_session, test_user):
        response = client.post('/auth/login', json={
            'email': test_user.email, 'password': 'testpassword123'
        })

        assert response.status_code == 200
        assert json.loads(response.data)['profile']['id'] == test_user.id

        assert client.post('/auth/logout').status_code == 200
        assert client.get('/auth/session').status_code == 401

    def test_login_wrong_password(self, client, db_session, test_user):
        response = client.post('/auth/login', json={
            'email': test_user.email, 'password': 'not-the-password'
        })

        assert response.status_code == 401
        data = json.loads(response.data)
        assert data['success'] is False
        assert data['error'] == 'Invalid email or password'

    def test_session_requires_login(self, client, db_session):
        response = client.get('/auth/session')

        assert response.status_code == 401
        assert json.loads(response.data)['error'] == 'Authentication required'

    def test_profile_lists_registered_events(self, authenticated_client, db_session, registered_event, instructor, test_user):
        other = EventFactory.create(instructor=instructor, title='Cancelled Spot')
        RegistrationFactory.create(event=other, user=test_user, status='cancelled')

        response = authenticated_client.get('/auth/profile')

        assert response.status_code == 200
        data = json.loads(response.data)
        assert data['profile']['email'] == test_user.email
        assert [event['title'] for event in data['registered_events']] == ['Morning Park Run']

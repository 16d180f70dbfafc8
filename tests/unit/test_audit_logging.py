"""
Unit tests for audit logging functionality.
"""
import pytest
from unittest.mock import patch, MagicMock
from sportbook.audit import (
    audit_log_create, audit_log_update, audit_log_delete,
    audit_log_authentication, audit_log_security_event,
    audit_log_bulk_operation, format_user, get_model_changes
)
from sportbook.events.registrations import register_for_event


@pytest.mark.unit
class TestAuditLogging:
    """Test audit logging functions."""

    def test_audit_log_create_format(self, app, test_user):
        with app.app_context():
            with patch('sportbook.audit.setup_audit_logger') as mock_setup:
                mock_logger = MagicMock()
                mock_setup.return_value = mock_logger

                audit_log_create('Event', 123, 'Created test event', {'series': 'weekly'}, user=test_user)

                mock_logger.info.assert_called_once()
                log_message = mock_logger.info.call_args[0][0]

                assert 'CREATE' in log_message
                assert 'Event' in log_message
                assert 'ID: 123' in log_message
                assert f'{test_user.email} (ID: {test_user.id})' in log_message
                assert 'series=weekly' in log_message

    def test_audit_log_update_format(self, app):
        with app.app_context():
            with patch('sportbook.audit.setup_audit_logger') as mock_setup:
                mock_logger = MagicMock()
                mock_setup.return_value = mock_logger

                audit_log_update('Event', 456, 'Updated event', {'title': 'Old title'})

                log_message = mock_logger.info.call_args[0][0]
                assert 'UPDATE' in log_message
                assert 'ID: 456' in log_message
                assert 'User: SYSTEM' in log_message
                assert 'title=Old title' in log_message

    def test_audit_log_delete_format(self, app):
        with app.app_context():
            with patch('sportbook.audit.setup_audit_logger') as mock_setup:
                mock_logger = MagicMock()
                mock_setup.return_value = mock_logger

                audit_log_delete('EventRegistration', '4/2', 'Cancelled registration')

                log_message = mock_logger.info.call_args[0][0]
                assert 'DELETE' in log_message
                assert 'ID: 4/2' in log_message

    def test_audit_log_bulk_operation_format(self, app):
        with app.app_context():
            with patch('sportbook.audit.setup_audit_logger') as mock_setup:
                mock_logger = MagicMock()
                mock_setup.return_value = mock_logger

                audit_log_bulk_operation('BULK_UPDATE', 'EventRegistration', 12, 'Cancelled registrations')

                log_message = mock_logger.info.call_args[0][0]
                assert 'BULK_UPDATE' in log_message
                assert 'Count: 12' in log_message

    def test_audit_log_authentication_format(self, app):
        with app.app_context():
            with patch('sportbook.audit.setup_audit_logger') as mock_setup:
                mock_logger = MagicMock()
                mock_setup.return_value = mock_logger

                audit_log_authentication('LOGIN', 'runner@example.com', False)

                log_message = mock_logger.info.call_args[0][0]
                assert 'AUTH' in log_message
                assert 'FAILURE' in log_message
                assert 'runner@example.com' in log_message

    def test_security_events_are_warnings(self, app):
        with app.app_context():
            with patch('sportbook.audit.setup_audit_logger') as mock_setup:
                mock_logger = MagicMock()
                mock_setup.return_value = mock_logger

                audit_log_security_event('ACCESS_DENIED', 'Tried to edit another event')

                mock_logger.warning.assert_called_once()
                assert 'SECURITY' in mock_logger.warning.call_args[0][0]

    def test_format_user_without_profile(self):
        assert format_user(None) == 'SYSTEM'

    def test_get_model_changes(self, db_session, test_event):
        changes = get_model_changes(test_event, {'title': 'New title', 'max_participants': 3})
        assert changes == {'title': 'Morning Park Run'}

    def test_registration_is_audited(self, db_session, test_event, test_user):
        with patch('sportbook.audit.setup_audit_logger') as mock_setup:
            mock_logger = MagicMock()
            mock_setup.return_value = mock_logger

            register_for_event(test_user, test_event.id)

            log_message = mock_logger.info.call_args[0][0]
            assert 'CREATE | EventRegistration' in log_message
            assert f'Registered for event {test_event.id}' in log_message

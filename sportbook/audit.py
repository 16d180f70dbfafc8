"""
Audit Logging System for Database Operations

Every database modification made on behalf of a profile (create, update,
delete) is written to ``instance/logs/audit.log`` with timestamp, acting
profile and operation details. The acting profile is passed in by the caller.

Usage:
    from sportbook.audit import audit_log_create, audit_log_update, audit_log_delete

    audit_log_create('Event', event.id, f'Created event: {event.title}', user=instructor)
    audit_log_update('Event', event.id, 'Updated event', {'title': 'Old title'}, user=instructor)
    audit_log_delete('EventRegistration', reg_id, 'Cancelled registration', user=profile)
"""

import logging
import os
from typing import Optional, Dict, Any, Union
from flask import current_app


def setup_audit_logger():
    """Setup and configure the audit logger with proper formatting and file handling."""
    audit_logger = logging.getLogger('audit')
    audit_logger.setLevel(logging.INFO)

    # Prevent duplicate log entries
    if audit_logger.hasHandlers():
        return audit_logger

    log_dir = os.path.join(current_app.instance_path, 'logs')
    os.makedirs(log_dir, exist_ok=True)

    log_file = os.path.join(log_dir, 'audit.log')
    file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s | %(levelname)s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))
    audit_logger.addHandler(file_handler)

    # Prevent propagation to root logger
    audit_logger.propagate = False

    return audit_logger


def format_user(user) -> str:
    """Describe the acting profile for an audit line."""
    if user is not None and getattr(user, 'is_authenticated', False):
        return f"{user.email} (ID: {user.id})"
    return "SYSTEM"


def _format_extra(data: Optional[Dict[str, Any]]) -> str:
    if not data:
        return ""
    return " | " + ", ".join(f"{key}={value}" for key, value in data.items())


def audit_log_create(model_name: str, record_id: Union[int, str], description: str,
                     additional_data: Optional[Dict[str, Any]] = None, user=None):
    """
    Log database record creation.

    Args:
        model_name: Name of the database model (e.g., 'Event', 'EventRegistration')
        record_id: ID of the created record
        description: Human-readable description of the operation
        additional_data: Optional additional data to include in the log
        user: Profile performing the operation
    """
    logger = setup_audit_logger()
    log_message = (f"CREATE | {model_name} | ID: {record_id} | User: {format_user(user)} | "
                   f"{description}{_format_extra(additional_data)}")
    logger.info(log_message)


def audit_log_update(model_name: str, record_id: Union[int, str], description: str,
                     changes: Optional[Dict[str, Any]] = None, user=None):
    """
    Log database record updates.

    Args:
        model_name: Name of the database model
        record_id: ID of the updated record
        description: Human-readable description of the operation
        changes: Optional dictionary of field changes {'field': 'old_value'}
        user: Profile performing the operation
    """
    logger = setup_audit_logger()
    log_message = (f"UPDATE | {model_name} | ID: {record_id} | User: {format_user(user)} | "
                   f"{description}{_format_extra(changes)}")
    logger.info(log_message)


def audit_log_delete(model_name: str, record_id: Union[int, str], description: str, user=None):
    """Log database record deletion."""
    logger = setup_audit_logger()
    log_message = f"DELETE | {model_name} | ID: {record_id} | User: {format_user(user)} | {description}"
    logger.info(log_message)


def audit_log_bulk_operation(operation: str, model_name: str, count: int, description: str, user=None):
    """
    Log bulk database operations (e.g. cancelling every registration of an event).

    Args:
        operation: Type of operation ('BULK_CREATE', 'BULK_UPDATE', 'BULK_DELETE')
        model_name: Name of the database model
        count: Number of records affected
        description: Human-readable description of the operation
        user: Profile performing the operation
    """
    logger = setup_audit_logger()
    log_message = f"{operation} | {model_name} | Count: {count} | User: {format_user(user)} | {description}"
    logger.info(log_message)


def audit_log_authentication(event_type: str, email: str, success: bool):
    """
    Log authentication events.

    Args:
        event_type: Type of authentication event ('LOGIN', 'LOGOUT', 'SIGNUP')
        email: Email address involved in the event
        success: Whether the operation was successful
    """
    logger = setup_audit_logger()
    status = "SUCCESS" if success else "FAILURE"
    logger.info(f"AUTH | {event_type} | {status} | User: {email}")


def audit_log_security_event(event_type: str, description: str, user=None):
    """
    Log security-related events.

    Args:
        event_type: Type of security event ('ACCESS_DENIED', 'SUSPICIOUS_ACTIVITY')
        description: Human-readable description of the event
        user: Profile that triggered the event
    """
    logger = setup_audit_logger()
    logger.warning(f"SECURITY | {event_type} | User: {format_user(user)} | {description}")


def get_model_changes(model_instance, new_values: Dict[str, Any]) -> Dict[str, Any]:
    """
    Helper function to detect changes between model instance and new values.

    Returns:
        Dictionary of changes with old values
    """
    changes = {}

    for field, new_value in new_values.items():
        if hasattr(model_instance, field):
            old_value = getattr(model_instance, field)
            if old_value != new_value:
                changes[field] = str(old_value) if old_value is not None else None

    return changes

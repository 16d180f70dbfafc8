#!/usr/bin/env python3
"""
Create Instructor Script

Creates an instructor profile so events can be published on a fresh install.
Run this after the database tables have been created.

Usage:
    python create_instructor.py EMAIL NAME [--password PASSWORD]
"""

import argparse
import os
import secrets
import sys

# Add the project directory to the path so we can import our modules
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from dotenv import load_dotenv
load_dotenv('.flaskenv')

import sqlalchemy as sa

from sportbook import create_app, db
from sportbook.audit import audit_log_create
from sportbook.models import Profile


def create_instructor(email, name, password=None):
    """Create an instructor profile, returning the password used."""
    app = create_app(os.getenv('FLASK_CONFIG') or 'development')

    with app.app_context():
        email = email.strip().lower()
        existing = db.session.scalar(sa.select(Profile).where(Profile.email == email))
        if existing is not None:
            print(f"A profile already exists for {email} (role: {existing.role})")
            print("Instructor creation skipped")
            return None

        password = password or secrets.token_urlsafe(12)
        instructor = Profile(email=email, name=name, role='instructor')
        instructor.set_password(password)

        db.session.add(instructor)
        db.session.commit()

        audit_log_create('Profile', instructor.id,
                         f'Instructor created from command line: {instructor.email}',
                         {'role': 'instructor', 'bootstrap_user': True})

        print(f"Instructor '{instructor.name}' created with ID {instructor.id}")
        print(f"Email: {instructor.email}")
        print(f"Password: {password}")
        print("Change the password after first login!")
        return password


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='Create an instructor profile')
    parser.add_argument('email')
    parser.add_argument('name')
    parser.add_argument('--password', help='Password to set (a random one is generated if omitted)')
    args = parser.parse_args()

    if create_instructor(args.email, args.name, args.password) is None:
        sys.exit(1)

from typing import Any, Dict

import sqlalchemy as sa
from flask import current_app

from sportbook import db
from sportbook.audit import audit_log_create
from sportbook.errors import ValidationError
from sportbook.models import Profile
from sportbook.utils import clean_text


def _string_list(value, field):
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValidationError(f'{field} must be a list of strings')
    return [cleaned for cleaned in (clean_text(item) for item in value) if cleaned]


def create_profile(form, extra: Dict[str, Any]) -> Profile:
    """
    Create a profile from a validated SignupForm.

    Instructor-only details (certifications, specialties) come from the raw
    request data since they are lists.
    """
    profile = Profile(
        email=form.email.data.strip().lower(),
        name=clean_text(form.name.data),
        role=form.role.data,
        phone=form.phone.data or None,
    )
    profile.set_password(form.password.data)

    if profile.role == 'instructor':
        profile.bio = clean_text(form.bio.data) or None
        profile.experience_years = form.experience_years.data or 0
        profile.certifications = _string_list(extra.get('certifications'), 'certifications')
        profile.specialties = _string_list(extra.get('specialties'), 'specialties')

    try:
        db.session.add(profile)
        db.session.commit()
    except sa.exc.IntegrityError:
        db.session.rollback()
        raise ValidationError('An account with this email already exists.')
    except sa.exc.SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Error creating profile: {str(e)}")
        raise

    audit_log_create('Profile', profile.id, f'Signed up: {profile.email} ({profile.role})', user=profile)
    return profile


def serialize_profile(profile: Profile) -> Dict[str, Any]:
    data = {
        'id': profile.id,
        'email': profile.email,
        'name': profile.name,
        'role': profile.role,
        'phone': profile.phone,
        'avatar_url': profile.avatar_url,
        'created_at': profile.created_at.isoformat(),
    }
    if profile.is_instructor:
        data.update({
            'bio': profile.bio,
            'certifications': profile.certifications or [],
            'specialties': profile.specialties or [],
            'experience_years': profile.experience_years,
            'rating': profile.rating,
            'total_events': profile.total_events,
        })
    return data

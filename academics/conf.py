"""
Engine settings with defaults, read from the Django settings module
"""
from django.conf import settings

DEFAULT_PLACEMENT_CAPACITIES = {
    'Electrical': 50,
    'Manufacturing': 40,
    'Automotive': 35,
    'Construction': 30,
    'ICT': 45,
}


def standing_min_courses():
    """Qualifying courses needed before probation/dismissal is judged"""
    return getattr(settings, 'ACADEMICS_STANDING_MIN_COURSES', 3)


def placement_min_cgpa():
    return getattr(settings, 'ACADEMICS_PLACEMENT_MIN_CGPA', 1.5)


def placement_capacity(department):
    capacities = getattr(settings, 'ACADEMICS_PLACEMENT_CAPACITIES', DEFAULT_PLACEMENT_CAPACITIES)
    return capacities.get(department, getattr(settings, 'ACADEMICS_DEFAULT_CAPACITY', 30))


def registration_grace_days():
    return getattr(settings, 'ACADEMICS_REGISTRATION_GRACE_DAYS', 7)


def email_notifications_enabled():
    return getattr(settings, 'ACADEMICS_EMAIL_NOTIFICATIONS', False)


def default_from_email():
    return getattr(settings, 'DEFAULT_FROM_EMAIL', 'noreply@arms.edu')

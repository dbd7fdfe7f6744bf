from django.db import models
from rest_framework import permissions

from .exceptions import AuthorizationError
from .models import Role, UserRole


class Transition(models.TextChoices):
    SUBMIT_GRADE = 'submit_grade', 'Submit grade'
    APPROVE_GRADE = 'approve_grade', 'Approve grade'
    REJECT_GRADE = 'reject_grade', 'Reject grade'
    FINALIZE_GRADE = 'finalize_grade', 'Finalize grade'
    LOCK_GRADES = 'lock_grades', 'Lock grades'
    REVIEW_GRADES = 'review_grades', 'Review pending grades'
    REGISTER = 'register', 'Register for semester'
    CANCEL_REGISTRATION = 'cancel_registration', 'Cancel registration'
    SUBMIT_EVALUATION = 'submit_evaluation', 'Submit evaluation'
    SAVE_PERIOD = 'save_period', 'Save registration period'
    SUBMIT_PLACEMENT = 'submit_placement', 'Submit placement request'
    REVIEW_PLACEMENT = 'review_placement', 'Review placement request'
    VIEW_REPORTS = 'view_reports', 'View reports'


# Capability table: the only source of truth for who may perform what
TRANSITION_PERMISSIONS = frozenset({
    (Role.INSTRUCTOR, Transition.SUBMIT_GRADE),
    (Role.DEPARTMENT_HEAD, Transition.APPROVE_GRADE),
    (Role.DEPARTMENT_HEAD, Transition.REJECT_GRADE),
    (Role.DEPARTMENT_HEAD, Transition.REVIEW_GRADES),
    (Role.REGISTRAR, Transition.FINALIZE_GRADE),
    (Role.REGISTRAR, Transition.LOCK_GRADES),
    (Role.STUDENT, Transition.REGISTER),
    (Role.STUDENT, Transition.CANCEL_REGISTRATION),
    (Role.STUDENT, Transition.SUBMIT_EVALUATION),
    (Role.STUDENT, Transition.SUBMIT_PLACEMENT),
    (Role.REGISTRAR, Transition.SAVE_PERIOD),
    (Role.PLACEMENT_COMMITTEE, Transition.REVIEW_PLACEMENT),
    (Role.REGISTRAR, Transition.REVIEW_PLACEMENT),
    (Role.DEPARTMENT_HEAD, Transition.VIEW_REPORTS),
    (Role.REGISTRAR, Transition.VIEW_REPORTS),
    (Role.PLACEMENT_COMMITTEE, Transition.VIEW_REPORTS),
    (Role.PRESIDENT, Transition.VIEW_REPORTS),
})


def roles_for(user):
    """Active roles held by a user"""
    if user is None or not user.is_authenticated:
        return set()
    return {
        Role(role) for role in
        UserRole.objects.filter(user=user, is_active=True).values_list('role', flat=True)
    }


def departments_for(user, role):
    """Departments in which the user holds the given role"""
    return set(
        UserRole.objects.filter(user=user, role=role, is_active=True)
        .exclude(department='')
        .values_list('department', flat=True)
    )


def can_perform(user, transition):
    return any((role, transition) in TRANSITION_PERMISSIONS for role in roles_for(user))


def authorize(user, transition):
    """Raise AuthorizationError unless one of the user's roles grants the transition"""
    if not can_perform(user, transition):
        raise AuthorizationError(
            f'User {getattr(user, "username", None)} is not allowed to {Transition(transition).label.lower()}',
            transition=str(transition),
        )


class BaseRolePermission(permissions.BasePermission):
    """Base permission class for role checking"""

    role = None

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        if self.role is None:
            return True
        return self.role in roles_for(request.user)


class IsStudent(BaseRolePermission):
    """Permission for students only"""
    role = Role.STUDENT


class IsInstructor(BaseRolePermission):
    """Permission for instructors only"""
    role = Role.INSTRUCTOR


class CanViewReports(BaseRolePermission):
    """Permission for any role granted report access"""

    def has_permission(self, request, view):
        if not super().has_permission(request, view):
            return False
        return can_perform(request.user, Transition.VIEW_REPORTS)

"""
Department Placement Service
Freshman placement requests, capacity checks and committee review
"""
import logging
from decimal import Decimal

from django.db import IntegrityError, transaction
from django.utils import timezone

from . import conf
from .audit_service import AuditService
from .exceptions import CapacityError, ConflictError, NotFoundError, ProgressionError, ValidationError
from .grading import academic_year_for
from .models import PLACEMENT_DEPARTMENTS, PlacementIntake, PlacementRequest, Student
from .notification_service import NotificationService
from .permissions import Transition, authorize
from .registration_service import student_for

logger = logging.getLogger(__name__)


class PlacementService:
    """Service class for the freshman placement cycle"""

    SORT_ORDERS = {
        'priority': ['-priority_score', '-current_cgpa', 'submitted_at'],
        'cgpa': ['-current_cgpa', '-priority_score', 'submitted_at'],
        'date': ['submitted_at', 'pk'],
    }

    @staticmethod
    def check_eligibility(student):
        """Returns ``{'eligible': bool, 'reasons': [...]}``"""
        reasons = []
        if student.current_year != 1 or student.current_semester != 2:
            reasons.append('Placement is only open to first-year students in their second semester')
        minimum = Decimal(str(conf.placement_min_cgpa()))
        if student.cgpa < minimum:
            reasons.append(f'A CGPA of at least {minimum} is required (current {student.cgpa})')
        if student.dismissed:
            reasons.append('Academically dismissed students cannot apply for placement')
        return {'eligible': not reasons, 'reasons': reasons}

    @staticmethod
    def _validate_department(department, field):
        if department not in PLACEMENT_DEPARTMENTS:
            raise ValidationError(f'Invalid department: {department}', field=field, value=department)

    @classmethod
    def submit_placement_request(cls, user, first_choice, personal_statement, reason_for_choice,
                                 second_choice='', career_goals=''):
        """
        Create or resubmit the student's placement request. CGPA and credits
        are snapshotted from the student's standing at submission.
        """
        authorize(user, Transition.SUBMIT_PLACEMENT)
        student = student_for(user)

        eligibility = cls.check_eligibility(student)
        if not eligibility['eligible']:
            raise ValidationError(eligibility['reasons'][0], reasons=eligibility['reasons'])

        cls._validate_department(first_choice, 'first_choice')
        if second_choice:
            cls._validate_department(second_choice, 'second_choice')
            if second_choice == first_choice:
                raise ValidationError('Second choice must differ from first choice', field='second_choice')
        if not (personal_statement or '').strip():
            raise ValidationError('Personal statement is required', field='personal_statement')
        if not (reason_for_choice or '').strip():
            raise ValidationError('Reason for choice is required', field='reason_for_choice')

        try:
            with transaction.atomic():
                request = PlacementRequest.objects.select_for_update().filter(student=student).first()
                if request is None:
                    request = PlacementRequest(student=student)
                elif not request.can_be_modified():
                    raise ConflictError(
                        f'Cannot resubmit a placement request in {request.status} status',
                        request_id=request.pk,
                        current_status=request.status,
                    )

                request.academic_year = academic_year_for(timezone.now())
                request.first_choice = first_choice
                request.second_choice = second_choice or ''
                request.personal_statement = personal_statement
                request.reason_for_choice = reason_for_choice
                request.career_goals = career_goals or ''
                request.current_cgpa = student.cgpa
                request.total_credits = student.total_credits_earned
                request.status = 'submitted'
                request.submitted_at = timezone.now()
                request.rejection_reason = ''
                request.approved_department = ''
                request.save()
        except IntegrityError:
            raise ConflictError('A placement request already exists for this student')

        logger.info(f'Placement request {request.pk} submitted by {student.student_number} '
                    f'(priority {request.priority_score})')
        AuditService.record(user, 'SUBMIT_PLACEMENT', request, {
            'first_choice': first_choice, 'second_choice': second_choice,
            'priority_score': request.priority_score,
        })
        recipients = list(NotificationService.placement_committee()) + list(
            NotificationService.department_heads(first_choice))
        NotificationService.emit_many(
            recipients,
            title='New Placement Request',
            message=f'{student.student_number} applied for placement in {first_choice} '
                    f'(CGPA {request.current_cgpa}, priority score {request.priority_score}).',
            link=f'/placements/{request.pk}/',
        )
        return request

    @staticmethod
    def department_capacity(department, academic_year=None):
        """Fixed capacity and live approved count for a department"""
        academic_year = academic_year or academic_year_for(timezone.now())
        capacity = conf.placement_capacity(department)
        approved = PlacementRequest.objects.filter(
            approved_department=department, status='approved', academic_year=academic_year,
        ).count()
        return {
            'department': department,
            'academic_year': academic_year,
            'capacity': capacity,
            'approved': approved,
            'available': max(capacity - approved, 0),
            'is_full': approved >= capacity,
        }

    @staticmethod
    def _lock(request_id):
        try:
            return PlacementRequest.objects.select_for_update().select_related('student__user').get(pk=request_id)
        except PlacementRequest.DoesNotExist:
            raise NotFoundError(f'Placement request {request_id} not found', request_id=request_id)

    @staticmethod
    def _require_reviewable(request):
        if not request.can_be_reviewed():
            raise ConflictError(
                f'Cannot review a placement request in {request.status} status',
                request_id=request.pk,
                current_status=request.status,
            )

    @classmethod
    def approve_placement(cls, reviewer, request_id, department, comments=''):
        """
        Approve a request into ``department`` if it has room, promoting the
        student to year 2 semester 1 of that department in the same
        transaction.
        """
        authorize(reviewer, Transition.REVIEW_PLACEMENT)
        if not department:
            raise ValidationError('An approved department is required', field='department')
        cls._validate_department(department, 'department')

        with transaction.atomic():
            request = cls._lock(request_id)
            cls._require_reviewable(request)

            # Approvals into the same department count under one lock
            PlacementIntake.lock(department, request.academic_year)
            capacity = cls.department_capacity(department, request.academic_year)
            if capacity['is_full']:
                raise CapacityError(
                    f"{department} department is at full capacity ({capacity['approved']}/{capacity['capacity']})",
                    department=department,
                    capacity=capacity['capacity'],
                    approved=capacity['approved'],
                )

            request.status = 'approved'
            request.approved_department = department
            request.committee_comments = comments or ''
            request.reviewed_by = reviewer
            request.decided_at = timezone.now()
            request.save()

            student = Student.objects.select_for_update().get(pk=request.student_id)
            student.department = department
            student.current_year = 2
            student.current_semester = 1
            student.save(update_fields=['department', 'current_year', 'current_semester'])

        logger.info(f'Placement request {request.pk} approved into {department} by {reviewer.username}')
        AuditService.record(reviewer, 'APPROVE_PLACEMENT', request, {
            'department': department, 'student': student.student_number,
        })
        NotificationService.emit(
            request.student.user,
            title='Placement Approved',
            message=f'Congratulations! You have been placed in the {department} department.',
            link=f'/placements/{request.pk}/',
        )
        return request

    @classmethod
    def reject_placement(cls, reviewer, request_id, reason, comments=''):
        authorize(reviewer, Transition.REVIEW_PLACEMENT)
        if not (reason or '').strip():
            raise ValidationError('A rejection reason is required', field='rejection_reason')

        with transaction.atomic():
            request = cls._lock(request_id)
            cls._require_reviewable(request)

            request.status = 'rejected'
            request.rejection_reason = reason.strip()
            request.committee_comments = comments or ''
            request.reviewed_by = reviewer
            request.decided_at = timezone.now()
            request.save()

        logger.info(f'Placement request {request.pk} rejected by {reviewer.username}')
        AuditService.record(reviewer, 'REJECT_PLACEMENT', request, {'reason': request.rejection_reason})
        NotificationService.emit(
            request.student.user,
            title='Placement Request Rejected',
            message=f'Your placement request was not approved.\n\nReason: {request.rejection_reason}',
            category='Warning',
            link=f'/placements/{request.pk}/',
        )
        return request

    @classmethod
    def review_placement(cls, reviewer, request_id, decision, department=None, reason='', comments=''):
        """Dispatch a committee decision ('approve' or 'reject')"""
        if decision == 'approve':
            return cls.approve_placement(reviewer, request_id, department, comments)
        if decision == 'reject':
            return cls.reject_placement(reviewer, request_id, reason, comments)
        raise ValidationError(f'Unknown decision: {decision}', field='decision')

    @classmethod
    def bulk_approve(cls, reviewer, approvals):
        """
        Approve several requests, each independently.

        Args:
            approvals: iterable of dicts with ``request_id``, ``department``
                and optional ``comments``

        Returns a report of which items succeeded and why the rest failed.
        """
        authorize(reviewer, Transition.REVIEW_PLACEMENT)
        approved, failed = [], []
        for item in approvals:
            request_id = item.get('request_id')
            try:
                request = cls.approve_placement(
                    reviewer, request_id, item.get('department'), item.get('comments', ''),
                )
                approved.append({'request_id': request.pk, 'department': request.approved_department})
            except ProgressionError as e:
                failed.append({'request_id': request_id, 'error': e.code, 'message': e.message})

        logger.info(f'Bulk placement approval by {reviewer.username}: {len(approved)} approved, {len(failed)} failed')
        return {
            'approved': approved,
            'failed': failed,
            'approved_count': len(approved),
            'failed_count': len(failed),
        }

    @classmethod
    def pending_placements(cls, reviewer, department=None, sort_by='priority'):
        """Submitted requests, optionally for one first-choice department"""
        authorize(reviewer, Transition.REVIEW_PLACEMENT)
        if sort_by not in cls.SORT_ORDERS:
            raise ValidationError(
                f'Unknown sort order: {sort_by}', field='sort_by', allowed=list(cls.SORT_ORDERS),
            )
        requests = PlacementRequest.objects.filter(status='submitted')
        if department:
            requests = requests.filter(first_choice=department)
        return requests.select_related('student__user').order_by(*cls.SORT_ORDERS[sort_by])

"""
Grade Approval Workflow Service
Handles the grade lifecycle including notifications

Workflow: draft → submitted → approved → finalized → locked
A department head may send a submitted grade back (rejected); the instructor
then corrects and resubmits it. Locked grades are frozen.
"""
import logging
from collections import defaultdict

from django.db import IntegrityError, transaction
from django.db.models import Count
from django.utils import timezone

from .audit_service import AuditService
from .exceptions import AuthorizationError, ConflictError, NotFoundError
from .grading import validate_marks
from .models import CourseAssignment, GradeRecord, Registration, Role
from .notification_service import NotificationService
from .permissions import Transition, authorize, departments_for
from .standing_service import StandingService

logger = logging.getLogger(__name__)


class GradeWorkflowService:
    """Service class to handle the grade state machine"""

    DEFAULT_REJECTION_REASON = 'No reason provided'

    @staticmethod
    def _lock(grade_id):
        """Re-read a grade under a row lock; call inside a transaction"""
        try:
            return GradeRecord.objects.select_for_update().select_related('course', 'student__user').get(pk=grade_id)
        except GradeRecord.DoesNotExist:
            raise NotFoundError(f'Grade {grade_id} not found', grade_id=grade_id)

    @staticmethod
    def _require_status(grade, *statuses):
        if grade.status not in statuses:
            raise ConflictError(
                f'Cannot change a grade in {grade.status} status',
                grade_id=grade.pk,
                current_status=grade.status,
                expected_status=list(statuses),
            )

    @staticmethod
    def _require_department_head(user, grade):
        if grade.course.department not in departments_for(user, Role.DEPARTMENT_HEAD):
            raise AuthorizationError(
                f'User {user.username} is not head of the {grade.course.department} department',
                department=grade.course.department,
            )

    @classmethod
    def submit_grade(cls, instructor, student, course, academic_year,
                     midterm_mark, continuous_mark, final_exam_mark, comments=''):
        """
        Submit (or resubmit) marks for one student in one course.

        Creates the record on first submission. Only the instructor assigned
        to the course may submit, and only while the record is draft or
        rejected.
        """
        authorize(instructor, Transition.SUBMIT_GRADE)
        if not CourseAssignment.objects.filter(course=course, instructor=instructor).exists():
            raise AuthorizationError(
                f'User {instructor.username} is not assigned to {course.code}',
                course=course.code,
            )

        midterm_mark, continuous_mark, final_exam_mark = validate_marks(
            midterm_mark, continuous_mark, final_exam_mark,
        )

        try:
            with transaction.atomic():
                grade = GradeRecord.objects.select_for_update().filter(
                    student=student, course=course, academic_year=academic_year,
                ).first()
                if grade is None:
                    grade = GradeRecord(
                        student=student,
                        course=course,
                        academic_year=academic_year,
                        semester=course.semester,
                        year=course.year,
                        department=course.department,
                        registration=Registration.objects.filter(
                            student=student, academic_year=academic_year, courses__course=course,
                        ).exclude(status='cancelled').first(),
                    )
                elif not grade.can_be_modified():
                    raise ConflictError(
                        f'Cannot submit a grade in {grade.status} status',
                        grade_id=grade.pk,
                        current_status=grade.status,
                    )

                grade.midterm_mark = midterm_mark
                grade.continuous_mark = continuous_mark
                grade.final_exam_mark = final_exam_mark
                grade.instructor = instructor
                grade.instructor_comments = comments or ''
                grade.status = 'submitted'
                grade.submitted_at = timezone.now()
                grade.submitted_by = instructor
                grade.save()
        except IntegrityError:
            raise ConflictError(
                f'A grade for {student} in {course.code} ({academic_year}) already exists',
                course=course.code, academic_year=academic_year,
            )

        logger.info(f'Grade {grade.pk} submitted by {instructor.username}: {course.code} {grade.letter_grade}')
        AuditService.record(instructor, 'SUBMIT_GRADE', grade, {
            'course': course.code, 'student': student.student_number,
            'total_mark': grade.total_mark, 'letter_grade': grade.letter_grade,
        })
        NotificationService.emit_many(
            NotificationService.department_heads(course.department),
            title=f'Grade Submitted - {course.code}',
            message=f'{instructor.get_full_name() or instructor.username} submitted a grade for '
                    f'{student.student_number} in {course.code}. Please review it.',
            link=f'/grades/{grade.pk}/',
        )
        return grade

    @classmethod
    def approve_grade(cls, department_head, grade_id, comments=''):
        authorize(department_head, Transition.APPROVE_GRADE)
        with transaction.atomic():
            grade = cls._lock(grade_id)
            cls._require_department_head(department_head, grade)
            cls._require_status(grade, 'submitted')

            grade.status = 'approved'
            grade.approved_at = timezone.now()
            grade.approved_by = department_head
            grade.dept_head_comments = comments or ''
            grade.save()

        logger.info(f'Grade {grade.pk} approved by {department_head.username}')
        AuditService.record(department_head, 'APPROVE_GRADE', grade, {'course': grade.course.code})
        NotificationService.emit_many(
            NotificationService.registrars(),
            title=f'Grade Approved - {grade.course.code}',
            message=f'The grade for {grade.student.student_number} in {grade.course.code} '
                    f'was approved and is ready to be finalized.',
            link=f'/grades/{grade.pk}/',
        )
        return grade

    @classmethod
    def reject_grade(cls, department_head, grade_id, reason=None, comments=''):
        authorize(department_head, Transition.REJECT_GRADE)
        reason = (reason or '').strip() or cls.DEFAULT_REJECTION_REASON
        with transaction.atomic():
            grade = cls._lock(grade_id)
            cls._require_department_head(department_head, grade)
            cls._require_status(grade, 'submitted')

            grade.status = 'rejected'
            grade.rejection_reason = reason
            grade.dept_head_comments = comments or ''
            grade.save()

        logger.info(f'Grade {grade.pk} rejected by {department_head.username}: {reason}')
        AuditService.record(department_head, 'REJECT_GRADE', grade, {'course': grade.course.code, 'reason': reason})
        recipient = grade.submitted_by or grade.instructor
        if recipient is not None:
            NotificationService.emit(
                recipient,
                title=f'Grade Correction Required - {grade.course.code}',
                message=f'Your submitted grade for {grade.student.student_number} in '
                        f'{grade.course.code} was rejected.\n\nReason: {reason}\n\n'
                        f'Please review and resubmit it.',
                category='Warning',
                link=f'/grades/{grade.pk}/',
            )
        return grade

    @classmethod
    def finalize_grade(cls, registrar, grade_id, comments=''):
        """
        Finalize an approved grade, then recompute the student's standing.

        The standing recompute runs after the grade write has committed and
        does not roll the grade back if it fails.
        """
        authorize(registrar, Transition.FINALIZE_GRADE)
        with transaction.atomic():
            grade = cls._lock(grade_id)
            cls._require_status(grade, 'approved')

            grade.status = 'finalized'
            grade.finalized_at = timezone.now()
            grade.finalized_by = registrar
            grade.registrar_comments = comments or ''
            grade.save()

        logger.info(f'Grade {grade.pk} finalized by {registrar.username}')
        AuditService.record(registrar, 'FINALIZE_GRADE', grade, {
            'course': grade.course.code, 'letter_grade': grade.letter_grade,
        })

        try:
            StandingService.update_academic_standing(grade.student_id)
        except Exception:
            logger.exception(f'Standing recompute failed for student {grade.student_id} after finalizing grade {grade.pk}')

        NotificationService.emit(
            grade.student.user,
            title=f'Grade Finalized - {grade.course.code}',
            message=f'Your grade for {grade.course.code} - {grade.course.title} has been '
                    f'finalized: {grade.letter_grade}.',
            link='/transcript/',
        )
        return grade

    @classmethod
    def lock_grades(cls, registrar, academic_year, semester, department=None):
        """
        Lock every finalized grade for a term. Returns the number locked.
        Each affected student gets one notification listing their courses.
        """
        authorize(registrar, Transition.LOCK_GRADES)
        now = timezone.now()
        with transaction.atomic():
            grades = GradeRecord.objects.select_for_update().filter(
                status='finalized', academic_year=academic_year, semester=semester,
            )
            if department:
                grades = grades.filter(department=department)
            grades = list(grades.select_related('course', 'student__user'))

            locked_by_student = defaultdict(list)
            for grade in grades:
                grade.status = 'locked'
                grade.locked_at = now
                grade.locked_by = registrar
                grade.save(update_fields=['status', 'locked_at', 'locked_by', 'updated_at'])
                locked_by_student[grade.student].append(grade.course.code)

        locked_count = len(grades)
        logger.info(f'{locked_count} grades locked for {academic_year} semester {semester} by {registrar.username}')
        AuditService.record(registrar, 'LOCK_GRADES', None, {
            'academic_year': academic_year, 'semester': semester,
            'department': department, 'locked_count': locked_count,
        }, description=f'Locked {locked_count} grades for {academic_year} semester {semester}')

        for student, course_codes in locked_by_student.items():
            NotificationService.emit(
                student.user,
                title=f'Grades Locked - {academic_year} Semester {semester}',
                message=f'Your grades for the following courses are now final and locked: '
                        f'{", ".join(sorted(course_codes))}.',
                link='/transcript/',
            )
        return locked_count

    @classmethod
    def pending_grades(cls, department_head, department=None, academic_year=None, semester=None):
        """Submitted grades awaiting review in the head's departments, oldest first"""
        authorize(department_head, Transition.REVIEW_GRADES)
        departments = departments_for(department_head, Role.DEPARTMENT_HEAD)
        if department:
            if department not in departments:
                raise AuthorizationError(
                    f'User {department_head.username} is not head of the {department} department',
                    department=department,
                )
            departments = {department}

        grades = GradeRecord.objects.filter(status='submitted', department__in=departments)
        if academic_year:
            grades = grades.filter(academic_year=academic_year)
        if semester:
            grades = grades.filter(semester=semester)
        return grades.select_related('course', 'student__user', 'submitted_by').order_by('submitted_at', 'pk')

    @classmethod
    def instructor_grades(cls, instructor, academic_year=None, semester=None, status=None):
        """Grades an instructor has entered, with a count per status"""
        grades = GradeRecord.objects.filter(instructor=instructor)
        if academic_year:
            grades = grades.filter(academic_year=academic_year)
        if semester:
            grades = grades.filter(semester=semester)

        summary = {code: 0 for code, _ in GradeRecord.STATUS_CHOICES}
        for row in grades.values('status').annotate(count=Count('pk')):
            summary[row['status']] = row['count']
        summary['total'] = sum(summary.values())

        if status:
            grades = grades.filter(status=status)
        return grades.select_related('course', 'student__user').order_by('-updated_at'), summary

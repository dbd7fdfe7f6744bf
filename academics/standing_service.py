"""
Academic standing: CGPA, probation and dismissal
"""
import logging
from collections import OrderedDict
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from . import conf
from .audit_service import AuditService
from .exceptions import NotFoundError
from .grading import NON_CREDIT_GRADES, round_cgpa
from .models import GradeRecord, Student
from .notification_service import NotificationService

logger = logging.getLogger(__name__)

DISMISSAL_THRESHOLD = Decimal('1.0')
PROBATION_THRESHOLD = Decimal('2.0')


class StandingService:
    """Computes CGPA and maintains the standing fields on Student"""

    @staticmethod
    def qualifying_grades(student, academic_year=None):
        """Completed grades that carry credit towards the CGPA"""
        grades = GradeRecord.objects.filter(
            student=student, status__in=GradeRecord.COMPLETED_STATUSES,
        ).exclude(letter_grade__in=NON_CREDIT_GRADES)
        if academic_year:
            grades = grades.filter(academic_year=academic_year)
        return grades.select_related('course')

    @classmethod
    def calculate_cgpa(cls, student, academic_year=None):
        """
        Credit-weighted grade point average over qualifying grades.

        Returns a dict with ``cgpa`` (Decimal, 2 dp), ``total_credits`` and
        ``course_count``. A student with no qualifying grades has a CGPA of 0.
        """
        weighted_points = Decimal('0')
        total_credits = 0
        course_count = 0
        for grade in cls.qualifying_grades(student, academic_year):
            weighted_points += grade.grade_points * grade.course.credit
            total_credits += grade.course.credit
            course_count += 1

        cgpa = round_cgpa(weighted_points / total_credits) if total_credits else round_cgpa(0)
        return {'cgpa': cgpa, 'total_credits': total_credits, 'course_count': course_count}

    @staticmethod
    def derive_standing(cgpa, course_count, current_status):
        """
        Map a CGPA onto (probation, dismissed, status).

        Judgement is deferred until the student has enough qualifying courses;
        until then the student is in good standing.
        """
        if course_count >= conf.standing_min_courses():
            if cgpa < DISMISSAL_THRESHOLD:
                return False, True, 'suspended'
            if cgpa < PROBATION_THRESHOLD:
                # Probation alone never reinstates a suspended account
                return True, False, current_status
        status = 'active' if current_status == 'suspended' else current_status
        return False, False, status

    @classmethod
    def update_academic_standing(cls, student_id):
        """
        Recompute and store a student's CGPA and standing.

        Emits at most one standing-change notification. Recomputing without
        new completed grades changes nothing.
        """
        with transaction.atomic():
            try:
                student = Student.objects.select_for_update().select_related('user').get(pk=student_id)
            except Student.DoesNotExist:
                raise NotFoundError(f'Student {student_id} not found', student_id=student_id)

            previous = (student.probation, student.dismissed, student.status)
            result = cls.calculate_cgpa(student)
            probation, dismissed, status = cls.derive_standing(
                result['cgpa'], result['course_count'], student.status,
            )

            student.cgpa = result['cgpa']
            student.total_credits_earned = result['total_credits']
            student.probation = probation
            student.dismissed = dismissed
            student.status = status
            student.standing_updated_at = timezone.now()
            student.save(update_fields=[
                'cgpa', 'total_credits_earned', 'probation', 'dismissed', 'status', 'standing_updated_at',
            ])

        changed = previous != (probation, dismissed, status)
        if changed:
            logger.info(f'Standing changed for {student.student_number}: {previous} -> {(probation, dismissed, status)}')
            AuditService.record(None, 'UPDATE_STANDING', student, {
                'cgpa': result['cgpa'], 'probation': probation, 'dismissed': dismissed, 'status': status,
            })
            cls._notify_standing_change(student)

        return {
            'student_id': student.pk,
            'cgpa': result['cgpa'],
            'total_credits': result['total_credits'],
            'course_count': result['course_count'],
            'probation': probation,
            'dismissed': dismissed,
            'status': status,
            'changed': changed,
        }

    @staticmethod
    def _notify_standing_change(student):
        if student.dismissed:
            title = 'Academic Dismissal'
            message = (f'Your CGPA of {student.cgpa} is below {DISMISSAL_THRESHOLD}. You have been '
                       f'academically dismissed and your account is suspended. Contact the registrar.')
            category = 'Warning'
        elif student.probation:
            title = 'Academic Probation'
            message = (f'Your CGPA of {student.cgpa} is below {PROBATION_THRESHOLD}. You are now on '
                       f'academic probation.')
            category = 'Warning'
        else:
            title = 'Academic Standing Improved'
            message = f'Your CGPA is {student.cgpa}. You are in good academic standing.'
            category = 'Info'
        NotificationService.emit(student.user, title, message, category=category, link='/transcript/')

    @classmethod
    def transcript(cls, student):
        """
        Qualifying grades grouped by term, with a GPA per term and the
        running CGPA after each term.
        """
        terms = OrderedDict()
        grades = cls.qualifying_grades(student).order_by('academic_year', 'semester', 'course__code')
        for grade in grades:
            terms.setdefault((grade.academic_year, grade.semester), []).append(grade)

        cumulative_points = Decimal('0')
        cumulative_credits = 0
        rows = []
        for (academic_year, semester), term_grades in terms.items():
            term_points = sum((g.grade_points * g.course.credit for g in term_grades), Decimal('0'))
            term_credits = sum(g.course.credit for g in term_grades)
            cumulative_points += term_points
            cumulative_credits += term_credits
            rows.append({
                'academic_year': academic_year,
                'semester': semester,
                'courses': [
                    {
                        'code': g.course.code,
                        'title': g.course.title,
                        'credit': g.course.credit,
                        'total_mark': g.total_mark,
                        'letter_grade': g.letter_grade,
                        'grade_points': g.grade_points,
                    }
                    for g in term_grades
                ],
                'credits': term_credits,
                'gpa': round_cgpa(term_points / term_credits) if term_credits else round_cgpa(0),
                'cgpa': round_cgpa(cumulative_points / cumulative_credits) if cumulative_credits else round_cgpa(0),
            })

        return {
            'student_number': student.student_number,
            'department': student.department,
            'terms': rows,
            'total_credits': cumulative_credits,
            'cgpa': round_cgpa(cumulative_points / cumulative_credits) if cumulative_credits else round_cgpa(0),
        }

"""
Semester Registration Service
Eligibility gate, course resolution, registration periods and evaluations
"""
import logging

from django.db import IntegrityError, transaction
from django.utils import timezone

from .audit_service import AuditService
from .exceptions import (
    AuthorizationError, ConflictError, NotFoundError, RegistrationBlockedError, ValidationError,
)
from .grading import academic_year_for
from .models import (
    ALL_DEPARTMENTS, Course, Department, Evaluation, GradeRecord, Registration, RegistrationCourse,
    RegistrationPeriod, RegistrationSequence, Student,
)
from .notification_service import NotificationService
from .permissions import Transition, authorize
from .prerequisite_service import PrerequisiteService

logger = logging.getLogger(__name__)

COURSE_REGISTRATION = 'courseRegistration'


def student_for(user):
    """The student profile behind a user account"""
    try:
        return user.student_profile
    except Student.DoesNotExist:
        raise NotFoundError(f'No student record for user {user.username}', user_id=user.pk)


class EvaluationService:
    """Instructor evaluations that gate registration"""

    MIN_RATING = 1
    MAX_RATING = 5

    @staticmethod
    def evaluation_status(student, academic_year=None):
        """
        Which instructor evaluations the student still owes for the year.

        One evaluation is owed per completed grade, keyed on the grade's
        (course, instructor) pair.
        """
        academic_year = academic_year or academic_year_for(timezone.now())
        grades = (
            GradeRecord.objects.filter(
                student=student, academic_year=academic_year,
                status__in=GradeRecord.COMPLETED_STATUSES, instructor__isnull=False,
            )
            .select_related('course', 'instructor')
            .order_by('course__code')
        )
        submitted = set(
            Evaluation.objects.filter(student=student, academic_year=academic_year)
            .values_list('course_id', 'instructor_id')
        )

        required = []
        missing = []
        for grade in grades:
            key = (grade.course_id, grade.instructor_id)
            if key in required:
                continue
            required.append(key)
            if key not in submitted:
                missing.append({
                    'course_id': grade.course_id,
                    'course_code': grade.course.code,
                    'course_title': grade.course.title,
                    'instructor_id': grade.instructor_id,
                    'instructor_name': grade.instructor.get_full_name() or grade.instructor.username,
                })

        return {
            'academic_year': academic_year,
            'required': len(required),
            'completed': len(required) - len(missing),
            'missing_count': len(missing),
            'missing': missing,
            'complete': not missing,
        }

    @classmethod
    def submit_evaluation(cls, user, course, instructor, overall_rating, comments='', academic_year=None):
        """Record the student's evaluation of an instructor for a course, once per year"""
        authorize(user, Transition.SUBMIT_EVALUATION)
        student = student_for(user)
        academic_year = academic_year or academic_year_for(timezone.now())

        try:
            overall_rating = int(overall_rating)
        except (TypeError, ValueError):
            raise ValidationError('Overall rating must be a number', field='overall_rating')
        if not cls.MIN_RATING <= overall_rating <= cls.MAX_RATING:
            raise ValidationError(
                f'Overall rating must be between {cls.MIN_RATING}-{cls.MAX_RATING}',
                field='overall_rating', value=overall_rating,
            )

        if not GradeRecord.objects.filter(
                student=student, course=course, instructor=instructor, academic_year=academic_year).exists():
            raise ValidationError(
                f'{course.code} was not graded by this instructor in {academic_year}',
                course=course.code, academic_year=academic_year,
            )

        try:
            with transaction.atomic():
                evaluation = Evaluation.objects.create(
                    student=student,
                    instructor=instructor,
                    course=course,
                    academic_year=academic_year,
                    semester=course.semester,
                    overall_rating=overall_rating,
                    comments=comments or '',
                )
        except IntegrityError:
            raise ConflictError(
                f'You have already evaluated this instructor for {course.code}',
                course=course.code, academic_year=academic_year,
            )

        logger.info(f'Evaluation submitted by {student.student_number} for {course.code}')
        AuditService.record(user, 'SUBMIT_EVALUATION', evaluation, {'course': course.code})
        return evaluation


class RegistrationPeriodService:
    """Registration windows keyed by (type, academic year, semester, department)"""

    @staticmethod
    def find_period(period_type, academic_year, semester, department):
        """The active period for a department, falling back to the 'All' period"""
        periods = RegistrationPeriod.objects.filter(
            period_type=period_type, academic_year=academic_year, semester=semester, is_active=True,
        )
        return (
            periods.filter(department=department).first()
            or periods.filter(department=ALL_DEPARTMENTS).first()
        )

    @classmethod
    def save_period(cls, user, period_type, academic_year, semester, start_date, end_date,
                    department=ALL_DEPARTMENTS, is_active=True, notes=''):
        """Create or update the period for its key. Returns (period, created)."""
        authorize(user, Transition.SAVE_PERIOD)

        if period_type not in dict(RegistrationPeriod.TYPE_CHOICES):
            raise ValidationError(f'Unknown period type {period_type}', field='period_type')
        if department != ALL_DEPARTMENTS and department not in Department.values:
            raise ValidationError(f'Unknown department {department}', field='department')
        if semester not in (1, 2):
            raise ValidationError('Semester must be 1 or 2', field='semester', value=semester)
        if not start_date or not end_date:
            raise ValidationError('Start and end dates are required', field='start_date')
        if end_date <= start_date:
            raise ValidationError('End date must be after start date', field='end_date')

        with transaction.atomic():
            period = RegistrationPeriod.objects.select_for_update().filter(
                period_type=period_type, academic_year=academic_year,
                semester=semester, department=department, is_active=True,
            ).first()
            created = period is None
            if created:
                period = RegistrationPeriod(
                    period_type=period_type, academic_year=academic_year,
                    semester=semester, department=department, created_by=user,
                )
            period.start_date = start_date
            period.end_date = end_date
            period.is_active = is_active
            period.notes = notes or ''
            period.updated_by = user
            period.save()

        logger.info(f"Registration period {'created' if created else 'updated'}: "
                    f"{period_type} {academic_year} S{semester} {department}")
        AuditService.record(user, 'CREATE_PERIOD' if created else 'UPDATE_PERIOD', period, {
            'period_type': period_type, 'academic_year': academic_year, 'semester': semester,
            'department': department, 'start_date': start_date, 'end_date': end_date,
        })
        return period, created

    @classmethod
    def period_details(cls, period_type, academic_year, semester, department, moment=None):
        """Open/closed state of the matching period with a display message"""
        moment = moment or timezone.now()
        period = cls.find_period(period_type, academic_year, semester, department)
        if period is None:
            return {'is_open': False, 'period': None, 'message': 'No registration period has been set'}

        if moment < period.start_date:
            days = (period.start_date - moment).days
            message = f'Opens in {days} days' if days else 'Opens today'
        elif moment > period.end_date:
            message = 'Registration period has closed'
        else:
            days = (period.end_date - moment).days
            message = f'Closes in {days} days' if days else 'Closes today'

        return {
            'is_open': period.is_open(moment),
            'period': period,
            'start_date': period.start_date,
            'end_date': period.end_date,
            'message': message,
        }


class RegistrationService:
    """Registration eligibility gate and semester registration"""

    @staticmethod
    def registration_target(student, moment=None):
        moment = moment or timezone.now()
        return {
            'academic_year': academic_year_for(moment),
            'year': student.current_year,
            'semester': student.current_semester,
            'department': student.registration_department,
        }

    @classmethod
    def check_eligibility(cls, student, moment=None):
        """
        Run the gate checks in order. Returns the registration target on
        success; raises RegistrationBlockedError or ConflictError otherwise.
        """
        moment = moment or timezone.now()
        target = cls.registration_target(student, moment)

        evaluations = EvaluationService.evaluation_status(student, target['academic_year'])
        if evaluations['missing_count']:
            raise RegistrationBlockedError(
                f"You must complete {evaluations['missing_count']} pending evaluation(s) before registering",
                reason='evaluations_incomplete',
                missing_count=evaluations['missing_count'],
                missing=evaluations['missing'],
            )

        if student.dismissed:
            raise RegistrationBlockedError(
                'Academically dismissed students cannot register', reason='dismissed', cgpa=str(student.cgpa),
            )
        if student.status == 'suspended':
            raise RegistrationBlockedError('Your account is suspended', reason='suspended')

        period = RegistrationPeriodService.find_period(
            COURSE_REGISTRATION, target['academic_year'], target['semester'], target['department'],
        )
        if period is None or not period.is_open(moment):
            raise RegistrationBlockedError(
                'Course registration is not open', reason='period_closed',
                academic_year=target['academic_year'], semester=target['semester'],
            )

        existing = Registration.objects.filter(
            student=student, year=target['year'], semester=target['semester'],
        ).exclude(status='cancelled').first()
        if existing is not None:
            raise ConflictError(
                f"Already registered for year {target['year']} semester {target['semester']}",
                registration_number=existing.registration_number,
                current_status=existing.status,
            )

        return target

    @staticmethod
    def registrable_courses(student, department, year, semester):
        """
        Repeat obligations when there are any; otherwise the catalog for the
        term filtered by prerequisites.
        """
        repeats = PrerequisiteService.get_repeat_courses(student)
        if repeats:
            return [
                {'course': item['course'], 'is_repeat': True, 'previous_grade': item['previous_grade']}
                for item in repeats
            ]

        catalog = Course.objects.filter(department=department, year=year, semester=semester, is_active=True)
        return [
            {'course': course, 'is_repeat': False, 'previous_grade': ''}
            for course in catalog
            if PrerequisiteService.check_prerequisites(student, course)['eligible']
        ]

    @classmethod
    def available_courses(cls, student, moment=None):
        """The gate decision together with the courses that would be registered"""
        target = cls.registration_target(student, moment)
        can_register, reason, message = True, None, 'You can register'
        try:
            cls.check_eligibility(student, moment)
        except RegistrationBlockedError as e:
            can_register, reason, message = False, e.reason, e.message
        except ConflictError as e:
            can_register, reason, message = False, 'already_registered', e.message

        items = cls.registrable_courses(student, target['department'], target['year'], target['semester'])
        if can_register and not items:
            can_register, reason, message = False, 'no_courses', 'No courses are available for registration'

        return {
            'can_register': can_register,
            'reason': reason,
            'message': message,
            'target': target,
            'courses': items,
            'summary': {
                'course_count': len(items),
                'total_credits': sum(item['course'].credit for item in items),
                'is_repeat_semester': any(item['is_repeat'] for item in items),
            },
        }

    @classmethod
    def register_for_semester(cls, user, moment=None):
        """
        Register the student for their current term. Every registrable course
        is added; credits and repeat counts are derived from the line items.
        """
        authorize(user, Transition.REGISTER)
        student = student_for(user)
        target = cls.check_eligibility(student, moment)

        items = cls.registrable_courses(student, target['department'], target['year'], target['semester'])
        if not items:
            raise RegistrationBlockedError('No courses are available for registration', reason='no_courses')

        is_repeat = any(item['is_repeat'] for item in items)
        try:
            with transaction.atomic():
                # Serialise registrations per student
                Student.objects.select_for_update().get(pk=student.pk)
                if Registration.objects.filter(
                        student=student, year=target['year'], semester=target['semester'],
                ).exclude(status='cancelled').exists():
                    raise ConflictError(
                        f"Already registered for year {target['year']} semester {target['semester']}",
                    )

                sequence = RegistrationSequence.next_value(target['academic_year'], target['year'], target['semester'])
                prefix = 'REP' if is_repeat else 'REG'
                registration = Registration.objects.create(
                    student=student,
                    department=target['department'],
                    year=target['year'],
                    semester=target['semester'],
                    academic_year=target['academic_year'],
                    registration_number=f"{prefix}-{target['academic_year']}-Y{target['year']}S{target['semester']}-{sequence:04d}",
                )
                RegistrationCourse.objects.bulk_create([
                    RegistrationCourse(
                        registration=registration,
                        course=item['course'],
                        position=position,
                        course_code=item['course'].code,
                        course_title=item['course'].title,
                        credit=item['course'].credit,
                        is_repeat=item['is_repeat'],
                        previous_grade=item['previous_grade'],
                    )
                    for position, item in enumerate(items, start=1)
                ])
                registration.refresh_totals()
        except IntegrityError:
            raise ConflictError(
                f"Already registered for year {target['year']} semester {target['semester']}",
            )

        logger.info(f'{student.student_number} registered: {registration.registration_number} '
                    f'({registration.total_credits} credits)')
        AuditService.record(user, 'REGISTER', registration, {
            'registration_number': registration.registration_number,
            'courses': [item['course'].code for item in items],
            'total_credits': registration.total_credits,
        })
        NotificationService.emit(
            user,
            title='Registration Confirmed',
            message=f'You are registered for year {registration.year} semester {registration.semester} '
                    f'({registration.total_credits} credits). Registration number: '
                    f'{registration.registration_number}.',
            link=f'/registrations/{registration.pk}/',
        )
        return registration

    @classmethod
    def cancel_registration(cls, user, registration_id, moment=None):
        authorize(user, Transition.CANCEL_REGISTRATION)
        with transaction.atomic():
            try:
                registration = Registration.objects.select_for_update().select_related('student').get(pk=registration_id)
            except Registration.DoesNotExist:
                raise NotFoundError(f'Registration {registration_id} not found', registration_id=registration_id)

            if registration.student.user_id != user.pk:
                raise AuthorizationError('You can only cancel your own registration')
            if not registration.can_be_modified(moment):
                raise ConflictError(
                    'This registration can no longer be cancelled',
                    registration_number=registration.registration_number,
                    current_status=registration.status,
                )

            registration.status = 'cancelled'
            registration.save(update_fields=['status'])

        logger.info(f'Registration {registration.registration_number} cancelled')
        AuditService.record(user, 'CANCEL_REGISTRATION', registration, {
            'registration_number': registration.registration_number,
        })
        NotificationService.emit(
            user,
            title='Registration Cancelled',
            message=f'Your registration {registration.registration_number} has been cancelled.',
            link='/registrations/',
        )
        return registration

"""
Engine boundary

Every operation the outside world may call goes through ProgressionEngine.
Service errors are turned into structured failure results here; successes
come back as ``{'success': True, 'message': ..., 'data': ...}``.
"""
import logging

from .exceptions import NotFoundError, ProgressionError
from .models import Course, Student
from .placement_service import PlacementService
from .prerequisite_service import PrerequisiteService
from .registration_service import EvaluationService, RegistrationPeriodService, RegistrationService
from .standing_service import StandingService
from .workflow_service import GradeWorkflowService

logger = logging.getLogger(__name__)


def _get(model, pk, label):
    try:
        return model.objects.get(pk=pk)
    except (model.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(f'{label} {pk} not found', **{f'{label.lower()}_id': pk})


class ProgressionEngine:
    """Facade over the progression services"""

    @staticmethod
    def _run(message, operation, *args, **kwargs):
        try:
            data = operation(*args, **kwargs)
        except ProgressionError as e:
            logger.info(f'{operation.__qualname__} failed: {e.code}: {e.message}')
            return e.as_dict()
        return {'success': True, 'message': message, 'data': data}

    # Grade lifecycle

    def submit_grade(self, instructor, student_id, course_id, academic_year,
                     midterm_mark, continuous_mark, final_exam_mark, comments=''):
        def operation():
            return GradeWorkflowService.submit_grade(
                instructor, _get(Student, student_id, 'Student'), _get(Course, course_id, 'Course'),
                academic_year, midterm_mark, continuous_mark, final_exam_mark, comments,
            )
        return self._run('Grade submitted successfully', operation)

    def approve_grade(self, department_head, grade_id, comments=''):
        return self._run('Grade approved successfully',
                         GradeWorkflowService.approve_grade, department_head, grade_id, comments)

    def reject_grade(self, department_head, grade_id, reason=None, comments=''):
        return self._run('Grade rejected',
                         GradeWorkflowService.reject_grade, department_head, grade_id, reason, comments)

    def finalize_grade(self, registrar, grade_id, comments=''):
        return self._run('Grade finalized successfully',
                         GradeWorkflowService.finalize_grade, registrar, grade_id, comments)

    def lock_grades(self, registrar, academic_year, semester, department=None):
        return self._run('Grades locked successfully',
                         GradeWorkflowService.lock_grades, registrar, academic_year, semester, department)

    def pending_grades(self, department_head, department=None, academic_year=None, semester=None):
        return self._run('Pending grades retrieved',
                         GradeWorkflowService.pending_grades, department_head, department, academic_year, semester)

    # Standing

    def update_standing(self, student_id):
        return self._run('Academic standing updated', StandingService.update_academic_standing, student_id)

    def transcript(self, student_id):
        return self._run('Transcript retrieved',
                         lambda: StandingService.transcript(_get(Student, student_id, 'Student')))

    # Prerequisites and registration

    def check_prerequisites(self, student_id, course_id):
        return self._run('Prerequisites checked', lambda: PrerequisiteService.check_prerequisites(
            _get(Student, student_id, 'Student'), _get(Course, course_id, 'Course')))

    def repeat_courses(self, student_id):
        return self._run('Repeat courses retrieved',
                         lambda: PrerequisiteService.get_repeat_courses(_get(Student, student_id, 'Student')))

    def available_courses(self, student_id):
        return self._run('Available courses retrieved',
                         lambda: RegistrationService.available_courses(_get(Student, student_id, 'Student')))

    def register(self, user):
        return self._run('Registration successful', RegistrationService.register_for_semester, user)

    def cancel_registration(self, user, registration_id):
        return self._run('Registration cancelled', RegistrationService.cancel_registration, user, registration_id)

    def evaluation_status(self, student_id, academic_year=None):
        return self._run('Evaluation status retrieved', lambda: EvaluationService.evaluation_status(
            _get(Student, student_id, 'Student'), academic_year))

    def submit_evaluation(self, user, course_id, instructor, overall_rating, comments='', academic_year=None):
        return self._run('Evaluation submitted successfully', lambda: EvaluationService.submit_evaluation(
            user, _get(Course, course_id, 'Course'), instructor, overall_rating, comments, academic_year))

    def save_period(self, user, **fields):
        return self._run('Registration period saved', RegistrationPeriodService.save_period, user, **fields)

    # Placement

    def submit_placement(self, user, **fields):
        return self._run('Placement request submitted successfully',
                         PlacementService.submit_placement_request, user, **fields)

    def approve_placement(self, reviewer, request_id, department, comments=''):
        return self._run('Placement approved successfully',
                         PlacementService.approve_placement, reviewer, request_id, department, comments)

    def reject_placement(self, reviewer, request_id, reason, comments=''):
        return self._run('Placement request rejected',
                         PlacementService.reject_placement, reviewer, request_id, reason, comments)

    def bulk_approve_placements(self, reviewer, approvals):
        return self._run('Bulk approval processed', PlacementService.bulk_approve, reviewer, approvals)

    def pending_placements(self, reviewer, department=None, sort_by='priority'):
        return self._run('Pending placements retrieved',
                         PlacementService.pending_placements, reviewer, department, sort_by)

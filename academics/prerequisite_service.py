"""
Prerequisite checks and repeat-course obligations
"""
from .grading import NON_PASSING_GRADES, REPEAT_GRADES
from .models import GradeRecord


class PrerequisiteService:

    @staticmethod
    def _completed_grades(student):
        return GradeRecord.objects.filter(student=student, status__in=GradeRecord.COMPLETED_STATUSES)

    @classmethod
    def passed_course_codes(cls, student):
        """Codes of every course the student holds a completed passing grade in"""
        return set(
            cls._completed_grades(student)
            .exclude(letter_grade__in=NON_PASSING_GRADES)
            .values_list('course__code', flat=True)
        )

    @classmethod
    def check_prerequisites(cls, student, course):
        """
        Returns ``{'eligible': bool, 'required': [...], 'missing': [...]}``.
        A course without prerequisites is always eligible.
        """
        required = list(course.prerequisites or [])
        if not required:
            return {'eligible': True, 'required': [], 'missing': []}

        passed = cls.passed_course_codes(student)
        missing = [code for code in required if code not in passed]
        return {'eligible': not missing, 'required': required, 'missing': missing}

    @classmethod
    def get_repeat_courses(cls, student):
        """
        Failed courses the student must retake: completed F/NG grades with no
        later passing grade for the same course. One entry per course, carrying
        the most recent failing grade.
        """
        passed = cls.passed_course_codes(student)
        failing = (
            cls._completed_grades(student)
            .filter(letter_grade__in=REPEAT_GRADES, repeat_required=True)
            .select_related('course')
            .order_by('course__code', '-academic_year', '-pk')
        )

        obligations = []
        seen = set()
        for grade in failing:
            code = grade.course.code
            if code in passed or code in seen:
                continue
            seen.add(code)
            obligations.append({
                'course': grade.course,
                'grade': grade,
                'previous_grade': grade.letter_grade,
                'academic_year': grade.academic_year,
            })
        return obligations

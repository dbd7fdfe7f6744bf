from django.test import TestCase

from academics.prerequisite_service import PrerequisiteService
from academics.registration_service import RegistrationService

from .factories import CURRENT_YEAR, OLDER_YEAR, PREVIOUS_YEAR, make_course, make_grade, make_student, open_period


class CheckPrerequisitesTests(TestCase):
    def setUp(self):
        self.student = make_student('amina')
        self.math = make_course('MATH101')
        self.physics = make_course('PHYS101')
        self.calculus = make_course('MATH102', semester=2, prerequisites=['MATH101', 'PHYS101'])

    def test_no_prerequisites_is_always_eligible(self):
        make_grade(self.student, self.math, 'F')
        self.assertEqual(
            PrerequisiteService.check_prerequisites(self.student, self.physics),
            {'eligible': True, 'required': [], 'missing': []},
        )

    def test_reports_missing_codes(self):
        make_grade(self.student, self.math, 'B')

        result = PrerequisiteService.check_prerequisites(self.student, self.calculus)

        self.assertFalse(result['eligible'])
        self.assertEqual(result['missing'], ['PHYS101'])

    def test_failing_or_unfinished_grades_do_not_satisfy(self):
        make_grade(self.student, self.math, 'F')
        make_grade(self.student, self.physics, 'A', status='approved')

        result = PrerequisiteService.check_prerequisites(self.student, self.calculus)

        self.assertEqual(result['missing'], ['MATH101', 'PHYS101'])

    def test_eligible_once_all_passed(self):
        make_grade(self.student, self.math, 'D')
        make_grade(self.student, self.physics, 'C', status='locked')

        self.assertTrue(PrerequisiteService.check_prerequisites(self.student, self.calculus)['eligible'])


class RepeatCourseTests(TestCase):
    def setUp(self):
        self.student = make_student('amina', semester=2)
        self.math = make_course('MATH101')

    def test_failed_course_is_an_obligation(self):
        make_grade(self.student, self.math, 'F', academic_year=PREVIOUS_YEAR)

        repeats = PrerequisiteService.get_repeat_courses(self.student)

        self.assertEqual([item['course'].code for item in repeats], ['MATH101'])
        self.assertEqual(repeats[0]['previous_grade'], 'F')

    def test_unfinalized_failure_is_not_an_obligation(self):
        make_grade(self.student, self.math, 'F', status='approved')
        self.assertEqual(PrerequisiteService.get_repeat_courses(self.student), [])

    def test_passing_retake_supersedes(self):
        make_grade(self.student, self.math, 'F', academic_year=PREVIOUS_YEAR)
        make_grade(self.student, self.math, 'C', academic_year=CURRENT_YEAR)

        self.assertEqual(PrerequisiteService.get_repeat_courses(self.student), [])

    def test_failing_twice_is_one_obligation(self):
        make_grade(self.student, self.math, 'F', academic_year=OLDER_YEAR)
        make_grade(self.student, self.math, 'F', academic_year=PREVIOUS_YEAR)

        repeats = PrerequisiteService.get_repeat_courses(self.student)

        self.assertEqual(len(repeats), 1)
        self.assertEqual(repeats[0]['academic_year'], PREVIOUS_YEAR)

    def test_repeats_replace_forward_courses(self):
        make_grade(self.student, self.math, 'F', academic_year=PREVIOUS_YEAR)
        make_course('CHEM102', semester=2)
        make_course('ENG102', semester=2)
        open_period(semester=2)

        courses = RegistrationService.registrable_courses(self.student, 'Freshman', 1, 2)
        self.assertEqual([item['course'].code for item in courses], ['MATH101'])
        self.assertTrue(courses[0]['is_repeat'])

        available = RegistrationService.available_courses(self.student)
        self.assertTrue(available['can_register'])
        self.assertEqual([item['course'].code for item in available['courses']], ['MATH101'])
        self.assertTrue(available['summary']['is_repeat_semester'])

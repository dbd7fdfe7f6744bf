from decimal import Decimal

from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from academics.models import GradeRecord, Notification, Role

from .factories import CURRENT_YEAR, assign, make_course, make_grade, make_placement, make_student, make_user, open_period


class ApiTestBase(APITestCase):
    def setUp(self):
        self.client = APIClient()
        self.instructor = make_user('instructor', Role.INSTRUCTOR)
        self.head = make_user('head', Role.DEPARTMENT_HEAD, 'Electrical')
        self.registrar = make_user('registrar', Role.REGISTRAR)
        self.student = make_student('amina', year=2, department='Electrical')
        self.course = make_course('EE201', department='Electrical', year=2)
        assign(self.course, self.instructor)

    def login(self, user):
        self.client.force_authenticate(user=user)

    def submit_grade(self, **overrides):
        payload = {
            'student_id': self.student.pk,
            'course_id': self.course.pk,
            'academic_year': CURRENT_YEAR,
            'midterm_mark': '28',
            'continuous_mark': '25',
            'final_exam_mark': '35',
            **overrides,
        }
        return self.client.post(reverse('submit-grade'), payload, format='json')


class GradeApiTests(ApiTestBase):
    def test_requires_authentication(self):
        response = self.submit_grade()
        self.assertIn(response.status_code, (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN))

    def test_submit_and_review(self):
        self.login(self.instructor)
        response = self.submit_grade()
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['letter_grade'], 'A')
        grade_id = response.data['data']['id']

        self.login(self.head)
        response = self.client.get(reverse('pending-grades'))
        self.assertEqual([g['id'] for g in response.data['data']], [grade_id])
        response = self.client.post(reverse('approve-grade', args=[grade_id]), {'comments': 'OK'}, format='json')
        self.assertEqual(response.data['data']['status'], 'approved')

        self.login(self.registrar)
        response = self.client.post(reverse('finalize-grade', args=[grade_id]), {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(GradeRecord.objects.get(pk=grade_id).status, 'finalized')

        response = self.client.post(reverse('finalize-grade', args=[grade_id]), {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['error'], 'conflict')

    def test_out_of_range_mark_is_400(self):
        self.login(self.instructor)
        response = self.submit_grade(final_exam_mark='41')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['details']['field'], 'final_exam_mark')

    def test_malformed_payload_is_400(self):
        self.login(self.instructor)
        response = self.submit_grade(academic_year='2026')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('academic_year', response.data['details'])

    def test_wrong_role_is_403(self):
        self.login(self.student.user)
        response = self.submit_grade()
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error'], 'not_authorized')

    def test_unknown_grade_is_404(self):
        self.login(self.head)
        response = self.client.post(reverse('approve-grade', args=[9999]), {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_lock_grades(self):
        make_grade(self.student, self.course, 'B', instructor=self.instructor)
        self.login(self.registrar)
        response = self.client.post(reverse('lock-grades'), {
            'academic_year': CURRENT_YEAR, 'semester': 1,
        }, format='json')
        self.assertEqual(response.data['data'], {'locked_count': 1})

    def test_instructor_grade_summary(self):
        make_grade(self.student, self.course, 'B', status='submitted', instructor=self.instructor)
        self.login(self.instructor)
        response = self.client.get(reverse('instructor-grades'))
        self.assertEqual(response.data['data']['summary']['submitted'], 1)
        self.assertEqual(response.data['data']['summary']['total'], 1)

    def test_malformed_grade_filters_are_400(self):
        self.login(self.head)
        response = self.client.get(reverse('pending-grades'), {'semester': 'abc'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'validation_error')
        self.assertIn('semester', response.data['details'])

        response = self.client.get(reverse('pending-grades'), {'academic_year': '2026'})
        self.assertIn('academic_year', response.data['details'])

        self.login(self.instructor)
        response = self.client.get(reverse('instructor-grades'), {'status': 'graded'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('status', response.data['details'])

    def test_grade_filters_narrow_listing(self):
        make_grade(self.student, self.course, 'B', status='submitted', instructor=self.instructor)
        self.login(self.instructor)
        response = self.client.get(reverse('instructor-grades'), {'status': 'approved', 'academic_year': CURRENT_YEAR})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['grades'], [])
        self.assertEqual(response.data['data']['summary']['submitted'], 1)


class StudentApiTests(ApiTestBase):
    def setUp(self):
        super().setUp()
        self.freshman = make_student('bello')
        make_course('MATH101', credit=4)

    def test_register_and_cancel(self):
        open_period()
        self.login(self.freshman.user)

        response = self.client.post(reverse('register'))
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        registration = response.data['data']
        self.assertEqual(registration['registration_number'], f'REG-{CURRENT_YEAR}-Y1S1-0001')
        self.assertEqual([c['course_code'] for c in registration['courses']], ['MATH101'])

        response = self.client.post(reverse('register'))
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

        response = self.client.post(reverse('cancel-registration', args=[registration['id']]))
        self.assertEqual(response.data['data']['status'], 'cancelled')

    def test_blocked_registration_is_403_with_reason(self):
        self.login(self.freshman.user)
        response = self.client.post(reverse('register'))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['details']['reason'], 'period_closed')

    def test_available_courses(self):
        open_period()
        self.login(self.freshman.user)
        response = self.client.get(reverse('available-courses'))
        self.assertTrue(response.data['data']['can_register'])
        self.assertEqual(response.data['data']['courses'][0]['course']['code'], 'MATH101')

    def test_transcript(self):
        make_grade(self.student, self.course, 'B')
        self.login(self.student.user)
        response = self.client.get(reverse('my-transcript'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['total_credits'], 3)

    def test_student_endpoints_reject_other_roles(self):
        self.login(self.instructor)
        self.assertEqual(self.client.get(reverse('my-transcript')).status_code, status.HTTP_403_FORBIDDEN)

    def test_submit_evaluation(self):
        course = make_course('GEN101')
        make_grade(self.freshman, course, 'B', instructor=self.instructor)
        self.login(self.freshman.user)

        payload = {'course_id': course.pk, 'instructor_id': self.instructor.pk, 'overall_rating': 5}
        response = self.client.post(reverse('submit-evaluation'), payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        response = self.client.post(reverse('submit-evaluation'), payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

        response = self.client.get(reverse('evaluation-status'))
        self.assertTrue(response.data['data']['complete'])

    def test_notifications(self):
        Notification.objects.create(user=self.freshman.user, title='Hello', message='World')
        self.login(self.freshman.user)

        response = self.client.get(reverse('notifications'), {'unread': 'true'})
        notification_id = response.data['data'][0]['id']
        self.assertEqual(response.data['unread_count'], 1)
        self.client.post(reverse('mark-notification-read', args=[notification_id]))

        response = self.client.get(reverse('notifications'), {'unread': 'true'})
        self.assertEqual(response.data['data'], [])
        self.assertEqual(response.data['unread_count'], 0)


class PeriodApiTests(ApiTestBase):
    def test_save_and_read_period(self):
        self.login(self.registrar)
        response = self.client.post(reverse('save-period'), {
            'period_type': 'courseRegistration',
            'academic_year': CURRENT_YEAR,
            'semester': 1,
            'start_date': '2000-01-01T00:00:00Z',
            'end_date': '2099-01-01T00:00:00Z',
        }, format='json')
        self.assertTrue(response.data['data']['created'])

        response = self.client.get(reverse('period-details'), {
            'academic_year': CURRENT_YEAR, 'semester': 1, 'department': 'ICT',
        })
        self.assertTrue(response.data['data']['is_open'])
        self.assertEqual(response.data['data']['period']['department'], 'All')

    def test_students_cannot_save_periods(self):
        self.login(self.student.user)
        response = self.client.post(reverse('save-period'), {
            'period_type': 'courseRegistration',
            'academic_year': CURRENT_YEAR,
            'semester': 1,
            'start_date': '2000-01-01T00:00:00Z',
            'end_date': '2099-01-01T00:00:00Z',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class PlacementApiTests(ApiTestBase):
    def setUp(self):
        super().setUp()
        self.committee = make_user('committee', Role.PLACEMENT_COMMITTEE)
        self.applicant = make_student('bello', semester=2, cgpa=Decimal('2.50'))

    def test_submit_and_approve(self):
        self.login(self.applicant.user)
        response = self.client.post(reverse('submit-placement'), {
            'first_choice': 'ICT',
            'personal_statement': 'I want to build networks. ' * 5,
            'reason_for_choice': 'Interest',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        request_id = response.data['data']['id']

        self.login(self.committee)
        response = self.client.get(reverse('pending-placements'), {'sort_by': 'cgpa'})
        self.assertEqual([r['id'] for r in response.data['data']], [request_id])

        response = self.client.post(reverse('review-placement', args=[request_id]), {
            'decision': 'approve', 'department': 'ICT',
        }, format='json')
        self.assertEqual(response.data['data']['status'], 'approved')

        response = self.client.get(reverse('department-capacity', args=['ICT']))
        self.assertEqual(response.data['data']['approved'], 1)

    def test_ineligible_student_is_400(self):
        self.login(self.student.user)
        response = self.client.post(reverse('submit-placement'), {
            'first_choice': 'ICT', 'personal_statement': 'Hello', 'reason_for_choice': 'Interest',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_invalid_sort_is_400(self):
        self.login(self.committee)
        response = self.client.get(reverse('pending-placements'), {'sort_by': 'name'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_bulk_approve(self):
        request = make_placement(self.applicant)
        self.login(self.committee)
        response = self.client.post(reverse('bulk-approve-placements'), {
            'approvals': [
                {'request_id': request.pk, 'department': 'Electrical'},
                {'request_id': 9999, 'department': 'Electrical'},
            ],
        }, format='json')
        self.assertEqual(response.data['data']['approved_count'], 1)
        self.assertEqual(response.data['data']['failed'][0]['error'], 'not_found')


class ReportApiTests(ApiTestBase):
    def test_report_access_by_role(self):
        make_grade(self.student, self.course, 'B')

        self.login(self.student.user)
        self.assertEqual(self.client.get(reverse('standing-report')).status_code, status.HTTP_403_FORBIDDEN)

        self.login(self.head)
        response = self.client.get(reverse('grade-distribution-report'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data'][0]['B'], 1)

        self.login(self.registrar)
        for name in ('standing-report', 'placement-report', 'registration-report'):
            with self.subTest(report=name):
                self.assertEqual(self.client.get(reverse(name)).status_code, status.HTTP_200_OK)

    def test_malformed_report_filters_are_400(self):
        self.login(self.registrar)
        response = self.client.get(reverse('registration-report'), {'year': 'two'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('year', response.data['details'])

        response = self.client.get(reverse('grade-distribution-report'), {'semester': 'abc'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('semester', response.data['details'])

        response = self.client.get(reverse('registration-report'), {'year': '2', 'semester': '1'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)

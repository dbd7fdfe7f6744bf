from decimal import Decimal
from unittest import mock

from django.test import TestCase, override_settings

from academics.exceptions import AuthorizationError, CapacityError, ConflictError, NotFoundError, ValidationError
from academics.models import Notification, PlacementIntake, PlacementRequest, Role
from academics.placement_service import PlacementService

from .factories import CURRENT_YEAR, make_placement, make_student, make_user

STATEMENT = 'x' * 310


class PlacementTestBase(TestCase):
    def setUp(self):
        self.student = make_student('amina', semester=2, cgpa=Decimal('3.20'), total_credits_earned=32)
        self.committee = make_user('committee', Role.PLACEMENT_COMMITTEE)
        self.registrar = make_user('registrar', Role.REGISTRAR)
        self.ee_head = make_user('ee_head', Role.DEPARTMENT_HEAD, 'Electrical')

    def submit(self, student=None, **overrides):
        fields = {
            'first_choice': 'Electrical',
            'second_choice': 'ICT',
            'personal_statement': STATEMENT,
            'reason_for_choice': 'I enjoy circuits',
            **overrides,
        }
        return PlacementService.submit_placement_request((student or self.student).user, **fields)


class SubmitPlacementTests(PlacementTestBase):
    def test_submission_snapshots_standing_and_scores(self):
        request = self.submit()

        self.assertEqual(request.status, 'submitted')
        self.assertEqual(request.current_cgpa, Decimal('3.20'))
        self.assertEqual(request.total_credits, 32)
        self.assertEqual(request.priority_score, 86)
        self.assertIsNotNone(request.submitted_at)

    def test_committee_and_first_choice_heads_are_notified(self):
        ict_head = make_user('ict_head', Role.DEPARTMENT_HEAD, 'ICT')
        self.submit()

        self.assertTrue(Notification.objects.filter(user=self.committee, title='New Placement Request').exists())
        self.assertTrue(Notification.objects.filter(user=self.ee_head, title='New Placement Request').exists())
        self.assertFalse(Notification.objects.filter(user=ict_head).exists())

    def test_only_second_semester_freshmen(self):
        student = make_student('bello', year=1, semester=1, cgpa=Decimal('3.00'))
        with self.assertRaises(ValidationError):
            self.submit(student)

    def test_minimum_cgpa(self):
        student = make_student('bello', semester=2, cgpa=Decimal('1.49'))
        with self.assertRaises(ValidationError) as ctx:
            self.submit(student)
        self.assertIn('1.5', ctx.exception.message)

        boundary = make_student('chidi', semester=2, cgpa=Decimal('1.50'))
        self.assertEqual(self.submit(boundary).status, 'submitted')

    def test_dismissed_students_are_ineligible(self):
        student = make_student('bello', semester=2, cgpa=Decimal('3.00'), dismissed=True)
        self.assertFalse(PlacementService.check_eligibility(student)['eligible'])

    def test_choice_validation(self):
        with self.assertRaises(ValidationError):
            self.submit(first_choice='Freshman')
        with self.assertRaises(ValidationError):
            self.submit(second_choice='Electrical')
        with self.assertRaises(ValidationError):
            self.submit(personal_statement='  ')

    def test_resubmission_only_after_rejection(self):
        request = self.submit()
        with self.assertRaises(ConflictError):
            self.submit()

        PlacementService.reject_placement(self.committee, request.pk, 'Statement too vague')
        resubmitted = self.submit(first_choice='ICT', second_choice='')

        self.assertEqual(resubmitted.pk, request.pk)
        self.assertEqual(resubmitted.status, 'submitted')
        self.assertEqual(resubmitted.first_choice, 'ICT')
        self.assertEqual(resubmitted.rejection_reason, '')

    def test_only_students_submit(self):
        with self.assertRaises(AuthorizationError):
            PlacementService.submit_placement_request(
                self.committee, 'Electrical', STATEMENT, 'Reason',
            )


class ReviewPlacementTests(PlacementTestBase):
    def test_approval_promotes_student(self):
        request = self.submit()

        approved = PlacementService.approve_placement(self.committee, request.pk, 'ICT', 'Strong fit')

        self.assertEqual(approved.status, 'approved')
        self.assertEqual(approved.approved_department, 'ICT')
        self.assertEqual(approved.reviewed_by, self.committee)
        self.student.refresh_from_db()
        self.assertEqual(self.student.department, 'ICT')
        self.assertEqual(self.student.current_year, 2)
        self.assertEqual(self.student.current_semester, 1)
        self.assertTrue(Notification.objects.filter(user=self.student.user, title='Placement Approved').exists())

    def test_registrar_may_review(self):
        request = self.submit()
        PlacementService.approve_placement(self.registrar, request.pk, 'Electrical')

    def test_approval_needs_department(self):
        request = self.submit()
        with self.assertRaises(ValidationError):
            PlacementService.approve_placement(self.committee, request.pk, '')
        with self.assertRaises(ValidationError):
            PlacementService.approve_placement(self.committee, request.pk, 'Freshman')

    def test_review_only_from_submitted(self):
        request = make_placement(self.student, status='draft')
        with self.assertRaises(ConflictError) as ctx:
            PlacementService.approve_placement(self.committee, request.pk, 'ICT')
        self.assertEqual(ctx.exception.details['current_status'], 'draft')

        request = self.submit()
        PlacementService.approve_placement(self.committee, request.pk, 'ICT')
        with self.assertRaises(ConflictError):
            PlacementService.reject_placement(self.committee, request.pk, 'Changed our minds')

    @override_settings(ACADEMICS_PLACEMENT_CAPACITIES={'ICT': 1})
    def test_exactly_full_department_rejects_approval(self):
        first = make_placement(make_student('bello', semester=2), first_choice='ICT')
        second = make_placement(make_student('chidi', semester=2), first_choice='ICT')
        PlacementService.approve_placement(self.committee, first.pk, 'ICT')

        with self.assertRaises(CapacityError) as ctx:
            PlacementService.approve_placement(self.committee, second.pk, 'ICT')

        self.assertEqual(ctx.exception.details['capacity'], 1)
        self.assertEqual(ctx.exception.details['approved'], 1)
        second.refresh_from_db()
        self.assertEqual(second.status, 'submitted')
        self.assertEqual(second.student.current_year, 1)

    @override_settings(ACADEMICS_PLACEMENT_CAPACITIES={'ICT': 2})
    def test_one_below_capacity_is_allowed(self):
        first = make_placement(make_student('bello', semester=2), first_choice='ICT')
        second = make_placement(make_student('chidi', semester=2), first_choice='ICT')
        PlacementService.approve_placement(self.committee, first.pk, 'ICT')

        PlacementService.approve_placement(self.committee, second.pk, 'ICT')

        self.assertTrue(PlacementService.department_capacity('ICT')['is_full'])

    @override_settings(ACADEMICS_PLACEMENT_CAPACITIES={'ICT': 2})
    def test_intake_is_locked_before_counting(self):
        request = make_placement(make_student('bello', semester=2), first_choice='ICT')
        calls = mock.Mock()
        calls.lock.side_effect = PlacementIntake.lock
        calls.count.side_effect = PlacementService.department_capacity

        with mock.patch.object(PlacementIntake, 'lock', calls.lock), \
                mock.patch.object(PlacementService, 'department_capacity', calls.count):
            PlacementService.approve_placement(self.committee, request.pk, 'ICT')

        self.assertEqual(calls.mock_calls, [
            mock.call.lock('ICT', CURRENT_YEAR),
            mock.call.count('ICT', CURRENT_YEAR),
        ])
        self.assertTrue(PlacementIntake.objects.filter(department='ICT', academic_year=CURRENT_YEAR).exists())

    @override_settings(ACADEMICS_PLACEMENT_CAPACITIES={'ICT': 2})
    def test_one_intake_row_per_department_and_year(self):
        first = make_placement(make_student('bello', semester=2), first_choice='ICT')
        second = make_placement(make_student('chidi', semester=2), first_choice='ICT')
        third = make_placement(make_student('dayo', semester=2))

        PlacementService.approve_placement(self.committee, first.pk, 'ICT')
        PlacementService.approve_placement(self.committee, second.pk, 'ICT')
        PlacementService.approve_placement(self.committee, third.pk, 'Electrical')

        self.assertEqual(
            sorted(PlacementIntake.objects.values_list('department', 'academic_year')),
            [('Electrical', CURRENT_YEAR), ('ICT', CURRENT_YEAR)],
        )

    def test_unknown_departments_use_default_capacity(self):
        self.assertEqual(PlacementService.department_capacity('Electrical')['capacity'], 50)
        self.assertEqual(PlacementService.department_capacity('Mechatronics')['capacity'], 30)

    def test_rejection_records_reason(self):
        request = self.submit()

        rejected = PlacementService.reject_placement(self.committee, request.pk, 'Incomplete statement')

        self.assertEqual(rejected.status, 'rejected')
        self.assertEqual(rejected.rejection_reason, 'Incomplete statement')
        self.student.refresh_from_db()
        self.assertEqual(self.student.current_year, 1)

    def test_rejection_needs_reason(self):
        request = self.submit()
        with self.assertRaises(ValidationError):
            PlacementService.reject_placement(self.committee, request.pk, '')

    def test_review_dispatch(self):
        request = self.submit()
        with self.assertRaises(ValidationError):
            PlacementService.review_placement(self.committee, request.pk, 'defer')
        reviewed = PlacementService.review_placement(self.committee, request.pk, 'approve', department='ICT')
        self.assertEqual(reviewed.status, 'approved')

    def test_students_cannot_review(self):
        request = self.submit()
        with self.assertRaises(AuthorizationError):
            PlacementService.approve_placement(self.student.user, request.pk, 'ICT')

    def test_missing_request(self):
        with self.assertRaises(NotFoundError):
            PlacementService.approve_placement(self.committee, 9999, 'ICT')


class BulkAndQueueTests(PlacementTestBase):
    @override_settings(ACADEMICS_PLACEMENT_CAPACITIES={'ICT': 1, 'Electrical': 5})
    def test_bulk_approval_reports_each_item(self):
        first = make_placement(make_student('bello', semester=2), first_choice='ICT')
        second = make_placement(make_student('chidi', semester=2), first_choice='ICT')
        third = make_placement(make_student('dayo', semester=2), first_choice='Electrical')

        report = PlacementService.bulk_approve(self.committee, [
            {'request_id': first.pk, 'department': 'ICT'},
            {'request_id': second.pk, 'department': 'ICT'},
            {'request_id': 9999, 'department': 'ICT'},
            {'request_id': third.pk, 'department': 'Electrical'},
        ])

        self.assertEqual(report['approved_count'], 2)
        self.assertEqual(report['failed_count'], 2)
        self.assertEqual(
            [(item['request_id'], item['error']) for item in report['failed']],
            [(second.pk, 'capacity_exceeded'), (9999, 'not_found')],
        )
        self.assertEqual(PlacementRequest.objects.filter(status='approved').count(), 2)

    def test_pending_sort_orders(self):
        low = make_placement(make_student('bello', semester=2), cgpa='2.00', credits=30)
        high = make_placement(make_student('chidi', semester=2), cgpa='3.50', credits=10)
        middle = make_placement(make_student('dayo', semester=2), cgpa='3.00', credits=30, first_choice='ICT')
        make_placement(make_student('eze', semester=2), status='approved')

        # Scores: low 35+20+5=60, high 61+0+5=66, middle 52.5+20+5=78 (rounded)
        by_priority = list(PlacementService.pending_placements(self.committee))
        self.assertEqual(by_priority, [middle, high, low])

        by_cgpa = list(PlacementService.pending_placements(self.committee, sort_by='cgpa'))
        self.assertEqual(by_cgpa, [high, middle, low])

        by_date = list(PlacementService.pending_placements(self.committee, sort_by='date'))
        self.assertEqual(by_date, [low, high, middle])

        self.assertEqual(list(PlacementService.pending_placements(self.committee, department='ICT')), [middle])

    def test_unknown_sort_order(self):
        with self.assertRaises(ValidationError):
            PlacementService.pending_placements(self.committee, sort_by='name')

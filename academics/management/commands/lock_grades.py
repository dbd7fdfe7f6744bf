from django.contrib.auth.models import User
from django.core.management.base import BaseCommand, CommandError

from academics.exceptions import ProgressionError
from academics.models import GradeRecord
from academics.workflow_service import GradeWorkflowService


class Command(BaseCommand):
    help = 'Lock all finalized grades for an academic year and semester'

    def add_arguments(self, parser):
        parser.add_argument('--academic-year', required=True, help='Academic year, e.g. 2025-2026')
        parser.add_argument('--semester', required=True, type=int, choices=[1, 2])
        parser.add_argument('--department', help='Only lock grades of this department')
        parser.add_argument('--registrar', required=True, help='Username of the registrar performing the lock')
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would be locked without locking',
        )

    def handle(self, *args, **options):
        academic_year = options['academic_year']
        semester = options['semester']
        department = options.get('department')

        try:
            registrar = User.objects.get(username=options['registrar'])
        except User.DoesNotExist:
            raise CommandError(f"User {options['registrar']} does not exist")

        if options['dry_run']:
            grades = GradeRecord.objects.filter(status='finalized', academic_year=academic_year, semester=semester)
            if department:
                grades = grades.filter(department=department)
            self.stdout.write(
                self.style.WARNING(f'DRY RUN: Would lock {grades.count()} grades')
            )
            for grade in grades.select_related('student', 'course'):
                self.stdout.write(f'  - {grade.student.student_number}: {grade.course.code} {grade.letter_grade}')
            return

        try:
            locked_count = GradeWorkflowService.lock_grades(registrar, academic_year, semester, department)
        except ProgressionError as e:
            raise CommandError(e.message)

        self.stdout.write(
            self.style.SUCCESS(f'Locked {locked_count} grades for {academic_year} semester {semester}')
        )

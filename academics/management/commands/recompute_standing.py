from django.core.management.base import BaseCommand, CommandError

from academics.exceptions import ProgressionError
from academics.models import Student
from academics.standing_service import StandingService


class Command(BaseCommand):
    help = 'Recompute CGPA and academic standing for one or all students'

    def add_arguments(self, parser):
        parser.add_argument('--student', help='Student number; omit to recompute every student')

    def handle(self, *args, **options):
        students = Student.objects.all()
        if options.get('student'):
            students = students.filter(student_number=options['student'])
            if not students.exists():
                raise CommandError(f"Student {options['student']} does not exist")

        changed = 0
        total = 0
        for student_id, student_number in students.order_by('student_number').values_list('pk', 'student_number'):
            try:
                result = StandingService.update_academic_standing(student_id)
            except ProgressionError as e:
                self.stdout.write(self.style.ERROR(f'{student_number}: {e.message}'))
                continue
            total += 1
            if result['changed']:
                changed += 1
                self.stdout.write(
                    f"  - {student_number}: CGPA {result['cgpa']}, probation={result['probation']}, "
                    f"dismissed={result['dismissed']}, status={result['status']}"
                )

        self.stdout.write(self.style.SUCCESS(f'Recomputed {total} students, {changed} standing changes'))

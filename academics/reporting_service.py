"""
Reporting Service
Tabular summaries of grades, standing, placement and registration
"""
import pandas as pd

from . import conf
from .grading import GRADE_SCALE, FAILING_GRADE
from .models import PLACEMENT_DEPARTMENTS, GradeRecord, PlacementRequest, Registration, Student

LETTER_ORDER = [letter for _, letter, _ in GRADE_SCALE] + [FAILING_GRADE[0]]


class ReportingService:
    """Service class for generating report data"""

    @staticmethod
    def _frame(queryset, *fields):
        """Build a DataFrame from a values() query, keeping the columns when empty"""
        return pd.DataFrame(list(queryset.values(*fields)), columns=list(fields))

    @classmethod
    def grade_distribution(cls, academic_year=None, semester=None, department=None):
        """
        Count of completed grades per department and letter grade.

        Returns a list of dicts, one per department, with a count for every
        letter on the scale and the department total.
        """
        grades = GradeRecord.objects.filter(status__in=GradeRecord.COMPLETED_STATUSES)
        if academic_year:
            grades = grades.filter(academic_year=academic_year)
        if semester:
            grades = grades.filter(semester=semester)
        if department:
            grades = grades.filter(department=department)

        df = cls._frame(grades, 'department', 'letter_grade')
        if df.empty:
            return []

        table = pd.crosstab(df['department'], df['letter_grade'])
        letters = LETTER_ORDER + [c for c in table.columns if c not in LETTER_ORDER]
        table = table.reindex(columns=letters, fill_value=0)
        table['total'] = table.sum(axis=1)

        return [
            {'department': dept, **{col: int(value) for col, value in row.items()}}
            for dept, row in table.iterrows()
        ]

    @classmethod
    def standing_summary(cls):
        """Active students, probation and dismissal counts per department"""
        df = cls._frame(Student.objects.all(), 'department', 'status', 'probation', 'dismissed', 'cgpa')
        if df.empty:
            return []

        df['active'] = df['status'] == 'active'
        df['cgpa'] = df['cgpa'].astype(float)
        summary = df.groupby('department').agg(
            students=('status', 'size'),
            active=('active', 'sum'),
            probation=('probation', 'sum'),
            dismissed=('dismissed', 'sum'),
            average_cgpa=('cgpa', 'mean'),
        )
        return [
            {
                'department': dept,
                'students': int(row['students']),
                'active': int(row['active']),
                'probation': int(row['probation']),
                'dismissed': int(row['dismissed']),
                'average_cgpa': round(float(row['average_cgpa']), 2),
            }
            for dept, row in summary.iterrows()
        ]

    @classmethod
    def placement_statistics(cls, academic_year=None):
        """
        Placement requests per first-choice department and status, with
        mean CGPA and priority score, and each department's capacity usage.
        """
        requests = PlacementRequest.objects.all()
        if academic_year:
            requests = requests.filter(academic_year=academic_year)
        df = cls._frame(requests, 'first_choice', 'status', 'current_cgpa', 'priority_score', 'approved_department')

        by_choice = []
        if not df.empty:
            df['current_cgpa'] = df['current_cgpa'].astype(float)
            grouped = df.groupby(['first_choice', 'status']).agg(
                count=('status', 'size'),
                average_cgpa=('current_cgpa', 'mean'),
                average_priority=('priority_score', 'mean'),
            )
            by_choice = [
                {
                    'department': dept,
                    'status': status,
                    'count': int(row['count']),
                    'average_cgpa': round(float(row['average_cgpa']), 2),
                    'average_priority': round(float(row['average_priority']), 1),
                }
                for (dept, status), row in grouped.iterrows()
            ]

        approved = df[df['status'] == 'approved']['approved_department'].value_counts() if not df.empty else {}
        capacities = []
        for dept in PLACEMENT_DEPARTMENTS:
            capacity = conf.placement_capacity(dept)
            count = int(approved.get(dept, 0))
            capacities.append({
                'department': dept,
                'capacity': capacity,
                'approved': count,
                'available': max(capacity - count, 0),
            })

        return {'requests': by_choice, 'capacities': capacities, 'total_requests': int(len(df))}

    @classmethod
    def registration_statistics(cls, department=None, year=None, semester=None):
        """Registration counts and credit load, ignoring cancelled registrations"""
        registrations = Registration.objects.exclude(status='cancelled')
        if department:
            registrations = registrations.filter(department=department)
        if year:
            registrations = registrations.filter(year=year)
        if semester:
            registrations = registrations.filter(semester=semester)

        df = cls._frame(registrations, 'department', 'total_credits', 'is_repeat_semester')
        if df.empty:
            return {'registrations': 0, 'total_credits': 0, 'average_credits': 0.0,
                    'repeat_registrations': 0, 'by_department': []}

        by_department = df.groupby('department').agg(
            registrations=('total_credits', 'size'),
            total_credits=('total_credits', 'sum'),
            repeat_registrations=('is_repeat_semester', 'sum'),
        )
        return {
            'registrations': int(len(df)),
            'total_credits': int(df['total_credits'].sum()),
            'average_credits': round(float(df['total_credits'].mean()), 2),
            'repeat_registrations': int(df['is_repeat_semester'].sum()),
            'by_department': [
                {
                    'department': dept,
                    'registrations': int(row['registrations']),
                    'total_credits': int(row['total_credits']),
                    'repeat_registrations': int(row['repeat_registrations']),
                }
                for dept, row in by_department.iterrows()
            ],
        }

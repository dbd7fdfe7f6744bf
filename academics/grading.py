"""
Pure derivations used at the transition boundary.

Nothing in this module touches the database: the total mark, letter grade,
grade points and placement priority score are functions of their inputs
alone and are recomputed every time a record is saved.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from .exceptions import ValidationError

# (minimum total mark, letter grade, grade points), first match wins
GRADE_SCALE = [
    (Decimal('90'), 'A+', Decimal('4.00')),
    (Decimal('85'), 'A', Decimal('4.00')),
    (Decimal('80'), 'A-', Decimal('3.75')),
    (Decimal('75'), 'B+', Decimal('3.50')),
    (Decimal('70'), 'B', Decimal('3.00')),
    (Decimal('65'), 'B-', Decimal('2.75')),
    (Decimal('60'), 'C+', Decimal('2.50')),
    (Decimal('50'), 'C', Decimal('2.00')),
    (Decimal('40'), 'D', Decimal('1.00')),
]
FAILING_GRADE = ('F', Decimal('0.00'))

REPEAT_GRADES = frozenset({'F', 'NG'})
NON_PASSING_GRADES = frozenset({'F', 'NG', 'W', 'I'})
NON_CREDIT_GRADES = frozenset({'W', 'I', 'NG'})

MARK_COMPONENTS = [
    ('midterm_mark', 'Midterm mark', Decimal('30')),
    ('continuous_mark', 'Continuous mark', Decimal('30')),
    ('final_exam_mark', 'Final exam mark', Decimal('40')),
]

CGPA_WEIGHT = 70
MAX_CGPA = Decimal('4.0')
CREDIT_TIERS = [(30, 20), (24, 15), (18, 10)]
STATEMENT_TIERS = [(300, 10), (200, 7), (100, 5)]


def _to_decimal(value, label):
    if value is None or value == '':
        raise ValidationError(f'{label} is required', field=label)
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f'{label} must be a number', field=label)


def validate_marks(midterm_mark, continuous_mark, final_exam_mark):
    """
    Check each component against its bounds.

    Returns the three marks as Decimals. Raises ValidationError naming the
    first offending component.
    """
    cleaned = []
    for (field, label, maximum), value in zip(
            MARK_COMPONENTS, (midterm_mark, continuous_mark, final_exam_mark)):
        mark = _to_decimal(value, label)
        if mark < 0 or mark > maximum:
            raise ValidationError(
                f'{label} must be between 0-{maximum}',
                field=field, value=str(mark), maximum=str(maximum),
            )
        cleaned.append(mark)
    return tuple(cleaned)


def calculate_total_mark(midterm_mark, continuous_mark, final_exam_mark):
    return Decimal(midterm_mark) + Decimal(continuous_mark) + Decimal(final_exam_mark)


def calculate_letter_grade(total_mark):
    """Map a total mark onto (letter grade, grade points)"""
    total_mark = Decimal(total_mark)
    for minimum, letter, points in GRADE_SCALE:
        if total_mark >= minimum:
            return letter, points
    return FAILING_GRADE


def requires_repeat(letter_grade):
    return letter_grade in REPEAT_GRADES


def is_passing(letter_grade):
    return letter_grade not in NON_PASSING_GRADES


def round_cgpa(value):
    return Decimal(value).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)


def calculate_priority_score(cgpa, total_credits, personal_statement):
    """
    Placement priority: CGPA contributes up to 70, completed credits up to 20
    and the personal statement length up to 10. Rounded half-up to an int.
    """
    cgpa = min(max(Decimal(str(cgpa or 0)), Decimal('0')), MAX_CGPA)
    score = cgpa / MAX_CGPA * CGPA_WEIGHT

    credits = total_credits or 0
    for minimum, bonus in CREDIT_TIERS:
        if credits >= minimum:
            score += bonus
            break

    statement_length = len(personal_statement or '')
    for minimum, bonus in STATEMENT_TIERS:
        if statement_length >= minimum:
            score += bonus
            break

    score = int(score.quantize(Decimal('1'), rounding=ROUND_HALF_UP))
    return max(0, min(100, score))


def academic_year_for(moment):
    """Academic year label for a date, e.g. 2026 -> '2026-2027'"""
    return f'{moment.year}-{moment.year + 1}'

from datetime import timedelta

from django.db import models
from django.db.models import F, Q
from django.contrib.auth.models import User
from django.utils import timezone

from . import conf
from .grading import (
    calculate_letter_grade, calculate_priority_score, calculate_total_mark, requires_repeat,
)

# Create your models here.


class Role(models.TextChoices):
    STUDENT = 'STUDENT', 'Student'
    INSTRUCTOR = 'INSTRUCTOR', 'Instructor'
    DEPARTMENT_HEAD = 'DEPARTMENT_HEAD', 'Department Head'
    REGISTRAR = 'REGISTRAR', 'Registrar'
    PLACEMENT_COMMITTEE = 'PLACEMENT_COMMITTEE', 'Placement Committee'
    PRESIDENT = 'PRESIDENT', 'President'


class Department(models.TextChoices):
    FRESHMAN = 'Freshman', 'Freshman'
    ELECTRICAL = 'Electrical', 'Electrical'
    MANUFACTURING = 'Manufacturing', 'Manufacturing'
    AUTOMOTIVE = 'Automotive', 'Automotive'
    CONSTRUCTION = 'Construction', 'Construction'
    ICT = 'ICT', 'ICT'


ALL_DEPARTMENTS = 'All'
PLACEMENT_DEPARTMENTS = [d for d in Department.values if d != Department.FRESHMAN]


class LetterGrade(models.TextChoices):
    A_PLUS = 'A+', 'A+'
    A = 'A', 'A'
    A_MINUS = 'A-', 'A-'
    B_PLUS = 'B+', 'B+'
    B = 'B', 'B'
    B_MINUS = 'B-', 'B-'
    C_PLUS = 'C+', 'C+'
    C = 'C', 'C'
    D = 'D', 'D'
    F = 'F', 'F'
    # Administrative grades, never produced from marks
    NG = 'NG', 'No Grade'
    W = 'W', 'Withdrawn'
    I = 'I', 'Incomplete'


# University structure
class UserRole(models.Model):
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='academic_roles')
    role = models.CharField(max_length=30, choices=Role.choices)
    department = models.CharField(max_length=20, choices=Department.choices, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ['user', 'role', 'department']

    def __str__(self):
        scope = f' ({self.department})' if self.department else ''
        return f'{self.user.username} - {self.get_role_display()}{scope}'


class Student(models.Model):
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('inactive', 'Inactive'),
        ('suspended', 'Suspended'),
        ('graduated', 'Graduated'),
    ]

    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='student_profile')
    student_number = models.CharField(max_length=20, unique=True)
    department = models.CharField(max_length=20, choices=Department.choices, default=Department.FRESHMAN)
    current_year = models.PositiveSmallIntegerField(default=1)
    current_semester = models.PositiveSmallIntegerField(default=1)
    enrollment_year = models.PositiveIntegerField()
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='active')

    # Academic standing, maintained by the standing calculator only
    cgpa = models.DecimalField(max_digits=3, decimal_places=2, default=0)
    total_credits_earned = models.PositiveIntegerField(default=0)
    probation = models.BooleanField(default=False)
    dismissed = models.BooleanField(default=False)
    standing_updated_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.CheckConstraint(
                condition=~Q(probation=True, dismissed=True),
                name='student_probation_xor_dismissed',
            ),
        ]

    def __str__(self):
        return self.student_number

    @property
    def registration_department(self):
        """Freshmen register against the common Freshman catalog"""
        if self.current_year == 1:
            return Department.FRESHMAN
        return self.department


class Course(models.Model):
    code = models.CharField(max_length=20)  # e.g. "MATH 1011"
    title = models.CharField(max_length=200)
    credit = models.PositiveSmallIntegerField()
    department = models.CharField(max_length=20, choices=Department.choices)
    year = models.PositiveSmallIntegerField()
    semester = models.PositiveSmallIntegerField()
    prerequisites = models.JSONField(default=list, blank=True)  # list of course codes
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ['code', 'department', 'year', 'semester']
        ordering = ['code']

    def __str__(self):
        return f'{self.code} - {self.title} ({self.credit} credits)'


class CourseAssignment(models.Model):
    course = models.ForeignKey(Course, on_delete=models.CASCADE, related_name='assignments')
    instructor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='course_assignments')
    assigned_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ['course', 'instructor']


# Semester registration
class RegistrationPeriod(models.Model):
    TYPE_CHOICES = [
        ('signup', 'Sign-up'),
        ('courseRegistration', 'Course Registration'),
    ]

    period_type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    academic_year = models.CharField(max_length=9)
    semester = models.PositiveSmallIntegerField()
    department = models.CharField(
        max_length=20,
        choices=Department.choices + [(ALL_DEPARTMENTS, 'All Departments')],
        default=ALL_DEPARTMENTS,
    )
    start_date = models.DateTimeField()
    end_date = models.DateTimeField()
    is_active = models.BooleanField(default=True)
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='created_periods')
    updated_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='updated_periods')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=['period_type', 'academic_year', 'semester', 'department'],
                condition=Q(is_active=True),
                name='unique_active_registration_period',
            ),
        ]

    def is_open(self, moment=None):
        moment = moment or timezone.now()
        return self.is_active and self.start_date <= moment <= self.end_date


class RegistrationSequence(models.Model):
    """Running registration counter per (academic year, year, semester) bucket"""
    academic_year = models.CharField(max_length=9)
    year = models.PositiveSmallIntegerField()
    semester = models.PositiveSmallIntegerField()
    value = models.PositiveIntegerField(default=0)

    class Meta:
        unique_together = ['academic_year', 'year', 'semester']

    @classmethod
    def next_value(cls, academic_year, year, semester):
        """Must be called inside a transaction"""
        sequence, _ = cls.objects.select_for_update().get_or_create(
            academic_year=academic_year, year=year, semester=semester,
        )
        cls.objects.filter(pk=sequence.pk).update(value=F('value') + 1)
        sequence.refresh_from_db(fields=['value'])
        return sequence.value


class Registration(models.Model):
    STATUS_CHOICES = [
        ('registered', 'Registered'),
        ('confirmed', 'Confirmed'),
        ('cancelled', 'Cancelled'),
        ('completed', 'Completed'),
    ]

    student = models.ForeignKey(Student, on_delete=models.CASCADE, related_name='registrations')
    department = models.CharField(max_length=20, choices=Department.choices)
    year = models.PositiveSmallIntegerField()
    semester = models.PositiveSmallIntegerField()
    academic_year = models.CharField(max_length=9)
    registration_number = models.CharField(max_length=40, unique=True)
    total_credits = models.PositiveIntegerField(default=0)
    is_repeat_semester = models.BooleanField(default=False)
    repeat_course_count = models.PositiveSmallIntegerField(default=0)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='registered')
    registered_at = models.DateTimeField(default=timezone.now)
    notes = models.TextField(blank=True)

    class Meta:
        ordering = ['-year', '-semester', '-registered_at']
        constraints = [
            # Cancelled registrations release the slot
            models.UniqueConstraint(
                fields=['student', 'year', 'semester'],
                condition=~Q(status='cancelled'),
                name='unique_live_registration',
            ),
        ]

    def __str__(self):
        return self.registration_number

    def refresh_totals(self):
        """Recompute credit and repeat totals from the line items"""
        items = list(self.courses.all())
        self.total_credits = sum(item.credit for item in items)
        self.repeat_course_count = sum(1 for item in items if item.is_repeat)
        self.is_repeat_semester = self.repeat_course_count > 0
        self.save(update_fields=['total_credits', 'repeat_course_count', 'is_repeat_semester'])

    def can_be_modified(self, moment=None):
        moment = moment or timezone.now()
        grace_window = timedelta(days=conf.registration_grace_days())
        return (
            self.status == 'registered'
            and moment - self.registered_at <= grace_window
            and not self.grades.exists()
        )


class RegistrationCourse(models.Model):
    registration = models.ForeignKey(Registration, on_delete=models.CASCADE, related_name='courses')
    course = models.ForeignKey(Course, on_delete=models.PROTECT, related_name='registration_items')
    position = models.PositiveSmallIntegerField()
    course_code = models.CharField(max_length=20)
    course_title = models.CharField(max_length=200)
    credit = models.PositiveSmallIntegerField()
    is_repeat = models.BooleanField(default=False)
    previous_grade = models.CharField(max_length=2, choices=LetterGrade.choices, blank=True)

    class Meta:
        unique_together = ['registration', 'course']
        ordering = ['position']


# Grade lifecycle
class GradeRecord(models.Model):
    STATUS_CHOICES = [
        ('draft', 'Draft'),
        ('submitted', 'Submitted'),
        ('approved', 'Approved'),
        ('rejected', 'Rejected'),
        ('finalized', 'Finalized'),
        ('locked', 'Locked'),
    ]
    EDITABLE_STATUSES = ('draft', 'rejected')
    COMPLETED_STATUSES = ('finalized', 'locked')

    student = models.ForeignKey(Student, on_delete=models.CASCADE, related_name='grades')
    course = models.ForeignKey(Course, on_delete=models.PROTECT, related_name='grades')
    registration = models.ForeignKey(Registration, on_delete=models.SET_NULL, null=True, blank=True, related_name='grades')
    instructor = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='graded_records')
    academic_year = models.CharField(max_length=9)
    semester = models.PositiveSmallIntegerField()
    year = models.PositiveSmallIntegerField()
    department = models.CharField(max_length=20, choices=Department.choices)

    midterm_mark = models.DecimalField(max_digits=5, decimal_places=2, default=0)
    continuous_mark = models.DecimalField(max_digits=5, decimal_places=2, default=0)
    final_exam_mark = models.DecimalField(max_digits=5, decimal_places=2, default=0)

    # Derived on every save
    total_mark = models.DecimalField(max_digits=5, decimal_places=2, default=0)
    letter_grade = models.CharField(max_length=2, choices=LetterGrade.choices, default=LetterGrade.NG)
    grade_points = models.DecimalField(max_digits=3, decimal_places=2, default=0)
    repeat_required = models.BooleanField(default=False)

    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='draft')

    submitted_at = models.DateTimeField(null=True, blank=True)
    submitted_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='grades_submitted')
    approved_at = models.DateTimeField(null=True, blank=True)
    approved_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='grades_approved')
    finalized_at = models.DateTimeField(null=True, blank=True)
    finalized_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='grades_finalized')
    locked_at = models.DateTimeField(null=True, blank=True)
    locked_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='grades_locked')

    instructor_comments = models.TextField(blank=True)
    dept_head_comments = models.TextField(blank=True)
    registrar_comments = models.TextField(blank=True)
    rejection_reason = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ['student', 'course', 'academic_year']
        indexes = [
            models.Index(fields=['status', 'submitted_at'], name='academics_g_status_5d1c0e_idx'),
            models.Index(fields=['academic_year', 'semester'], name='academics_g_academi_8a3f2b_idx'),
        ]

    def __str__(self):
        return f'{self.student} - {self.course.code} ({self.academic_year}): {self.letter_grade}'

    def save(self, *args, **kwargs):
        # Derived fields always follow the component marks
        self.total_mark = calculate_total_mark(self.midterm_mark, self.continuous_mark, self.final_exam_mark)
        self.letter_grade, self.grade_points = calculate_letter_grade(self.total_mark)
        self.repeat_required = requires_repeat(self.letter_grade)
        super().save(*args, **kwargs)

    def can_be_modified(self):
        return self.status in self.EDITABLE_STATUSES


class Evaluation(models.Model):
    student = models.ForeignKey(Student, on_delete=models.CASCADE, related_name='evaluations')
    instructor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='evaluations_received')
    course = models.ForeignKey(Course, on_delete=models.CASCADE, related_name='evaluations')
    academic_year = models.CharField(max_length=9)
    semester = models.PositiveSmallIntegerField()
    overall_rating = models.PositiveSmallIntegerField()
    comments = models.TextField(blank=True)
    submitted_at = models.DateTimeField(default=timezone.now)

    class Meta:
        unique_together = ['student', 'instructor', 'course', 'academic_year']


# Freshman department placement
class PlacementRequest(models.Model):
    STATUS_CHOICES = [
        ('draft', 'Draft'),
        ('submitted', 'Submitted'),
        ('approved', 'Approved'),
        ('rejected', 'Rejected'),
    ]
    PLACEMENT_CHOICES = [(d, d) for d in PLACEMENT_DEPARTMENTS]

    student = models.OneToOneField(Student, on_delete=models.CASCADE, related_name='placement_request')
    academic_year = models.CharField(max_length=9)
    first_choice = models.CharField(max_length=20, choices=PLACEMENT_CHOICES)
    second_choice = models.CharField(max_length=20, choices=PLACEMENT_CHOICES, blank=True)
    personal_statement = models.TextField()
    reason_for_choice = models.TextField()
    career_goals = models.TextField(blank=True)

    current_cgpa = models.DecimalField(max_digits=3, decimal_places=2, default=0)
    total_credits = models.PositiveIntegerField(default=0)
    priority_score = models.PositiveSmallIntegerField(default=0)  # derived on every save

    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='draft')
    approved_department = models.CharField(max_length=20, choices=PLACEMENT_CHOICES, blank=True)
    committee_comments = models.TextField(blank=True)
    rejection_reason = models.TextField(blank=True)
    reviewed_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='placements_reviewed')

    submitted_at = models.DateTimeField(null=True, blank=True)
    decided_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['status', 'priority_score'], name='academics_p_status_2b7e41_idx'),
            models.Index(fields=['approved_department', 'status'], name='academics_p_approve_9c4d18_idx'),
        ]

    def save(self, *args, **kwargs):
        self.priority_score = calculate_priority_score(
            self.current_cgpa, self.total_credits, self.personal_statement,
        )
        super().save(*args, **kwargs)

    def can_be_modified(self):
        return self.status in ('draft', 'rejected')

    def can_be_reviewed(self):
        return self.status == 'submitted'


class PlacementIntake(models.Model):
    """Lock row serialising approvals into one department for one academic year"""
    department = models.CharField(max_length=20, choices=PlacementRequest.PLACEMENT_CHOICES)
    academic_year = models.CharField(max_length=9)

    class Meta:
        unique_together = ['department', 'academic_year']

    def __str__(self):
        return f'{self.department} intake {self.academic_year}'

    @classmethod
    def lock(cls, department, academic_year):
        """Must be called inside a transaction"""
        intake, _ = cls.objects.select_for_update().get_or_create(
            department=department, academic_year=academic_year,
        )
        return intake


# In-app notifications
class Notification(models.Model):
    CATEGORY_CHOICES = [
        ('Info', 'Info'),
        ('Warning', 'Warning'),
        ('Deadline', 'Deadline'),
    ]

    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='academic_notifications')
    category = models.CharField(max_length=10, choices=CATEGORY_CHOICES, default='Info')
    title = models.CharField(max_length=200)
    message = models.TextField()
    link = models.CharField(max_length=200, blank=True)
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    email_sent = models.BooleanField(default=False)
    email_sent_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at', '-id']

    def mark_as_read(self):
        self.is_read = True
        self.save(update_fields=['is_read'])


# Audit trail for every state transition
class AuditLog(models.Model):
    LEVEL_CHOICES = [
        ('INFO', 'Information'),
        ('WARNING', 'Warning'),
        ('ERROR', 'Error'),
    ]

    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='academic_audit_logs')
    action = models.CharField(max_length=40)
    model_name = models.CharField(max_length=50, blank=True)
    object_id = models.CharField(max_length=50, blank=True)
    description = models.TextField(blank=True)
    details = models.JSONField(default=dict, blank=True)
    level = models.CharField(max_length=10, choices=LEVEL_CHOICES, default='INFO')
    timestamp = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-timestamp', '-id']

    def __str__(self):
        username = self.user.username if self.user else 'system'
        return f'{username} - {self.action} - {self.timestamp}'

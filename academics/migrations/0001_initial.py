# Generated manually for the academic progression models

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

DEPARTMENT_CHOICES = [
    ('Freshman', 'Freshman'),
    ('Electrical', 'Electrical'),
    ('Manufacturing', 'Manufacturing'),
    ('Automotive', 'Automotive'),
    ('Construction', 'Construction'),
    ('ICT', 'ICT'),
]

PLACEMENT_CHOICES = [
    ('Electrical', 'Electrical'),
    ('Manufacturing', 'Manufacturing'),
    ('Automotive', 'Automotive'),
    ('Construction', 'Construction'),
    ('ICT', 'ICT'),
]

LETTER_GRADE_CHOICES = [
    ('A+', 'A+'), ('A', 'A'), ('A-', 'A-'), ('B+', 'B+'), ('B', 'B'), ('B-', 'B-'),
    ('C+', 'C+'), ('C', 'C'), ('D', 'D'), ('F', 'F'),
    ('NG', 'No Grade'), ('W', 'Withdrawn'), ('I', 'Incomplete'),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='UserRole',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('role', models.CharField(choices=[('STUDENT', 'Student'), ('INSTRUCTOR', 'Instructor'), ('DEPARTMENT_HEAD', 'Department Head'), ('REGISTRAR', 'Registrar'), ('PLACEMENT_COMMITTEE', 'Placement Committee'), ('PRESIDENT', 'President')], max_length=30)),
                ('department', models.CharField(blank=True, choices=DEPARTMENT_CHOICES, max_length=20)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='academic_roles', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'unique_together': {('user', 'role', 'department')},
            },
        ),
        migrations.CreateModel(
            name='Student',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('student_number', models.CharField(max_length=20, unique=True)),
                ('department', models.CharField(choices=DEPARTMENT_CHOICES, default='Freshman', max_length=20)),
                ('current_year', models.PositiveSmallIntegerField(default=1)),
                ('current_semester', models.PositiveSmallIntegerField(default=1)),
                ('enrollment_year', models.PositiveIntegerField()),
                ('status', models.CharField(choices=[('active', 'Active'), ('inactive', 'Inactive'), ('suspended', 'Suspended'), ('graduated', 'Graduated')], default='active', max_length=10)),
                ('cgpa', models.DecimalField(decimal_places=2, default=0, max_digits=3)),
                ('total_credits_earned', models.PositiveIntegerField(default=0)),
                ('probation', models.BooleanField(default=False)),
                ('dismissed', models.BooleanField(default=False)),
                ('standing_updated_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='student_profile', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'constraints': [models.CheckConstraint(condition=models.Q(('dismissed', True), ('probation', True), _negated=True), name='student_probation_xor_dismissed')],
            },
        ),
        migrations.CreateModel(
            name='Course',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('code', models.CharField(max_length=20)),
                ('title', models.CharField(max_length=200)),
                ('credit', models.PositiveSmallIntegerField()),
                ('department', models.CharField(choices=DEPARTMENT_CHOICES, max_length=20)),
                ('year', models.PositiveSmallIntegerField()),
                ('semester', models.PositiveSmallIntegerField()),
                ('prerequisites', models.JSONField(blank=True, default=list)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'ordering': ['code'],
                'unique_together': {('code', 'department', 'year', 'semester')},
            },
        ),
        migrations.CreateModel(
            name='CourseAssignment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('assigned_at', models.DateTimeField(auto_now_add=True)),
                ('course', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='assignments', to='academics.course')),
                ('instructor', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='course_assignments', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'unique_together': {('course', 'instructor')},
            },
        ),
        migrations.CreateModel(
            name='RegistrationPeriod',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('period_type', models.CharField(choices=[('signup', 'Sign-up'), ('courseRegistration', 'Course Registration')], max_length=20)),
                ('academic_year', models.CharField(max_length=9)),
                ('semester', models.PositiveSmallIntegerField()),
                ('department', models.CharField(choices=DEPARTMENT_CHOICES + [('All', 'All Departments')], default='All', max_length=20)),
                ('start_date', models.DateTimeField()),
                ('end_date', models.DateTimeField()),
                ('is_active', models.BooleanField(default=True)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_periods', to=settings.AUTH_USER_MODEL)),
                ('updated_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='updated_periods', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'constraints': [models.UniqueConstraint(condition=models.Q(('is_active', True)), fields=('period_type', 'academic_year', 'semester', 'department'), name='unique_active_registration_period')],
            },
        ),
        migrations.CreateModel(
            name='RegistrationSequence',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('academic_year', models.CharField(max_length=9)),
                ('year', models.PositiveSmallIntegerField()),
                ('semester', models.PositiveSmallIntegerField()),
                ('value', models.PositiveIntegerField(default=0)),
            ],
            options={
                'unique_together': {('academic_year', 'year', 'semester')},
            },
        ),
        migrations.CreateModel(
            name='Registration',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('department', models.CharField(choices=DEPARTMENT_CHOICES, max_length=20)),
                ('year', models.PositiveSmallIntegerField()),
                ('semester', models.PositiveSmallIntegerField()),
                ('academic_year', models.CharField(max_length=9)),
                ('registration_number', models.CharField(max_length=40, unique=True)),
                ('total_credits', models.PositiveIntegerField(default=0)),
                ('is_repeat_semester', models.BooleanField(default=False)),
                ('repeat_course_count', models.PositiveSmallIntegerField(default=0)),
                ('status', models.CharField(choices=[('registered', 'Registered'), ('confirmed', 'Confirmed'), ('cancelled', 'Cancelled'), ('completed', 'Completed')], default='registered', max_length=10)),
                ('registered_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('notes', models.TextField(blank=True)),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='registrations', to='academics.student')),
            ],
            options={
                'ordering': ['-year', '-semester', '-registered_at'],
                'constraints': [models.UniqueConstraint(condition=models.Q(('status', 'cancelled'), _negated=True), fields=('student', 'year', 'semester'), name='unique_live_registration')],
            },
        ),
        migrations.CreateModel(
            name='RegistrationCourse',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('position', models.PositiveSmallIntegerField()),
                ('course_code', models.CharField(max_length=20)),
                ('course_title', models.CharField(max_length=200)),
                ('credit', models.PositiveSmallIntegerField()),
                ('is_repeat', models.BooleanField(default=False)),
                ('previous_grade', models.CharField(blank=True, choices=LETTER_GRADE_CHOICES, max_length=2)),
                ('course', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='registration_items', to='academics.course')),
                ('registration', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='courses', to='academics.registration')),
            ],
            options={
                'ordering': ['position'],
                'unique_together': {('registration', 'course')},
            },
        ),
        migrations.CreateModel(
            name='GradeRecord',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('academic_year', models.CharField(max_length=9)),
                ('semester', models.PositiveSmallIntegerField()),
                ('year', models.PositiveSmallIntegerField()),
                ('department', models.CharField(choices=DEPARTMENT_CHOICES, max_length=20)),
                ('midterm_mark', models.DecimalField(decimal_places=2, default=0, max_digits=5)),
                ('continuous_mark', models.DecimalField(decimal_places=2, default=0, max_digits=5)),
                ('final_exam_mark', models.DecimalField(decimal_places=2, default=0, max_digits=5)),
                ('total_mark', models.DecimalField(decimal_places=2, default=0, max_digits=5)),
                ('letter_grade', models.CharField(choices=LETTER_GRADE_CHOICES, default='NG', max_length=2)),
                ('grade_points', models.DecimalField(decimal_places=2, default=0, max_digits=3)),
                ('repeat_required', models.BooleanField(default=False)),
                ('status', models.CharField(choices=[('draft', 'Draft'), ('submitted', 'Submitted'), ('approved', 'Approved'), ('rejected', 'Rejected'), ('finalized', 'Finalized'), ('locked', 'Locked')], default='draft', max_length=10)),
                ('submitted_at', models.DateTimeField(blank=True, null=True)),
                ('approved_at', models.DateTimeField(blank=True, null=True)),
                ('finalized_at', models.DateTimeField(blank=True, null=True)),
                ('locked_at', models.DateTimeField(blank=True, null=True)),
                ('instructor_comments', models.TextField(blank=True)),
                ('dept_head_comments', models.TextField(blank=True)),
                ('registrar_comments', models.TextField(blank=True)),
                ('rejection_reason', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('approved_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='grades_approved', to=settings.AUTH_USER_MODEL)),
                ('course', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='grades', to='academics.course')),
                ('finalized_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='grades_finalized', to=settings.AUTH_USER_MODEL)),
                ('instructor', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='graded_records', to=settings.AUTH_USER_MODEL)),
                ('locked_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='grades_locked', to=settings.AUTH_USER_MODEL)),
                ('registration', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='grades', to='academics.registration')),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='grades', to='academics.student')),
                ('submitted_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='grades_submitted', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'unique_together': {('student', 'course', 'academic_year')},
                'indexes': [
                    models.Index(fields=['status', 'submitted_at'], name='academics_g_status_5d1c0e_idx'),
                    models.Index(fields=['academic_year', 'semester'], name='academics_g_academi_8a3f2b_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Evaluation',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('academic_year', models.CharField(max_length=9)),
                ('semester', models.PositiveSmallIntegerField()),
                ('overall_rating', models.PositiveSmallIntegerField()),
                ('comments', models.TextField(blank=True)),
                ('submitted_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('course', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='evaluations', to='academics.course')),
                ('instructor', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='evaluations_received', to=settings.AUTH_USER_MODEL)),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='evaluations', to='academics.student')),
            ],
            options={
                'unique_together': {('student', 'instructor', 'course', 'academic_year')},
            },
        ),
        migrations.CreateModel(
            name='PlacementRequest',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('academic_year', models.CharField(max_length=9)),
                ('first_choice', models.CharField(choices=PLACEMENT_CHOICES, max_length=20)),
                ('second_choice', models.CharField(blank=True, choices=PLACEMENT_CHOICES, max_length=20)),
                ('personal_statement', models.TextField()),
                ('reason_for_choice', models.TextField()),
                ('career_goals', models.TextField(blank=True)),
                ('current_cgpa', models.DecimalField(decimal_places=2, default=0, max_digits=3)),
                ('total_credits', models.PositiveIntegerField(default=0)),
                ('priority_score', models.PositiveSmallIntegerField(default=0)),
                ('status', models.CharField(choices=[('draft', 'Draft'), ('submitted', 'Submitted'), ('approved', 'Approved'), ('rejected', 'Rejected')], default='draft', max_length=10)),
                ('approved_department', models.CharField(blank=True, choices=PLACEMENT_CHOICES, max_length=20)),
                ('committee_comments', models.TextField(blank=True)),
                ('rejection_reason', models.TextField(blank=True)),
                ('submitted_at', models.DateTimeField(blank=True, null=True)),
                ('decided_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('reviewed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='placements_reviewed', to=settings.AUTH_USER_MODEL)),
                ('student', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='placement_request', to='academics.student')),
            ],
            options={
                'indexes': [
                    models.Index(fields=['status', 'priority_score'], name='academics_p_status_2b7e41_idx'),
                    models.Index(fields=['approved_department', 'status'], name='academics_p_approve_9c4d18_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Notification',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('category', models.CharField(choices=[('Info', 'Info'), ('Warning', 'Warning'), ('Deadline', 'Deadline')], default='Info', max_length=10)),
                ('title', models.CharField(max_length=200)),
                ('message', models.TextField()),
                ('link', models.CharField(blank=True, max_length=200)),
                ('is_read', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('email_sent', models.BooleanField(default=False)),
                ('email_sent_at', models.DateTimeField(blank=True, null=True)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='academic_notifications', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at', '-id'],
            },
        ),
        migrations.CreateModel(
            name='AuditLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action', models.CharField(max_length=40)),
                ('model_name', models.CharField(blank=True, max_length=50)),
                ('object_id', models.CharField(blank=True, max_length=50)),
                ('description', models.TextField(blank=True)),
                ('details', models.JSONField(blank=True, default=dict)),
                ('level', models.CharField(choices=[('INFO', 'Information'), ('WARNING', 'Warning'), ('ERROR', 'Error')], default='INFO', max_length=10)),
                ('timestamp', models.DateTimeField(auto_now_add=True)),
                ('user', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='academic_audit_logs', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-timestamp', '-id'],
            },
        ),
    ]

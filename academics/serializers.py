from rest_framework import serializers

from .models import (
    ALL_DEPARTMENTS, PLACEMENT_DEPARTMENTS, Course, Department, Evaluation, GradeRecord, Notification,
    PlacementRequest, Registration, RegistrationCourse, RegistrationPeriod,
)


class CourseSerializer(serializers.ModelSerializer):
    class Meta:
        model = Course
        fields = ['id', 'code', 'title', 'credit', 'department', 'year', 'semester', 'prerequisites']


class GradeRecordSerializer(serializers.ModelSerializer):
    """Serializer for grades with course and student info"""
    course_code = serializers.CharField(source='course.code', read_only=True)
    course_title = serializers.CharField(source='course.title', read_only=True)
    student_number = serializers.CharField(source='student.student_number', read_only=True)

    class Meta:
        model = GradeRecord
        fields = [
            'id', 'student', 'student_number', 'course', 'course_code', 'course_title',
            'academic_year', 'semester', 'year', 'department',
            'midterm_mark', 'continuous_mark', 'final_exam_mark', 'total_mark',
            'letter_grade', 'grade_points', 'repeat_required', 'status',
            'submitted_at', 'approved_at', 'finalized_at', 'locked_at',
            'instructor_comments', 'dept_head_comments', 'registrar_comments', 'rejection_reason',
        ]
        read_only_fields = fields


class RegistrationCourseSerializer(serializers.ModelSerializer):
    class Meta:
        model = RegistrationCourse
        fields = ['position', 'course', 'course_code', 'course_title', 'credit', 'is_repeat', 'previous_grade']


class RegistrationSerializer(serializers.ModelSerializer):
    courses = RegistrationCourseSerializer(many=True, read_only=True)

    class Meta:
        model = Registration
        fields = [
            'id', 'registration_number', 'department', 'year', 'semester', 'academic_year',
            'total_credits', 'is_repeat_semester', 'repeat_course_count', 'status',
            'registered_at', 'courses',
        ]


class RegistrationPeriodSerializer(serializers.ModelSerializer):
    class Meta:
        model = RegistrationPeriod
        fields = [
            'id', 'period_type', 'academic_year', 'semester', 'department',
            'start_date', 'end_date', 'is_active', 'notes',
        ]


class PlacementRequestSerializer(serializers.ModelSerializer):
    student_number = serializers.CharField(source='student.student_number', read_only=True)

    class Meta:
        model = PlacementRequest
        fields = [
            'id', 'student', 'student_number', 'academic_year', 'first_choice', 'second_choice',
            'personal_statement', 'reason_for_choice', 'career_goals',
            'current_cgpa', 'total_credits', 'priority_score', 'status',
            'approved_department', 'committee_comments', 'rejection_reason',
            'submitted_at', 'decided_at',
        ]


class EvaluationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Evaluation
        fields = ['id', 'course', 'instructor', 'academic_year', 'semester', 'overall_rating', 'comments', 'submitted_at']


class NotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Notification
        fields = ['id', 'category', 'title', 'message', 'link', 'is_read', 'created_at']


# Request payloads. Range checks are left to the engine so its errors name the field.

class GradeSubmitSerializer(serializers.Serializer):
    student_id = serializers.IntegerField()
    course_id = serializers.IntegerField()
    academic_year = serializers.RegexField(r'^\d{4}-\d{4}$')
    midterm_mark = serializers.DecimalField(max_digits=5, decimal_places=2)
    continuous_mark = serializers.DecimalField(max_digits=5, decimal_places=2)
    final_exam_mark = serializers.DecimalField(max_digits=5, decimal_places=2)
    comments = serializers.CharField(required=False, allow_blank=True, default='')


class GradeReviewSerializer(serializers.Serializer):
    comments = serializers.CharField(required=False, allow_blank=True, default='')
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class LockGradesSerializer(serializers.Serializer):
    academic_year = serializers.RegexField(r'^\d{4}-\d{4}$')
    semester = serializers.ChoiceField(choices=[1, 2])
    department = serializers.ChoiceField(choices=Department.values, required=False, allow_blank=True)


class GradeQuerySerializer(serializers.Serializer):
    """Optional query-string filters for grade listings"""
    academic_year = serializers.RegexField(r'^\d{4}-\d{4}$', required=False)
    semester = serializers.ChoiceField(choices=[1, 2], required=False)
    department = serializers.ChoiceField(choices=Department.values, required=False)
    status = serializers.ChoiceField(choices=GradeRecord.STATUS_CHOICES, required=False)


class ReportQuerySerializer(serializers.Serializer):
    academic_year = serializers.RegexField(r'^\d{4}-\d{4}$', required=False)
    semester = serializers.ChoiceField(choices=[1, 2], required=False)
    department = serializers.ChoiceField(choices=Department.values, required=False)
    year = serializers.IntegerField(min_value=1, required=False)


class PeriodSaveSerializer(serializers.Serializer):
    period_type = serializers.ChoiceField(choices=[code for code, _ in RegistrationPeriod.TYPE_CHOICES])
    academic_year = serializers.RegexField(r'^\d{4}-\d{4}$')
    semester = serializers.ChoiceField(choices=[1, 2])
    department = serializers.ChoiceField(choices=Department.values + [ALL_DEPARTMENTS], default=ALL_DEPARTMENTS)
    start_date = serializers.DateTimeField()
    end_date = serializers.DateTimeField()
    is_active = serializers.BooleanField(default=True)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class EvaluationSubmitSerializer(serializers.Serializer):
    course_id = serializers.IntegerField()
    instructor_id = serializers.IntegerField()
    overall_rating = serializers.IntegerField()
    comments = serializers.CharField(required=False, allow_blank=True, default='')


class PlacementSubmitSerializer(serializers.Serializer):
    first_choice = serializers.CharField()
    second_choice = serializers.CharField(required=False, allow_blank=True, default='')
    personal_statement = serializers.CharField(allow_blank=True)
    reason_for_choice = serializers.CharField(allow_blank=True)
    career_goals = serializers.CharField(required=False, allow_blank=True, default='')


class PlacementReviewSerializer(serializers.Serializer):
    decision = serializers.ChoiceField(choices=['approve', 'reject'])
    department = serializers.ChoiceField(choices=PLACEMENT_DEPARTMENTS, required=False, allow_blank=True)
    reason = serializers.CharField(required=False, allow_blank=True, default='')
    comments = serializers.CharField(required=False, allow_blank=True, default='')


class BulkApprovalItemSerializer(serializers.Serializer):
    request_id = serializers.IntegerField()
    department = serializers.CharField()
    comments = serializers.CharField(required=False, allow_blank=True, default='')


class BulkApprovalSerializer(serializers.Serializer):
    approvals = BulkApprovalItemSerializer(many=True)

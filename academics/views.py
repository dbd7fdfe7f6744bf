from django.contrib.auth.models import User
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .engine import ProgressionEngine
from .exceptions import (
    AuthorizationError, CapacityError, ConflictError, NotFoundError, RegistrationBlockedError, ValidationError,
)
from .models import Notification
from .notification_service import NotificationService
from .permissions import CanViewReports, IsInstructor, IsStudent
from .placement_service import PlacementService
from .registration_service import RegistrationPeriodService, student_for
from .reporting_service import ReportingService
from .serializers import (
    BulkApprovalSerializer, CourseSerializer, EvaluationSerializer, EvaluationSubmitSerializer,
    GradeQuerySerializer, GradeRecordSerializer, GradeReviewSerializer, GradeSubmitSerializer, LockGradesSerializer,
    NotificationSerializer, PeriodSaveSerializer, PlacementRequestSerializer, PlacementReviewSerializer,
    PlacementSubmitSerializer, RegistrationPeriodSerializer, RegistrationSerializer, ReportQuerySerializer,
)
from .workflow_service import GradeWorkflowService

engine = ProgressionEngine()

ERROR_STATUS = {
    error.code: error.status_code
    for error in (
        ValidationError, ConflictError, NotFoundError, CapacityError, AuthorizationError, RegistrationBlockedError,
    )
}


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def engine_response(result, serialize=None, success_status=status.HTTP_200_OK):
    """Turn an engine result into a Response with the mapped status code"""
    if not result['success']:
        return Response(result, status=ERROR_STATUS.get(result['error'], status.HTTP_400_BAD_REQUEST))
    data = result['data']
    return Response({
        'success': True,
        'message': result['message'],
        'data': serialize(data) if serialize else data,
    }, status=success_status)


def invalid_payload(serializer):
    return Response({
        'success': False,
        'error': 'validation_error',
        'message': 'Invalid request data',
        'details': serializer.errors,
    }, status=status.HTTP_400_BAD_REQUEST)


def current_student_id(request):
    """Student id of the requesting user, or None when the user has no student record"""
    try:
        return student_for(request.user).pk
    except NotFoundError:
        return None


def serialize_course_items(items):
    return [
        {
            'course': CourseSerializer(item['course']).data,
            'is_repeat': item['is_repeat'],
            'previous_grade': item['previous_grade'],
        }
        for item in items
    ]


# ============================================================================
# GRADE WORKFLOW VIEWS
# ============================================================================

@api_view(['POST'])
@permission_classes([IsAuthenticated])
def submit_grade(request):
    serializer = GradeSubmitSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_payload(serializer)
    result = engine.submit_grade(request.user, **serializer.validated_data)
    return engine_response(result, lambda grade: GradeRecordSerializer(grade).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def approve_grade(request, grade_id):
    serializer = GradeReviewSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_payload(serializer)
    result = engine.approve_grade(request.user, grade_id, serializer.validated_data['comments'])
    return engine_response(result, lambda grade: GradeRecordSerializer(grade).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def reject_grade(request, grade_id):
    serializer = GradeReviewSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_payload(serializer)
    result = engine.reject_grade(
        request.user, grade_id, serializer.validated_data['reason'], serializer.validated_data['comments'],
    )
    return engine_response(result, lambda grade: GradeRecordSerializer(grade).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def finalize_grade(request, grade_id):
    serializer = GradeReviewSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_payload(serializer)
    result = engine.finalize_grade(request.user, grade_id, serializer.validated_data['comments'])
    return engine_response(result, lambda grade: GradeRecordSerializer(grade).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def lock_grades(request):
    serializer = LockGradesSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_payload(serializer)
    data = serializer.validated_data
    result = engine.lock_grades(request.user, data['academic_year'], data['semester'], data.get('department') or None)
    return engine_response(result, lambda count: {'locked_count': count})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def pending_grades(request):
    serializer = GradeQuerySerializer(data=request.query_params)
    if not serializer.is_valid():
        return invalid_payload(serializer)
    params = serializer.validated_data
    result = engine.pending_grades(
        request.user,
        department=params.get('department'),
        academic_year=params.get('academic_year'),
        semester=params.get('semester'),
    )
    return engine_response(result, lambda grades: GradeRecordSerializer(grades, many=True).data)


@api_view(['GET'])
@permission_classes([IsInstructor])
def instructor_grades(request):
    """Grades entered by the requesting instructor"""
    serializer = GradeQuerySerializer(data=request.query_params)
    if not serializer.is_valid():
        return invalid_payload(serializer)
    params = serializer.validated_data
    grades, summary = GradeWorkflowService.instructor_grades(
        request.user,
        academic_year=params.get('academic_year'),
        semester=params.get('semester'),
        status=params.get('status'),
    )
    return Response({
        'success': True,
        'data': {
            'grades': GradeRecordSerializer(grades, many=True).data,
            'summary': summary,
        },
    })


# ============================================================================
# STUDENT VIEWS
# ============================================================================

@api_view(['GET'])
@permission_classes([IsStudent])
def my_transcript(request):
    result = engine.transcript(current_student_id(request))
    return engine_response(result)


@api_view(['GET'])
@permission_classes([IsStudent])
def available_courses(request):
    result = engine.available_courses(current_student_id(request))

    def serialize(data):
        return {**data, 'courses': serialize_course_items(data['courses'])}
    return engine_response(result, serialize)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def register(request):
    result = engine.register(request.user)
    return engine_response(
        result, lambda registration: RegistrationSerializer(registration).data, status.HTTP_201_CREATED,
    )


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def cancel_registration(request, registration_id):
    result = engine.cancel_registration(request.user, registration_id)
    return engine_response(result, lambda registration: RegistrationSerializer(registration).data)


@api_view(['GET'])
@permission_classes([IsStudent])
def evaluation_status(request):
    result = engine.evaluation_status(current_student_id(request), request.query_params.get('academic_year'))
    return engine_response(result)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def submit_evaluation(request):
    serializer = EvaluationSubmitSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_payload(serializer)
    data = serializer.validated_data
    try:
        instructor = User.objects.get(pk=data['instructor_id'])
    except User.DoesNotExist:
        return Response({
            'success': False,
            'error': 'not_found',
            'message': 'Instructor not found',
            'details': {'instructor_id': data['instructor_id']},
        }, status=status.HTTP_404_NOT_FOUND)
    result = engine.submit_evaluation(
        request.user, data['course_id'], instructor, data['overall_rating'], data['comments'],
    )
    return engine_response(
        result, lambda evaluation: EvaluationSerializer(evaluation).data, status.HTTP_201_CREATED,
    )


# ============================================================================
# REGISTRATION PERIOD VIEWS
# ============================================================================

@api_view(['POST'])
@permission_classes([IsAuthenticated])
def save_period(request):
    serializer = PeriodSaveSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_payload(serializer)
    result = engine.save_period(request.user, **serializer.validated_data)

    def serialize(data):
        period, created = data
        return {'period': RegistrationPeriodSerializer(period).data, 'created': created}
    return engine_response(result, serialize)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def period_details(request):
    params = request.query_params
    try:
        semester = int(params.get('semester', 1))
    except ValueError:
        return Response({
            'success': False,
            'error': 'validation_error',
            'message': 'Semester must be a number',
            'details': {'field': 'semester'},
        }, status=status.HTTP_400_BAD_REQUEST)
    details = RegistrationPeriodService.period_details(
        params.get('period_type', 'courseRegistration'),
        params.get('academic_year'),
        semester,
        params.get('department', 'All'),
    )
    period = details.pop('period')
    details['period'] = RegistrationPeriodSerializer(period).data if period else None
    return Response({'success': True, 'data': details})


# ============================================================================
# PLACEMENT VIEWS
# ============================================================================

@api_view(['POST'])
@permission_classes([IsAuthenticated])
def submit_placement(request):
    serializer = PlacementSubmitSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_payload(serializer)
    result = engine.submit_placement(request.user, **serializer.validated_data)
    return engine_response(
        result, lambda placement: PlacementRequestSerializer(placement).data, status.HTTP_201_CREATED,
    )


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def review_placement(request, request_id):
    serializer = PlacementReviewSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_payload(serializer)
    data = serializer.validated_data
    if data['decision'] == 'approve':
        result = engine.approve_placement(request.user, request_id, data.get('department'), data['comments'])
    else:
        result = engine.reject_placement(request.user, request_id, data['reason'], data['comments'])
    return engine_response(result, lambda placement: PlacementRequestSerializer(placement).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def bulk_approve_placements(request):
    serializer = BulkApprovalSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_payload(serializer)
    result = engine.bulk_approve_placements(request.user, serializer.validated_data['approvals'])
    return engine_response(result)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def pending_placements(request):
    result = engine.pending_placements(
        request.user,
        department=request.query_params.get('department'),
        sort_by=request.query_params.get('sort_by', 'priority'),
    )
    return engine_response(result, lambda requests: PlacementRequestSerializer(requests, many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def department_capacity(request, department):
    return Response({
        'success': True,
        'data': PlacementService.department_capacity(department, request.query_params.get('academic_year')),
    })


# ============================================================================
# REPORT VIEWS
# ============================================================================

@api_view(['GET'])
@permission_classes([CanViewReports])
def grade_distribution_report(request):
    serializer = ReportQuerySerializer(data=request.query_params)
    if not serializer.is_valid():
        return invalid_payload(serializer)
    params = serializer.validated_data
    return Response({
        'success': True,
        'data': ReportingService.grade_distribution(
            params.get('academic_year'), params.get('semester'), params.get('department'),
        ),
    })


@api_view(['GET'])
@permission_classes([CanViewReports])
def standing_report(request):
    return Response({'success': True, 'data': ReportingService.standing_summary()})


@api_view(['GET'])
@permission_classes([CanViewReports])
def placement_report(request):
    return Response({
        'success': True,
        'data': ReportingService.placement_statistics(request.query_params.get('academic_year')),
    })


@api_view(['GET'])
@permission_classes([CanViewReports])
def registration_report(request):
    serializer = ReportQuerySerializer(data=request.query_params)
    if not serializer.is_valid():
        return invalid_payload(serializer)
    params = serializer.validated_data
    return Response({
        'success': True,
        'data': ReportingService.registration_statistics(
            params.get('department'), params.get('year'), params.get('semester'),
        ),
    })


# ============================================================================
# NOTIFICATION VIEWS
# ============================================================================

@api_view(['GET'])
@permission_classes([IsAuthenticated])
def notifications(request):
    queryset = Notification.objects.filter(user=request.user)
    if request.query_params.get('unread') == 'true':
        queryset = queryset.filter(is_read=False)
    return Response({
        'success': True,
        'data': NotificationSerializer(queryset[:50], many=True).data,
        'unread_count': NotificationService.unread_count(request.user),
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def mark_notification_read(request, notification_id):
    try:
        notification = Notification.objects.get(pk=notification_id, user=request.user)
    except Notification.DoesNotExist:
        return Response({
            'success': False,
            'error': 'not_found',
            'message': 'Notification not found',
            'details': {'notification_id': notification_id},
        }, status=status.HTTP_404_NOT_FOUND)
    notification.mark_as_read()
    return Response({'success': True, 'message': 'Notification marked as read'})

from django.urls import path

from . import views

urlpatterns = [
    # Grade workflow
    path('grades/submit/', views.submit_grade, name='submit-grade'),
    path('grades/pending/', views.pending_grades, name='pending-grades'),
    path('grades/mine/', views.instructor_grades, name='instructor-grades'),
    path('grades/lock/', views.lock_grades, name='lock-grades'),
    path('grades/<int:grade_id>/approve/', views.approve_grade, name='approve-grade'),
    path('grades/<int:grade_id>/reject/', views.reject_grade, name='reject-grade'),
    path('grades/<int:grade_id>/finalize/', views.finalize_grade, name='finalize-grade'),

    # Student
    path('student/transcript/', views.my_transcript, name='my-transcript'),
    path('student/available-courses/', views.available_courses, name='available-courses'),
    path('student/evaluations/', views.evaluation_status, name='evaluation-status'),

    # Registration
    path('registrations/', views.register, name='register'),
    path('registrations/<int:registration_id>/cancel/', views.cancel_registration, name='cancel-registration'),
    path('evaluations/', views.submit_evaluation, name='submit-evaluation'),
    path('periods/', views.save_period, name='save-period'),
    path('periods/details/', views.period_details, name='period-details'),

    # Placement
    path('placements/', views.submit_placement, name='submit-placement'),
    path('placements/pending/', views.pending_placements, name='pending-placements'),
    path('placements/bulk-approve/', views.bulk_approve_placements, name='bulk-approve-placements'),
    path('placements/capacity/<str:department>/', views.department_capacity, name='department-capacity'),
    path('placements/<int:request_id>/review/', views.review_placement, name='review-placement'),

    # Reports
    path('reports/grades/', views.grade_distribution_report, name='grade-distribution-report'),
    path('reports/standing/', views.standing_report, name='standing-report'),
    path('reports/placements/', views.placement_report, name='placement-report'),
    path('reports/registrations/', views.registration_report, name='registration-report'),

    # Notifications
    path('notifications/', views.notifications, name='notifications'),
    path('notifications/<int:notification_id>/read/', views.mark_notification_read, name='mark-notification-read'),
]

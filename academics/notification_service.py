"""
Notification Service
Stores in-app notifications and optionally mirrors them by email.

Every method is best-effort: a failing notification is logged and swallowed
so it can never abort the transition that triggered it.
"""
import logging

from django.contrib.auth.models import User
from django.core.mail import send_mail
from django.db import transaction
from django.utils import timezone

from . import conf
from .models import Notification, Role

logger = logging.getLogger(__name__)


class NotificationService:
    """Handles notifications and emails"""

    @staticmethod
    def emit(recipient, title, message, category='Info', link=''):
        """
        Create a notification for a user. Returns the notification, or None
        when it could not be stored.
        """
        try:
            with transaction.atomic():
                notification = Notification.objects.create(
                    user=recipient,
                    category=category,
                    title=title,
                    message=message,
                    link=link or '',
                )
        except Exception as e:
            logger.error(f"Failed to create notification '{title}' for user {getattr(recipient, 'pk', None)}: {str(e)}")
            return None

        if conf.email_notifications_enabled() and recipient.email:
            NotificationService._send_email(notification)

        return notification

    @staticmethod
    def emit_many(recipients, title, message, category='Info', link=''):
        """Notify each distinct recipient once"""
        sent = []
        seen = set()
        for recipient in recipients:
            if recipient.pk in seen:
                continue
            seen.add(recipient.pk)
            notification = NotificationService.emit(recipient, title, message, category, link)
            if notification is not None:
                sent.append(notification)
        return sent

    @staticmethod
    def _send_email(notification):
        try:
            send_mail(
                subject=f'ARMS: {notification.title}',
                message=notification.message,
                from_email=conf.default_from_email(),
                recipient_list=[notification.user.email],
                fail_silently=False,
            )
            notification.email_sent = True
            notification.email_sent_at = timezone.now()
            with transaction.atomic():
                notification.save(update_fields=['email_sent', 'email_sent_at'])
        except Exception as e:
            logger.error(f"Failed to email notification {notification.pk} to {notification.user.email}: {str(e)}")

    # Recipient lookups

    @staticmethod
    def users_with_role(role, department=None):
        filters = {'academic_roles__role': role, 'academic_roles__is_active': True, 'is_active': True}
        if department:
            filters['academic_roles__department'] = department
        return User.objects.filter(**filters).distinct()

    @staticmethod
    def department_heads(department):
        return NotificationService.users_with_role(Role.DEPARTMENT_HEAD, department)

    @staticmethod
    def registrars():
        return NotificationService.users_with_role(Role.REGISTRAR)

    @staticmethod
    def placement_committee():
        return NotificationService.users_with_role(Role.PLACEMENT_COMMITTEE)

    @staticmethod
    def unread_count(user):
        return Notification.objects.filter(user=user, is_read=False).count()

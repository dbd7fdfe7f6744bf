"""
Audit logging for every state transition
"""
import logging

from django.db import transaction

from .models import AuditLog

logger = logging.getLogger(__name__)


class AuditService:
    """Writes audit rows; never lets a logging failure escape"""

    @classmethod
    def record(cls, actor, action, target=None, details=None, description='', level='INFO'):
        """
        Record that ``actor`` performed ``action`` on ``target``.

        Args:
            actor: User performing the transition, or None for system actions
            action: Short action code, e.g. 'APPROVE_GRADE'
            target: Model instance the action applies to
            details: JSON-serialisable dict of extra context
        """
        try:
            with transaction.atomic():
                audit_log = AuditLog.objects.create(
                    user=actor,
                    action=action,
                    model_name=target.__class__.__name__ if target is not None else '',
                    object_id=str(target.pk) if target is not None else '',
                    description=description,
                    details=cls._clean(details or {}),
                    level=level,
                )
            logger.debug(f"Audit: {action} on {audit_log.model_name} {audit_log.object_id}")
            return audit_log
        except Exception as e:
            logger.error(f"Error recording audit log for {action}: {str(e)}")
            return None

    @staticmethod
    def _clean(details):
        """Coerce values the JSON encoder cannot handle (Decimal, datetime) to strings"""
        cleaned = {}
        for key, value in details.items():
            if value is None or isinstance(value, (bool, int, float, str, list, dict)):
                cleaned[key] = value
            else:
                cleaned[key] = str(value)
        return cleaned

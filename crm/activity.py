from __future__ import annotations

import logging
from typing import Optional

from django.contrib.auth import get_user_model
from django.db import DatabaseError, transaction

from crm.models import ActivityLog

logger = logging.getLogger(__name__)

User = get_user_model()


def log_activity(
    *,
    actor: Optional[User],
    module: str,
    action: str,
    details: str,
) -> Optional[ActivityLog]:
    """Append one audit entry. A failed insert never breaks the caller."""
    if not actor or not getattr(actor, 'is_authenticated', False):
        return None
    try:
        with transaction.atomic():
            return ActivityLog.objects.create(
                user=actor,
                user_name=actor.display_name[:255],
                user_role=User.Roles.ADMIN if actor.is_superuser else actor.role,
                module=module,
                action=action,
                details=(details or '')[:500],
            )
    except DatabaseError:
        logger.exception('Failed to record activity %s/%s for user %s', module, action, actor.pk)
        return None

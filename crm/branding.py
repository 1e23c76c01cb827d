from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, fields

from django.core.exceptions import PermissionDenied
from django.db import DatabaseError

from .activity import log_activity
from .models import ActivityLog, AppSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Branding:
    app_name: str = 'ESWARI CRM'
    logo_url: str = ''
    primary_color: str = '215 80% 35%'
    accent_color: str = '38 95% 55%'
    sidebar_color: str = '220 30% 12%'
    custom_css: str = ''

    def as_dict(self) -> dict:
        data = asdict(self)
        data['css_variables'] = self.css_variables()
        return data

    def css_variables(self) -> str:
        return (
            ':root {'
            f' --primary: {self.primary_color};'
            f' --accent: {self.accent_color};'
            f' --sidebar-background: {self.sidebar_color};'
            ' }'
        )

    @classmethod
    def from_settings(cls, row: AppSettings) -> 'Branding':
        return cls(**{field.name: getattr(row, field.name) or getattr(cls, field.name) for field in fields(cls)})


DEFAULT_BRANDING = Branding()

BRANDING_FIELDS = tuple(field.name for field in fields(Branding))


def load_branding() -> Branding:
    """Current branding, or the built-in defaults when it cannot be read."""
    try:
        row = AppSettings.objects.filter(singleton=True).first()
    except DatabaseError:
        logger.warning('Could not load app settings, using default branding', exc_info=True)
        return DEFAULT_BRANDING
    if row is None:
        return DEFAULT_BRANDING
    return Branding.from_settings(row)


def update_branding(*, actor, **changes) -> Branding:
    if not (actor and actor.is_authenticated and actor.is_admin):
        raise PermissionDenied('Only admins can change branding.')
    unknown = set(changes) - set(BRANDING_FIELDS)
    if unknown:
        raise ValueError(f"Unknown branding fields: {', '.join(sorted(unknown))}.")
    row, _ = AppSettings.objects.get_or_create(singleton=True)
    for name, value in changes.items():
        setattr(row, name, value)
    row.full_clean()
    row.save()
    log_activity(
        actor=actor,
        module='settings',
        action=ActivityLog.Action.UPDATED,
        details=f"Updated branding ({', '.join(sorted(changes)) or 'no changes'})",
    )
    return Branding.from_settings(row)

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Iterator, List, Optional, Set

from django.utils import timezone

SESSION_KEY = 'dismissed_announcements'


def is_announcement_visible(announcement, role: Optional[str], dismissed: Iterable[int], now: datetime) -> bool:
    if not announcement.is_active:
        return False
    if role not in (announcement.target_roles or []):
        return False
    if announcement.pk in set(dismissed):
        return False
    expires_at = announcement.expires_at
    return expires_at is None or expires_at > now


class AnnouncementBanner:
    """Announcements one viewer should see, newest first.

    Dismissals are held on the banner instance only; they are never written
    back to the announcement rows, so other viewers are unaffected.
    """

    def __init__(self, announcements: Iterable, role: Optional[str], dismissed: Iterable[int] = (), now=None):
        self._announcements = list(announcements)
        self.role = role
        self.dismissed: Set[int] = {int(pk) for pk in dismissed}
        self.now = now or timezone.now()

    @property
    def visible(self) -> List:
        shown = [
            item for item in self._announcements
            if is_announcement_visible(item, self.role, self.dismissed, self.now)
        ]
        return sorted(shown, key=lambda item: (item.created_at, item.pk), reverse=True)

    def dismiss(self, announcement_id: int) -> None:
        self.dismissed.add(int(announcement_id))

    def __iter__(self) -> Iterator:
        return iter(self.visible)

    def __len__(self) -> int:
        return len(self.visible)


def session_dismissed(session) -> Set[int]:
    return {int(pk) for pk in session.get(SESSION_KEY, [])}


def dismiss_in_session(session, announcement_id: int) -> Set[int]:
    dismissed = session_dismissed(session)
    dismissed.add(int(announcement_id))
    session[SESSION_KEY] = sorted(dismissed)
    return dismissed


def parse_dismissed_param(raw: Optional[str]) -> Set[int]:
    """Parse ``?dismissed=3,7`` from token clients that keep their own state."""
    ids = set()
    for chunk in (raw or '').split(','):
        chunk = chunk.strip()
        if chunk.isdigit():
            ids.add(int(chunk))
    return ids

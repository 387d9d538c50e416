from __future__ import annotations

import logging
from typing import List, Optional

from ..errors import Forbidden, GradeflowError, NotFound
from ..identity import Actor
from ..models import Notification, NotificationType
from ..repositories import NotificationRepository

logger = logging.getLogger(__name__)

MESSAGES = {
    NotificationType.SUBMISSION_CONFIRMED: "Your submission has been received successfully",
    NotificationType.GRADE_POSTED: "Your assessment has been graded and is pending verification",
    NotificationType.GRADE_RELEASED: "Your grade has been officially verified and released",
}


class NotificationService:
    """
    Emits and serves notifications.

    Emission is best-effort: a notification that fails to persist is logged and
    dropped, because it is always the last write of a workflow step and the
    facts it announces are already durable.
    """

    def __init__(self, notifications: NotificationRepository) -> None:
        self._notifications = notifications

    def notify_user(
        self,
        user_id: str,
        kind: NotificationType,
        target_id: Optional[str] = None,
        message: Optional[str] = None,
    ) -> Optional[Notification]:
        notification = Notification(
            id=self._notifications.new_id_for_user(user_id),
            user_id=user_id,
            type=kind,
            message=message or MESSAGES[kind],
            target_id=target_id,
        )
        return self._emit(notification)

    def broadcast(
        self, kind: NotificationType, message: str, target_id: Optional[str] = None
    ) -> Optional[Notification]:
        notification = Notification(
            id=self._notifications.new_id(),
            type=kind,
            message=message,
            target_id=target_id,
        )
        return self._emit(notification)

    def _emit(self, notification: Notification) -> Optional[Notification]:
        try:
            self._notifications.save(notification)
        except GradeflowError as e:
            logger.warning(
                f"Notification {notification.type.value} for {notification.user_id or 'everyone'} "
                f"was not delivered: {e.message}"
            )
            return None
        return notification

    def feed(self, actor: Actor) -> List[Notification]:
        return self._notifications.for_user(actor.user_id)

    def mark_read(self, actor: Actor, notification_id: str) -> Notification:
        notification = self._notifications.get(notification_id)
        if notification is None:
            raise NotFound("Notification not found")
        if not notification.is_global and notification.user_id != actor.user_id:
            raise Forbidden("Insufficient permissions")
        if not notification.read:
            notification = notification.model_copy(update={"read": True})
            self._notifications.save(notification)
        return notification

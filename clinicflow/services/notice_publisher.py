"""Notice publisher module for pub/sub event publishing."""

import logging
from typing import Optional

from pubsub import pub

from ..models.consultation import ConsultationState
from ..models.events import ConsultationEvent, Notice

logger = logging.getLogger(__name__)

STATE_TOPIC = "consultation.state"
NOTICE_TOPIC = "consultation.notice"
SESSION_EXPIRED_TOPIC = "session.expired"


class NoticePublisher:
    """Publishes consultation state changes and clinician notices using pubsub.pub."""

    def __init__(self,
                 appointment_id: str,
                 state_topic: str = STATE_TOPIC,
                 notice_topic: str = NOTICE_TOPIC,
                 session_expired_topic: str = SESSION_EXPIRED_TOPIC):
        """Initialize notice publisher.

        Args:
            appointment_id: Appointment the published events belong to
            state_topic: Pub/sub topic for state transitions
            notice_topic: Pub/sub topic for user-visible notices
            session_expired_topic: Pub/sub topic for authentication failures
        """
        self.appointment_id = appointment_id
        self.state_topic = state_topic
        self.notice_topic = notice_topic
        self.session_expired_topic = session_expired_topic

    def publish_state(self, previous: Optional[ConsultationState], current: ConsultationState) -> None:
        event = ConsultationEvent(
            appointment_id=self.appointment_id,
            previous=previous,
            current=current,
        )
        pub.sendMessage(self.state_topic, event=event)

    def publish_notice(self, level: str, title: str, message: str) -> Notice:
        notice = Notice(
            appointment_id=self.appointment_id,
            level=level,
            title=title,
            message=message,
        )
        pub.sendMessage(self.notice_topic, event=notice)
        logger.debug(f"Published {level} notice: {title} - {message}")
        return notice

    def publish_session_expired(self) -> None:
        notice = Notice(
            appointment_id=self.appointment_id,
            level="error",
            title="Session Expired",
            message="Please login again",
        )
        pub.sendMessage(self.session_expired_topic, event=notice)
        logger.warning("Authentication rejected by backend, session expired")

from sqlalchemy import Column, String, Boolean, DateTime, JSON
from starcheckin.db.base import Base, TimestampMixin, utcnow

class Attendee(Base, TimestampMixin):
    __tablename__ = "attendees"

    # Eventbrite attendee id, never reassigned
    id = Column(String, primary_key=True)

    name = Column(String, nullable=False, default="")
    email = Column(String, nullable=False, default="")

    # updated | check_in | checked_in | checked_out | not_checked_in | ... (governed by Eventbrite)
    status = Column(String, nullable=False, default="updated")
    checked_in = Column(Boolean, nullable=True)

    # Ordered question -> answer mapping from the registration form
    answers = Column(JSON, nullable=True)

    event_id = Column(String, nullable=True, index=True)
    updated_at = Column(DateTime, default=utcnow, nullable=False)

    def __repr__(self):
        return f"<Attendee {self.id} {self.name} ({self.status})>"

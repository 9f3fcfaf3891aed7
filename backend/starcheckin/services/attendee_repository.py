import logging
import threading
import zlib
from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from starcheckin.core.exceptions import RepositoryUnavailable
from starcheckin.db.base import utcnow
from starcheckin.models.attendee import Attendee
from starcheckin.schemas import AttendeeResult, AttendeeUpdate, WEBHOOK_MERGE_FIELDS

logger = logging.getLogger(__name__)

MERGEABLE_FIELDS = frozenset(WEBHOOK_MERGE_FIELDS)


class AttendeeRepository:
    """
    Local mirror of Eventbrite attendees keyed by attendee id.

    Upserts for the same id are serialized through a striped lock so a record
    is always the result of one whole update, never a mix of two. Updates for
    different ids only share a lock when they hash to the same stripe.
    """

    LOCK_STRIPES = 64

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory
        self._locks = [threading.Lock() for _ in range(self.LOCK_STRIPES)]

    def _lock_for(self, attendee_id: str) -> threading.Lock:
        return self._locks[zlib.crc32(attendee_id.encode("utf-8")) % self.LOCK_STRIPES]

    def upsert(
        self,
        update: AttendeeUpdate,
        merge_fields: Iterable[str] = WEBHOOK_MERGE_FIELDS,
    ) -> AttendeeResult:
        """
        Insert the attendee if the id is new, otherwise overwrite only the
        fields named in ``merge_fields`` that the update actually carries.

        Returns the record as stored after the write.
        """
        merge_fields = tuple(merge_fields)
        unknown = set(merge_fields) - MERGEABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be merged: {sorted(unknown)}")

        present = update.present_fields()

        with self._lock_for(update.id):
            # A second attempt only happens when another process inserted the
            # same id between our read and our commit.
            for attempt in range(2):
                db = self.session_factory()
                try:
                    attendee = db.get(Attendee, update.id)
                    now = utcnow()

                    if attendee is None:
                        attendee = Attendee(
                            id=update.id,
                            name=present.get("name", ""),
                            email=present.get("email", ""),
                            status=present.get("status", "updated"),
                            checked_in=present.get("checked_in"),
                            answers=present.get("answers"),
                            event_id=present.get("event_id"),
                            created_at=now,
                            updated_at=now,
                        )
                        db.add(attendee)
                        action = "Inserted"
                    else:
                        for field in merge_fields:
                            if field in present:
                                setattr(attendee, field, present[field])
                        attendee.updated_at = self._next_timestamp(attendee.updated_at, now)
                        action = "Updated"

                    db.commit()
                    db.refresh(attendee)
                    result = AttendeeResult.model_validate(attendee)
                    logger.debug(f"{action} attendee {update.id}")
                    return result

                except IntegrityError as e:
                    db.rollback()
                    if attempt == 0:
                        logger.warning(f"⚠️ Concurrent insert for attendee {update.id}, merging instead")
                        continue
                    logger.error(f"❌ Upsert failed for attendee {update.id}: {e}")
                    raise RepositoryUnavailable(f"Could not store attendee {update.id}") from e
                except SQLAlchemyError as e:
                    db.rollback()
                    logger.error(f"❌ Upsert failed for attendee {update.id}: {e}")
                    raise RepositoryUnavailable(f"Could not store attendee {update.id}") from e
                finally:
                    db.close()

    def get_all(self, event_id: Optional[str] = None, status: Optional[str] = None) -> List[AttendeeResult]:
        """Snapshot of stored attendees, optionally filtered by event or status."""
        db = self.session_factory()
        try:
            query = db.query(Attendee)
            if event_id:
                query = query.filter(Attendee.event_id == event_id)
            if status:
                query = query.filter(Attendee.status == status)
            rows = query.order_by(Attendee.created_at, Attendee.id).all()
            return [AttendeeResult.model_validate(row) for row in rows]
        except SQLAlchemyError as e:
            logger.error(f"❌ Failed to list attendees: {e}")
            raise RepositoryUnavailable("Could not read attendees") from e
        finally:
            db.close()

    def get_by_id(self, attendee_id: str) -> Optional[AttendeeResult]:
        db = self.session_factory()
        try:
            attendee = db.get(Attendee, attendee_id)
            return AttendeeResult.model_validate(attendee) if attendee else None
        except SQLAlchemyError as e:
            logger.error(f"❌ Failed to read attendee {attendee_id}: {e}")
            raise RepositoryUnavailable(f"Could not read attendee {attendee_id}") from e
        finally:
            db.close()

    def count(self) -> int:
        db = self.session_factory()
        try:
            return db.query(Attendee).count()
        except SQLAlchemyError as e:
            raise RepositoryUnavailable("Could not count attendees") from e
        finally:
            db.close()

    @staticmethod
    def _next_timestamp(previous: Optional[datetime], now: datetime) -> datetime:
        # updated_at must strictly increase even when the clock does not
        if previous is None or now > previous:
            return now
        return previous + timedelta(microseconds=1)

import logging
import threading
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from starcheckin.core.exceptions import RepositoryUnavailable, Unauthenticated
from starcheckin.models.token import Token
from starcheckin.schemas import Credential

logger = logging.getLogger(__name__)


class CredentialStore:
    """
    Single-slot store for the Eventbrite credential.

    The active credential lives in the ``tokens`` table so it survives a
    restart. Replacing it deletes the previous rows and inserts the new one in
    one transaction; readers see either the old or the new credential.
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory
        self._lock = threading.Lock()

    def set_credential(self, access_token: str, refresh_token: Optional[str] = None) -> Credential:
        if not access_token:
            raise ValueError("access_token is required")

        with self._lock:
            db = self.session_factory()
            try:
                db.query(Token).delete()
                token = Token(access_token=access_token, refresh_token=refresh_token)
                db.add(token)
                db.commit()
                db.refresh(token)
                credential = self._to_credential(token)
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(f"❌ Failed to store credential: {e}")
                raise RepositoryUnavailable("Could not store credential") from e
            finally:
                db.close()

        logger.info("🔑 Eventbrite credential replaced")
        return credential

    def get_current_credential(self) -> Optional[Credential]:
        """Return the active credential, or None when nobody has authorized yet."""
        with self._lock:
            db = self.session_factory()
            try:
                token = db.query(Token).order_by(Token.id.desc()).first()
                return self._to_credential(token) if token else None
            except SQLAlchemyError as e:
                logger.error(f"❌ Failed to read credential: {e}")
                raise RepositoryUnavailable("Could not read credential") from e
            finally:
                db.close()

    def require_credential(self) -> Credential:
        credential = self.get_current_credential()
        if credential is None:
            raise Unauthenticated()
        return credential

    @staticmethod
    def _to_credential(token: Token) -> Credential:
        return Credential(
            access_token=token.access_token,
            refresh_token=token.refresh_token,
            issued_at=token.created_at,
        )

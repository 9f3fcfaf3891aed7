from sqlalchemy import Column, Integer, String
from starcheckin.db.base import Base, TimestampMixin

class Token(Base, TimestampMixin):
    __tablename__ = "tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    access_token = Column(String, nullable=False)
    refresh_token = Column(String, nullable=True)

    def __repr__(self):
        return f"<Token {self.id} issued {self.created_at}>"

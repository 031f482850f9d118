from sqlalchemy import Column, Integer, String, DateTime, ForeignKey

from app.core.database import Base
from app.utils.time_utils import utc_now


class Presence(Base):
    __tablename__ = "presence"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    status = Column(String(20), nullable=False, default="OFFLINE")  # ONLINE, AWAY, BUSY, OFFLINE

    updated_at = Column(DateTime, default=utc_now, nullable=False)  # last heartbeat
    last_seen = Column(DateTime, default=utc_now, nullable=False)

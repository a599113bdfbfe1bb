from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()

class BuildLog(Base):
    __tablename__ = "build_logs"

    id = Column(Integer, primary_key=True)
    config = Column(Text, nullable=False)
    dry_run = Column(Boolean, default=False)
    succeeded = Column(Boolean, default=False)
    error_kind = Column(String(64))
    error_message = Column(Text)
    plan = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

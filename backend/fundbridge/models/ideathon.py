import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from ..constants import FINAL_SUBMISSION_DRAFT
from ..database import Base
from .idea import GUID


class Ideathon(Base):
    __tablename__ = "ideathons"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    theme = Column(String(255), nullable=True)
    start_date = Column(DateTime, nullable=True)
    end_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    registrations = relationship("IdeathonRegistration", back_populates="ideathon")


class IdeathonRegistration(Base):
    __tablename__ = "ideathon_registrations"
    __table_args__ = (
        UniqueConstraint("ideathon_id", "entrepreneur_id", name="uq_ideathon_entrepreneur"),
    )

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    ideathon_id = Column(GUID(), ForeignKey("ideathons.id"), nullable=False, index=True)
    entrepreneur_id = Column(GUID(), ForeignKey("users.id"), nullable=False, index=True)
    idea_id = Column(GUID(), ForeignKey("ideas.id"), nullable=True)
    registered_by = Column(GUID(), ForeignKey("users.id"), nullable=True)

    team_name = Column(String(255), nullable=False)
    project_title = Column(String(255), nullable=False)
    project_description = Column(Text, nullable=True)
    tech_stack = Column(String(512), nullable=True)
    github_repo = Column(String(1024), nullable=True)
    deadline_date = Column(DateTime, nullable=True)

    status = Column(String(32), nullable=False, default="registered")  # registered | shortlisted | winner
    progress_status = Column(String(64), nullable=False, default="Not Started")
    current_progress = Column(Integer, nullable=False, default=0)  # 0-100
    last_updated = Column(DateTime, default=datetime.utcnow)

    final_submission_status = Column(String(32), nullable=False, default=FINAL_SUBMISSION_DRAFT)
    final_submitted_at = Column(DateTime, nullable=True)
    final_submission_json = Column(Text, nullable=True)  # JSON string (compatible with SQLite & PG)

    created_at = Column(DateTime, default=datetime.utcnow)

    ideathon = relationship("Ideathon", back_populates="registrations")
    entrepreneur = relationship("User", foreign_keys=[entrepreneur_id])

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, String
from sqlalchemy.orm import relationship

from ..constants import ROLE_ENTREPRENEUR
from ..database import Base
from .idea import GUID


class User(Base):
    __tablename__ = "users"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=False)
    hashed_password = Column(String, nullable=False)
    role = Column(String(32), nullable=False, default=ROLE_ENTREPRENEUR)  # entrepreneur | investor | admin
    created_at = Column(DateTime, default=datetime.utcnow)

    ideas = relationship("Idea", back_populates="owner", lazy="selectin")

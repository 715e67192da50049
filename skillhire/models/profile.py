# profile.py
from sqlalchemy import Column, DateTime, String
from sqlalchemy.sql import func

from skillhire.database import Base
from skillhire.models._ids import new_id


class Profile(Base):
    __tablename__ = "profiles"

    # Same id as the auth provider's user (token `sub`).
    id = Column(String(36), primary_key=True, default=new_id)
    email = Column(String(255), unique=True, index=True, nullable=True)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    # "employer" | "employee"
    role = Column(String(16), nullable=False, default="employee")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    @property
    def display_name(self) -> str:
        name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return name or "Unknown Applicant"

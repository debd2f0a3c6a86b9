from sqlalchemy import Column, Integer, String, Boolean, TIMESTAMP, CheckConstraint, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from ..database import Base
from ..core.permissions import Role


class User(Base):
    __tablename__ = "users"
    
    # Primary Key
    id = Column(Integer, primary_key=True, index=True)
    
    # Authentication & Contact
    username = Column(String(30), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    full_name = Column(String(100), nullable=False)
    
    # Role & Authorization
    role = Column(String(20), nullable=False, default=Role.MODERATOR.value, index=True)
    
    # Account Status
    is_active = Column(Boolean, default=True, index=True)
    created_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)  # NULL for owner
    last_login = Column(TIMESTAMP, nullable=True)
    
    # Timestamps
    created_at = Column(TIMESTAMP, server_default=func.now())
    updated_at = Column(TIMESTAMP, server_default=func.now(), onupdate=func.now())
    
    # Constraints
    __table_args__ = (
        CheckConstraint(
            "role IN ('owner', 'moderator')",
            name="check_user_role"
        ),
    )
    
    # Relationships
    created_by = relationship("User", remote_side=[id])

    @property
    def is_owner(self) -> bool:
        return self.role == Role.OWNER.value

"""Subtask model"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from kanflow.database import Base


class Subtask(Base):
    __tablename__ = "subtasks"

    id = Column(String(32), primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    done = Column(Boolean, default=False, nullable=False)
    order = Column(Integer, default=0, nullable=False)
    task_id = Column(String(32), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    task = relationship("Task", back_populates="subtasks")

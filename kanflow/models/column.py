"""
Board Column Model
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from kanflow.database import Base


class BoardColumn(Base):
    __tablename__ = "board_columns"

    id = Column(String(32), primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    color = Column(String(7), nullable=False, default="#6b7280")
    order = Column(Integer, default=0, nullable=False)
    board_id = Column(String(32), ForeignKey("boards.id", ondelete="CASCADE"), nullable=False, index=True)
    # Bumped whenever the ordering of this column's tasks changes
    revision = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    board = relationship("Board", back_populates="columns")
    tasks = relationship(
        "Task",
        back_populates="column",
        cascade="all, delete-orphan",
        order_by="Task.order",
    )

from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, ForeignKey, CheckConstraint, false
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from smartdrishti.db import db

DIFFICULTIES = ('Easy', 'Medium', 'Hard')


class Project(db.Model):
    __tablename__ = 'projects'

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    title = Column(String(200), nullable=False)
    difficulty = Column(String(10), nullable=False)
    estimated_time = Column(String(100))
    description = Column(Text)
    is_demo = Column(Boolean, default=False, server_default=false(), nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    owner = relationship("User", back_populates="projects")
    steps = relationship(
        "Step",
        back_populates="project",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Step.id",
    )

    __table_args__ = (
        CheckConstraint("difficulty IN ('Easy', 'Medium', 'Hard')", name='ck_projects_difficulty'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'title': self.title,
            'difficulty': self.difficulty,
            'estimated_time': self.estimated_time,
            'description': self.description,
            'is_demo': bool(self.is_demo),
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

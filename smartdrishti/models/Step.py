from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, JSON, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from smartdrishti.db import db

STEP_STATUSES = ('not_started', 'working', 'completed')
# older clients still send the previous name of the middle state
STATUS_ALIASES = {'in_progress': 'working'}


class Step(db.Model):
    __tablename__ = 'steps'

    id = Column(Integer, primary_key=True)
    project_id = Column(Integer, ForeignKey('projects.id', ondelete='CASCADE'), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text)
    components = Column(JSON)  # list[str]
    connections = Column(Text)
    working = Column(Text)
    instructions = Column(Text)
    code = Column(Text)
    conclusion = Column(Text)
    order_number = Column(Integer)
    step_number = Column(Integer)
    status = Column(String(20), default='not_started', server_default='not_started', nullable=False)
    detailed_content = Column(JSON)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    project = relationship("Project", back_populates="steps")
    media = relationship(
        "StepMedia",
        back_populates="step",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="StepMedia.id",
    )

    __table_args__ = (
        CheckConstraint("status IN ('not_started', 'working', 'completed')", name='ck_steps_status'),
    )

    def to_dict(self, include_media=False):
        data = {
            'id': self.id,
            'project_id': self.project_id,
            'title': self.title,
            'description': self.description,
            'components': self.components,
            'connections': self.connections,
            'working': self.working,
            'instructions': self.instructions,
            'code': self.code,
            'conclusion': self.conclusion,
            'order_number': self.order_number,
            'step_number': self.step_number,
            'status': self.status,
            'detailed_content': self.detailed_content,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_media:
            data['media'] = [m.to_dict() for m in self.media]
        return data

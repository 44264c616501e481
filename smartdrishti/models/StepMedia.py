from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from smartdrishti.db import db

MEDIA_TYPES = ('image', 'video')


class StepMedia(db.Model):
    __tablename__ = 'step_media'

    id = Column(Integer, primary_key=True)
    step_id = Column(Integer, ForeignKey('steps.id', ondelete='CASCADE'), nullable=False, index=True)
    media_type = Column(String(10), nullable=False)
    media_url = Column(String(500), nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    step = relationship("Step", back_populates="media")

    __table_args__ = (
        CheckConstraint("media_type IN ('image', 'video')", name='ck_step_media_type'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'step_id': self.step_id,
            'media_type': self.media_type,
            'media_url': self.media_url,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

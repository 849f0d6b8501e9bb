import uuid
from datetime import datetime, timezone
from sqlalchemy import Uuid
from app.extensions import db

TASK_PRIORITIES = ("low", "medium", "high")

class FarmTask(db.Model):
    __tablename__ = "farm_tasks"

    id = db.Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = db.Column(Uuid(as_uuid=True), db.ForeignKey('users.id'), nullable=False, index=True)
    crop_name = db.Column(db.String, nullable=True)
    task_type = db.Column(db.String, nullable=False)
    task_description = db.Column(db.Text, nullable=True)
    scheduled_date = db.Column(db.Date, nullable=False)
    priority = db.Column(db.String, default="medium", nullable=False)
    status = db.Column(db.String, default="pending", nullable=False)
    notes = db.Column(db.Text, nullable=True)
    completed_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    user = db.relationship('User', backref=db.backref('farm_tasks', lazy=True))

    def __repr__(self):
        return f"<FarmTask {self.id} - {self.task_type}>"

    def to_dict(self):
        return {
            "id": str(self.id),
            "user_id": str(self.user_id),
            "crop_name": self.crop_name,
            "task_type": self.task_type,
            "task_description": self.task_description,
            "scheduled_date": self.scheduled_date.isoformat() if self.scheduled_date else None,
            "priority": self.priority,
            "status": self.status,
            "notes": self.notes,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None
        }

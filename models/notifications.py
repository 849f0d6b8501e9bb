import uuid
from datetime import datetime, timezone
from sqlalchemy import Uuid
from app.extensions import db

class Notification(db.Model):
    __tablename__ = "notifications"

    id = db.Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = db.Column(Uuid(as_uuid=True), db.ForeignKey('users.id'), nullable=False, index=True)
    type = db.Column(db.String, nullable=False)
    title = db.Column(db.String, nullable=False)
    message = db.Column(db.Text, nullable=False)
    severity = db.Column(db.String, default="low", nullable=False)
    is_read = db.Column(db.Boolean, default=False, nullable=False)
    data = db.Column(db.JSON, nullable=True)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    user = db.relationship('User', backref=db.backref('notifications', lazy=True))

    def __repr__(self):
        return f"<Notification {self.id} - {self.title}>"

    def to_dict(self):
        return {
            "id": str(self.id),
            "user_id": str(self.user_id),
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "severity": self.severity,
            "is_read": self.is_read,
            "data": self.data,
            "created_at": self.created_at.isoformat() if self.created_at else None
        }

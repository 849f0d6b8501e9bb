import uuid
from datetime import datetime, timezone
from sqlalchemy import Uuid
from app.extensions import db

class Profile(db.Model):
    __tablename__ = "profiles"

    id = db.Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = db.Column(Uuid(as_uuid=True), db.ForeignKey('users.id'), unique=True, nullable=False)
    full_name = db.Column(db.String, nullable=True)
    phone = db.Column(db.String, nullable=True)
    location = db.Column(db.String, nullable=True)
    farm_size = db.Column(db.Float, nullable=True)
    soil_type = db.Column(db.String, nullable=True)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    user = db.relationship('User', backref=db.backref('profile', uselist=False, lazy=True))

    def __repr__(self):
        return f"<Profile {self.user_id}>"

    def to_dict(self):
        return {
            "id": str(self.id),
            "user_id": str(self.user_id),
            "full_name": self.full_name,
            "phone": self.phone,
            "location": self.location,
            "farm_size": self.farm_size,
            "soil_type": self.soil_type,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None
        }

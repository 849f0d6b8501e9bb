import uuid
from datetime import datetime, timezone
from sqlalchemy import Uuid
from app.extensions import db

GROWTH_STAGES = ("planning", "planted", "growing", "mature", "harvested")
CROP_STATUSES = ("active", "harvested", "failed")

class Crop(db.Model):
    __tablename__ = "crops"

    id = db.Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = db.Column(Uuid(as_uuid=True), db.ForeignKey('users.id'), nullable=False, index=True)
    name = db.Column(db.String, nullable=False)
    variety = db.Column(db.String, nullable=True)
    category = db.Column(db.String, nullable=True)
    planting_date = db.Column(db.Date, nullable=True)
    expected_harvest_date = db.Column(db.Date, nullable=True)
    growth_stage = db.Column(db.String, default="planning", nullable=False)
    field_location = db.Column(db.String, nullable=True)
    area_planted = db.Column(db.Float, nullable=True)
    notes = db.Column(db.Text, nullable=True)
    status = db.Column(db.String, default="active", nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    user = db.relationship('User', backref=db.backref('crops', lazy=True))

    def __repr__(self):
        return f"<Crop {self.id} - {self.name}>"

    def to_dict(self):
        return {
            "id": str(self.id),
            "user_id": str(self.user_id),
            "name": self.name,
            "variety": self.variety,
            "category": self.category,
            "planting_date": self.planting_date.isoformat() if self.planting_date else None,
            "expected_harvest_date": self.expected_harvest_date.isoformat() if self.expected_harvest_date else None,
            "growth_stage": self.growth_stage,
            "field_location": self.field_location,
            "area_planted": self.area_planted,
            "notes": self.notes,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None
        }

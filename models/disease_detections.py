import uuid
from datetime import datetime, timezone
from sqlalchemy import Uuid
from app.extensions import db

class DiseaseDetection(db.Model):
    __tablename__ = "disease_detections"

    id = db.Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = db.Column(Uuid(as_uuid=True), db.ForeignKey('users.id'), nullable=False, index=True)
    image_url = db.Column(db.String, nullable=False)
    crop_type = db.Column(db.String, nullable=True)
    detected_disease = db.Column(db.String, nullable=True)
    confidence_score = db.Column(db.Float, nullable=True)
    symptoms = db.Column(db.Text, nullable=True)
    treatment_recommendation = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    user = db.relationship('User', backref=db.backref('disease_detections', lazy=True))

    def __repr__(self):
        return f"<DiseaseDetection {self.id} - {self.detected_disease}>"

    def to_dict(self):
        return {
            "id": str(self.id),
            "user_id": str(self.user_id),
            "image_url": self.image_url,
            "crop_type": self.crop_type,
            "detected_disease": self.detected_disease,
            "confidence_score": self.confidence_score,
            "symptoms": self.symptoms,
            "treatment_recommendation": self.treatment_recommendation,
            "created_at": self.created_at.isoformat() if self.created_at else None
        }

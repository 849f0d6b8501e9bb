import uuid
from datetime import datetime, timezone
from sqlalchemy import Uuid
from app.extensions import db

class CropRecommendation(db.Model):
    __tablename__ = "crop_recommendations"

    id = db.Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = db.Column(Uuid(as_uuid=True), db.ForeignKey('users.id'), nullable=False, index=True)
    recommended_crop = db.Column(db.String, nullable=False)
    season = db.Column(db.String, nullable=True)
    avg_temperature = db.Column(db.Float, nullable=True)
    avg_rainfall = db.Column(db.Float, nullable=True)
    soil_type = db.Column(db.String, nullable=True)
    suitability_score = db.Column(db.Integer, nullable=False)
    recommendation_date = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    user = db.relationship('User', backref=db.backref('crop_recommendations', lazy=True))

    def __repr__(self):
        return f"<CropRecommendation {self.id} - {self.recommended_crop}>"

    def to_dict(self):
        return {
            "id": str(self.id),
            "user_id": str(self.user_id),
            "recommended_crop": self.recommended_crop,
            "season": self.season,
            "avg_temperature": self.avg_temperature,
            "avg_rainfall": self.avg_rainfall,
            "soil_type": self.soil_type,
            "suitability_score": self.suitability_score,
            "recommendation_date": self.recommendation_date.isoformat() if self.recommendation_date else None
        }

"""
User-scoped reads and writes. Every function takes the authenticated
subject first and filters on it, so a row owned by someone else is
indistinguishable from a missing one.
"""
import logging
import uuid
from datetime import datetime, timedelta, timezone

from app.errors import NotFoundError, ValidationError
from app.extensions import db
from models.crop_recommendations import CropRecommendation
from models.crops import Crop
from models.disease_detections import DiseaseDetection
from models.farm_tasks import FarmTask
from models.notifications import Notification
from models.profiles import Profile
from models.soil_tests import SoilTest

logger = logging.getLogger(__name__)


def parse_id(value):
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        raise NotFoundError()


def _owned(model, user_id, record_id, label):
    record = model.query.filter_by(id=parse_id(record_id), user_id=user_id).first()
    if record is None:
        raise NotFoundError(f"{label} not found")
    return record


def _commit(*records):
    for record in records:
        db.session.add(record)
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise


# Profile

def get_profile(user_id):
    return Profile.query.filter_by(user_id=user_id).first()


def upsert_profile(user_id, data):
    profile = get_profile(user_id) or Profile(user_id=user_id)
    for field, value in data.items():
        setattr(profile, field, value)
    _commit(profile)
    return profile


# Soil tests

def create_soil_test(user_id, data):
    soil_test = SoilTest(user_id=user_id, **{k: v for k, v in data.items() if v is not None})
    _commit(soil_test)
    logger.info("Saved soil test %s for user %s", soil_test.id, user_id)
    return soil_test


def list_soil_tests(user_id):
    return (SoilTest.query.filter_by(user_id=user_id)
            .order_by(SoilTest.test_date.desc(), SoilTest.created_at.desc())
            .all())


def latest_soil_test(user_id):
    return (SoilTest.query.filter_by(user_id=user_id)
            .order_by(SoilTest.test_date.desc(), SoilTest.created_at.desc())
            .first())


def get_soil_test(user_id, soil_test_id):
    return _owned(SoilTest, user_id, soil_test_id, "Soil test")


# Crops

def create_crop(user_id, data):
    crop = Crop(user_id=user_id, **data)
    _commit(crop)
    return crop


def list_crops(user_id, status=None):
    query = Crop.query.filter_by(user_id=user_id)
    if status:
        query = query.filter_by(status=status)
    return query.order_by(Crop.created_at.desc()).all()


def get_crop(user_id, crop_id):
    return _owned(Crop, user_id, crop_id, "Crop")


def update_crop(user_id, crop_id, changes):
    crop = get_crop(user_id, crop_id)
    for field, value in changes.items():
        setattr(crop, field, value)
    _commit(crop)
    return crop


def delete_crop(user_id, crop_id):
    crop = get_crop(user_id, crop_id)
    db.session.delete(crop)
    db.session.commit()


# Crop recommendations

def save_recommendations(user_id, recommendations):
    # rows of one batch share a timestamp
    now = datetime.now(timezone.utc)
    rows = [
        CropRecommendation(
            user_id=user_id,
            recommended_crop=rec["recommended_crop"],
            season=rec.get("season"),
            avg_temperature=rec.get("avg_temperature"),
            avg_rainfall=rec.get("avg_rainfall"),
            soil_type=rec.get("soil_type"),
            suitability_score=rec["suitability_score"],
            recommendation_date=now,
        )
        for rec in recommendations
    ]
    if rows:
        _commit(*rows)
    return rows


def list_recommendations(user_id):
    return (CropRecommendation.query.filter_by(user_id=user_id)
            .order_by(CropRecommendation.recommendation_date.desc(),
                      CropRecommendation.suitability_score.desc())
            .all())


# Farm tasks

def create_task(user_id, data):
    task = FarmTask(user_id=user_id, status="pending", **data)
    _commit(task)
    return task


def create_task_from_activity(user_id, crop, activity):
    """Schedule one cultivation-plan activity relative to the crop's planting date."""
    if crop.planting_date is None:
        raise ValidationError("Crop has no planting date")
    day_number = activity["day_number"]
    resources = activity.get("required_resources") or []
    task = FarmTask(
        user_id=user_id,
        crop_name=crop.name,
        task_type=activity["activity"],
        task_description=activity.get("description"),
        scheduled_date=crop.planting_date + timedelta(days=day_number - 1),
        priority="high" if day_number <= 30 else "medium",
        notes=f"Resources: {', '.join(resources)}",
        status="pending",
    )
    _commit(task)
    return task


def list_tasks(user_id, status=None):
    query = FarmTask.query.filter_by(user_id=user_id)
    if status:
        query = query.filter_by(status=status)
    return query.order_by(FarmTask.scheduled_date.asc()).all()


def toggle_task(user_id, task_id):
    task = _owned(FarmTask, user_id, task_id, "Task")
    if task.status == "completed":
        task.status = "pending"
        task.completed_at = None
    else:
        task.status = "completed"
        task.completed_at = datetime.now(timezone.utc)
    _commit(task)
    return task


def delete_task(user_id, task_id):
    task = _owned(FarmTask, user_id, task_id, "Task")
    db.session.delete(task)
    db.session.commit()


# Disease detections

def create_disease_detection(user_id, image_url, crop_type, diagnosis):
    detection = DiseaseDetection(
        user_id=user_id,
        image_url=image_url,
        crop_type=crop_type,
        detected_disease=diagnosis.get("detectedDisease"),
        confidence_score=diagnosis.get("confidenceScore"),
        symptoms=diagnosis.get("symptoms"),
        treatment_recommendation=diagnosis.get("treatmentRecommendation"),
    )
    _commit(detection)
    return detection


def list_disease_detections(user_id):
    return (DiseaseDetection.query.filter_by(user_id=user_id)
            .order_by(DiseaseDetection.created_at.desc())
            .all())


# Notifications

def create_notifications(user_id, notifications):
    rows = [Notification(user_id=user_id, is_read=False, **notification) for notification in notifications]
    if rows:
        _commit(*rows)
    return rows


def list_notifications(user_id, unread_only=False):
    query = Notification.query.filter_by(user_id=user_id)
    if unread_only:
        query = query.filter_by(is_read=False)
    return query.order_by(Notification.created_at.desc()).all()


def mark_notification_read(user_id, notification_id):
    notification = _owned(Notification, user_id, notification_id, "Notification")
    notification.is_read = True
    _commit(notification)
    return notification


def mark_all_notifications_read(user_id):
    updated = (Notification.query.filter_by(user_id=user_id, is_read=False)
               .update({"is_read": True}))
    db.session.commit()
    return updated


def delete_notification(user_id, notification_id):
    notification = _owned(Notification, user_id, notification_id, "Notification")
    db.session.delete(notification)
    db.session.commit()

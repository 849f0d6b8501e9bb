"""
Request schemas for every endpoint.

Bodies are validated into these models before any handler touches a field.
Unknown keys are rejected and strings are stripped before length checks.
"""
import re
from datetime import date
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, field_validator
from pydantic import ValidationError as SchemaError

from app.errors import AuthorizationError, ValidationError
from models.crops import CROP_STATUSES, GROWTH_STAGES
from models.farm_tasks import TASK_PRIORITIES

ISO_DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"
PLAN_DATE_WINDOW_YEARS = 5
UNSAFE_TEXT_PATTERN = re.compile(r"<script|javascript:|on\w+=", re.IGNORECASE)


def _shift_years(day, years):
    try:
        return day.replace(year=day.year + years)
    except ValueError:
        # 29 February in a non-leap target year
        return day.replace(year=day.year + years, day=28)


def within_years(day, years=PLAN_DATE_WINDOW_YEARS, today=None):
    today = today or date.today()
    return _shift_years(today, -years) <= day <= _shift_years(today, years)


class Schema(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


class RegisterRequest(Schema):
    email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    password: str = Field(..., min_length=6, max_length=128)
    full_name: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, min_length=10, max_length=15)
    location: Optional[str] = Field(None, max_length=200)
    farm_size: Optional[float] = Field(None, ge=0, le=100000)
    soil_type: Optional[str] = Field(None, max_length=50)


class LoginRequest(Schema):
    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=128)


class ProfileUpsert(Schema):
    full_name: str = Field(..., min_length=1, max_length=100)
    phone: Optional[str] = Field(None, min_length=10, max_length=15)
    location: str = Field(..., min_length=1, max_length=200)
    farm_size: Optional[float] = Field(None, ge=0, le=100000)
    soil_type: str = Field(..., min_length=1, max_length=50)


class SoilTestCreate(Schema):
    location: str = Field(..., min_length=1, max_length=200)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    ph_level: Optional[float] = Field(None, ge=0, le=14)
    nitrogen_level: Optional[float] = Field(None, ge=0, le=1000)
    phosphorus_level: Optional[float] = Field(None, ge=0, le=1000)
    potassium_level: Optional[float] = Field(None, ge=0, le=1000)
    organic_matter_percentage: Optional[float] = Field(None, ge=0, le=100)
    soil_type: str = Field(..., min_length=1, max_length=50)
    soil_texture: str = Field(..., min_length=1, max_length=50)
    drainage_quality: str = Field(..., min_length=1, max_length=50)
    test_date: Optional[date] = None
    notes: Optional[str] = Field(None, max_length=1000)


GrowthStage = Literal[GROWTH_STAGES]
CropStatus = Literal[CROP_STATUSES]
Priority = Literal[TASK_PRIORITIES]


class CropCreate(Schema):
    name: str = Field(..., min_length=1, max_length=100)
    variety: Optional[str] = Field(None, max_length=100)
    category: Optional[str] = Field(None, max_length=50)
    planting_date: Optional[date] = None
    expected_harvest_date: Optional[date] = None
    growth_stage: GrowthStage = "planning"
    field_location: Optional[str] = Field(None, max_length=200)
    area_planted: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = Field(None, max_length=1000)
    status: CropStatus = "active"


class CropUpdate(Schema):
    growth_stage: Optional[GrowthStage] = None
    status: Optional[CropStatus] = None
    expected_harvest_date: Optional[date] = None
    notes: Optional[str] = Field(None, max_length=1000)


class FarmTaskCreate(Schema):
    task_type: str = Field(..., min_length=1, max_length=50)
    task_description: str = Field(..., min_length=1, max_length=500)
    scheduled_date: date
    priority: Priority = "medium"
    crop_name: Optional[str] = Field(None, min_length=1, max_length=100)
    notes: Optional[str] = Field(None, max_length=1000)

    @field_validator("priority", mode="before")
    @classmethod
    def lowercase_priority(cls, value):
        return value.lower() if isinstance(value, str) else value


class CultivationActivity(Schema):
    day_number: int = Field(..., ge=1)
    activity: str = Field(..., min_length=1, max_length=200)
    description: str = Field("", max_length=2000)
    required_resources: List[str] = Field(default_factory=list)
    estimated_duration: Optional[str] = Field(None, max_length=100)


class PlanActivityToCalendar(Schema):
    crop_id: UUID
    activity: CultivationActivity


class RecommendationRequest(Schema):
    soil_test_id: Optional[UUID] = None


class WeatherRequest(Schema):
    location: str = Field(..., min_length=1, max_length=100)


class DiseaseAnalysisRequest(Schema):
    imageUrls: List[HttpUrl] = Field(..., min_length=1, max_length=5)
    cropType: str = Field(..., min_length=1, max_length=30)

    @property
    def image_urls(self):
        return [str(url) for url in self.imageUrls]


class CropPlanRequest(Schema):
    cropName: str = Field(..., min_length=1, max_length=50)
    variety: Optional[str] = Field(None, max_length=50)
    plantingDate: str = Field(..., pattern=ISO_DATE_PATTERN)
    expectedHarvestDate: str = Field(..., pattern=ISO_DATE_PATTERN)
    soilType: str = Field(..., max_length=50)
    location: str = Field(..., max_length=100)

    @field_validator("plantingDate", "expectedHarvestDate")
    @classmethod
    def date_within_window(cls, value):
        try:
            day = date.fromisoformat(value)
        except ValueError:
            raise ValueError("must be a valid calendar date")
        if not within_years(day):
            raise ValueError(f"must be within {PLAN_DATE_WINDOW_YEARS} years of today")
        return value


class WeatherNotificationRequest(Schema):
    user_id: UUID
    location: Optional[str] = Field(None, min_length=1, max_length=100)

    @field_validator("location")
    @classmethod
    def no_markup(cls, value):
        if value is not None and UNSAFE_TEXT_PATTERN.search(value):
            raise ValueError("contains invalid characters")
        return value


def validate_body(schema, data):
    """Build `schema` from a request body or raise ValidationError with per-field details."""
    if not isinstance(data, dict):
        raise ValidationError("Invalid request body")
    try:
        return schema.model_validate(data)
    except SchemaError as e:
        details = [
            {
                "field": ".".join(str(part) for part in err["loc"]) or "body",
                "message": err["msg"]
            }
            for err in e.errors()
        ]
        raise ValidationError("Invalid request", details=details)


def ensure_same_subject(payload_user_id, subject_id):
    if str(payload_user_id) != str(subject_id):
        raise AuthorizationError()

import logging

from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import get_jwt, get_jwt_identity, jwt_required

from app.errors import RateLimitExceededError, ValidationError
from app.services import persistence_service as store
from app.services.auth_service import current_user_id, login_user, logout_token, refresh_access_token, register_user
from app.services.recommendation_engine import recommend
from app.services.storage_service import is_owned_url, save_images
from app.services.weather_service import derive_alerts
from app.validators import (
    CropCreate,
    CropPlanRequest,
    CropUpdate,
    DiseaseAnalysisRequest,
    FarmTaskCreate,
    LoginRequest,
    PlanActivityToCalendar,
    ProfileUpsert,
    RecommendationRequest,
    RegisterRequest,
    SoilTestCreate,
    WeatherNotificationRequest,
    WeatherRequest,
    ensure_same_subject,
    validate_body,
)

logger = logging.getLogger(__name__)

main_bp = Blueprint("main", __name__)


def _json_body():
    return request.get_json(silent=True)


def _claude_service():
    return current_app.extensions["claude_service"]


def _weather_service():
    return current_app.extensions["weather_service"]


def _enforce_rate_limit(user_id, action):
    allowed, retry_after = current_app.extensions["rate_limiter"].check(f"{action}:{user_id}")
    if not allowed:
        logger.warning("Rate limit hit for user %s on %s", user_id, action)
        raise RateLimitExceededError(retry_after=retry_after)


@main_bp.route("/", methods=["GET"])
def index():
    return jsonify({"message": "API is working!"})


# Authentication

@main_bp.route('/authentication/register', methods=['POST'])
def register_user_route():
    data = validate_body(RegisterRequest, _json_body())
    result = register_user(data.model_dump())

    if result.get('status') == 201:
        return jsonify(result), 201
    return jsonify({"error": result['message']}), result['status']


@main_bp.route('/authentication/login', methods=['POST'])
def login_user_route():
    data = validate_body(LoginRequest, _json_body())
    result = login_user(data.model_dump())

    if result.get('status') == 200:
        return jsonify(result), 200
    return jsonify({"error": result['message']}), result['status']


@main_bp.route('/authentication/refresh', methods=['POST'])
@jwt_required(refresh=True)
def refresh_token_route():
    new_access_token = refresh_access_token(get_jwt_identity())
    if new_access_token:
        return jsonify({"access_token": new_access_token}), 200
    return jsonify({"error": "User not found"}), 404


@main_bp.route('/authentication/logout', methods=['POST'])
@jwt_required()
def logout_route():
    logout_token(get_jwt())
    return jsonify({"msg": "Successfully logged out"}), 200


# Profile

@main_bp.route("/profile", methods=["GET"])
@jwt_required()
def get_profile():
    profile = store.get_profile(current_user_id())
    if not profile:
        return jsonify({"error": "Profile not found"}), 404
    return jsonify(profile.to_dict())


@main_bp.route("/profile", methods=["PUT"])
@jwt_required()
def upsert_profile():
    data = validate_body(ProfileUpsert, _json_body())
    profile = store.upsert_profile(current_user_id(), data.model_dump())
    return jsonify(profile.to_dict())


# Soil tests

@main_bp.route("/soil-tests", methods=["POST"])
@jwt_required()
def create_soil_test():
    data = validate_body(SoilTestCreate, _json_body())
    soil_test = store.create_soil_test(current_user_id(), data.model_dump())
    return jsonify(soil_test.to_dict()), 201


@main_bp.route("/soil-tests", methods=["GET"])
@jwt_required()
def list_soil_tests():
    return jsonify([s.to_dict() for s in store.list_soil_tests(current_user_id())])


@main_bp.route("/soil-tests/latest", methods=["GET"])
@jwt_required()
def latest_soil_test():
    soil_test = store.latest_soil_test(current_user_id())
    if not soil_test:
        return jsonify({"error": "No soil tests recorded yet"}), 404
    return jsonify(soil_test.to_dict())


@main_bp.route("/soil-tests/<soil_test_id>", methods=["GET"])
@jwt_required()
def get_soil_test(soil_test_id):
    return jsonify(store.get_soil_test(current_user_id(), soil_test_id).to_dict())


# Crops

@main_bp.route("/crops", methods=["POST"])
@jwt_required()
def create_crop():
    data = validate_body(CropCreate, _json_body())
    crop = store.create_crop(current_user_id(), data.model_dump())
    return jsonify(crop.to_dict()), 201


@main_bp.route("/crops", methods=["GET"])
@jwt_required()
def list_crops():
    crops = store.list_crops(current_user_id(), status=request.args.get("status"))
    return jsonify([c.to_dict() for c in crops])


@main_bp.route("/crops/<crop_id>", methods=["PATCH"])
@jwt_required()
def update_crop(crop_id):
    data = validate_body(CropUpdate, _json_body())
    crop = store.update_crop(current_user_id(), crop_id, data.model_dump(exclude_unset=True))
    return jsonify(crop.to_dict())


@main_bp.route("/crops/<crop_id>", methods=["DELETE"])
@jwt_required()
def delete_crop(crop_id):
    store.delete_crop(current_user_id(), crop_id)
    return "", 204


# Farm tasks

@main_bp.route("/tasks", methods=["POST"])
@jwt_required()
def create_task():
    data = validate_body(FarmTaskCreate, _json_body())
    task = store.create_task(current_user_id(), data.model_dump())
    return jsonify(task.to_dict()), 201


@main_bp.route("/tasks", methods=["GET"])
@jwt_required()
def list_tasks():
    tasks = store.list_tasks(current_user_id(), status=request.args.get("status"))
    return jsonify([t.to_dict() for t in tasks])


@main_bp.route("/tasks/from-plan", methods=["POST"])
@jwt_required()
def add_plan_activity_to_calendar():
    """Add one generated cultivation activity to the task calendar."""
    user_id = current_user_id()
    data = validate_body(PlanActivityToCalendar, _json_body())
    crop = store.get_crop(user_id, data.crop_id)
    task = store.create_task_from_activity(user_id, crop, data.activity.model_dump())
    return jsonify(task.to_dict()), 201


@main_bp.route("/tasks/<task_id>/toggle", methods=["POST"])
@jwt_required()
def toggle_task(task_id):
    return jsonify(store.toggle_task(current_user_id(), task_id).to_dict())


@main_bp.route("/tasks/<task_id>", methods=["DELETE"])
@jwt_required()
def delete_task(task_id):
    store.delete_task(current_user_id(), task_id)
    return "", 204


# Crop recommendations

@main_bp.route("/recommendations", methods=["POST"])
@jwt_required()
def create_recommendations():
    """Run the soil rules on the latest (or given) soil test and store the matches."""
    user_id = current_user_id()
    data = validate_body(RecommendationRequest, _json_body() or {})

    if data.soil_test_id:
        soil_test = store.get_soil_test(user_id, data.soil_test_id)
    else:
        soil_test = store.latest_soil_test(user_id)
    if soil_test is None:
        return jsonify({
            "recommendations": [],
            "message": "Add a soil test to get crop recommendations."
        })

    recommendations = recommend(soil_test)
    if not recommendations:
        return jsonify({
            "recommendations": [],
            "soil_test_id": str(soil_test.id),
            "message": "No crops match this soil profile yet. Try another soil test."
        })

    rows = store.save_recommendations(user_id, recommendations)
    for rec, row in zip(recommendations, rows):
        rec["id"] = str(row.id)
    return jsonify({"recommendations": recommendations, "soil_test_id": str(soil_test.id)}), 201


@main_bp.route("/recommendations", methods=["GET"])
@jwt_required()
def list_recommendations():
    return jsonify([r.to_dict() for r in store.list_recommendations(current_user_id())])


# Storage

@main_bp.route("/storage/<bucket>", methods=["POST"])
@jwt_required()
def upload_images(bucket):
    files = [f for f in request.files.getlist("images") if f and f.filename]
    urls = save_images(current_user_id(), bucket, files)
    return jsonify({"urls": urls}), 201


# Disease detection

@main_bp.route("/analyze-disease", methods=["POST"])
@jwt_required()
def analyze_disease():
    user_id = current_user_id()
    data = validate_body(DiseaseAnalysisRequest, _json_body())
    image_urls = data.image_urls

    foreign = [url for url in image_urls if not is_owned_url(url, user_id)]
    if foreign:
        raise ValidationError(
            "Image URLs must point to your own storage",
            details=[{"field": "imageUrls", "message": f"not in your storage: {url}"} for url in foreign]
        )

    _enforce_rate_limit(user_id, "analyze-disease")
    diagnosis = _claude_service().analyze_disease(image_urls, data.cropType)
    store.create_disease_detection(user_id, image_urls[0], data.cropType, diagnosis)
    return jsonify(diagnosis)


@main_bp.route("/disease-detections", methods=["GET"])
@jwt_required()
def list_disease_detections():
    return jsonify([d.to_dict() for d in store.list_disease_detections(current_user_id())])


# Cultivation plan

@main_bp.route("/generate-crop-plan", methods=["POST"])
@jwt_required()
def generate_crop_plan():
    user_id = current_user_id()
    data = validate_body(CropPlanRequest, _json_body())
    _enforce_rate_limit(user_id, "generate-crop-plan")

    plan = _claude_service().generate_cultivation_plan(
        crop_name=data.cropName,
        variety=data.variety,
        planting_date=data.plantingDate,
        harvest_date=data.expectedHarvestDate,
        soil_type=data.soilType,
        location=data.location,
    )
    return jsonify({"plan": plan})


# Weather

@main_bp.route("/weather", methods=["POST"])
@jwt_required()
def get_weather():
    data = validate_body(WeatherRequest, _json_body())
    return jsonify(_weather_service().get_weather(data.location))


@main_bp.route("/weather/notifications", methods=["POST"])
@jwt_required()
def weather_notifications():
    """Fetch weather for the user's location and store one notification per alert."""
    user_id = current_user_id()
    data = validate_body(WeatherNotificationRequest, _json_body())
    ensure_same_subject(data.user_id, user_id)
    _enforce_rate_limit(user_id, "weather-notifications")

    location = data.location
    if not location:
        profile = store.get_profile(user_id)
        location = (profile.location if profile and profile.location else None) \
            or current_app.config["DEFAULT_WEATHER_LOCATION"]

    logger.info("Fetching weather notifications for user %s at %s", user_id, location)
    weather = _weather_service().get_weather(location)
    alerts = derive_alerts(weather)
    store.create_notifications(user_id, alerts)

    return jsonify({
        "success": True,
        "weather_data": weather,
        "notifications_sent": len(alerts),
        "location": weather["location"]["name"]
    })


# Notifications

@main_bp.route("/notifications", methods=["GET"])
@jwt_required()
def list_notifications():
    unread_only = request.args.get("unread", "").lower() in ["true", "1", "yes"]
    notifications = store.list_notifications(current_user_id(), unread_only=unread_only)
    return jsonify([n.to_dict() for n in notifications])


@main_bp.route("/notifications/read-all", methods=["POST"])
@jwt_required()
def mark_all_notifications_read():
    updated = store.mark_all_notifications_read(current_user_id())
    return jsonify({"updated": updated})


@main_bp.route("/notifications/<notification_id>/read", methods=["POST"])
@jwt_required()
def mark_notification_read(notification_id):
    return jsonify(store.mark_notification_read(current_user_id(), notification_id).to_dict())


@main_bp.route("/notifications/<notification_id>", methods=["DELETE"])
@jwt_required()
def delete_notification(notification_id):
    store.delete_notification(current_user_id(), notification_id)
    return "", 204

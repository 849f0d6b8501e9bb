import json
import logging
import re

import anthropic
from flask import current_app

from app.errors import ParseError, UpstreamBillingError, UpstreamGenericError, UpstreamRateLimitError

logger = logging.getLogger(__name__)

JSON_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")
JSON_ARRAY_PATTERN = re.compile(r"\[[\s\S]*\]")

DIAGNOSIS_KEYS = ("detectedDisease", "confidenceScore", "symptoms", "treatmentRecommendation", "preventionMethods")
ACTIVITY_KEYS = ("day_number", "activity", "description", "required_resources", "estimated_duration")

DISEASE_PROMPT = """You are an expert agricultural pathologist. Analyze these {crop_type} plant images for diseases, pests, or health issues. All images show the same plant or field.

Provide your analysis as a JSON object with these exact keys:
- detectedDisease: string (disease name or "Healthy" if no disease)
- confidenceScore: number (0-100)
- symptoms: string (describe what you observe in detail)
- treatmentRecommendation: string (specific treatment advice with 2-3 actionable steps)
- preventionMethods: string (2-3 prevention strategies)

Return ONLY the JSON object, no additional text."""

PLAN_SYSTEM_PROMPT = """You are an expert agricultural advisor. Generate a comprehensive day-by-day cultivation plan for crops. Return a JSON array of activities with this structure:
[{
  "day_number": 1,
  "activity": "Activity name",
  "description": "Detailed description",
  "required_resources": ["resource1", "resource2"],
  "estimated_duration": "2 hours"
}]

Guidelines:
- Start from day 1 (planting day)
- Include all critical activities: land preparation, planting, irrigation, fertilization, pest control, monitoring, harvesting
- Space activities realistically throughout the growing period
- Be specific about quantities and methods
- Include preventive measures
- Return ONLY the JSON array, no other text"""

PLAN_USER_PROMPT = """Generate a complete cultivation plan for:
Crop: {crop}
Planting Date: {planting_date}
Expected Harvest: {harvest_date}
Soil Type: {soil_type}
Location: {location}

Calculate the total growing days and distribute activities appropriately. Include:
1. Pre-planting activities (days 1-7)
2. Planting activities (day 7-10)
3. Early growth care (first month)
4. Mid-season management
5. Pre-harvest preparation
6. Harvest activities"""


def no_json_fallback(content):
    """Result used when the model answered in prose with no JSON object at all."""
    return {
        "detectedDisease": "Analysis completed",
        "confidenceScore": 75,
        "symptoms": content[:200],
        "treatmentRecommendation": "Please consult with a local agricultural expert for specific treatment recommendations.",
        "preventionMethods": "Maintain proper plant spacing, ensure good drainage, and monitor regularly for early signs of disease."
    }


def invalid_json_fallback(content):
    """Result used when the model produced something JSON-like that does not parse."""
    return {
        "detectedDisease": "Analysis completed",
        "confidenceScore": 70,
        "symptoms": "Image analysis completed. Please review the recommendations.",
        "treatmentRecommendation": content[:200] + "..." if len(content) > 100 else content,
        "preventionMethods": "Follow standard agricultural best practices for this crop type."
    }


def _clamp_score(value):
    if isinstance(value, str):
        value = value.strip().rstrip("%")
    try:
        score = float(value)
    except (TypeError, ValueError):
        return 0
    score = max(0, min(100, score))
    return int(score) if float(score).is_integer() else score


def parse_diagnosis(content):
    """
    Turn raw model text into a diagnosis dict. First try the outermost
    {...} span as JSON; otherwise synthesize one of the two fallbacks.
    """
    match = JSON_OBJECT_PATTERN.search(content)
    if not match:
        logger.warning("Disease analysis returned no JSON object; using text fallback")
        return no_json_fallback(content)

    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        logger.warning("Disease analysis JSON did not parse: %s", e)
        return invalid_json_fallback(content)
    if not isinstance(parsed, dict):
        logger.warning("Disease analysis JSON was not an object")
        return invalid_json_fallback(content)

    defaults = no_json_fallback(content)
    result = {key: parsed.get(key, defaults[key]) for key in DIAGNOSIS_KEYS}
    result["confidenceScore"] = _clamp_score(result["confidenceScore"])
    return result


def parse_cultivation_plan(content):
    """Extract the outermost [...] span as a list of activities; anything else is a ParseError."""
    match = JSON_ARRAY_PATTERN.search(content)
    if not match:
        raise ParseError("Failed to parse AI response")
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        logger.error("Cultivation plan JSON did not parse: %s", e)
        raise ParseError("Failed to parse AI response")
    if not isinstance(parsed, list) or not all(isinstance(item, dict) for item in parsed):
        raise ParseError("AI response was not a list of activities")

    plan = []
    for item in parsed:
        try:
            day_number = int(item.get("day_number"))
        except (TypeError, ValueError):
            raise ParseError("Activity is missing a valid day_number")
        resources = item.get("required_resources") or []
        if isinstance(resources, str):
            resources = [resources]
        plan.append({
            "day_number": day_number,
            "activity": item.get("activity") or "",
            "description": item.get("description") or "",
            "required_resources": [str(r) for r in resources],
            "estimated_duration": item.get("estimated_duration"),
        })
    # sorted() is stable, so same-day activities keep the model's order
    return sorted(plan, key=lambda activity: activity["day_number"])


class ClaudeService:
    def __init__(self, client=None):
        self.client = client

    def _get_client(self):
        if not self.client:
            api_key = current_app.config.get('CLAUDE_API_KEY')
            if not api_key:
                raise ValueError("CLAUDE_API_KEY not configured")
            self.client = anthropic.Anthropic(
                api_key=api_key
            )
        return self.client

    def _create_message(self, **kwargs):
        """Send one request upstream and relabel provider failures."""
        client = self._get_client()
        try:
            response = client.messages.create(**kwargs)
        except anthropic.RateLimitError as e:
            logger.error("AI API rate limited: %s", e)
            raise UpstreamRateLimitError()
        except anthropic.APIStatusError as e:
            logger.error("AI API error %s: %s", e.status_code, e.response.text if e.response is not None else e)
            if e.status_code == 402:
                raise UpstreamBillingError()
            raise UpstreamGenericError(f"AI API error: {e.status_code}")
        except anthropic.APIConnectionError as e:
            logger.error("AI API unreachable: %s", e)
            raise UpstreamGenericError()

        text_blocks = [block.text for block in response.content or [] if getattr(block, "text", None)]
        if not text_blocks:
            raise UpstreamGenericError("No analysis result from AI")
        logger.info(
            "AI call used %s input / %s output tokens",
            response.usage.input_tokens,
            response.usage.output_tokens,
        )
        return "".join(text_blocks)

    def analyze_disease(self, image_urls, crop_type, model=None, max_tokens=1000):
        model = model or current_app.config.get('CLAUDE_VISION_MODEL')
        logger.info("Analyzing disease for crop %s with %d image(s)", crop_type, len(image_urls))

        content = [{"type": "text", "text": DISEASE_PROMPT.format(crop_type=crop_type or "crop")}]
        for url in image_urls:
            content.append({
                "type": "image",
                "source": {
                    "type": "url",
                    "url": url
                }
            })

        raw = self._create_message(
            model=model,
            max_tokens=max_tokens,
            messages=[
                {"role": "user", "content": content}
            ]
        )
        logger.debug("Raw disease analysis response: %s", raw)
        return parse_diagnosis(raw)

    def generate_cultivation_plan(self, crop_name, planting_date, harvest_date, soil_type, location,
                                  variety=None, model=None, max_tokens=None):
        model = model or current_app.config.get('CLAUDE_PLAN_MODEL')
        max_tokens = max_tokens or current_app.config.get('CLAUDE_MAX_TOKENS', 4000)
        crop = f"{crop_name} ({variety})" if variety else crop_name

        raw = self._create_message(
            model=model,
            max_tokens=max_tokens,
            temperature=0.7,
            system=PLAN_SYSTEM_PROMPT,
            messages=[
                {"role": "user", "content": PLAN_USER_PROMPT.format(
                    crop=crop,
                    planting_date=planting_date,
                    harvest_date=harvest_date,
                    soil_type=soil_type or "unknown",
                    location=location or "unknown",
                )}
            ]
        )
        plan = parse_cultivation_plan(raw)
        logger.info("Generated %d cultivation activities for %s", len(plan), crop)
        return plan

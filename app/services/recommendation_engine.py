"""
Soil to crop recommendation rules.

A fixed decision table: each rule is a conjunctive predicate over a soil
test plus a suitability score, the crop's usual season and climate, and a
weekly cultivation plan. `recommend` is pure; the caller persists the result.
"""

MAX_RECOMMENDATIONS = 3


def _get(soil, field):
    if isinstance(soil, dict):
        return soil.get(field)
    return getattr(soil, field, None)


def _between(value, low, high):
    return value is not None and low <= value <= high


def _at_least(value, minimum):
    return value is not None and value >= minimum


def _soil_type_has(soil, *fragments):
    soil_type = (_get(soil, "soil_type") or "").lower()
    return any(fragment in soil_type for fragment in fragments)


CROP_RULES = [
    {
        "crop": "Wheat",
        "score": 90,
        "season": "Rabi (Winter)",
        "avg_temperature": 20.0,
        "avg_rainfall": 500.0,
        "matches": lambda s: (
            _soil_type_has(s, "loam")
            and _between(_get(s, "ph_level"), 6.0, 7.5)
            and _at_least(_get(s, "nitrogen_level"), 40)
        ),
        "plan": [
            {"week": 1, "activity": "Land preparation", "description": "Plough twice and level the field; incorporate farmyard manure."},
            {"week": 2, "activity": "Sowing", "description": "Drill treated seed at 100 kg/ha in rows 20 cm apart."},
            {"week": 4, "activity": "First irrigation", "description": "Irrigate at crown root initiation stage."},
            {"week": 6, "activity": "Top dressing", "description": "Apply half of the nitrogen dose as urea after irrigation."},
            {"week": 8, "activity": "Weed control", "description": "Hand weed or spray a selective herbicide."},
            {"week": 12, "activity": "Flowering irrigation", "description": "Irrigate at flowering and watch for rust."},
            {"week": 16, "activity": "Harvest", "description": "Harvest when grains are hard and straw turns golden."},
        ],
    },
    {
        "crop": "Rice",
        "score": 85,
        "season": "Kharif (Monsoon)",
        "avg_temperature": 27.0,
        "avg_rainfall": 1500.0,
        "matches": lambda s: (
            _soil_type_has(s, "clay")
            and _between(_get(s, "ph_level"), 5.5, 7.0)
            and _at_least(_get(s, "nitrogen_level"), 40)
        ),
        "plan": [
            {"week": 1, "activity": "Nursery sowing", "description": "Sow pre-germinated seed on raised nursery beds."},
            {"week": 3, "activity": "Puddling", "description": "Flood and puddle the main field to reduce percolation."},
            {"week": 4, "activity": "Transplanting", "description": "Transplant 21-day seedlings, 2-3 per hill at 20x15 cm."},
            {"week": 6, "activity": "Top dressing", "description": "Apply nitrogen at tillering; keep 5 cm standing water."},
            {"week": 10, "activity": "Pest scouting", "description": "Check for stem borer and leaf folder; treat if above threshold."},
            {"week": 14, "activity": "Drain field", "description": "Drain water two weeks before harvest."},
            {"week": 16, "activity": "Harvest", "description": "Harvest when 80% of grains are straw coloured."},
        ],
    },
    {
        "crop": "Tomato",
        "score": 80,
        "season": "Summer",
        "avg_temperature": 24.0,
        "avg_rainfall": 600.0,
        "matches": lambda s: (
            _between(_get(s, "ph_level"), 6.0, 7.0)
            and _at_least(_get(s, "organic_matter_percentage"), 2.5)
        ),
        "plan": [
            {"week": 1, "activity": "Nursery", "description": "Raise seedlings in trays with sterilised media."},
            {"week": 4, "activity": "Transplanting", "description": "Transplant at 60x45 cm on raised beds in the evening."},
            {"week": 5, "activity": "Staking", "description": "Stake plants and start drip irrigation."},
            {"week": 7, "activity": "Fertigation", "description": "Apply NPK through drip weekly."},
            {"week": 9, "activity": "Disease watch", "description": "Scout for early blight and leaf curl; remove infected leaves."},
            {"week": 12, "activity": "Harvest", "description": "Pick fruits at breaker stage every 3-4 days."},
        ],
    },
    {
        "crop": "Maize",
        "score": 75,
        "season": "Kharif (Monsoon)",
        "avg_temperature": 25.0,
        "avg_rainfall": 700.0,
        "matches": lambda s: (
            _soil_type_has(s, "loam", "sand")
            and _between(_get(s, "ph_level"), 5.8, 7.0)
            and _at_least(_get(s, "nitrogen_level"), 30)
        ),
        "plan": [
            {"week": 1, "activity": "Land preparation", "description": "Deep plough and form ridges."},
            {"week": 2, "activity": "Sowing", "description": "Dibble seed at 60x20 cm on ridges."},
            {"week": 5, "activity": "Earthing up", "description": "Earth up and apply the second nitrogen split."},
            {"week": 8, "activity": "Tasseling irrigation", "description": "Irrigate at tasseling and silking."},
            {"week": 14, "activity": "Harvest", "description": "Harvest when husks dry and kernels dent."},
        ],
    },
    {
        "crop": "Potato",
        "score": 70,
        "season": "Rabi (Winter)",
        "avg_temperature": 18.0,
        "avg_rainfall": 500.0,
        "matches": lambda s: (
            _soil_type_has(s, "loam", "sand")
            and _between(_get(s, "ph_level"), 5.0, 6.5)
            and _at_least(_get(s, "organic_matter_percentage"), 2)
        ),
        "plan": [
            {"week": 1, "activity": "Seed preparation", "description": "Cut sprouted tubers and treat with fungicide."},
            {"week": 2, "activity": "Planting", "description": "Plant tubers in furrows at 60x20 cm."},
            {"week": 5, "activity": "Earthing up", "description": "Earth up to cover developing tubers."},
            {"week": 8, "activity": "Blight control", "description": "Spray protectant fungicide in humid weather."},
            {"week": 13, "activity": "Haulm cutting", "description": "Cut haulms ten days before lifting."},
            {"week": 14, "activity": "Harvest", "description": "Lift tubers and cure in shade."},
        ],
    },
    {
        "crop": "Cotton",
        "score": 65,
        "season": "Kharif (Monsoon)",
        "avg_temperature": 28.0,
        "avg_rainfall": 800.0,
        "matches": lambda s: (
            _soil_type_has(s, "black", "clay")
            and _between(_get(s, "ph_level"), 6.0, 8.0)
        ),
        "plan": [
            {"week": 1, "activity": "Land preparation", "description": "Plough deep and open furrows."},
            {"week": 2, "activity": "Sowing", "description": "Sow delinted seed at 90x60 cm."},
            {"week": 6, "activity": "Thinning", "description": "Thin to one plant per hill and weed."},
            {"week": 10, "activity": "Bollworm watch", "description": "Install pheromone traps and scout weekly."},
            {"week": 22, "activity": "Picking", "description": "Pick fully opened bolls in dry weather."},
        ],
    },
    {
        "crop": "Groundnut",
        "score": 60,
        "season": "Kharif (Monsoon)",
        "avg_temperature": 27.0,
        "avg_rainfall": 600.0,
        "matches": lambda s: (
            _soil_type_has(s, "sand")
            and _between(_get(s, "ph_level"), 6.0, 7.0)
        ),
        "plan": [
            {"week": 1, "activity": "Land preparation", "description": "Harrow to a fine tilth."},
            {"week": 2, "activity": "Sowing", "description": "Sow treated kernels at 30x10 cm."},
            {"week": 6, "activity": "Gypsum application", "description": "Apply gypsum at pegging and earth up."},
            {"week": 9, "activity": "Irrigation", "description": "Irrigate at pod development."},
            {"week": 15, "activity": "Harvest", "description": "Pull plants when inner shells darken."},
        ],
    },
]


def recommend(soil, rules=CROP_RULES, limit=MAX_RECOMMENDATIONS):
    """
    Evaluate every rule against a soil test (model instance or dict) and
    return at most `limit` recommendations, best score first. Rules with an
    equal score keep their table order. An empty list means nothing matched.
    """
    matched = [rule for rule in rules if rule["matches"](soil)]
    ranked = sorted(matched, key=lambda rule: rule["score"], reverse=True)
    return [
        {
            "recommended_crop": rule["crop"],
            "suitability_score": rule["score"],
            "season": rule["season"],
            "avg_temperature": rule["avg_temperature"],
            "avg_rainfall": rule["avg_rainfall"],
            "soil_type": _get(soil, "soil_type"),
            "cultivation_plan": [dict(step) for step in rule["plan"]],
        }
        for rule in ranked[:limit]
    ]

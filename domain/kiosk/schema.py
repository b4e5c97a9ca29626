# domain/kiosk/schema.py
#
# JSON schema of the generative proposal ({plan, reply}).
# Strict structured output: every property listed in "required",
# nullable fields typed as [type, "null"].

_LINE = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "sku": {"type": "string"},
        "name": {"type": "string"},
        "qty": {"type": "integer", "minimum": 1},
        "price": {"type": "number"},
        "currency": {"type": "string"},
        "stock": {"type": "integer"},
        "image_url": {"type": ["string", "null"]},
        "why": {"type": "string"},
    },
    "required": ["sku", "name", "qty", "price", "currency", "stock", "image_url", "why"],
}

KIOSK_PLAN_SCHEMA = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "plan": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "title": {"type": "string"},
                "steps": {"type": "array", "items": {"type": "string"}},
                "basket": {"type": "array", "items": _LINE},
                "upsell": {"type": "array", "items": _LINE},
                "confirm": {"type": "string"},
            },
            "required": ["title", "steps", "basket", "upsell", "confirm"],
        },
        "reply": {"type": "string"},
    },
    "required": ["plan", "reply"],
}

# domain/kiosk/verticals/loader.py
import os
from typing import Any, Dict, Optional

from domain.kiosk.verticals.hardware import KIOSK_VERTICAL_HARDWARE

_REGISTRY = {
    "hardware": KIOSK_VERTICAL_HARDWARE,
    # "paint": KIOSK_VERTICAL_PAINT,  # later
}

DEFAULT_VERTICAL = "hardware"


def load_vertical(kiosk_type: Optional[str] = None) -> Dict[str, Any]:
    """
    kiosk_type -> business tables. None -> KIOSK_VERTICAL env (default hardware).
    Unknown types get {} (no business rules, generic reconciliation only).
    """
    if not kiosk_type:
        kiosk_type = os.getenv("KIOSK_VERTICAL", DEFAULT_VERTICAL)
    return _REGISTRY.get(kiosk_type.strip().lower(), {})

"""Load an offer corpus from a YAML file (a list of offer mappings)."""

from pathlib import Path
from typing import Any

import yaml

from offer_alerts.core.schemas import JobOffer


def load_offers(path: str | Path) -> list[JobOffer]:
    """Read offers from YAML. Accepts a bare list or a mapping with an 'offers' key."""
    path = Path(path)
    if not path.exists():
        msg = f"Offers file not found: {path}"
        raise FileNotFoundError(msg)
    raw: Any = yaml.safe_load(path.read_text()) or []
    if isinstance(raw, dict):
        raw = raw.get("offers", [])
    if not isinstance(raw, list):
        msg = f"Offers file must contain a list, got {type(raw).__name__}"
        raise ValueError(msg)
    return [JobOffer.model_validate(item) for item in raw]

from typing import Dict

from pydantic import BaseModel, Field


class RuleSettings(BaseModel):
    """Flat rule keys, e.g. {"sessionFees.2": "70000", "taxWithholdingRate": "0.033"}"""
    values: Dict[str, str] = Field(default_factory=dict)

"""
This module defines the Pydantic models for detections and the comparison
report produced from two detection sets.
"""

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


ChangeType = Literal[
    "Addition",
    "Removal",
    "Increase",
    "Decrease",
    "Confidence Increase",
    "Confidence Decrease",
    "Spatial Shift",
]
Severity = Literal["Low", "Medium", "High", "Critical"]


class CamelModel(BaseModel):
    """Serializes with camelCase keys while accepting either spelling on input."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, protected_namespaces=())


class BoundingBox(BaseModel):
    """Normalized bounding box, all coordinates in [0, 1]."""
    left: float = Field(..., ge=0, le=1)
    top: float = Field(..., ge=0, le=1)
    width: float = Field(..., ge=0, le=1)
    height: float = Field(..., ge=0, le=1)

    @property
    def center(self) -> tuple:
        return self.left + self.width / 2, self.top + self.height / 2


class Detection(CamelModel):
    """A single labeled, confidence-scored region proposal from the vision model."""
    model_config = ConfigDict(frozen=True)

    label: str
    confidence: float = Field(..., ge=0, le=1)
    bounding_box: Optional[BoundingBox] = None


class Location(BaseModel):
    """Pixel position on the fixed 400x300 display canvas."""
    x: int
    y: int


class Difference(CamelModel):
    """One reported change between two images' detection sets."""
    id: str
    description: str
    confidence: float = Field(..., ge=0, le=1)
    category: str
    change_type: ChangeType
    severity: Severity
    location: Optional[Location] = None
    details: Optional[Dict[str, float]] = None


class DetectionCounts(CamelModel):
    image1: int = 0
    image2: int = 0
    by_label1: Dict[str, int] = Field(default_factory=dict)
    by_label2: Dict[str, int] = Field(default_factory=dict)


class ComparisonResult(CamelModel):
    """The change report returned by the compare endpoint."""
    differences: List[Difference] = Field(default_factory=list)
    summary: str
    change_percentage: float = Field(..., ge=0, le=1)
    analysis_method: str
    model_confidence: float = Field(..., ge=0, le=1)
    total_regions_analyzed: int
    changed_regions: int
    detection_counts: DetectionCounts = Field(default_factory=DetectionCounts)


class CompareRequest(BaseModel):
    """
    Body of the compare endpoint. Fields are optional here so that missing
    references are reported as a single 400 by the route.
    """
    image1: Optional[str] = Field(None, description="URL, absolute path or stored blob name of the earlier image")
    image2: Optional[str] = Field(None, description="URL, absolute path or stored blob name of the later image")

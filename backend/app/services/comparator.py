"""
Change-detection comparator.

Turns two sets of tagged, confidence-scored detections into a change report:
per-label count and confidence changes plus a single spatial-shift entry when
the centre of detected activity moves.
"""

import itertools
import logging
import math
from collections import OrderedDict
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from pydantic import ValidationError

from app.models.comparison import (
    ComparisonResult,
    Detection,
    DetectionCounts,
    Difference,
    Location,
)

logger = logging.getLogger(__name__)

CONFIDENCE_FLOOR = 0.10
CONFIDENCE_CHANGE_THRESHOLD = 0.10
SPATIAL_SHIFT_THRESHOLD = 0.10
CHANGE_WEIGHT_PER_DIFFERENCE = 0.15

# Display convention only, not the real image resolution.
CANVAS_WIDTH = 400
CANVAS_HEIGHT = 300

ANALYSIS_METHOD = "Custom Vision Object Detection"
SPATIAL_CATEGORY = "Spatial Distribution"

# Checked in order; the first pattern contained in the label wins.
CATEGORY_PATTERNS: List[Tuple[str, str]] = [
    ("urban", "Urban Development"),
    ("building", "Infrastructure"),
    ("road", "Transportation"),
    ("forest", "Vegetation"),
    ("vegetation", "Vegetation"),
    ("water", "Water Bodies"),
    ("agricultural", "Agriculture"),
    ("industrial", "Industrial"),
    ("residential", "Urban Development"),
    ("commercial", "Urban Development"),
    ("deforestation", "Environmental Change"),
    ("deforest", "Environmental Change"),
    ("construction", "Infrastructure Development"),
]


def categorize_label(label: str) -> str:
    """Map a detection label to a land-use category by ordered substring match."""
    normalized = label.lower()
    for pattern, category in CATEGORY_PATTERNS:
        if pattern in normalized:
            return category
    return "Other"


def parse_detection(entry: Any) -> Optional[Detection]:
    """
    Coerce one raw entry into a Detection.

    Accepts Detection instances, mappings shaped like comparator input
    (`label`, `confidence`, `boundingBox`) and raw prediction mappings
    (`tagName`, `probability`, `boundingBox`). Returns None for anything else.
    """
    if isinstance(entry, Detection):
        return entry
    if not isinstance(entry, Mapping):
        return None

    data = {
        "label": entry.get("label", entry.get("tagName")),
        "confidence": entry.get("confidence", entry.get("probability")),
        "bounding_box": entry.get("boundingBox", entry.get("bounding_box")),
    }
    if data["label"] is None or data["confidence"] is None:
        return None
    try:
        return Detection.model_validate(data)
    except ValidationError:
        return None


def parse_detections(entries: Optional[Iterable[Any]]) -> List[Detection]:
    """Parse a raw detection list, skipping malformed entries."""
    detections = []
    skipped = 0
    for entry in entries or []:
        detection = parse_detection(entry)
        if detection is None:
            skipped += 1
            continue
        detections.append(detection)
    if skipped:
        logger.warning("Skipped %d malformed detection entries", skipped)
    return detections


def _group_by_label(detections: List[Detection]) -> "OrderedDict[str, List[Detection]]":
    groups: "OrderedDict[str, List[Detection]]" = OrderedDict()
    for detection in detections:
        groups.setdefault(detection.label, []).append(detection)
    return groups


def _mean_confidence(detections: List[Detection]) -> float:
    if not detections:
        return 0.0
    return sum(d.confidence for d in detections) / len(detections)


def _centroid(detections: List[Detection]) -> Tuple[float, float]:
    centers = [d.bounding_box.center for d in detections if d.bounding_box is not None]
    if not centers:
        return 0.0, 0.0
    return (
        sum(x for x, _ in centers) / len(centers),
        sum(y for _, y in centers) / len(centers),
    )


def _to_canvas(x: float, y: float) -> Location:
    return Location(x=round(x * CANVAS_WIDTH), y=round(y * CANVAS_HEIGHT))


def _first_location(detections: List[Detection]) -> Optional[Location]:
    if detections and detections[0].bounding_box is not None:
        box = detections[0].bounding_box
        return _to_canvas(box.left, box.top)
    return None


def _count_severity(delta: int) -> str:
    magnitude = abs(delta)
    if magnitude >= 3:
        return "High"
    if magnitude >= 2:
        return "Medium"
    return "Low"


def _magnitude_severity(value: float) -> str:
    if value > 0.30:
        return "High"
    if value > 0.20:
        return "Medium"
    return "Low"


def _label_differences(
    label: str,
    before: List[Detection],
    after: List[Detection],
    next_id,
) -> List[Difference]:
    differences = []
    category = categorize_label(label)
    mean_before = _mean_confidence(before)
    mean_after = _mean_confidence(after)

    delta = len(after) - len(before)
    if delta != 0:
        differences.append(
            Difference(
                id=next_id("count", label),
                description=(
                    f"{label} count changed from {len(before)} to {len(after)} ({delta:+d})"
                ),
                confidence=max(mean_before, mean_after),
                category=category,
                change_type="Increase" if delta > 0 else "Decrease",
                severity=_count_severity(delta),
                location=_first_location(after),
                details={
                    "previousCount": len(before),
                    "currentCount": len(after),
                    "delta": delta,
                },
            )
        )

    if before and after:
        confidence_delta = abs(mean_after - mean_before)
        if confidence_delta > CONFIDENCE_CHANGE_THRESHOLD:
            increased = mean_after > mean_before
            differences.append(
                Difference(
                    id=next_id("confidence", label),
                    description=(
                        f"{label} detection confidence "
                        f"{'increased' if increased else 'decreased'} from "
                        f"{mean_before:.0%} to {mean_after:.0%}"
                    ),
                    confidence=max(mean_before, mean_after),
                    category=category,
                    change_type="Confidence Increase" if increased else "Confidence Decrease",
                    severity=_magnitude_severity(confidence_delta),
                    location=_first_location(after),
                    details={
                        "previousConfidence": round(mean_before, 4),
                        "currentConfidence": round(mean_after, 4),
                        "delta": round(confidence_delta, 4),
                    },
                )
            )
    return differences


def _spatial_difference(
    before: List[Detection], after: List[Detection], next_id
) -> Optional[Difference]:
    x1, y1 = _centroid(before)
    x2, y2 = _centroid(after)
    shift = math.hypot(x2 - x1, y2 - y1)
    if shift <= SPATIAL_SHIFT_THRESHOLD:
        return None
    return Difference(
        id=next_id("shift", "centroid"),
        description=f"Detected activity shifted by {shift:.2f} of the image extent",
        confidence=min(shift * 2, 1.0),
        category=SPATIAL_CATEGORY,
        change_type="Spatial Shift",
        severity=_magnitude_severity(shift),
        location=_to_canvas(x2, y2),
        details={
            "shift": round(shift, 4),
            "centroid1X": round(x1, 4),
            "centroid1Y": round(y1, 4),
            "centroid2X": round(x2, 4),
            "centroid2Y": round(y2, 4),
        },
    )


def _change_percentage(total_before: int, total_after: int, difference_count: int) -> float:
    if total_before > 0:
        count_ratio = abs(total_after - total_before) / total_before
    else:
        count_ratio = 1.0 if total_after > 0 else 0.0
    value = max(count_ratio, difference_count * CHANGE_WEIGHT_PER_DIFFERENCE)
    return min(max(value, 0.0), 1.0)


def _summary(differences: List[Difference], total_before: int, total_after: int) -> str:
    totals = f"Image 1: {total_before} detections, Image 2: {total_after} detections."
    if differences:
        return f"Detected {len(differences)} significant changes between the images. {totals}"
    return f"No significant differences detected. {totals}"


def compare(detections_a: Iterable[Any], detections_b: Iterable[Any]) -> ComparisonResult:
    """
    Compare two detection sets and build the change report.

    Args:
        detections_a: Detections for the earlier image.
        detections_b: Detections for the later image.

    Returns:
        ComparisonResult: Differences in insertion order (per-label entries in
        first-seen label order, then the spatial shift) with aggregate scores.
    """
    counter = itertools.count(1)

    def next_id(kind: str, label: str) -> str:
        return f"{kind}-{label}-{next(counter)}"

    before = [d for d in parse_detections(detections_a) if d.confidence >= CONFIDENCE_FLOOR]
    after = [d for d in parse_detections(detections_b) if d.confidence >= CONFIDENCE_FLOOR]

    groups_before = _group_by_label(before)
    groups_after = _group_by_label(after)
    labels = list(groups_before) + [label for label in groups_after if label not in groups_before]

    differences: List[Difference] = []
    for label in labels:
        differences.extend(
            _label_differences(
                label,
                groups_before.get(label, []),
                groups_after.get(label, []),
                next_id,
            )
        )

    spatial = _spatial_difference(before, after, next_id)
    if spatial is not None:
        differences.append(spatial)

    model_confidence = (
        sum(d.confidence for d in differences) / len(differences) if differences else 0.0
    )

    by_label1: Dict[str, int] = {label: len(items) for label, items in groups_before.items()}
    by_label2: Dict[str, int] = {label: len(items) for label, items in groups_after.items()}

    logger.info(
        "Compared %d vs %d detections across %d labels: %d differences",
        len(before), len(after), len(labels), len(differences),
    )

    return ComparisonResult(
        differences=differences,
        summary=_summary(differences, len(before), len(after)),
        change_percentage=_change_percentage(len(before), len(after), len(differences)),
        analysis_method=ANALYSIS_METHOD,
        model_confidence=model_confidence,
        total_regions_analyzed=max(len(before), len(after)),
        changed_regions=len(differences),
        detection_counts=DetectionCounts(
            image1=len(before),
            image2=len(after),
            by_label1=by_label1,
            by_label2=by_label2,
        ),
    )

"""
Fixed comparison result served when no prediction key is configured, so the
dashboard can be demonstrated without a trained model.
"""

import logging

from app.models.comparison import ComparisonResult, DetectionCounts, Difference, Location

logger = logging.getLogger(__name__)

MOCK_DIFFERENCES = [
    Difference(
        id="1",
        description="Urban development expansion detected - new residential area identified",
        confidence=0.92,
        category="Urban Development",
        location=Location(x=180, y=220),
        change_type="Addition",
        severity="High",
    ),
    Difference(
        id="2",
        description="Forest area reduction observed - deforestation activity",
        confidence=0.87,
        category="Vegetation Loss",
        location=Location(x=120, y=150),
        change_type="Removal",
        severity="Critical",
    ),
    Difference(
        id="3",
        description="New transportation infrastructure - road construction",
        confidence=0.79,
        category="Infrastructure",
        location=Location(x=250, y=190),
        change_type="Addition",
        severity="Medium",
    ),
    Difference(
        id="4",
        description="Water body expansion - seasonal flooding detected",
        confidence=0.84,
        category="Water Bodies",
        location=Location(x=320, y=110),
        change_type="Increase",
        severity="Medium",
    ),
    Difference(
        id="5",
        description="Agricultural land conversion to industrial use",
        confidence=0.76,
        category="Land Use Change",
        location=Location(x=200, y=280),
        change_type="Decrease",
        severity="High",
    ),
]


def mock_comparison() -> ComparisonResult:
    """Returns the fixed demo-mode comparison result."""
    logger.info("Custom Vision not configured, returning mock analysis")
    return ComparisonResult(
        differences=list(MOCK_DIFFERENCES),
        summary=(
            f"Custom Vision model analysis complete. Detected {len(MOCK_DIFFERENCES)} "
            "significant changes between satellite images, with focus on urban "
            "development, vegetation changes, and infrastructure modifications."
        ),
        change_percentage=0.23,
        analysis_method="Custom Vision Model",
        model_confidence=0.85,
        total_regions_analyzed=15,
        changed_regions=len(MOCK_DIFFERENCES),
        detection_counts=DetectionCounts(),
    )

"""Pose-based rule engine for fall detection using keypoint bearing angles."""

import logging
from dataclasses import dataclass
from enum import Enum

from src.analysis.bearing import bearing
from src.analysis.rule_table import RuleMatrix
from src.detection.skeleton import BodyPart, Pose

logger = logging.getLogger(__name__)


class BodyState(Enum):
    UNKNOWN = "unknown"
    NORMAL = "normal"
    FALL = "fall"

    @property
    def label(self) -> str:
        return STATE_LABELS[self]


STATE_LABELS: dict[BodyState, str] = {
    BodyState.UNKNOWN: "未检测出人体",
    BodyState.NORMAL: "正常姿态",
    BodyState.FALL: "异常姿态",
}


@dataclass(frozen=True)
class RuleViolation:
    from_part: BodyPart
    to_part: BodyPart
    measured: int
    expected: int

    def describe(self) -> str:
        return (
            f"{self.from_part.name}->{self.to_part.name} "
            f"({self.from_part.display_name}->{self.to_part.display_name}): "
            f"measured {self.measured}, expected {self.expected}"
        )


@dataclass(frozen=True)
class Classification:
    state: BodyState
    violation: RuleViolation | None = None


def angle_difference(a: int, b: int) -> int:
    """Smallest difference between two angles on the 0-359 circle."""
    diff = abs(a - b) % 360
    return min(diff, 360 - diff)


class PoseRuleEngine:
    """Classify a pose by checking bearings between keypoint pairs against a rule matrix."""

    def __init__(
        self,
        rules: RuleMatrix | None,
        min_pose_confidence: float = 0.5,
        min_part_confidence: float | None = None,
        angle_tolerance: int = 40,
        model_height: float = 257,
    ):
        """
        Args:
            rules: Expected angles per BodyPart pair. None means no rules are
                configured; every confident pose is then NORMAL.
            min_pose_confidence: Overall pose score below which the verdict
                is UNKNOWN.
            min_part_confidence: A keypoint scoring at or below this is not
                trusted and its rules are skipped. Defaults to
                min_pose_confidence.
            angle_tolerance: Maximum allowed difference (degrees) between
                measured and expected bearing.
            model_height: Height of the coordinate space keypoints live in,
                used to flip y for the bearing calculation.
        """
        self.rules = rules
        self.min_pose_confidence = min_pose_confidence
        self.min_part_confidence = (
            min_pose_confidence if min_part_confidence is None else min_part_confidence
        )
        self.angle_tolerance = angle_tolerance
        self.model_height = model_height

    def evaluate(self, pose: Pose | None) -> Classification:
        """Classify the pose and report the first violated rule, if any.

        Rules are checked in row-major order and the first violation decides
        FALL, so the reported pair is stable for identical input.
        """
        if pose is None or pose.score < self.min_pose_confidence:
            return Classification(state=BodyState.UNKNOWN)

        if self.rules is None:
            return Classification(state=BodyState.NORMAL)

        for constraint in self.rules.constraints:
            start = pose.get_keypoint(constraint.from_part)
            end = pose.get_keypoint(constraint.to_part)
            if start is None or end is None:
                logger.debug(
                    f"Skip {constraint.from_part.name}->{constraint.to_part.name}: keypoint missing"
                )
                continue

            if start.score <= self.min_part_confidence or end.score <= self.min_part_confidence:
                continue

            if start.position == end.position:
                logger.debug(
                    f"Skip {constraint.from_part.name}->{constraint.to_part.name}: "
                    "keypoints coincide"
                )
                continue

            measured = bearing(start.position, end.position, self.model_height)
            if angle_difference(measured, constraint.expected) > self.angle_tolerance:
                violation = RuleViolation(
                    from_part=constraint.from_part,
                    to_part=constraint.to_part,
                    measured=measured,
                    expected=constraint.expected,
                )
                logger.info(f"Angle rule violated: {violation.describe()}")
                return Classification(state=BodyState.FALL, violation=violation)

        return Classification(state=BodyState.NORMAL)

    def classify(self, pose: Pose | None) -> BodyState:
        return self.evaluate(pose).state

    def is_fallen(self, pose: Pose | None) -> bool:
        return self.classify(pose) == BodyState.FALL

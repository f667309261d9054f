"""Pose data structures for 17-keypoint COCO detections."""
from dataclasses import dataclass
from enum import IntEnum

import numpy as np


class BodyPart(IntEnum):
    """17 keypoints from COCO pose format."""
    NOSE = 0
    LEFT_EYE = 1
    RIGHT_EYE = 2
    LEFT_EAR = 3
    RIGHT_EAR = 4
    LEFT_SHOULDER = 5
    RIGHT_SHOULDER = 6
    LEFT_ELBOW = 7
    RIGHT_ELBOW = 8
    LEFT_WRIST = 9
    RIGHT_WRIST = 10
    LEFT_HIP = 11
    RIGHT_HIP = 12
    LEFT_KNEE = 13
    RIGHT_KNEE = 14
    LEFT_ANKLE = 15
    RIGHT_ANKLE = 16

    @property
    def display_name(self) -> str:
        return BODY_PART_NAMES[self]


NUM_BODY_PARTS = len(BodyPart)

# 顯示用名稱，順序與 BodyPart 相同
BODY_PART_NAMES: dict[BodyPart, str] = {
    BodyPart.NOSE: "鼻子",
    BodyPart.LEFT_EYE: "左眼",
    BodyPart.RIGHT_EYE: "右眼",
    BodyPart.LEFT_EAR: "左耳",
    BodyPart.RIGHT_EAR: "右耳",
    BodyPart.LEFT_SHOULDER: "左肩",
    BodyPart.RIGHT_SHOULDER: "右肩",
    BodyPart.LEFT_ELBOW: "左肘",
    BodyPart.RIGHT_ELBOW: "右肘",
    BodyPart.LEFT_WRIST: "左腕",
    BodyPart.RIGHT_WRIST: "右腕",
    BodyPart.LEFT_HIP: "左髋",
    BodyPart.RIGHT_HIP: "右髋",
    BodyPart.LEFT_KNEE: "左膝",
    BodyPart.RIGHT_KNEE: "右膝",
    BodyPart.LEFT_ANKLE: "左踝",
    BodyPart.RIGHT_ANKLE: "右踝",
}


@dataclass(frozen=True)
class Position:
    x: float
    y: float


@dataclass(frozen=True)
class KeyPoint:
    body_part: BodyPart
    position: Position
    score: float


@dataclass(frozen=True)
class Pose:
    """One detected person: a keypoint per body part plus an overall score."""

    keypoints: tuple[KeyPoint, ...]
    score: float

    def get_keypoint(self, part: BodyPart) -> KeyPoint | None:
        """Return the keypoint for ``part``, or None if the detector omitted it."""
        if part < len(self.keypoints) and self.keypoints[part].body_part == part:
            return self.keypoints[part]

        for keypoint in self.keypoints:
            if keypoint.body_part == part:
                return keypoint
        return None

    @classmethod
    def from_array(cls, keypoints: np.ndarray, score: float) -> "Pose":
        """Build a pose from an array of shape (17, 3) -> x, y, score."""
        keypoints = np.asarray(keypoints, dtype=float)
        if keypoints.shape != (NUM_BODY_PARTS, 3):
            raise ValueError(
                f"Expected keypoints of shape ({NUM_BODY_PARTS}, 3), got {keypoints.shape}"
            )

        return cls(
            keypoints=tuple(
                KeyPoint(
                    body_part=part,
                    position=Position(x=float(keypoints[part, 0]), y=float(keypoints[part, 1])),
                    score=float(keypoints[part, 2]),
                )
                for part in BodyPart
            ),
            score=float(score),
        )

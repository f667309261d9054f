import logging

import numpy as np

from src.analysis.pose_rule_engine import BodyState, Classification, PoseRuleEngine
from src.analysis.rule_table import load_rule_table_or_none
from src.core.config import Config
from src.detection.detector import PoseDetector
from src.detection.skeleton import Pose

logger = logging.getLogger(__name__)


class Pipeline:
    def __init__(self, config: Config):
        self.config = config

        # 規則表在任何分類之前載入完成；載入失敗則以無規則模式運作
        self.rules = load_rule_table_or_none(
            config.rules.path,
            skip_lines=config.rules.skip_lines,
            metadata_columns=config.rules.metadata_columns,
        )

        self.rule_engine = PoseRuleEngine(
            rules=self.rules,
            min_pose_confidence=config.classification.min_pose_confidence,
            min_part_confidence=config.classification.min_part_confidence,
            angle_tolerance=config.classification.angle_tolerance,
            model_height=config.classification.model_height,
        )

        if config.detection.confidence >= config.classification.min_pose_confidence:
            logger.warning(
                f"detection.confidence ({config.detection.confidence}) is not below "
                f"min_pose_confidence ({config.classification.min_pose_confidence}); "
                "low-confidence poses will never be reported as unknown"
            )

        self.detector = PoseDetector(
            model_path=config.detection.model,
            confidence=config.detection.confidence,
        )

    @property
    def has_rules(self) -> bool:
        return self.rules is not None

    def classify_pose(self, pose: Pose | None) -> Classification:
        return self.rule_engine.evaluate(pose)

    def process_frame(self, frame: np.ndarray) -> list[Classification]:
        poses = self.detector.detect(frame)
        if not poses:
            return [Classification(state=BodyState.UNKNOWN)]

        results = [self.classify_pose(pose) for pose in poses]
        if any(result.state == BodyState.FALL for result in results):
            logger.warning("Fall posture detected")
        return results

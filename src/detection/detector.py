import numpy as np
from ultralytics import YOLO

from src.detection.skeleton import NUM_BODY_PARTS, Pose


class PoseDetector:
    """Run a YOLO pose model and convert each detected person into a Pose."""

    def __init__(
        self,
        model_path: str = "yolo11s-pose.pt",
        confidence: float = 0.25,
    ):
        self.model = YOLO(model_path)
        self.confidence = confidence

    def detect(self, frame: np.ndarray) -> list[Pose]:
        results = self.model(frame, conf=self.confidence, verbose=False)

        poses = []
        for result in results:
            if result.keypoints is None:
                continue

            keypoints = result.keypoints.data.cpu().numpy()
            confs = result.boxes.conf.cpu().numpy()

            for person_keypoints, conf in zip(keypoints, confs):
                if person_keypoints.shape != (NUM_BODY_PARTS, 3):
                    continue
                poses.append(Pose.from_array(person_keypoints, score=float(conf)))

        return poses

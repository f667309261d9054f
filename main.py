import argparse
import logging
import sys
from pathlib import Path

import cv2

from src.core.config import ConfigurationError, load_config
from src.core.pipeline import Pipeline

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = Path(__file__).parent / "config" / "settings.yaml"


def classify_images(pipeline: Pipeline, image_paths: list[str]) -> int:
    exit_code = 0
    for image_path in image_paths:
        frame = cv2.imread(image_path)
        if frame is None:
            logger.error(f"無法讀取圖片: {image_path}")
            exit_code = 1
            continue

        for index, result in enumerate(pipeline.process_frame(frame)):
            message = f"{image_path} [person {index}]: {result.state.value} ({result.state.label})"
            if result.violation:
                message += f" - {result.violation.describe()}"
            logger.info(message)

    return exit_code


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    parser = argparse.ArgumentParser(description="Classify body posture in still images")
    parser.add_argument("images", nargs="+", help="image files to classify")
    parser.add_argument("--config", default=str(DEFAULT_CONFIG), help="settings file")
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigurationError as e:
        logger.error(str(e))
        return 2

    pipeline = Pipeline(config=config)
    if not pipeline.has_rules:
        logger.warning("未載入角度規則，所有姿態將判定為正常")

    return classify_images(pipeline, args.images)


if __name__ == "__main__":
    sys.exit(main())

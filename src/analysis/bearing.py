"""Bearing angle between two keypoints in image coordinates."""

import numpy as np

from src.detection.skeleton import Position


def bearing(start: Position, end: Position, height: float) -> int:
    """Direction from ``start`` to ``end`` in whole degrees, 0-359.

    Image y grows downward, so both points are first flipped into a
    bottom-left origin space (y' = height - y). The result is a standard
    mathematical angle there: 0 = right, 90 = up, 180 = left, 270 = down.

    Raises:
        ValueError: start and end are the same point.
    """
    if start.x == end.x and start.y == end.y:
        raise ValueError(f"Bearing is undefined for identical points: {start}")

    start_y = height - start.y
    end_y = height - end.y

    # 軸向對齊的情況直接回傳，避免除以零
    if start.x == end.x:
        return 90 if end_y > start_y else 270
    if start_y == end_y:
        return 0 if end.x > start.x else 180

    dx = end.x - start.x
    dy = end_y - start_y
    angle = np.arctan(abs(dy / dx))

    if dx > 0 and dy > 0:
        pass
    elif dx > 0 and dy < 0:
        angle = 2 * np.pi - angle
    elif dx < 0 and dy > 0:
        angle = np.pi - angle
    else:
        angle = np.pi + angle

    return round(float(np.degrees(angle))) % 360

"""
Expected-angle rule table.

The rule file is CSV text. After ``skip_lines`` leading lines (in the shipped
data: a header with part identifiers and a row of localized part names) there
is one data row per BodyPart in ordinal order. Each row starts with
``metadata_columns`` descriptive fields, followed by one field per BodyPart
holding the expected bearing in degrees from the row's part to the column's
part. Empty or 0 means the pair is unconstrained.
"""

import csv
import logging
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from src.core.config import ConfigurationError
from src.detection.skeleton import NUM_BODY_PARTS, BodyPart

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RuleConstraint:
    from_part: BodyPart
    to_part: BodyPart
    expected: int


@dataclass(frozen=True, eq=False)
class RuleMatrix:
    """Square matrix of expected angles indexed by BodyPart on both axes.

    The angle buffer is read-only once built; share one instance freely
    across threads.
    """

    angles: np.ndarray
    constraints: tuple[RuleConstraint, ...]

    @classmethod
    def from_angles(cls, angles) -> "RuleMatrix":
        array = np.array(angles, dtype=np.int32)
        if array.shape != (NUM_BODY_PARTS, NUM_BODY_PARTS):
            raise ConfigurationError(
                f"Rule matrix must be {NUM_BODY_PARTS}x{NUM_BODY_PARTS}, got {array.shape}"
            )
        array.flags.writeable = False

        # np.argwhere walks in row-major order
        constraints = tuple(
            RuleConstraint(
                from_part=BodyPart(int(row)),
                to_part=BodyPart(int(col)),
                expected=int(array[row, col]),
            )
            for row, col in np.argwhere(array > 0)
        )
        return cls(angles=array, constraints=constraints)

    @classmethod
    def empty(cls) -> "RuleMatrix":
        return cls.from_angles(np.zeros((NUM_BODY_PARTS, NUM_BODY_PARTS)))

    def angle(self, from_part: BodyPart, to_part: BodyPart) -> int:
        return int(self.angles[from_part, to_part])

    def __len__(self) -> int:
        return len(self.angles)


def _parse_cell(field: str, line_no: int, part: BodyPart) -> int:
    text = field.strip()
    if not text:
        return 0

    try:
        value = int(text, 10)
    except ValueError as e:
        raise ConfigurationError(
            f"Line {line_no}, column {part.name}: '{text}' is not an integer"
        ) from e

    if not 0 <= value <= 359:
        raise ConfigurationError(
            f"Line {line_no}, column {part.name}: angle {value} is outside 0-359"
        )
    return value


def parse_rule_rows(
    lines,
    skip_lines: int = 2,
    metadata_columns: int = 2,
) -> RuleMatrix:
    """Build a RuleMatrix from an iterable of CSV text lines."""
    if skip_lines < 0 or metadata_columns < 0:
        raise ConfigurationError("skip_lines and metadata_columns must be non-negative")

    min_fields = metadata_columns + NUM_BODY_PARTS
    rows: list[list[int]] = []

    for line_no, fields in enumerate(csv.reader(lines), start=1):
        if line_no <= skip_lines:
            continue
        if not any(field.strip() for field in fields):
            continue

        if len(rows) >= NUM_BODY_PARTS:
            raise ConfigurationError(
                f"Line {line_no}: more than {NUM_BODY_PARTS} data rows in rule table"
            )
        if len(fields) < min_fields:
            raise ConfigurationError(
                f"Line {line_no}: expected at least {min_fields} fields, got {len(fields)}"
            )

        cells = fields[metadata_columns:metadata_columns + NUM_BODY_PARTS]
        rows.append([_parse_cell(field, line_no, part) for part, field in zip(BodyPart, cells)])

    if len(rows) < NUM_BODY_PARTS:
        raise ConfigurationError(
            f"Rule table has {len(rows)} data rows, expected {NUM_BODY_PARTS}"
        )

    return RuleMatrix.from_angles(rows)


def load_rule_table(
    path: str | Path,
    skip_lines: int = 2,
    metadata_columns: int = 2,
) -> RuleMatrix:
    """Read and parse the rule file at ``path``.

    Raises:
        ConfigurationError: file missing, unreadable or malformed.
    """
    path = Path(path)
    try:
        with path.open(encoding="utf-8", newline="") as f:
            matrix = parse_rule_rows(f, skip_lines=skip_lines, metadata_columns=metadata_columns)
    except OSError as e:
        raise ConfigurationError(f"Cannot read rule table {path}: {e}") from e
    except UnicodeDecodeError as e:
        raise ConfigurationError(f"Rule table {path} is not valid UTF-8: {e}") from e

    logger.info(f"Loaded {len(matrix.constraints)} angle rules from {path}")
    return matrix


def load_rule_table_or_none(
    path: str | Path,
    skip_lines: int = 2,
    metadata_columns: int = 2,
) -> RuleMatrix | None:
    """Like load_rule_table, but log the failure and return None instead of raising."""
    try:
        return load_rule_table(path, skip_lines=skip_lines, metadata_columns=metadata_columns)
    except ConfigurationError as e:
        logger.error(f"Rule table unavailable, classifying without angle rules: {e}")
        return None

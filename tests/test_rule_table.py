import logging
from pathlib import Path

import pytest
from src.analysis.rule_table import (
    RuleConstraint,
    RuleMatrix,
    load_rule_table,
    load_rule_table_or_none,
    parse_rule_rows,
)
from src.core.config import ConfigurationError
from src.detection.skeleton import BodyPart

PROJECT_ROOT = Path(__file__).parent.parent


def make_table(cells: dict | None = None, skip_rows: list[str] | None = None) -> str:
    """Build rule CSV text. cells maps (from_part, to_part) -> value text."""
    cells = cells or {}
    if skip_rows is None:
        skip_rows = [
            "id,name," + ",".join(part.name for part in BodyPart),
            ",," + ",".join(part.display_name for part in BodyPart),
        ]

    lines = list(skip_rows)
    for row in BodyPart:
        fields = [str(row.value), row.name]
        fields += [str(cells.get((row, col), "")) for col in BodyPart]
        lines.append(",".join(fields))
    return "\n".join(lines) + "\n"


class TestParseRuleRows:
    def test_empty_cells_default_to_zero(self):
        matrix = parse_rule_rows(make_table().splitlines())

        assert len(matrix) == 17
        assert matrix.angles.shape == (17, 17)
        assert int(matrix.angles.sum()) == 0
        assert matrix.constraints == ()

    def test_values_land_at_ordinals(self):
        table = make_table({(BodyPart.LEFT_SHOULDER, BodyPart.LEFT_HIP): 270})
        matrix = parse_rule_rows(table.splitlines())

        assert matrix.angle(BodyPart.LEFT_SHOULDER, BodyPart.LEFT_HIP) == 270
        assert matrix.angle(BodyPart.LEFT_HIP, BodyPart.LEFT_SHOULDER) == 0

    def test_constraints_in_row_major_order(self):
        table = make_table(
            {
                (BodyPart.LEFT_HIP, BodyPart.LEFT_KNEE): 270,
                (BodyPart.NOSE, BodyPart.RIGHT_HIP): 265,
                (BodyPart.NOSE, BodyPart.LEFT_HIP): 275,
            }
        )
        matrix = parse_rule_rows(table.splitlines())

        assert matrix.constraints == (
            RuleConstraint(BodyPart.NOSE, BodyPart.LEFT_HIP, 275),
            RuleConstraint(BodyPart.NOSE, BodyPart.RIGHT_HIP, 265),
            RuleConstraint(BodyPart.LEFT_HIP, BodyPart.LEFT_KNEE, 270),
        )

    def test_whitespace_around_values_is_trimmed(self):
        table = make_table({(BodyPart.NOSE, BodyPart.LEFT_ANKLE): " 90 "})
        matrix = parse_rule_rows(table.splitlines())
        assert matrix.angle(BodyPart.NOSE, BodyPart.LEFT_ANKLE) == 90

    def test_short_row_raises(self):
        lines = make_table().splitlines()
        lines[5] = "3,LEFT_EAR,,,"
        with pytest.raises(ConfigurationError, match="Line 6"):
            parse_rule_rows(lines)

    def test_non_integer_cell_raises(self):
        table = make_table({(BodyPart.NOSE, BodyPart.LEFT_HIP): "abc"})
        with pytest.raises(ConfigurationError, match="not an integer"):
            parse_rule_rows(table.splitlines())

    def test_out_of_range_cell_raises(self):
        table = make_table({(BodyPart.NOSE, BodyPart.LEFT_HIP): 360})
        with pytest.raises(ConfigurationError, match="outside 0-359"):
            parse_rule_rows(table.splitlines())

    def test_missing_row_raises(self):
        lines = make_table().splitlines()[:-1]
        with pytest.raises(ConfigurationError, match="16 data rows"):
            parse_rule_rows(lines)

    def test_extra_row_raises(self):
        lines = make_table().splitlines()
        lines.append(lines[-1])
        with pytest.raises(ConfigurationError, match="more than 17"):
            parse_rule_rows(lines)

    def test_trailing_blank_lines_ignored(self):
        lines = make_table().splitlines() + ["", ",,,"]
        matrix = parse_rule_rows(lines)
        assert len(matrix) == 17


class TestSkipLines:
    def test_single_header_with_skip_one(self):
        table = make_table(
            {(BodyPart.NOSE, BodyPart.LEFT_HIP): 270},
            skip_rows=["id,name," + ",".join(part.name for part in BodyPart)],
        )
        matrix = parse_rule_rows(table.splitlines(), skip_lines=1)
        assert matrix.angle(BodyPart.NOSE, BodyPart.LEFT_HIP) == 270

    def test_skip_two_on_single_header_drops_first_row(self):
        table = make_table(skip_rows=["id,name," + ",".join(part.name for part in BodyPart)])
        with pytest.raises(ConfigurationError, match="16 data rows"):
            parse_rule_rows(table.splitlines(), skip_lines=2)

    def test_skip_one_on_reference_layout_reads_name_row(self):
        with pytest.raises(ConfigurationError, match="not an integer"):
            parse_rule_rows(make_table().splitlines(), skip_lines=1)

    def test_metadata_columns(self):
        lines = ["header"]
        for row in BodyPart:
            lines.append("x," + ",".join("" for _ in BodyPart))
        lines[1 + BodyPart.LEFT_KNEE] = "x," + ",".join(
            "270" if col == BodyPart.LEFT_ANKLE else "" for col in BodyPart
        )

        matrix = parse_rule_rows(lines, skip_lines=1, metadata_columns=1)
        assert matrix.angle(BodyPart.LEFT_KNEE, BodyPart.LEFT_ANKLE) == 270


class TestRuleMatrix:
    def test_matrix_is_read_only(self):
        matrix = RuleMatrix.empty()
        with pytest.raises(ValueError):
            matrix.angles[0, 1] = 90

    def test_from_angles_rejects_non_square(self):
        with pytest.raises(ConfigurationError):
            RuleMatrix.from_angles([[0] * 17] * 16)

    def test_source_list_changes_do_not_leak(self):
        rows = [[0] * 17 for _ in range(17)]
        matrix = RuleMatrix.from_angles(rows)
        rows[0][1] = 90
        assert matrix.angle(BodyPart.NOSE, BodyPart.LEFT_EYE) == 0


class TestLoadRuleTable:
    def test_load_from_file(self, tmp_path):
        path = tmp_path / "rules.csv"
        path.write_text(make_table({(BodyPart.LEFT_HIP, BodyPart.LEFT_KNEE): 270}), encoding="utf-8")

        matrix = load_rule_table(path)
        assert matrix.angle(BodyPart.LEFT_HIP, BodyPart.LEFT_KNEE) == 270

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Cannot read"):
            load_rule_table(tmp_path / "missing.csv")

    def test_shipped_rules_load(self):
        matrix = load_rule_table(PROJECT_ROOT / "config" / "rules.csv")

        assert len(matrix) == 17
        assert len(matrix.constraints) == 10
        assert matrix.angle(BodyPart.LEFT_SHOULDER, BodyPart.LEFT_HIP) == 270

    def test_or_none_returns_none_and_logs(self, tmp_path, caplog):
        with caplog.at_level(logging.ERROR):
            matrix = load_rule_table_or_none(tmp_path / "missing.csv")

        assert matrix is None
        assert "Rule table unavailable" in caplog.text

    def test_or_none_returns_matrix(self, tmp_path):
        path = tmp_path / "rules.csv"
        path.write_text(make_table(), encoding="utf-8")
        assert isinstance(load_rule_table_or_none(path), RuleMatrix)

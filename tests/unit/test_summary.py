"""Tests for tblsummary.table: summary builder, headers, and rendering."""
import pandas as pd
import pytest

from tblsummary import (
    InvalidArgument,
    TblSummary,
    as_dataframe,
    as_markdown,
    modify_footnote,
    modify_header,
    modify_spanning_header,
    tbl_summary,
)


class TestTblSummary:
    def test_returns_tbl_summary(self, trial_by_trt):
        assert isinstance(trial_by_trt, TblSummary)
        assert trial_by_trt.inputs.by == "trt"

    def test_summary_types(self, trial_by_trt):
        types = {m.variable: m.summary_type for m in trial_by_trt.meta_data}
        assert types == {
            "age": "continuous",
            "marker": "continuous",
            "stage": "categorical",
            "response": "dichotomous",
            "rare_event": "dichotomous",
        }

    def test_by_variable_not_summarised(self, trial_by_trt):
        assert "trt" not in trial_by_trt.variables

    def test_stat_columns_per_group(self, trial_by_trt):
        assert ["stat_1", "stat_2"] == [
            c for c in trial_by_trt.table_body.columns if c.startswith("stat_")
        ]
        assert trial_by_trt.get_header("stat_1").label == "**Drug A**, N = 100"

    def test_categorical_rows(self, trial_by_trt):
        body = trial_by_trt.table_body
        stage = body.loc[body["variable"] == "stage"]
        assert stage["row_type"].tolist() == ["label", "level", "level", "level", "level"]
        assert stage["label"].tolist()[1:] == ["T1", "T2", "T3", "T4"]

    def test_missing_row_added(self, trial_by_trt):
        body = trial_by_trt.table_body
        age = body.loc[body["variable"] == "age"]
        assert age["row_type"].tolist() == ["label", "missing"]
        missing = age.loc[age["row_type"] == "missing"].iloc[0]
        assert int(missing["stat_1"]) + int(missing["stat_2"]) == 3

    def test_missing_no(self, trial):
        tbl = tbl_summary(trial[["trt", "age"]], by="trt", missing="no")
        assert "missing" not in tbl.table_body["row_type"].tolist()

    def test_dichotomous_single_row(self, trial_by_trt):
        body = trial_by_trt.table_body
        rare = body.loc[body["variable"] == "rare_event"]
        assert rare["row_type"].tolist() == ["label"]
        assert rare.iloc[0]["stat_1"].startswith("2 (")

    def test_type_override(self, trial):
        tbl = tbl_summary(trial[["trt", "site"]], by="trt", type={"site": "categorical"})
        assert tbl.get_meta("site").summary_type == "categorical"

    def test_label_override(self, trial):
        tbl = tbl_summary(trial[["trt", "age"]], by="trt", label={"age": "Age, years"})
        assert tbl.get_meta("age").var_label == "Age, years"
        assert tbl.table_body.iloc[0]["label"] == "Age, years"

    def test_unknown_by(self, trial):
        with pytest.raises(InvalidArgument, match="'by'"):
            tbl_summary(trial, by="arm")

    def test_unknown_type(self, trial):
        with pytest.raises(InvalidArgument, match="summary type"):
            tbl_summary(trial[["trt", "age"]], by="trt", type={"age": "ordinal"})

    def test_not_a_dataframe(self):
        with pytest.raises(InvalidArgument):
            tbl_summary([1, 2, 3])

    def test_no_by(self, trial):
        tbl = tbl_summary(trial[["age", "grade"]])
        assert "stat_0" in tbl.table_body.columns
        assert tbl.get_header("stat_0").label == "**N = 200**"

    def test_meta_frame(self, trial_by_trt):
        frame = trial_by_trt.meta_frame()
        assert frame["variable"].tolist() == trial_by_trt.variables
        assert frame["p_value"].isna().all()


class TestHeaderModifiers:
    def test_modify_header(self, trial_by_trt):
        updated = modify_header(trial_by_trt, label="**Variable** (N = {N})")
        assert updated.get_header("label").label == "**Variable** (N = 200)"
        assert trial_by_trt.get_header("label").label == "**Characteristic**"

    def test_modify_header_unknown_column(self, trial_by_trt):
        with pytest.raises(InvalidArgument, match="p_value"):
            modify_header(trial_by_trt, p_value="P")

    def test_modify_footnote(self, trial_by_trt):
        updated = modify_footnote(trial_by_trt, stat_1="Arm A", stat_2=None)
        assert updated.get_header("stat_1").footnote == ["Arm A"]
        assert updated.get_header("stat_2").footnote == []

    def test_modify_spanning_header(self, trial_by_trt):
        updated = modify_spanning_header(
            trial_by_trt, stat_1="**Treatment**", stat_2="**Treatment**"
        )
        assert updated.get_header("stat_1").spanning_header == "**Treatment**"
        assert updated.call_list[-1][0] == "modify_spanning_header"


class TestRendering:
    def test_as_dataframe_hides_bookkeeping(self, trial_by_trt):
        frame = as_dataframe(trial_by_trt)
        assert frame.columns.tolist() == [
            "Characteristic", "Drug A, N = 100", "Drug B, N = 100",
        ]
        assert len(frame) == len(trial_by_trt.table_body)

    def test_missing_cells_blank(self, trial_by_trt):
        frame = as_dataframe(trial_by_trt)
        stage_label = frame.loc[frame["Characteristic"] == "stage"].iloc[0]
        assert stage_label["Drug A, N = 100"] == ""

    def test_markdown_footnotes(self, trial_by_trt):
        text = as_markdown(trial_by_trt)
        assert "| **Characteristic** |" in text
        assert "<sup>1</sup> Statistics presented: n (%); Median (Q1, Q3)" in text

    def test_markdown_spanning_row(self, trial_by_trt):
        updated = modify_spanning_header(
            trial_by_trt, stat_1="**Treatment**", stat_2="**Treatment**"
        )
        first_line = as_markdown(updated).splitlines()[0]
        assert first_line == "|  | **Treatment** |  |"

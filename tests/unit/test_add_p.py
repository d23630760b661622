"""Tests for tblsummary.add_p: augmentation, merge, and header refresh."""
import pandas as pd
import pytest

from tblsummary import (
    ContractViolation,
    InvalidArgument,
    InvalidSpecification,
    TableStructure,
    add_p,
    all_continuous,
    as_dataframe,
    merge_pvalues,
    modify_header,
    refresh_header,
    set_options,
    style_pvalue,
    tbl_summary,
)


def _label_pvalue(tbl, variable):
    body = tbl.table_body
    row = body.loc[(body["variable"] == variable) & (body["row_type"] == "label")]
    return row["p_value"].iloc[0]


class TestAddP:
    def test_every_variable_tested(self, trial_by_trt):
        result = add_p(trial_by_trt)
        for meta in result.meta_data:
            assert meta.stat_test is not None
            assert meta.p_value is not None
            assert 0 <= meta.p_value <= 1

    def test_default_tests(self, trial_by_trt):
        result = add_p(trial_by_trt)
        tests = {m.variable: m.stat_test for m in result.meta_data}
        assert tests["age"] == "wilcox_test"
        assert tests["response"] == "chisq_test_no_correct"
        assert tests["rare_event"] == "fisher_test"

    def test_input_not_mutated(self, trial_by_trt):
        body_before = trial_by_trt.table_body.copy()
        add_p(trial_by_trt)
        assert "p_value" not in trial_by_trt.table_body.columns
        pd.testing.assert_frame_equal(trial_by_trt.table_body, body_before)
        assert all(m.p_value is None for m in trial_by_trt.meta_data)
        assert trial_by_trt.get_header("p_value") is None

    def test_only_label_rows_get_pvalues(self, trial_by_trt):
        body = add_p(trial_by_trt).table_body
        assert body.loc[body["row_type"] != "label", "p_value"].isna().all()
        assert body.loc[body["row_type"] == "label", "p_value"].notna().all()

    def test_row_order_and_count_preserved(self, trial_by_trt):
        result = add_p(trial_by_trt)
        assert len(result.table_body) == len(trial_by_trt.table_body)
        assert result.table_body["label"].tolist() == trial_by_trt.table_body["label"].tolist()

    def test_deterministic(self, trial_by_grade):
        first = add_p(trial_by_grade)
        second = add_p(trial_by_grade)
        pd.testing.assert_frame_equal(first.table_body, second.table_body)
        assert first.meta_frame().equals(second.meta_frame())

    def test_exclude(self, trial_by_trt):
        result = add_p(trial_by_trt, exclude=["age"])
        meta = result.get_meta("age")
        assert meta.p_value is None
        assert meta.stat_test is None
        assert pd.isna(_label_pvalue(result, "age"))
        assert result.get_meta("marker").p_value is not None

    def test_include(self, trial_by_trt):
        result = add_p(trial_by_trt, include=all_continuous())
        tested = [m.variable for m in result.meta_data if m.p_value is not None]
        assert tested == ["age", "marker"]

    def test_footnote_lists_distinct_tests_in_order(self, trial_by_grade):
        result = add_p(trial_by_grade)
        assert result.get_header("p_value").footnote == [
            "Statistical tests performed: Kruskal-Wallis rank sum test; Fisher's exact test"
        ]

    def test_header_label_and_formatter(self, trial_by_trt):
        header = add_p(trial_by_trt).get_header("p_value")
        assert header.label == "**p-value**"
        assert header.fmt_fun is style_pvalue
        assert header.hide is False

    def test_pvalue_fun_argument(self, trial_by_trt):
        fmt = lambda p: style_pvalue(p, digits=2)
        assert add_p(trial_by_trt, pvalue_fun=fmt).get_header("p_value").fmt_fun is fmt

    def test_pvalue_fun_from_options(self, trial_by_trt):
        fmt = lambda p: "p"
        set_options(pvalue_fun=fmt)
        assert add_p(trial_by_trt).get_header("p_value").fmt_fun is fmt

    def test_custom_formatter_leaves_untested_cells_blank(self, trial_by_trt):
        result = add_p(trial_by_trt, exclude=["age"], pvalue_fun=lambda p: f"{p:.2f}")
        frame = as_dataframe(result)
        cells = dict(zip(frame["Characteristic"], frame["p-value"]))
        assert cells["age"] == ""
        assert cells["T1"] == ""
        assert cells["T2"] == ""
        assert cells["marker"] not in ("", "nan")
        assert "nan" not in frame["p-value"].tolist()

    def test_custom_test(self, trial_by_trt):
        def mcnemar_like(data, variable, by, **kwargs):
            return {"p_value": 0.123, "label": "McNemar's test"}

        result = add_p(trial_by_trt, test={"response": mcnemar_like})
        meta = result.get_meta("response")
        assert meta.p_value == pytest.approx(0.123)
        assert meta.stat_test == "mcnemar_like"
        assert "McNemar's test" in result.get_header("p_value").footnote[0]

    def test_custom_test_with_extra_options_mapping(self, trial_by_trt):
        def my_test(data, variable, by, extra_options):
            return {"p_value": 0.42, "label": "My test"}

        result = add_p(trial_by_trt, test={"age": my_test})
        meta = result.get_meta("age")
        assert meta.p_value == pytest.approx(0.42)
        assert meta.stat_test_lbl == "My test"
        assert "My test" in result.get_header("p_value").footnote[0]

    def test_custom_contract_violation_aborts(self, trial_by_trt):
        with pytest.raises(ContractViolation, match="'response'"):
            add_p(trial_by_trt, test={"response": lambda data, variable, by, **kw: 0.5})

    def test_call_list_records_step(self, trial_by_trt):
        result = add_p(trial_by_trt)
        assert [step for step, _ in result.call_list] == ["tbl_summary", "add_p"]


class TestAddPValidation:
    def test_not_a_summary(self, trial_by_trt):
        plain = TableStructure(
            table_body=trial_by_trt.table_body,
            meta_data=trial_by_trt.meta_data,
            table_header=trial_by_trt.table_header,
            inputs=trial_by_trt.inputs,
        )
        with pytest.raises(InvalidArgument, match="TblSummary"):
            add_p(plain)

    def test_no_by_variable(self, trial):
        with pytest.raises(InvalidArgument, match="no 'by' variable"):
            add_p(tbl_summary(trial[["age", "grade"]]))

    def test_unknown_group(self, trial_by_trt):
        body_before = trial_by_trt.table_body.copy()
        with pytest.raises(InvalidArgument, match="'hospital'"):
            add_p(trial_by_trt, group="hospital")
        pd.testing.assert_frame_equal(trial_by_trt.table_body, body_before)

    def test_pvalue_fun_not_callable(self, trial_by_trt):
        with pytest.raises(InvalidArgument, match="pvalue_fun"):
            add_p(trial_by_trt, pvalue_fun="style_pvalue")

    def test_unnamed_test_entry_fails_before_running(self, trial_by_trt):
        calls = []

        def tracked(data, variable, by, **kwargs):
            calls.append(variable)
            return {"p_value": 0.5, "label": "Tracked"}

        with pytest.raises(InvalidSpecification):
            add_p(trial_by_trt, test=[("age", tracked), (None, "t_test")])
        assert calls == []

    def test_unknown_include(self, trial_by_trt):
        with pytest.raises(InvalidArgument, match="include"):
            add_p(trial_by_trt, include=["height"])


class TestCorrelationGroup:
    def test_group_removed_and_gee_used(self, trial):
        tbl = tbl_summary(trial[["trt", "age", "response", "site"]], by="trt")
        result = add_p(tbl, group="site")
        assert "site" not in result.variables
        assert "site" not in result.table_body["variable"].tolist()
        assert result.get_meta("age").stat_test == "gee_logistic"
        assert 0 <= result.get_meta("age").p_value <= 1
        assert "site" in tbl.variables


class TestMergePvalues:
    def test_left_join_on_label_rows(self, trial_by_trt):
        merged = merge_pvalues(trial_by_trt, {"stage": 0.04}, {"stage": "Pearson's Chi-squared test"})
        body = merged.table_body
        stage = body.loc[body["variable"] == "stage"]
        assert stage["p_value"].tolist()[0] == pytest.approx(0.04)
        assert stage["p_value"].iloc[1:].isna().all()
        assert pd.isna(_label_pvalue(merged, "age"))
        assert merged.get_meta("age").p_value is None

    def test_idempotent(self, trial_by_trt):
        pvalues = {"age": 0.2, "stage": 0.01}
        labels = {"age": "Wilcoxon rank sum test", "stage": "Pearson's Chi-squared test"}
        once = merge_pvalues(trial_by_trt, pvalues, labels)
        twice = merge_pvalues(once, pvalues, labels)
        pd.testing.assert_frame_equal(once.table_body, twice.table_body)
        assert once.meta_data == twice.meta_data
        assert list(twice.table_body.columns).count("p_value") == 1

    def test_overwrites_previous_values(self, trial_by_trt):
        first = merge_pvalues(trial_by_trt, {"age": 0.2}, {"age": "A"})
        second = merge_pvalues(first, {"marker": 0.3}, {"marker": "B"})
        assert second.get_meta("age").p_value is None
        assert second.get_meta("marker").p_value == pytest.approx(0.3)


class TestRefreshHeader:
    def test_keeps_customised_label(self, trial_by_trt):
        merged = merge_pvalues(trial_by_trt, {"age": 0.2}, {"age": "Wilcoxon rank sum test"})
        refreshed = refresh_header(merged, style_pvalue)
        custom = modify_header(refreshed, p_value="**P**")
        again = refresh_header(custom, style_pvalue)
        assert again.get_header("p_value").label == "**P**"

    def test_footnote_not_duplicated(self, trial_by_trt):
        merged = merge_pvalues(trial_by_trt, {"age": 0.2}, {"age": "Wilcoxon rank sum test"})
        twice = refresh_header(refresh_header(merged, style_pvalue), style_pvalue)
        assert twice.get_header("p_value").footnote == [
            "Statistical tests performed: Wilcoxon rank sum test"
        ]

    def test_no_footnote_without_tests(self, trial_by_trt):
        merged = merge_pvalues(trial_by_trt, {}, {})
        assert refresh_header(merged, style_pvalue).get_header("p_value").footnote == []

    def test_header_follows_body_columns(self, trial_by_trt):
        merged = merge_pvalues(trial_by_trt, {"age": 0.2}, {"age": "W"})
        refreshed = refresh_header(merged, style_pvalue)
        assert [h.column for h in refreshed.table_header] == list(refreshed.table_body.columns)

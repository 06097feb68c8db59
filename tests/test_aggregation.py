import numpy as np
import pandas as pd
import pytest

from hrclust.aggregation import (
    STATUS_CLUSTERED,
    STATUS_NOISE,
    align_records,
    attrition_flags,
    cluster_profiles,
    join_results,
    summarize_attrition,
)
from hrclust.clustering import ClusterAssignment
from hrclust.embedding import Embedding2D
from hrclust.errors import ConfigurationError, DataIntegrityError


def _records():
    return pd.DataFrame({
        "EmpID": [101, 102, 103, 104, 105, 106],
        "PayRate": [20.0, 22.0, 40.0, 41.0, 39.0, 90.0],
        "Termd": [1, 0, 1, 1, 0, 1],
        "TermReason": ["hours", "N/A-StillEmployed", "more money", "more money", "N/A-StillEmployed", "relocation"],
    })


def _density():
    return ClusterAssignment("density", [0, 0, 1, 1, 1, -1], allows_noise=True)


def _exemplar():
    return ClusterAssignment("exemplar", [0, 0, 1, 1, 1, 2], exemplars=[0, 3, 5])


def _embedding(n=6):
    return Embedding2D(coords=np.arange(2.0 * n).reshape(n, 2), method="tsne", seed=0)


class TestSummarizeAttrition:
    def test_rates_counts_and_order(self):
        summary = summarize_attrition(_records(), _density())
        assert summary["cluster"].tolist() == [1, 0]
        assert summary["member_count"].tolist() == [3, 2]
        assert summary["terminated_count"].tolist() == [2, 1]
        assert summary["attrition_rate"].tolist() == pytest.approx([2 / 3, 0.5])

    def test_noise_is_left_out_of_the_denominator(self):
        summary = summarize_attrition(_records(), _density())
        assert -1 not in summary["cluster"].tolist()
        assert summary["member_count"].sum() == int((_density().labels != -1).sum())

    def test_rates_within_unit_interval(self):
        rng = np.random.default_rng(2)
        n = 200
        records = pd.DataFrame({"EmpID": range(n), "Termd": rng.integers(0, 2, size=n)})
        labels = rng.integers(-1, 6, size=n)
        summary = summarize_attrition(records, ClusterAssignment("density", labels, allows_noise=True))
        assert summary["attrition_rate"].between(0, 1).all()
        assert summary["member_count"].sum() == int((labels != -1).sum())

    def test_ties_break_on_size_then_label(self):
        records = pd.DataFrame({"EmpID": range(8), "Termd": [1, 0, 1, 0, 1, 0, 1, 0]})
        labels = [2, 2, 1, 1, 1, 1, 0, 0]
        summary = summarize_attrition(records, labels)
        assert summary["cluster"].tolist() == [1, 0, 2]
        assert summary["attrition_rate"].tolist() == [0.5, 0.5, 0.5]

    def test_summary_by_identifier(self):
        records = _records().iloc[::-1]
        ids = _records()["EmpID"].tolist()
        by_id = summarize_attrition(records, _density(), ids=ids)
        pd.testing.assert_frame_equal(by_id, summarize_attrition(_records(), _density()))

    def test_misaligned_lengths(self):
        with pytest.raises(DataIntegrityError):
            summarize_attrition(_records().iloc[:5], _density())

    def test_all_noise_gives_empty_summary(self):
        summary = summarize_attrition(_records(), ClusterAssignment("density", [-1] * 6, allows_noise=True))
        assert summary.empty
        assert list(summary.columns) == ["cluster", "member_count", "terminated_count", "attrition_rate"]

    def test_missing_attrition_flag(self):
        records = _records()
        records["Termd"] = records["Termd"].astype(float)
        records.loc[2, "Termd"] = np.nan
        with pytest.raises(DataIntegrityError):
            summarize_attrition(records, _density())


class TestJoinResults:
    def test_table_layout(self):
        ids = _records()["EmpID"].tolist()
        table = join_results(_records(), {"exemplar": _exemplar(), "density": _density()}, _embedding(), ids)
        assert len(table) == 6
        assert table["EmpID"].tolist() == ids
        for col in ["exemplar_cluster", "density_cluster", "exemplar_status", "density_status",
                    "embed_x", "embed_y", "cluster_member_count", "cluster_attrition_rate", "PayRate"]:
            assert col in table.columns
        assert table.attrs["summary_by"] == "density"

    def test_noise_row_is_flagged(self):
        ids = _records()["EmpID"].tolist()
        table = join_results(_records(), {"exemplar": _exemplar(), "density": _density()}, _embedding(), ids)
        noise = table[table["EmpID"] == 106].iloc[0]
        assert noise["density_status"] == STATUS_NOISE
        assert noise["exemplar_status"] == STATUS_CLUSTERED
        assert np.isnan(noise["cluster_attrition_rate"])
        first = table.iloc[0]
        assert first["cluster_attrition_rate"] == 0.5
        assert first["cluster_member_count"] == 2

    def test_caller_chooses_the_summarized_assignment(self):
        ids = _records()["EmpID"].tolist()
        table = join_results(_records(), {"exemplar": _exemplar(), "density": _density()}, _embedding(), ids,
                             summary_by="exemplar")
        assert table.attrs["summary_by"] == "exemplar"
        assert table.loc[table["EmpID"] == 106, "cluster_attrition_rate"].iloc[0] == 1.0
        with pytest.raises(ConfigurationError):
            join_results(_records(), {"density": _density()}, None, ids, summary_by="exemplar")

    def test_records_are_joined_by_identity_not_position(self):
        ids = _records()["EmpID"].tolist()
        shuffled = _records().sample(frac=1.0, random_state=0)
        table = join_results(shuffled, [_density()], None, ids)
        assert table["EmpID"].tolist() == ids
        assert table["PayRate"].tolist() == _records()["PayRate"].tolist()

    def test_unknown_identifier_is_integrity_error(self):
        ids = [101, 102, 103, 104, 105, 999]
        with pytest.raises(DataIntegrityError) as exc:
            join_results(_records(), {"density": _density()}, None, ids)
        assert exc.value.context["ids"] == [999]
        assert exc.value.stage == "join"

    def test_length_mismatch(self):
        ids = _records()["EmpID"].tolist()
        with pytest.raises(DataIntegrityError):
            join_results(_records(), {"density": _density()}, _embedding(5), ids)

    def test_consistent_duplicates_are_allowed(self):
        records = pd.concat([_records(), _records().iloc[[0]].assign(PayRate=21.0)], ignore_index=True)
        ids = records["EmpID"].tolist()
        labels = ClusterAssignment("density", [0, 0, 1, 1, 1, -1, 0], allows_noise=True)
        table = join_results(records, {"density": labels}, None, ids)
        assert len(table) == 7
        assert table["PayRate"].tolist() == records["PayRate"].tolist()

    def test_inconsistent_duplicates_are_rejected(self):
        ids = [101, 101, 102, 103, 104, 105]
        with pytest.raises(DataIntegrityError):
            join_results(_records(), {"density": _density()}, None, ids)
        duplicated = pd.concat([_records(), _records().iloc[[0]]], ignore_index=True)
        with pytest.raises(DataIntegrityError):
            align_records(duplicated, _records()["EmpID"].tolist())


class TestHelpers:
    def test_attrition_flags_accepts_text(self):
        flags = attrition_flags(pd.Series(["Yes", "no", " TRUE", "0"]))
        assert flags.tolist() == [True, False, True, False]

    def test_attrition_flags_rejects_unknown(self):
        with pytest.raises(DataIntegrityError):
            attrition_flags(pd.Series(["Yes", "maybe"]))
        with pytest.raises(DataIntegrityError):
            attrition_flags(pd.Series([0, 2]))

    def test_cluster_profiles(self):
        ids = _records()["EmpID"].tolist()
        table = join_results(_records(), {"density": _density()}, None, ids)
        profile = cluster_profiles(table, "density_cluster", ["PayRate"], attrition_column="Termd",
                                   reason_column="TermReason")
        assert profile["cluster"].tolist() == [0, 1]
        assert profile["member_count"].tolist() == [2, 3]
        assert profile["PayRate"].tolist() == pytest.approx([21.0, 40.0])
        assert profile["top_reason"].tolist() == ["hours", "more money"]

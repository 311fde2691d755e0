"""
Tests for PSM to feature aggregation and site expansion.
"""

import warnings

import numpy as np
import pandas as pd
import pytest

from tmtquant.aggregation import PSMAggregator, expand_site_multiplicity, filter_psms
from tmtquant.core.constants import MODIFICATION_COUNT
from tmtquant.core.exceptions import ConfigurationError, DataIntegrityWarning
from tmtquant.model.aggregation import AggregationConfig


CHANNELS = ["Reporter intensity corrected 1", "Reporter intensity corrected 2"]


def make_psms(rows):
    """Build a PSM table indexed by string id from (id, eil, ppf, floor, intensities)."""
    records = []
    for psm_id, eil, ppf, floor, values in rows:
        record = {"id": str(psm_id), "EIL": eil, "PPF": ppf, "Min MS2 intensity": floor}
        record.update(dict(zip(CHANNELS, values)))
        records.append(record)
    psms = pd.DataFrame(records)
    return psms.set_index(psms["id"].rename(None))


@pytest.fixture
def psms():
    return make_psms(
        [
            (1, 0.1, 0.9, 5.0, [10.0, 10.0]),
            (2, 0.5, 0.5, 5.0, [30.0, 30.0]),
            (3, 0.2, 0.8, 7.0, [np.nan, 40.0]),
            (4, 0.3, 0.7, 2.0, [0.0, 0.0]),
        ]
    )


@pytest.fixture
def aggregator(psms):
    return PSMAggregator(psms, CHANNELS)


class TestPSMAggregator:
    """Tests for the per-feature aggregation."""

    def test_two_psm_example(self, aggregator):
        result = aggregator.aggregate_feature("1;2")

        np.testing.assert_allclose(result["intensities"], [40.0, 40.0])
        # weights are the PSM row sums over the total: 20/80 and 60/80
        assert result["eil"] == pytest.approx(0.25 * 0.1 + 0.75 * 0.5)
        assert result["ppf"] == pytest.approx(0.25 * 0.9 + 0.75 * 0.5)
        assert result["found"] is True
        assert result["count"] == 2

    def test_missing_id(self, aggregator):
        result = aggregator.aggregate_feature("99")

        assert result["found"] is False
        np.testing.assert_array_equal(result["intensities"], [0.0, 0.0])
        assert result["eil"] == 0.0
        assert result["ppf"] == 0.0

    def test_partially_missing_ids(self, aggregator):
        full = aggregator.aggregate_feature("1;2")
        partial = aggregator.aggregate_feature("1; 2;99")
        np.testing.assert_allclose(partial["intensities"], full["intensities"])
        assert partial["count"] == 2

    def test_sum_conservation(self, aggregator, psms):
        result = aggregator.aggregate_feature("1;3")
        expected = psms.loc[["1", "3"], CHANNELS].fillna(0).sum().to_numpy()
        np.testing.assert_allclose(result["intensities"], expected)

    def test_weighted_values_in_convex_hull(self):
        rng = np.random.default_rng(3)
        rows = [
            (i, rng.uniform(0, 1), rng.uniform(0, 1), 1.0, rng.uniform(0, 1000, 2))
            for i in range(1, 31)
        ]
        psms = make_psms(rows)
        aggregator = PSMAggregator(psms, CHANNELS)

        for start in range(1, 28, 3):
            ids = [str(i) for i in range(start, start + 3)]
            result = aggregator.aggregate_feature(";".join(ids))
            for key, column in (("eil", "EIL"), ("ppf", "PPF")):
                values = psms.loc[ids, column]
                assert values.min() - 1e-12 <= result[key] <= values.max() + 1e-12

    def test_psm_without_signal_has_no_weight(self, aggregator):
        with_empty = aggregator.aggregate_feature("1;4")
        alone = aggregator.aggregate_feature("1")
        assert with_empty["eil"] == pytest.approx(alone["eil"])
        assert with_empty["ppf"] == pytest.approx(alone["ppf"])

    def test_zero_signal_gives_nan(self, aggregator):
        result = aggregator.aggregate_feature("4")

        assert result["found"] is True
        assert result["zero_signal"] is True
        assert np.isnan(result["eil"])
        assert np.isnan(result["ppf"])
        np.testing.assert_array_equal(result["intensities"], [0.0, 0.0])

    def test_ms2_floor(self, psms):
        aggregator = PSMAggregator(psms, CHANNELS, AggregationConfig(use_ms2_floor=True))
        result = aggregator.aggregate_feature("1;3")
        # PSM 3 is missing channel 1 and contributes its floor of 7
        np.testing.assert_allclose(result["intensities"], [17.0, 50.0])

    def test_missing_psm_columns(self, psms):
        with pytest.raises(ConfigurationError):
            PSMAggregator(psms.drop(columns=["EIL"]), CHANNELS)


class TestAggregateTable:
    """Tests for aggregating whole feature tables."""

    def test_output_columns(self, aggregator):
        features = pd.DataFrame({"Protein IDs": ["P1", "P2"], "Evidence IDs": ["1;2", "99"]})
        result = aggregator.aggregate(features)

        assert list(result.columns) == [
            "Protein IDs",
            "Evidence IDs",
            "corrected 1",
            "corrected 2",
            "EIL",
            "PPF",
            "PSMs found",
            "PSM count",
        ]
        assert result["PSMs found"].tolist() == [True, False]
        assert result["PSM count"].tolist() == [2, 0]
        assert "corrected 1" not in features.columns

    def test_zero_signal_warning_counts_rows(self, aggregator):
        features = pd.DataFrame({"Evidence IDs": ["4", "4;99", "1"]})

        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            result = aggregator.aggregate(features)

        integrity = [w for w in caught if issubclass(w.category, DataIntegrityWarning)]
        assert len(integrity) == 1
        assert str(integrity[0].message).startswith("2 features")
        assert result["EIL"].isna().tolist() == [True, True, False]

    def test_unresolved_features_warning_counts_rows(self, aggregator):
        features = pd.DataFrame({"Evidence IDs": ["99", "1", "98;97"]})

        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            result = aggregator.aggregate(features)

        integrity = [w for w in caught if issubclass(w.category, DataIntegrityWarning)]
        assert len(integrity) == 1
        assert str(integrity[0].message).startswith("2 of 3 features")
        assert result["PSMs found"].tolist() == [False, True, False]

    def test_carried_channel_set_skips_quality_metrics(self, psms):
        aggregator = PSMAggregator(psms, CHANNELS, channel_set="uncorrected", quality_metrics=False)
        features = pd.DataFrame({"Evidence IDs": ["1;2", "4", "99"]})

        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            result = aggregator.aggregate(features)

        assert not [w for w in caught if issubclass(w.category, DataIntegrityWarning)]
        assert "EIL" not in result.columns
        assert "PPF" not in result.columns
        assert result["uncorrected 1"].tolist() == [40.0, 0.0, 0.0]
        assert result["PSMs found"].tolist() == [True, True, False]

    def test_modification_count_restricts_psms(self, psms):
        psms = psms.copy()
        psms["Modification count"] = [1, 2, 1, 1]
        aggregator = PSMAggregator(psms, CHANNELS)
        sites = pd.DataFrame({"Evidence IDs": ["1;2", "1;2"], MODIFICATION_COUNT: [1, 2]})

        result = aggregator.aggregate(sites)

        assert result["corrected 1"].tolist() == [10.0, 30.0]
        assert result["PSM count"].tolist() == [1, 1]

    def test_site_states_need_psm_modification_column(self, aggregator):
        # without it every state row would sum all PSMs of the site
        sites = pd.DataFrame({"Evidence IDs": ["1;2", "1;2"], MODIFICATION_COUNT: [1, 2]})
        with pytest.raises(ConfigurationError, match="Modification count"):
            aggregator.aggregate(sites)

    def test_missing_id_column(self, aggregator):
        with pytest.raises(ConfigurationError):
            aggregator.aggregate(pd.DataFrame({"Protein IDs": ["P1"]}))


class TestFilterPsms:
    """Tests for the upstream PPF filter."""

    def test_low_ppf_psms_removed(self, psms):
        filtered = filter_psms(psms, 0.75, "PPF")
        assert filtered.index.tolist() == ["1", "3"]

    def test_removed_psms_flag_features(self, psms):
        filtered = filter_psms(psms, 0.95, "PPF")
        result = PSMAggregator(filtered, CHANNELS).aggregate(pd.DataFrame({"Evidence IDs": ["1;2"]}))
        assert result["PSMs found"].tolist() == [False]


class TestExpandSiteMultiplicity:
    """Tests for site table expansion."""

    @pytest.fixture
    def sites(self):
        return pd.DataFrame(
            {
                "id": [0, 1],
                "Evidence IDs": ["1;2", "3"],
                "Reporter intensity corrected 1___1": [10.0, 0.0],
                "Reporter intensity corrected 2___1": [20.0, 0.0],
                "Reporter intensity corrected 1___2": [5.0, 0.0],
                "Reporter intensity corrected 2___2": [np.nan, 8.0],
                "Reporter intensity corrected 1___3": [0.0, 0.0],
                "Reporter intensity corrected 2___3": [0.0, 0.0],
            }
        )

    def test_one_row_per_state(self, sites):
        result = expand_site_multiplicity(sites)

        assert result["id"].tolist() == [0, 0, 1]
        assert result[MODIFICATION_COUNT].tolist() == [1, 2, 2]
        assert result["Reporter intensity corrected 1"].tolist()[:1] == [10.0]
        assert result["Reporter intensity corrected 2"].tolist()[2] == 8.0
        assert not any("___" in col for col in result.columns)

    def test_input_unchanged(self, sites):
        original = sites.copy()
        expand_site_multiplicity(sites)
        pd.testing.assert_frame_equal(sites, original)

    def test_no_site_columns(self):
        with pytest.raises(ConfigurationError):
            expand_site_multiplicity(pd.DataFrame({"id": [0]}))

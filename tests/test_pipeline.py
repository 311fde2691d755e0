"""
End-to-end tests of the quantification pipeline on synthetic MaxQuant tables.
"""

import numpy as np
import pandas as pd
import pytest

from tmtquant.core.exceptions import ConfigurationError
from tmtquant.model.filters import FeatureFilterConfig
from tmtquant.pipeline import (
    PipelineConfig,
    QuantificationPipeline,
    psms_to_features,
    size_factors_path,
)


# Shape of the synthetic dataset written by the protein_dataset fixture
N_PROTEINS = 40
N_REGULATED = 10
SAMPLES = ["ctrl_1", "ctrl_2", "trt_1", "trt_2"]


def protein_config(paths, tmp_path, **kwargs):
    options = dict(
        psm_table=str(paths["psms"]),
        feature_table=str(paths["features"]),
        impurity_matrix=str(paths["impurities"]),
        impurity_percent=True,
        design=str(paths["design"]),
        results_dir=str(tmp_path / "results"),
        name="proteins",
    )
    options.update(kwargs)
    return PipelineConfig(**options)


class TestProteinPipeline:
    """Tests for a full protein-level run."""

    @pytest.fixture
    def run(self, protein_dataset, tmp_path):
        config = protein_config(
            protein_dataset, tmp_path, normalization="median", comparisons=("ctrl:trt",)
        )
        return psms_to_features(config, FeatureFilterConfig(name="pipeline-test"))

    def test_filtered_rows(self, run):
        result, _ = run

        assert len(result) == N_PROTEINS
        assert result["Protein IDs"].tolist() == [f"P{i}" for i in range(N_PROTEINS)]
        assert result["PSMs found"].all()
        assert (result["PSM count"] == 2).all()

    def test_filter_summary(self, run):
        _, pipeline = run
        summary = pipeline.filter_summary

        assert summary["filter"].tolist() == [
            "ContaminantReverseFilter",
            "OnlyBySiteFilter",
            "MinPeptideFilter",
            "ProvenanceFilter",
            "ValidValuesFilter",
            "TopNIntensityFilter",
        ]
        assert summary["removed"].tolist() == [2, 0, 1, 2, 0, 0]
        assert summary["rows_before"].iloc[0] == N_PROTEINS + 5

    def test_output_columns(self, run):
        result, _ = run

        for channel_set in ("corrected", "uncorrected"):
            for sample in SAMPLES:
                assert f"log2 {channel_set} {sample}" in result.columns
        for column in ("EIL", "PPF", "Gene names", "ANOVA p-value", "logFC trt/ctrl"):
            assert column in result.columns
        assert not any(col.startswith("Reporter intensity") for col in result.columns)
        assert not any(col in result.columns for col in ("corrected 1", "uncorrected 1"))
        assert result["Gene names"].iloc[0] == "GENE0"

    def test_quality_metrics_in_range(self, run):
        result, _ = run
        assert result["EIL"].between(0.05, 0.4).all()
        assert result["PPF"].between(0.5, 1.0).all()

    def test_regulated_proteins(self, run):
        result, _ = run
        logfc = result["logFC trt/ctrl"]

        assert logfc.iloc[:N_REGULATED].mean() > 1.5
        assert logfc.iloc[N_REGULATED:].abs().mean() < 0.5
        assert (result["p-value trt/ctrl"].iloc[:N_REGULATED] < 0.05).mean() >= 0.8

    def test_files_written(self, run, tmp_path):
        result, _ = run
        output = tmp_path / "results" / "proteins.tsv"

        written = pd.read_csv(output, sep="\t")
        assert list(written.columns) == list(result.columns)
        assert len(written) == len(result)
        assert (tmp_path / "results" / "proteins_filter_summary.tsv").exists()

    def test_correction_reports(self, run):
        _, pipeline = run
        assert set(pipeline.correction_reports) == {"corrected", "uncorrected"}
        report = pipeline.correction_reports["uncorrected"]
        assert report["channel"].tolist() == ["1", "2", "3", "4"]


class TestPipelineOptions:
    """Tests for normalization, blocking and site options."""

    def test_default_loess(self, protein_dataset, tmp_path):
        config = protein_config(protein_dataset, tmp_path, design=None, impurity_matrix=None)
        result = QuantificationPipeline(config).run()

        # Without a design, samples are named by channel
        assert "log2 corrected 1" in result.columns
        assert "ANOVA p-value" not in result.columns
        assert len(result) == N_PROTEINS

    def test_size_factors_per_channel_set(self, protein_dataset, tmp_path):
        factors = tmp_path / "factors.tsv"
        config = protein_config(
            protein_dataset, tmp_path, normalization="sizefactor", size_factors_file=str(factors)
        )
        QuantificationPipeline(config).run()

        for channel_set in ("corrected", "uncorrected"):
            path = size_factors_path(str(factors), channel_set)
            assert path.name == f"factors_{channel_set}.tsv"
            assert path.exists()

    def test_blocking(self, protein_dataset, tmp_path):
        config = protein_config(
            protein_dataset,
            tmp_path,
            normalization="median",
            comparisons=("ctrl:trt",),
            use_blocking=True,
        )
        pipeline = QuantificationPipeline(config)
        result = pipeline.run()

        correlation = pipeline.correlations["trt/ctrl"]
        assert -1.0 < correlation < 1.0
        assert result["logFC trt/ctrl"].notna().all()

    def test_no_anova(self, protein_dataset, tmp_path):
        config = protein_config(protein_dataset, tmp_path, run_anova=False)
        result = QuantificationPipeline(config).run()
        assert "ANOVA p-value" not in result.columns

    def test_disabled_filters_keep_everything(self, protein_dataset, tmp_path):
        config = protein_config(protein_dataset, tmp_path, normalization="none")
        pipeline = QuantificationPipeline(config, FeatureFilterConfig(name="off", enabled=False))
        result = pipeline.run()

        assert len(result) == N_PROTEINS + 5
        assert pipeline.filter_summary.empty
        missing = result.loc[result["Protein IDs"] == "P_MISSING"].iloc[0]
        assert not missing["PSMs found"]
        assert np.isnan(missing["log2 corrected ctrl_1"])

    def test_site_table(self, site_dataset, tmp_path):
        config = PipelineConfig(
            psm_table=str(site_dataset["psms"]),
            feature_table=str(site_dataset["features"]),
            design=str(site_dataset["design"]),
            table_type="site",
            normalization="median",
            results_dir=str(tmp_path / "results"),
        )
        pipeline = QuantificationPipeline(config)
        result = pipeline.run()
        summary = pipeline.filter_summary

        assert summary["filter"].tolist() == [
            "ContaminantReverseFilter",
            "MinScoreFilter",
            "ProvenanceFilter",
            "ValidValuesFilter",
            "TopNIntensityFilter",
        ]
        assert summary["rows_before"].iloc[0] == 50
        assert summary["removed"].iloc[1] == 1
        assert 0 not in result["id"].tolist()
        assert set(result["Modification count"]) == {1, 2}
        assert (result["PSM count"] == 1).all()
        assert not any("___" in col for col in result.columns)


class TestPipelineValidation:
    """Tests for configuration errors detected before any work is done."""

    def test_missing_input(self, protein_dataset, tmp_path):
        config = protein_config(protein_dataset, tmp_path, psm_table=str(tmp_path / "absent.txt"))
        with pytest.raises(FileNotFoundError):
            QuantificationPipeline(config)

    def test_comparison_without_design(self, protein_dataset, tmp_path):
        config = protein_config(protein_dataset, tmp_path, design=None, comparisons=("ctrl:trt",))
        with pytest.raises(ConfigurationError):
            QuantificationPipeline(config)

    def test_unknown_comparison_group(self, protein_dataset, tmp_path):
        config = protein_config(protein_dataset, tmp_path, comparisons=("ctrl:ko",))
        with pytest.raises(ConfigurationError, match="ko"):
            QuantificationPipeline(config).run()

    @pytest.mark.parametrize(
        "options",
        [
            {"table_type": "peptide"},
            {"min_ppf": 1.5},
            {"normalization": "quantile"},
            {"comparisons": ("ctrl-trt",)},
            {"reuse_size_factors": True},
        ],
        ids=["table-type", "min-ppf", "normalization", "comparison", "reuse"],
    )
    def test_invalid_config(self, protein_dataset, tmp_path, options):
        with pytest.raises(ConfigurationError):
            protein_config(protein_dataset, tmp_path, **options)

    def test_site_table_without_psm_modification_count(self, site_dataset, tmp_path):
        psms = pd.read_csv(site_dataset["psms"], sep="\t")
        psms.drop(columns="Modification count").to_csv(site_dataset["psms"], sep="\t", index=False)
        config = PipelineConfig(
            psm_table=str(site_dataset["psms"]),
            feature_table=str(site_dataset["features"]),
            table_type="site",
            results_dir=str(tmp_path / "results"),
        )
        with pytest.raises(ConfigurationError, match="Modification count"):
            QuantificationPipeline(config).run()

    def test_impurity_channels_mismatch(self, protein_dataset, tmp_path):
        matrix = tmp_path / "bad_impurities.tsv"
        matrix.write_text("channel\t126\t127\n126\t100\t0\n127\t0\t100\n")
        config = protein_config(protein_dataset, tmp_path, impurity_matrix=str(matrix))
        with pytest.raises(ConfigurationError):
            QuantificationPipeline(config).run()

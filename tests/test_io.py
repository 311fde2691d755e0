"""
Tests for table readers and result export.
"""

import numpy as np
import pandas as pd
import pytest

from tmtquant.core.exceptions import ConfigurationError
from tmtquant.io import (
    check_design,
    default_design,
    format_output_table,
    gene_names_from_fasta_headers,
    read_design,
    read_feature_table,
    read_psm_table,
    write_results,
)
from tmtquant.model.pipeline import PipelineConfig


PSM_HEADER = [
    "id",
    "Sequence",
    "EIL",
    "PPF",
    "Min MS2 intensity",
    "Reporter intensity 1",
    "Reporter intensity 2",
    "Reporter intensity corrected 1",
    "Reporter intensity corrected 2",
]


def write_tsv(path, header, rows):
    lines = ["\t".join(header)] + ["\t".join(str(v) for v in row) for row in rows]
    path.write_text("\n".join(lines) + "\n")
    return path


@pytest.fixture
def config():
    return PipelineConfig(psm_table="evidence.txt", feature_table="proteinGroups.txt")


class TestGeneNames:
    """Tests for FASTA header parsing."""

    @pytest.mark.parametrize(
        "headers, expected",
        [
            ("sp|P1|A_HUMAN Alpha OS=Homo sapiens GN=ABC PE=1;sp|P2|B_HUMAN GN=XYZ", "ABC;XYZ"),
            ("sp|P1|A_HUMAN GN=ABC;sp|P1-2|A_HUMAN GN=ABC", "ABC"),
            ("sp|P1|A_HUMAN Alpha OS=Homo sapiens", ""),
            (np.nan, ""),
            (None, ""),
        ],
    )
    def test_extract(self, headers, expected):
        assert gene_names_from_fasta_headers(headers) == expected


class TestReadPsmTable:
    """Tests for the PSM table reader."""

    def test_indexed_by_string_id(self, tmp_path, config):
        path = write_tsv(
            tmp_path / "evidence.txt",
            PSM_HEADER,
            [
                [1, "PEPTIDE", 0.1, 0.9, 5, 11, 12, 10, 10],
                [2, "PEPTIDES", 0.5, 0.5, 5, 31, 32, 30, 30],
            ],
        )
        psms = read_psm_table(path, config)

        assert psms.index.tolist() == ["1", "2"]
        assert psms["id"].tolist() == ["1", "2"]
        assert psms.loc["2", "Reporter intensity corrected 1"] == 30

    def test_duplicate_ids(self, tmp_path, config):
        path = write_tsv(
            tmp_path / "evidence.txt",
            PSM_HEADER,
            [[1, "A", 0.1, 0.9, 5, 1, 1, 1, 1], [1, "B", 0.1, 0.9, 5, 1, 1, 1, 1]],
        )
        with pytest.raises(ConfigurationError, match="duplicate"):
            read_psm_table(path, config)

    def test_missing_required_column(self, tmp_path, config):
        header = [col for col in PSM_HEADER if col != "PPF"]
        path = write_tsv(tmp_path / "evidence.txt", header, [[1, "A", 0.1, 5, 1, 1, 1, 1]])
        with pytest.raises(ConfigurationError, match="PPF"):
            read_psm_table(path, config)

    def test_channel_sets_differ_in_size(self, tmp_path, config):
        header = PSM_HEADER[:-1]
        path = write_tsv(tmp_path / "evidence.txt", header, [[1, "A", 0.1, 0.9, 5, 1, 1, 1]])
        with pytest.raises(ConfigurationError):
            read_psm_table(path, config)

    def test_no_reporter_columns(self, tmp_path, config):
        path = write_tsv(
            tmp_path / "evidence.txt",
            ["id", "EIL", "PPF", "Min MS2 intensity"],
            [[1, 0.1, 0.9, 5]],
        )
        with pytest.raises(ConfigurationError):
            read_psm_table(path, config)


class TestReadFeatureTable:
    """Tests for the protein and site table reader."""

    def test_gene_names_backfilled(self, tmp_path, config):
        path = write_tsv(
            tmp_path / "proteinGroups.txt",
            ["Protein IDs", "Gene names", "Fasta headers", "Evidence IDs"],
            [
                ["P1", "KEEP", "sp|P1|X GN=OTHER", "1;2"],
                ["P2", "", "sp|P2|Y GN=FILLED", "3"],
            ],
        )
        features = read_feature_table(path, config)

        assert features["Gene names"].tolist() == ["KEEP", "FILLED"]
        assert features["Evidence IDs"].tolist() == ["1;2", "3"]

    def test_gene_names_created(self, tmp_path, config):
        path = write_tsv(
            tmp_path / "proteinGroups.txt",
            ["Protein IDs", "Fasta headers", "Evidence IDs"],
            [["P1", "sp|P1|X GN=ABC", "1"]],
        )
        features = read_feature_table(path, config)
        assert features["Gene names"].tolist() == ["ABC"]

    def test_ids_read_as_text(self, tmp_path, config):
        path = write_tsv(tmp_path / "proteinGroups.txt", ["Protein IDs", "Evidence IDs"], [["P1", 7]])
        features = read_feature_table(path, config)
        assert features["Evidence IDs"].tolist() == ["7"]

    def test_missing_id_column(self, tmp_path, config):
        path = write_tsv(tmp_path / "proteinGroups.txt", ["Protein IDs"], [["P1"]])
        with pytest.raises(ConfigurationError):
            read_feature_table(path, config)


class TestDesign:
    """Tests for the sample design."""

    def test_read(self, tmp_path):
        path = write_tsv(
            tmp_path / "design.tsv",
            ["Channel", "Sample", "Group", "Block", "Notes"],
            [[1, "ctrl_1", "ctrl", "s1", "x"], [2, "trt_1", "trt", "s1", "y"]],
        )
        design = read_design(path)

        assert list(design.columns) == ["channel", "sample", "group", "block"]
        assert design["channel"].tolist() == ["1", "2"]

    def test_duplicate_sample(self, tmp_path):
        path = write_tsv(
            tmp_path / "design.tsv",
            ["channel", "sample", "group"],
            [[1, "a", "g"], [2, "a", "g"]],
        )
        with pytest.raises(ConfigurationError):
            read_design(path)

    def test_missing_column(self, tmp_path):
        path = write_tsv(tmp_path / "design.tsv", ["channel", "sample"], [[1, "a"]])
        with pytest.raises(ConfigurationError):
            read_design(path)

    def test_default_design(self):
        design = default_design(["1", "2", "3"])
        assert design["sample"].tolist() == ["1", "2", "3"]
        assert set(design["group"]) == {"all"}
        check_design(design, ["1", "2", "3"])

    @pytest.mark.parametrize("channels", [["1", "2"], ["1", "3", "2"]])
    def test_check_design_mismatch(self, channels):
        with pytest.raises(ConfigurationError):
            check_design(default_design(["1", "2", "3"]), channels)


class TestExport:
    """Tests for the result table export."""

    @pytest.fixture
    def features(self):
        return pd.DataFrame(
            {
                "Protein IDs": ["P1", "P2"],
                "Reporter intensity corrected 1": [1.0, 2.0],
                "corrected 1": [8.0, 0.0],
                "corrected 2": [4.0, np.nan],
                "uncorrected 1": [16.0, 2.0],
                "uncorrected 2": [1.0, 1.0],
            }
        )

    def test_format_output_table(self, features):
        result = format_output_table(
            features,
            {"corrected": ["corrected 1", "corrected 2"], "uncorrected": ["uncorrected 1", "uncorrected 2"]},
            ["ctrl", "trt"],
            drop_patterns=[r"^Reporter intensity corrected \d+$"],
        )

        assert list(result.columns) == [
            "Protein IDs",
            "log2 corrected ctrl",
            "log2 corrected trt",
            "log2 uncorrected ctrl",
            "log2 uncorrected trt",
        ]
        np.testing.assert_allclose(result["log2 corrected ctrl"], [3.0, np.nan])
        np.testing.assert_allclose(result["log2 corrected trt"], [2.0, np.nan])
        np.testing.assert_allclose(result["log2 uncorrected ctrl"], [4.0, 1.0])
        assert "corrected 1" in features.columns

    def test_sample_count_mismatch(self, features):
        with pytest.raises(ConfigurationError):
            format_output_table(features, {"corrected": ["corrected 1", "corrected 2"]}, ["ctrl"])

    def test_write_results(self, tmp_path):
        table = pd.DataFrame({"Protein IDs": ["P1"], "log2 corrected a": [3.0]})
        summary = pd.DataFrame({"step": [1], "filter": ["ProvenanceFilter"]})

        output = write_results(table, tmp_path / "out", "run1", summary)

        assert output == tmp_path / "out" / "run1.tsv"
        pd.testing.assert_frame_equal(pd.read_csv(output, sep="\t"), table)
        assert (tmp_path / "out" / "run1_filter_summary.tsv").exists()

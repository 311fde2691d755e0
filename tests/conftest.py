"""
Synthetic MaxQuant-style TMT tables shared by the pipeline and CLI tests.

The protein dataset has 40 regular protein groups with two PSMs each, the
first 10 of them four-fold up in the ``trt`` samples, plus five groups that
the feature filters must remove:

- ``CON__P9`` (contaminant) and ``REV__P8`` (reverse hit)
- ``P_ONE`` with a single razor + unique peptide
- ``P_MISSING`` whose PSM id does not exist
- ``P_IMPURE`` whose only PSM fails the PPF filter
"""

import numpy as np
import pandas as pd
import pytest


CHANNELS = ["1", "2", "3", "4"]
SAMPLES = ["ctrl_1", "ctrl_2", "trt_1", "trt_2"]
GROUPS = ["ctrl", "ctrl", "trt", "trt"]
BLOCKS = ["s1", "s2", "s1", "s2"]
N_PROTEINS = 40
N_REGULATED = 10

IMPURITIES = np.array(
    [
        [0.95, 0.05, 0.00, 0.00],
        [0.02, 0.94, 0.04, 0.00],
        [0.00, 0.03, 0.93, 0.04],
        [0.00, 0.00, 0.05, 0.95],
    ]
)


def _psm_row(psm_id, true_signal, rng, ppf=None, modification_count=1):
    observed = true_signal @ IMPURITIES
    row = {
        "id": psm_id,
        "Sequence": f"PEPTIDE{psm_id}K",
        "EIL": round(float(rng.uniform(0.05, 0.4)), 4),
        "PPF": round(float(rng.uniform(0.6, 1.0)), 4) if ppf is None else ppf,
        "Min MS2 intensity": 50.0,
        "Modification count": modification_count,
    }
    for channel, value in zip(CHANNELS, observed):
        row[f"Reporter intensity {channel}"] = round(float(value), 2)
    for channel, value in zip(CHANNELS, true_signal):
        row[f"Reporter intensity corrected {channel}"] = round(float(value), 2)
    return row


def _protein_signal(rng, regulated):
    base = rng.lognormal(mean=11, sigma=1.2)
    fold = np.array([1.0, 1.0, 4.0, 4.0]) if regulated else np.ones(4)
    return base * fold * rng.lognormal(0, 0.1, size=4)


def write_protein_dataset(directory):
    """Write PSM, protein, design and impurity tables; return their paths."""
    rng = np.random.default_rng(2024)
    psms = []
    proteins = []

    for i in range(N_PROTEINS):
        signal = _protein_signal(rng, i < N_REGULATED)
        ids = [2 * i + 1, 2 * i + 2]
        for psm_id in ids:
            psms.append(_psm_row(psm_id, signal * rng.uniform(0.3, 1.0), rng))
        proteins.append(
            {
                "Protein IDs": f"P{i}",
                "Fasta headers": f"sp|P{i}|PROT{i}_HUMAN Protein {i} OS=Homo sapiens GN=GENE{i} PE=1",
                "Evidence IDs": ";".join(str(x) for x in ids),
                "Razor + unique peptides": 2,
                "Potential contaminant": "",
                "Reverse": "",
                "Only identified by site": "",
            }
        )

    extra = [
        ("CON__P9", 101, {"Potential contaminant": "+"}),
        ("REV__P8", 102, {"Reverse": "+"}),
        ("P_ONE", 103, {"Razor + unique peptides": 1}),
        ("P_MISSING", 999, {}),
        ("P_IMPURE", 104, {}),
    ]
    for protein_id, psm_id, flags in extra:
        if psm_id != 999:
            ppf = 0.2 if protein_id == "P_IMPURE" else None
            psms.append(_psm_row(psm_id, _protein_signal(rng, False), rng, ppf=ppf))
        row = {
            "Protein IDs": protein_id,
            "Fasta headers": f"sp|{protein_id}|X_HUMAN GN={protein_id}G",
            "Evidence IDs": str(psm_id),
            "Razor + unique peptides": 2,
            "Potential contaminant": "",
            "Reverse": "",
            "Only identified by site": "",
        }
        row.update(flags)
        proteins.append(row)

    protein_table = pd.DataFrame(proteins)
    # Raw MaxQuant reporter columns of the feature table are not part of the output
    for channel in CHANNELS:
        protein_table[f"Reporter intensity corrected {channel}"] = 1.0

    paths = {
        "psms": directory / "evidence.txt",
        "features": directory / "proteinGroups.txt",
        "design": directory / "design.tsv",
        "impurities": directory / "impurities.tsv",
    }
    pd.DataFrame(psms).to_csv(paths["psms"], sep="\t", index=False)
    protein_table.to_csv(paths["features"], sep="\t", index=False)
    pd.DataFrame(
        {"channel": CHANNELS, "sample": SAMPLES, "group": GROUPS, "block": BLOCKS}
    ).to_csv(paths["design"], sep="\t", index=False)
    pd.DataFrame(IMPURITIES * 100, index=CHANNELS, columns=CHANNELS).to_csv(
        paths["impurities"], sep="\t", index_label="channel"
    )
    return paths


def write_site_dataset(directory):
    """Write a phosphosite table with two multiplicity states per site."""
    rng = np.random.default_rng(7)
    psms = []
    sites = []
    psm_id = 1

    for i in range(30):
        site = {
            "id": i,
            "Proteins": f"P{i}",
            "Positions within proteins": 10 + i,
            "Amino acid": "S",
            "Score": 30.0 if i == 0 else 80.0,
            "Potential contaminant": "",
            "Reverse": "",
        }
        ids = []
        for state in (1, 2):
            signal = _protein_signal(rng, i < 5)
            if i % 3 == 0 and state == 2:
                values = np.zeros(4)
            else:
                psms.append(_psm_row(psm_id, signal, rng, modification_count=state))
                ids.append(psm_id)
                psm_id += 1
                values = signal
            for channel, value in zip(CHANNELS, values):
                site[f"Reporter intensity corrected {channel}___{state}"] = round(float(value), 2)
        for channel in CHANNELS:
            site[f"Reporter intensity corrected {channel}___3"] = 0.0
        site["Evidence IDs"] = ";".join(str(x) for x in ids)
        sites.append(site)

    paths = {
        "psms": directory / "evidence.txt",
        "features": directory / "Phospho (STY)Sites.txt",
        "design": directory / "design.tsv",
    }
    pd.DataFrame(psms).to_csv(paths["psms"], sep="\t", index=False)
    pd.DataFrame(sites).to_csv(paths["features"], sep="\t", index=False)
    pd.DataFrame(
        {"channel": CHANNELS, "sample": SAMPLES, "group": GROUPS, "block": BLOCKS}
    ).to_csv(paths["design"], sep="\t", index=False)
    return paths


@pytest.fixture
def protein_dataset(tmp_path):
    return write_protein_dataset(tmp_path)


@pytest.fixture
def site_dataset(tmp_path):
    return write_site_dataset(tmp_path)

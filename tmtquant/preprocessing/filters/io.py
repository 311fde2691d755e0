"""
Reading and writing feature filter configurations as YAML or JSON.
"""

import json
from pathlib import Path
from typing import Optional, Union

import yaml

from tmtquant.core.logger import get_logger
from tmtquant.model.filters import FeatureFilterConfig


logger = get_logger("tmtquant.preprocessing.filters.io")

_SUFFIX_FORMATS = {".yaml": "yaml", ".yml": "yaml", ".json": "json"}

# Section heading printed before the first option of each group
_SECTIONS = {
    "remove_contaminants": "Identification filters",
    "require_psms": "Provenance filter",
    "min_valid_values": "Intensity filters",
}

_OPTION_COMMENTS = {
    "name": "Label used in logs",
    "remove_contaminants": 'Drop "Potential contaminant" rows',
    "remove_reverse": 'Drop "Reverse" rows',
    "remove_only_by_site": 'Protein table: drop "Only identified by site" rows',
    "min_site_score": "Site table: minimum identification score",
    "min_peptides": "Protein table: minimum razor + unique peptides",
    "require_psms": "Drop features none of whose PSMs passed PSM filtering",
    "min_valid_values": "Observed channels needed within at least one group",
    "top_n": "Channels averaged for the top-N intensity filter",
    "min_top3_log2_intensity": "Protein table: absolute log2 cutoff of the top-N mean",
    "top3_quantile": "Site table: quantile cutoff of the top-N mean",
    "enabled": "Set to false to skip every filter",
}


def _format_for(path: Path, format: Optional[str] = None) -> str:
    if format is not None:
        return format
    return _SUFFIX_FORMATS.get(path.suffix.lower(), "yaml")


def load_filter_config(config_path: Union[str, Path]) -> FeatureFilterConfig:
    """
    Load a filter configuration from a ``.yaml``, ``.yml`` or ``.json`` file.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    ValueError
        If the suffix is not one of the supported ones.
    TypeError
        If the file names an option the configuration does not have.
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    format = _SUFFIX_FORMATS.get(config_path.suffix.lower())
    if format is None:
        raise ValueError(
            f"Unsupported config format: {config_path.suffix}. "
            f"Use one of {', '.join(_SUFFIX_FORMATS)}"
        )

    with open(config_path) as f:
        data = yaml.safe_load(f) if format == "yaml" else json.load(f)

    logger.info("Loaded filter configuration from %s", config_path)
    return FeatureFilterConfig.from_dict(data)


def save_filter_config(
    config: FeatureFilterConfig,
    output_path: Union[str, Path],
    format: Optional[str] = None,
) -> None:
    """Write ``config``; the format follows the suffix unless given."""
    output_path = Path(output_path)
    data = config.to_dict()

    with open(output_path, "w") as f:
        if _format_for(output_path, format) == "json":
            json.dump(data, f, indent=2)
        else:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)

    logger.info("Saved filter configuration to %s", output_path)


def _commented_yaml(config: FeatureFilterConfig) -> str:
    lines = [
        "# tmtquant feature filter configuration",
        "# Filters run in a fixed order on aggregated protein and site tables",
    ]
    for key, value in config.to_dict().items():
        if key in _SECTIONS:
            lines += ["", f"# {_SECTIONS[key]}"]
        rendered = yaml.safe_dump({key: value}, default_flow_style=False).strip()
        comment = _OPTION_COMMENTS.get(key)
        lines.append(f"{rendered:<34}# {comment}" if comment else rendered)
    return "\n".join(lines) + "\n"


def generate_example_config(
    output_path: Union[str, Path],
    format: Optional[str] = None,
) -> None:
    """
    Write a configuration holding every option at its default value.

    YAML output carries a comment for each option; JSON cannot, so it is a
    plain dump.

    Parameters
    ----------
    output_path : Union[str, Path]
        Output file path.
    format : str, optional
        'yaml' or 'json'; inferred from the suffix when omitted.
    """
    output_path = Path(output_path)
    config = FeatureFilterConfig(name="example_config")

    if _format_for(output_path, format) == "yaml":
        output_path.write_text(_commented_yaml(config))
    else:
        save_filter_config(config, output_path, format="json")

    logger.info("Generated example filter configuration at %s", output_path)

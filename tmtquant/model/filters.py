"""
Filter configuration model for feature tables.

This module provides the dataclass configuring the ordered feature filters
applied to aggregated protein and site tables.
"""

from dataclasses import dataclass, asdict, fields
from typing import ClassVar, Optional


@dataclass
class FeatureFilterConfig:
    """
    Configuration for feature-table filters.

    Attributes
    ----------
    remove_contaminants : bool
        Drop rows flagged as potential contaminants.
    remove_reverse : bool
        Drop rows flagged as reverse (decoy) hits.
    remove_only_by_site : bool
        Drop protein groups identified only by a modification site.
    min_site_score : float
        Minimum identification score of a site row.
    min_peptides : int
        Minimum razor + unique peptides of a protein group.
    require_psms : bool
        Drop rows none of whose PSMs survived PSM filtering.
    min_valid_values : int
        Minimum observed channels within at least one sample group.
    top_n : int
        Number of most intense channels averaged for the intensity filter.
    min_top3_log2_intensity : float
        Absolute log2 cutoff of the top-N mean (protein table).
    top3_quantile : float
        Quantile cutoff of the top-N mean (site table), 0.0-1.0.
    enabled : bool
        Set to False to skip all filters.
    """

    registry: ClassVar[dict[str, "FeatureFilterConfig"]] = {}

    name: str = "default"
    remove_contaminants: bool = True
    remove_reverse: bool = True
    remove_only_by_site: bool = True
    min_site_score: float = 40.0
    min_peptides: int = 2
    require_psms: bool = True
    min_valid_values: int = 2
    top_n: int = 3
    min_top3_log2_intensity: float = 0.0
    top3_quantile: float = 0.01
    enabled: bool = True

    @classmethod
    def get(cls, name: str, default=None) -> "Optional[FeatureFilterConfig]":
        """Retrieve a configuration from the registry."""
        return cls.registry.get(name.lower(), default)

    @classmethod
    def from_dict(cls, data: dict) -> "FeatureFilterConfig":
        """
        Create configuration from a dictionary.

        Unknown keys raise ``TypeError`` so that misspelled options are not
        silently ignored.
        """
        data = dict(data or {})
        data.setdefault("name", "custom")
        return cls(**data)

    def __post_init__(self):
        """Register this configuration in the class registry."""
        if not 0.0 <= self.top3_quantile <= 1.0:
            raise ValueError(f"top3_quantile must be within [0, 1], got {self.top3_quantile}")
        if self.top_n < 1:
            raise ValueError(f"top_n must be positive, got {self.top_n}")
        if self.name:
            self.registry[self.name.lower()] = self

    def to_dict(self) -> dict:
        """Convert to dictionary, excluding registry."""
        return asdict(self)

    def apply_overrides(self, overrides: dict) -> None:
        """
        Apply CLI overrides to the configuration.

        Parameters
        ----------
        overrides : dict
            Option name to value; ``None`` values are ignored.
        """
        names = {f.name for f in fields(self)}
        for key, value in overrides.items():
            if value is None:
                continue
            if key not in names:
                raise KeyError(f"Unknown filter option: {key}")
            setattr(self, key, value)

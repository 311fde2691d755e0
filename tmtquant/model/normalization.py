"""
Normalization method enumeration for the tmtquant package.

This module provides the channel normalization strategies as an enum, with
registration of the normalization functions that implement them.
"""

from typing import Callable
from enum import Enum, auto

import pandas as pd

from tmtquant.core.exceptions import ConfigurationError
from tmtquant.normalization.channel import (
    cyclic_loess_normalize,
    median_normalize,
    size_factor_normalize,
)

_method_registry: dict["NormalizationMethod", Callable[..., pd.DataFrame]] = {}

_ALIASES = {
    "cyclicloess": "LOESS",
    "cyclic_loess": "LOESS",
    "deseq": "SIZE_FACTOR",
    "sizefactor": "SIZE_FACTOR",
    "size-factor": "SIZE_FACTOR",
}


class NormalizationMethod(Enum):
    """
    Enumeration of channel normalization methods.

    Every member is callable with a features x channels intensity DataFrame
    and returns a normalized DataFrame of the same shape.

    Attributes
    ----------
    NONE : auto
        No normalization.
    LOESS : auto
        Cyclic loess over all channel pairs (default).
    MEDIAN : auto
        Per-channel median centring in log2 space.
    SIZE_FACTOR : auto
        DESeq-style median-of-ratios size factors.
    """

    NONE = auto()

    LOESS = auto()
    MEDIAN = auto()
    SIZE_FACTOR = auto()

    @classmethod
    def from_str(cls, name: str) -> "NormalizationMethod":
        """
        Get the normalization method from a string.

        Parameters
        ----------
        name : str
            The name of the normalization method, e.g. ``cyclicloess``,
            ``median``, ``sizefactor`` or ``none``.

        Returns
        -------
        NormalizationMethod
            The normalization method.

        Raises
        ------
        ConfigurationError
            If the name does not match any normalization method.
        """
        if name is None:
            return cls.LOESS
        name_ = _ALIASES.get(name.lower(), name).lower()
        for k, v in cls._member_map_.items():
            if k.lower() == name_:
                return v
        raise ConfigurationError(f"Unknown normalization method: {name}")

    def register_fn(
        self, fn: Callable[..., pd.DataFrame]
    ) -> Callable[..., pd.DataFrame]:
        """
        Register the function implementing this method.

        Parameters
        ----------
        fn : Callable[..., pd.DataFrame]
            Takes an intensity DataFrame plus keyword options.

        Returns
        -------
        Callable[..., pd.DataFrame]
            The registered function.
        """
        _method_registry[self] = fn
        return fn

    def normalize(self, df: pd.DataFrame, **kwargs) -> pd.DataFrame:
        """
        Normalize an intensity matrix with the registered function.

        Parameters
        ----------
        df : pd.DataFrame
            Linear intensities (features x channels).
        **kwargs
            Method options; options not used by the method are ignored.

        Returns
        -------
        pd.DataFrame
            Normalized intensities.
        """
        fn = _method_registry[self]
        return fn(df, **kwargs)

    def __call__(self, df: pd.DataFrame, **kwargs) -> pd.DataFrame:
        return self.normalize(df, **kwargs)


@NormalizationMethod.NONE.register_fn
def no_normalization(df, **kwargs):
    """No normalization is performed on the data."""
    return df.copy()


@NormalizationMethod.LOESS.register_fn
def loess_normalization(df, span: float = 0.7, iterations: int = 3, **kwargs):
    """Cyclic loess normalization of the data."""
    return cyclic_loess_normalize(df, span=span, iterations=iterations)


@NormalizationMethod.MEDIAN.register_fn
def median_normalization(df, **kwargs):
    """Median normalization of the data."""
    return median_normalize(df)


@NormalizationMethod.SIZE_FACTOR.register_fn
def size_factor_normalization(df, factors_path=None, reuse_factors: bool = False, **kwargs):
    """Size-factor normalization of the data."""
    return size_factor_normalize(df, factors_path=factors_path, reuse=reuse_factors)

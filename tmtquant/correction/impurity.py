"""
Isotopic impurity correction of TMT reporter intensities.

Each reporter tag carries isotopic impurities that leak a fraction of its
signal into neighbouring channels. Given the impurity matrix ``P`` (row ``i``
holds the fraction of channel ``i``'s true signal observed in each channel),
the observed row vector satisfies ``m = c @ P``, i.e. ``P.T @ c = m``. The
corrector solves this system for every row using the precomputed inverse of
``P.T``.
"""

from pathlib import Path
from typing import Optional, Sequence, Union

import numpy as np
import pandas as pd

from tmtquant.core.exceptions import ConfigurationError
from tmtquant.core.logger import get_logger

logger = get_logger("tmtquant.correction.impurity")

# Input cells below this value are treated as not observed
MIN_OBSERVED_INTENSITY = 1.0


def read_impurity_matrix(path: Union[str, Path], percent: bool = False) -> pd.DataFrame:
    """
    Read a delimited impurity matrix with channel names as row and column labels.

    Parameters
    ----------
    path : str or Path
        Tab- or comma-delimited file; the first column holds the row names.
    percent : bool, optional
        Values are percentages and are divided by 100.

    Returns
    -------
    pd.DataFrame
        Square matrix indexed by channel.

    Raises
    ------
    ConfigurationError
        If the row names do not match the column names.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Impurity matrix not found: {path}")

    matrix = pd.read_csv(path, sep=None, engine="python", index_col=0)
    matrix.index = matrix.index.astype(str).str.strip()
    matrix.columns = matrix.columns.astype(str).str.strip()

    if list(matrix.index) != list(matrix.columns):
        raise ConfigurationError(
            f"Impurity matrix row names {list(matrix.index)} do not match "
            f"column names {list(matrix.columns)}"
        )

    matrix = matrix.astype(float)
    if percent:
        matrix = matrix / 100.0

    logger.info("Loaded %dx%d impurity matrix from %s", matrix.shape[0], matrix.shape[1], path)
    return matrix


def identity_matrix(channels: Sequence[str]) -> pd.DataFrame:
    """Impurity matrix for perfectly pure reporter tags."""
    channels = [str(c) for c in channels]
    return pd.DataFrame(np.eye(len(channels)), index=channels, columns=channels)


class ImpurityCorrector:
    """
    Linear unmixing of reporter intensities.

    The matrix is validated once at construction; a non-square, non-finite or
    singular matrix raises :class:`ConfigurationError` before any intensity is
    touched.

    Parameters
    ----------
    matrix : pd.DataFrame or np.ndarray
        Square impurity matrix in reporter-channel order.
    channels : Sequence[str], optional
        Channel labels; taken from the DataFrame index when omitted.

    Examples
    --------
    >>> corrector = ImpurityCorrector(np.array([[1.0, 0.1], [0.1, 1.0]]))
    >>> corrector.correct(np.array([[100.0, 100.0]])).round(1)
    array([[90.9, 90.9]])
    """

    def __init__(
        self,
        matrix: Union[pd.DataFrame, np.ndarray],
        channels: Optional[Sequence[str]] = None,
    ):
        if isinstance(matrix, pd.DataFrame):
            if channels is None:
                channels = [str(c) for c in matrix.index]
            values = matrix.to_numpy(dtype=float)
        else:
            values = np.asarray(matrix, dtype=float)

        self._validate(values)

        self.matrix = values.copy()
        self.matrix.setflags(write=False)
        self.channels = list(channels) if channels is not None else [
            str(i + 1) for i in range(values.shape[0])
        ]
        if len(self.channels) != values.shape[0]:
            raise ConfigurationError(
                f"{len(self.channels)} channel labels for a {values.shape[0]}-channel impurity matrix"
            )

        inverse_t = np.linalg.inv(values.T)
        inverse_t.setflags(write=False)
        self._inverse_t = inverse_t

    @staticmethod
    def _validate(values: np.ndarray) -> None:
        if values.ndim != 2 or values.shape[0] != values.shape[1]:
            raise ConfigurationError(f"Impurity matrix must be square, got shape {values.shape}")
        if values.shape[0] == 0:
            raise ConfigurationError("Impurity matrix is empty")
        if not np.all(np.isfinite(values)):
            raise ConfigurationError("Impurity matrix contains non-finite values")
        if np.linalg.matrix_rank(values) < values.shape[0]:
            raise ConfigurationError("Impurity matrix is singular")
        if np.linalg.cond(values) > 1.0 / np.finfo(float).eps:
            raise ConfigurationError("Impurity matrix is numerically singular")

    @property
    def n_channels(self) -> int:
        return self.matrix.shape[0]

    def correct(
        self, intensities: Union[pd.DataFrame, np.ndarray]
    ) -> Union[pd.DataFrame, np.ndarray]:
        """
        Correct reporter intensities for isotopic impurities.

        Missing values are solved as 0, negative solutions are clamped to 0,
        and every cell whose input was below 1 is forced to 0 so that no
        signal is created in channels that were not observed.

        Parameters
        ----------
        intensities : pd.DataFrame or np.ndarray
            Rows are spectra or features, columns are channels in matrix order.

        Returns
        -------
        pd.DataFrame or np.ndarray
            Corrected intensities; a new object of the same type and shape.

        Raises
        ------
        ConfigurationError
            If the number of columns differs from the matrix size.
        """
        is_frame = isinstance(intensities, pd.DataFrame)
        observed = intensities.to_numpy(dtype=float) if is_frame else np.asarray(intensities, dtype=float)

        if observed.ndim != 2 or observed.shape[1] != self.n_channels:
            raise ConfigurationError(
                f"Intensity matrix has {observed.shape[-1] if observed.ndim else 0} channels, "
                f"impurity matrix has {self.n_channels}"
            )

        filled = np.nan_to_num(observed, nan=0.0)
        corrected = (self._inverse_t @ filled.T).T
        corrected = np.clip(corrected, 0.0, None)
        # NaN compares False, so missing inputs are caught explicitly
        not_observed = np.isnan(observed) | (observed < MIN_OBSERVED_INTENSITY)
        corrected[not_observed] = 0.0

        logger.debug("Corrected %d rows over %d channels", corrected.shape[0], self.n_channels)

        if is_frame:
            return pd.DataFrame(corrected, index=intensities.index, columns=intensities.columns)
        return corrected

    @staticmethod
    def report(
        before: pd.DataFrame, after: pd.DataFrame, channels: Optional[Sequence[str]] = None
    ) -> pd.DataFrame:
        """
        Compare total intensity per channel before and after correction.

        Parameters
        ----------
        before : pd.DataFrame
            Intensities passed to :meth:`correct`.
        after : pd.DataFrame
            Result of :meth:`correct`.
        channels : Sequence[str], optional
            Labels for the report rows; defaults to the column names.

        Returns
        -------
        pd.DataFrame
            Columns ``channel``, ``total_before``, ``total_after`` and ``ratio``.
        """
        total_before = np.nansum(np.asarray(before, dtype=float), axis=0)
        total_after = np.nansum(np.asarray(after, dtype=float), axis=0)
        if channels is None:
            channels = [str(c) for c in getattr(before, "columns", range(len(total_before)))]

        with np.errstate(divide="ignore", invalid="ignore"):
            ratio = np.where(total_before > 0, total_after / total_before, np.nan)

        return pd.DataFrame(
            {
                "channel": list(channels),
                "total_before": total_before,
                "total_after": total_after,
                "ratio": ratio,
            }
        )

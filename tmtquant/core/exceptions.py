"""
Error and warning types raised by the tmtquant package.

Configuration problems abort a run before any row is processed. Row-level
numerical anomalies are reported as warnings and isolated to the affected
rows; the CLI routes warnings into the log via ``logging.captureWarnings``.
"""


class ConfigurationError(ValueError):
    """Invalid configuration detected before processing (matrix, groups, columns)."""


class DataIntegrityWarning(UserWarning):
    """Non-fatal data problem; affected rows get degraded output."""


class StatisticalFitWarning(UserWarning):
    """A per-row statistical model could not be fitted; the row's statistic is missing."""

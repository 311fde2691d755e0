"""
CLI commands for the tmtquant package.

This module provides Click commands for the tmtquant CLI.
"""

from tmtquant.commands.quantify import quantify
from tmtquant.commands.compare import compare
from tmtquant.commands.generate_config import generate_config

__all__ = [
    "quantify",
    "compare",
    "generate_config",
]

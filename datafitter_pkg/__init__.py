"""Datafitter package: random-search symbolic regression with parameter fitting."""

from .config import VERSION

__version__ = VERSION

from . import cli, config, errors, logging_config
from .config import SearchConfig
from .errors import DataFitterError
from .errors import DataFormatError
from .errors import FitError
from .errors import ParseError
from .symbolic_regression import Candidate
from .symbolic_regression import FitSearch
from .symbolic_regression import fit
from .symbolic_regression import parse
from .utils.data_loading import Dataset
from .utils.data_loading import load_dataset

__all__ = [
    "config",
    "cli",
    "errors",
    "logging_config",
    "SearchConfig",
    "DataFitterError",
    "DataFormatError",
    "FitError",
    "ParseError",
    "Candidate",
    "FitSearch",
    "fit",
    "parse",
    "Dataset",
    "load_dataset",
]

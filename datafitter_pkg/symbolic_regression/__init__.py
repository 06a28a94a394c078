"""Symbolic Regression Module.

Random-search symbolic regression: candidate expressions with free
parameters are generated, simplified and fitted to (x, y) data, and the best
fit found so far is kept.

Main Components:
    - ExpressionNode: Tree representation with evaluator, parser and printer
    - Candidate / Params: Expression plus the parameters it refers to
    - fit: Pattern-search (or Nelder-Mead) parameter fitting
    - FitSearch: The generate -> simplify -> fit -> compare loop

Example:
    >>> from datafitter_pkg.symbolic_regression import Candidate, fit
    >>> from datafitter_pkg.config import SearchConfig
    >>> from datafitter_pkg.utils.data_loading import Dataset
    >>> data = Dataset.from_pairs([(0, 0), (1, 2), (2, 4), (3, 6)])
    >>> config = SearchConfig(min_step=1e-7, fit_max_iters=100000)
    >>> candidate = Candidate.from_template("a*x + b", config)
    >>> result = fit(candidate, data, config)
    >>> print(f"residue: {result.residue:.2e}")
"""

from .expression_tree import BINARY_OPERATORS
from .expression_tree import UNARY_OPERATORS
from .expression_tree import ExpressionNode
from .expression_tree import NodeType
from .fit_engine import FIT_ALGORITHMS
from .fit_engine import FitResult
from .fit_engine import fit
from .generator import generate
from .params import Candidate
from .params import Param
from .params import Params
from .parser import parse
from .residual import RESIDUAL_FUNCTIONS
from .residual import residual
from .search_engine import BestRecord
from .search_engine import FitSearch
from .search_engine import SearchResult
from .search_engine import StepOutcome
from .search_engine import StopReason
from .simplifier import simplify
from .simplifier import simplify_expression

__all__ = [
    # Expression Trees
    "ExpressionNode",
    "NodeType",
    "UNARY_OPERATORS",
    "BINARY_OPERATORS",
    "parse",
    # Candidates
    "Param",
    "Params",
    "Candidate",
    "generate",
    "simplify",
    "simplify_expression",
    # Fitting
    "RESIDUAL_FUNCTIONS",
    "residual",
    "FIT_ALGORITHMS",
    "FitResult",
    "fit",
    # Search
    "FitSearch",
    "StepOutcome",
    "StopReason",
    "BestRecord",
    "SearchResult",
]

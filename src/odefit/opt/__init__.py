#########################################################################################
##
##                   ODE FITTING & MODEL COMPARISON: PUBLIC API
##                               (opt/__init__.py)
##
#########################################################################################

from .parameter_mask import ParameterMask, ModelAdapter
from .model_spec import ModelSpec
from .config import FitConfig, DEFAULT_SOLVER
from .dataset import Dataset
from .integrator import integrate, SOLVERS
from .results import Trajectory, FitResult, FitOutcome
from .scoring import ModelScorer, score, bic_from_ssr
from .fit_engine import FitEngine
from .batch import BatchAggregator, BatchSummary
from .comparison import (
    ComparisonResult,
    select_best,
    compare_models,
    compare_datasets,
    compare_models_dict,
    fit_datasets,
    fit_three_datasets,
)

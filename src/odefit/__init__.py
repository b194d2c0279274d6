from importlib import metadata
import logging

try:
    __version__ = metadata.version("odefit")
except Exception:
    __version__ = "unknown"

logging.getLogger(__name__).addHandler(logging.NullHandler())

from .errors import OdeFitError, ConfigurationError, IntegrationFailure, FitFailure
from . import models

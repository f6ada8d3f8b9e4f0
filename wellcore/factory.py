import importlib
import inspect
import logging
import pkgutil

import correlations
from wellcore.exceptions import CorrelationNotFound
from wellcore.interface import AnnularLossCorrelation, RheologyModel

logger = logging.getLogger(__name__)

_BASES = (RheologyModel, AnnularLossCorrelation)


def _is_correlation(obj):
    return (inspect.isclass(obj) and issubclass(obj, _BASES)
            and obj not in _BASES and not inspect.isabstract(obj))


def _iter_modules():
    """Imports every module of the `correlations` package."""
    for _, module_name, _ in pkgutil.iter_modules(correlations.__path__):
        try:
            yield importlib.import_module(f"correlations.{module_name}")
        except ImportError as e:
            logger.warning("Failed to import correlation module %s: %s", module_name, e)


def get_correlation(class_name, **kwargs):
    """
    Factory: returns an instance of the correlation class named `class_name`,
    e.g. "PowerLawRheology" -> correlations.power_law.PowerLawRheology().
    """
    for module in _iter_modules():
        cls = getattr(module, class_name, None)
        if cls is not None and _is_correlation(cls):
            logger.debug("Loaded correlation: %s", class_name)
            return cls(**kwargs)

    raise CorrelationNotFound(
        f"Correlation '{class_name}' not found. Please check if the class exists in 'correlations/' folder.")


def list_correlations():
    """Metadata of every registered correlation, sorted by id."""
    found = {}
    for module in _iter_modules():
        for name, obj in inspect.getmembers(module, _is_correlation):
            if obj.__module__ != module.__name__:
                continue
            meta = obj.get_metadata()
            meta["id"] = name
            found[name] = meta
    return [found[k] for k in sorted(found)]

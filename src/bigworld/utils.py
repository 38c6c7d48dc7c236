"""
Utility functions and classes for the BigWorld package.
"""

import warnings
from typing import Type
from .config import config


class ConvergenceWarning(UserWarning):
    """Issued when an iterative solver stops at its iteration cap."""


def validation_error(message: str, error_class: Type[Exception] = ValueError):
    """
    Reject a malformed argument, or only warn when validation is relaxed.

    With ``config.STRICT_VALIDATION`` on (the default) this raises
    ``error_class``; with it off a UserWarning is emitted and the caller
    carries on with whatever it can salvage.

    Only malformed arguments at the API boundary go through here. Numerical
    edge cases (zero vectors, singular matrices, invalid orbits) never raise.

    Parameters
    ----------
    message : str
        Text of the error or warning
    error_class : Type[Exception], optional
        Raised in strict mode. Default: ValueError

    Examples
    --------
    >>> from bigworld.utils import validation_error
    >>> from bigworld import config
    >>> validation_error("Vector needs 3 components")  # ValueError
    >>> validation_error("Matrix must be 4x4", TypeError)  # TypeError

    >>> config.STRICT_VALIDATION = False
    >>> validation_error("Vector needs 3 components")  # UserWarning only
    """
    if config.STRICT_VALIDATION:
        raise error_class(message)
    else:
        warnings.warn(message, UserWarning, stacklevel=2)

"""
Exceptions raised while preparing and solving the capacity expansion model.
"""


class GenCapError(Exception):
    """Base class for all errors raised by gencap."""


class ConfigurationError(GenCapError, ValueError):
    """Input data is missing, misindexed or contains invalid coefficients."""


class SolveError(GenCapError):
    """The solver did not return an optimal solution.

    :param message: str
    :param termination_condition: str
        Termination condition reported by the backend, kept for the caller's logs.
    """

    def __init__(self, message, termination_condition=None):
        super().__init__(message, termination_condition)
        self.message = message
        self.termination_condition = termination_condition

    def __str__(self):
        return self.message


class InfeasibleError(SolveError):
    """No dispatch and investment plan satisfies every hourly demand balance."""


class UnboundedError(SolveError):
    """The objective can decrease without limit, which points to a formulation defect."""


class SolverError(SolveError):
    """Numerical failure, time limit or unavailable solver."""

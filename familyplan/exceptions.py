"""
Custom exceptions for familyplan.

Purpose
-------
Provides a unified exception hierarchy for consistent error handling
across the projection engine. All exceptions inherit from FamilyPlanError,
enabling catch-all handling when needed.

Exception Hierarchy
-------------------
FamilyPlanError (base)
├── ConfigurationError - Invalid configuration files or settings
├── ValidationError - Input validation failures (also a ValueError)
│   └── InvalidParameterError - Out-of-range rates, negative amounts, bad horizon
└── UnresolvableTriggerError - Event-type expense trigger without a date

ClampedWithdrawalWarning (UserWarning)
    Emitted when a withdrawal or expense exceeds the available balance.
    Never raised as an error: the amount is reduced to what is available
    and the month's event list records the partial fulfillment.

Usage
-----
>>> from familyplan.exceptions import InvalidParameterError, FamilyPlanError
>>>
>>> raise InvalidParameterError("annual_return_rate must be >= -1.0, got -1.5")
>>>
>>> try:
...     results = run_simulation(params, assets, members, goals, templates)
... except FamilyPlanError as e:
...     print(f"Simulation rejected: {e}")
"""

__all__ = [
    "FamilyPlanError",
    "ConfigurationError",
    "ValidationError",
    "InvalidParameterError",
    "UnresolvableTriggerError",
    "ClampedWithdrawalWarning",
]


class FamilyPlanError(Exception):
    """
    Base exception for all familyplan errors.

    Examples
    --------
    >>> try:
    ...     run_simulation(params, assets, members, goals, templates)
    ... except FamilyPlanError as e:
    ...     logger.error(f"Simulation failed: {e}")
    """
    pass


class ConfigurationError(FamilyPlanError):
    """
    Invalid configuration file or application settings.

    Raised when a scenario file is missing, is not valid JSON, or fails
    schema validation. The pydantic error is chained as the cause.
    """
    pass


class ValidationError(FamilyPlanError, ValueError):
    """
    Input validation failures.

    Subclasses ValueError so callers that only know about the builtin
    exception still catch it.
    """
    pass


class InvalidParameterError(ValidationError):
    """
    Out-of-range scenario or asset parameters.

    Raised before the first month is simulated, such as:
    - annual_return_rate below -100%
    - fee rates outside [0, 1]
    - negative balances, deposits or event amounts
    - end date on or before the start date

    Examples
    --------
    >>> raise InvalidParameterError(
    ...     f"fee_on_balance_rate must be in [0, 1], got {rate}. "
    ...     f"Rates are fractions: 0.005 means 0.5% per year."
    ... )
    """
    pass


class UnresolvableTriggerError(FamilyPlanError):
    """
    Event-type child expense with no resolvable calendar date.

    Raised by the milestone date resolver and caught by
    ChildExpenseProjector, which lists the item as unscheduled instead of
    placing it on the timeline.
    """
    pass


class ClampedWithdrawalWarning(UserWarning):
    """
    A withdrawal or expense was reduced to the available balance.
    """
    pass

"""
Object handlers - rule content that samples its own value.

A rule whose content is an object, e.g.

    {"handler": "discrete-distribution", "weights": [3, 1], "values": ["common", "rare"]}

is turned into a value by the handler it names. Handlers take the content
object and the grammar's randomness source and return a Result: invalid
parameters are an Err the engine can recover from.
"""

from typing import Any, List

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from weave.errors import UnexpectedTypeError
from weave.result import Err, HandlerError, HandlerErrorKind, Ok


class BinomialParameters(BaseModel):
    """Parameters of `binomial-distribution`."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    values: List[Any] = Field(min_length=1)
    success_rate: float = Field(default=0.5, alias="success-rate", ge=0.0, le=1.0)


class DiscreteParameters(BaseModel):
    """Parameters of `discrete-distribution`."""
    model_config = ConfigDict(extra="ignore")

    values: List[Any] = Field(min_length=1)
    weights: List[float] = Field(min_length=1)

    @model_validator(mode="after")
    def check_weights(self):
        if len(self.weights) != len(self.values):
            raise ValueError(
                f"'weights' has {len(self.weights)} entries but 'values' has {len(self.values)}"
            )
        if any(weight < 0 for weight in self.weights):
            raise ValueError("'weights' must not be negative")
        if sum(self.weights) <= 0:
            raise ValueError("'weights' must have a positive total")
        return self


def _require_object(name, content):
    if not isinstance(content, dict):
        raise UnexpectedTypeError(
            f"Handler '{name}' expects an object but got {type(content).__name__}",
            fragment=repr(content),
            suggestion='Write the rule as {"handler": "' + name + '", ...}',
        )


def _invalid(name, error):
    return Err(HandlerError(
        kind=HandlerErrorKind.INVALID_PARAMETERS,
        message="Invalid handler parameters",
        handler=name,
        details=str(error),
    ))


def binomial_distribution(content, rng):
    """
    Pick from `values` by the number of successes in len(values) - 1 trials.

    With `success-rate` 0.5 the middle values are the most likely; lower
    rates favour the front of the list.
    """
    _require_object("binomial-distribution", content)
    try:
        params = BinomialParameters.model_validate(content)
    except ValidationError as e:
        return _invalid("binomial-distribution", e)

    successes = sum(1 for _ in range(len(params.values) - 1) if rng.random() < params.success_rate)
    return Ok(params.values[successes])


def discrete_distribution(content, rng):
    """Pick from `values` with probability proportional to `weights`."""
    _require_object("discrete-distribution", content)
    try:
        params = DiscreteParameters.model_validate(content)
    except ValidationError as e:
        return _invalid("discrete-distribution", e)

    threshold = rng.random() * sum(params.weights)
    cumulative = 0.0
    for weight, value in zip(params.weights, params.values):
        cumulative += weight
        if threshold < cumulative:
            return Ok(value)
    # Float rounding can leave the threshold at the total
    return Ok(next(value for weight, value in zip(reversed(params.weights), reversed(params.values)) if weight > 0))


def base_object_handlers():
    """Fresh mapping of the built-in object handlers."""
    return {
        "binomial-distribution": binomial_distribution,
        "discrete-distribution": discrete_distribution,
    }

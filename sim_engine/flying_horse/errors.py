"""FLYING HORSE — Engine error types."""


class OutcomeContractError(ValueError):
    """Caller passed an input the outcome engine refuses to interpret.

    Raised for non-positive bets, multipliers below 1, negative or
    non-integer hit counts and out-of-range RTP values. Never clamped.
    """

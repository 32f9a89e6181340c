"""Exception types raised by the idealization and evaluation routines."""


class IonChannelError(Exception):
    """Base class for all ionchannel errors."""

    pass


class InvalidInputError(IonChannelError, ValueError):
    """Input arrays are empty, degenerate or of mismatched length."""

    pass


class InsufficientDataError(IonChannelError, ValueError):
    """A trace is too short for the requested analysis."""

    pass


class DegenerateResultError(IonChannelError):
    """An analysis step produced no usable result (e.g. no transitions)."""

    pass


class ConfigurationError(IonChannelError, ValueError):
    """Method parameters, sampling interval or band bounds are invalid."""

    pass

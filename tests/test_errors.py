"""Tests for the exception hierarchy."""

import pytest

from ionchannel.errors import (
    ConfigurationError,
    DegenerateResultError,
    InsufficientDataError,
    InvalidInputError,
    IonChannelError,
)


@pytest.mark.parametrize(
    "error", [InvalidInputError, InsufficientDataError, ConfigurationError]
)
def test_value_errors(error) -> None:
    """Input and parameter errors can be caught as ValueError."""
    assert issubclass(error, IonChannelError)
    assert issubclass(error, ValueError)


def test_degenerate_result() -> None:
    assert issubclass(DegenerateResultError, IonChannelError)
    assert not issubclass(DegenerateResultError, ValueError)

from __future__ import annotations

import pytest

from lib_combined_config.domain.errors import (
    AmbiguousSourceError,
    ConfigError,
    DuplicateNameError,
    InvalidArgumentError,
    InvalidFormat,
    MergeFailureError,
    NotFound,
    SourceConstructionError,
)

ERRORS = (
    AmbiguousSourceError,
    DuplicateNameError,
    InvalidArgumentError,
    InvalidFormat,
    MergeFailureError,
    NotFound,
    SourceConstructionError,
)


@pytest.mark.parametrize("error_cls", ERRORS)
def test_error_hierarchy(error_cls: type[Exception]) -> None:
    assert issubclass(error_cls, ConfigError)
    assert isinstance(error_cls("boom"), ConfigError)


def test_invalid_argument_is_value_error() -> None:
    with pytest.raises(ValueError):
        raise InvalidArgumentError("bad")

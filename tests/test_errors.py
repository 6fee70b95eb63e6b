# tests/test_errors.py
# Error kinds stay catchable both as EncodeError and as their builtin family

import pytest

from storedpng import AllocationFailure, EncodeError, InvalidDimensions, SinkWriteFailure, SizeOverflow


@pytest.mark.parametrize(
    "exc_type,builtin",
    [
        (InvalidDimensions, ValueError),
        (SizeOverflow, OverflowError),
        (AllocationFailure, MemoryError),
        (SinkWriteFailure, OSError),
    ],
)
def test_error_families(exc_type, builtin):
    err = exc_type("boom")
    assert isinstance(err, EncodeError)
    assert isinstance(err, RuntimeError)
    assert isinstance(err, builtin)
    with pytest.raises(EncodeError, match="boom"):
        raise err

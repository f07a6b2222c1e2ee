"""
Two-step writes with compensation.

Storage has no transactions. When a second write fails after a first one
succeeded, the first is undone by running a compensating action instead.
"""

from typing import Callable, Optional, TypeVar

import structlog


T = TypeVar("T")

logger = structlog.get_logger(__name__)


class CompensatedError(Exception):
    """
    An action failed and its compensation was attempted.

    Attributes:
        original: The exception raised by the action
        compensation_failed: True if the compensation itself raised
        compensation_error: The exception raised by the compensation, if any
    """

    def __init__(
        self,
        original: BaseException,
        compensation_error: Optional[BaseException] = None,
    ):
        self.original = original
        self.compensation_error = compensation_error
        super().__init__(str(original))

    @property
    def compensation_failed(self) -> bool:
        return self.compensation_error is not None


def run_with_compensation(
    action: Callable[[], T],
    compensate: Callable[[], None],
    *,
    on_compensation_failure: Optional[Callable[[BaseException], None]] = None,
) -> T:
    """
    Run ``action``; if it raises, run ``compensate`` and re-raise.

    A failing compensation is reported through ``on_compensation_failure``
    and recorded on the raised error, never raised on its own.

    Raises:
        CompensatedError: Wrapping whatever ``action`` raised
    """
    try:
        return action()
    except Exception as e:
        compensation_error = None
        try:
            compensate()
        except Exception as comp_error:
            compensation_error = comp_error
            logger.error(
                "compensation_failed",
                error=str(e),
                compensation_error=str(comp_error),
            )
            if on_compensation_failure is not None:
                on_compensation_failure(comp_error)
        raise CompensatedError(e, compensation_error) from e

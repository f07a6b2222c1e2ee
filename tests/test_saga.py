"""
Tests for compensated two-step writes.
"""

import pytest

from stewardly.saga import CompensatedError, run_with_compensation


class TestRunWithCompensation:
    """Tests for the action/compensation pair."""

    def test_success_returns_value_without_compensating(self):
        """Test the happy path."""
        calls = []

        result = run_with_compensation(lambda: "done", lambda: calls.append("undo"))

        assert result == "done"
        assert calls == []

    def test_failure_compensates_and_wraps(self):
        """Test that the original error is kept on the wrapper."""
        calls = []

        def action():
            raise OSError("disk full")

        with pytest.raises(CompensatedError) as exc_info:
            run_with_compensation(action, lambda: calls.append("undo"))

        assert calls == ["undo"]
        assert isinstance(exc_info.value.original, OSError)
        assert exc_info.value.compensation_failed is False
        assert exc_info.value.__cause__ is exc_info.value.original

    def test_failed_compensation_is_recorded_not_raised(self):
        """Test that the compensation error travels on the wrapper."""
        reported = []

        def action():
            raise OSError("flag write failed")

        def compensate():
            raise RuntimeError("delete failed")

        with pytest.raises(CompensatedError) as exc_info:
            run_with_compensation(action, compensate, on_compensation_failure=reported.append)

        assert exc_info.value.compensation_failed is True
        assert str(exc_info.value.compensation_error) == "delete failed"
        assert str(exc_info.value) == "flag write failed"
        assert len(reported) == 1


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

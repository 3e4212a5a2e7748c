"""
Tests for the handle_db_error context manager.
"""
from unittest.mock import MagicMock, patch

import pytest
from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from assessment.core.db_error_handling import handle_db_error
from assessment.core.exceptions import DuplicateSessionError, NotFoundError


def create_mock_db():
    """Create a MagicMock that passes isinstance(mock, Session) check."""
    return MagicMock(spec=Session)


class TestHandleDbErrorContextManager:
    """Tests for the handle_db_error context manager."""

    def test_success_case_no_exception(self):
        """Code executes normally when no exception occurs."""
        db = create_mock_db()
        result = []

        with handle_db_error(db, "test operation"):
            result.append("executed")

        assert result == ["executed"]
        db.rollback.assert_not_called()

    def test_rollback_on_sqlalchemy_error(self):
        """Unexpected errors roll back and become a 500."""
        db = create_mock_db()

        with pytest.raises(HTTPException) as exc_info:
            with handle_db_error(db, "record answer"):
                raise SQLAlchemyError("connection lost")

        db.rollback.assert_called_once()
        assert exc_info.value.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert exc_info.value.detail == "Failed to record answer. Please try again later."

    def test_http_exception_reraised_without_rollback(self):
        db = create_mock_db()

        with pytest.raises(HTTPException) as exc_info:
            with handle_db_error(db, "test operation"):
                raise HTTPException(status_code=403, detail="Forbidden")

        db.rollback.assert_not_called()
        assert exc_info.value.status_code == 403

    @pytest.mark.parametrize(
        "error",
        [
            NotFoundError("TestSession", 5),
            DuplicateSessionError(3, 1, "user-1"),
        ],
    )
    def test_domain_errors_pass_through_after_rollback(self, error):
        db = create_mock_db()

        with pytest.raises(type(error)) as exc_info:
            with handle_db_error(db, "start test session"):
                raise error

        assert exc_info.value is error
        db.rollback.assert_called_once()

    def test_unexpected_error_is_logged_with_operation(self):
        db = create_mock_db()

        with patch("assessment.core.db_error_handling.logger") as mock_logger:
            with pytest.raises(HTTPException) as exc_info:
                with handle_db_error(db, "abandon test session"):
                    raise ValueError("boom")

        assert exc_info.value.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        mock_logger.error.assert_called_once()
        args, kwargs = mock_logger.error.call_args
        assert "abandon test session" in args[0]
        assert "boom" in args[0]
        assert kwargs["exc_info"] is True

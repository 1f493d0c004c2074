"""
Unit tests for database functionality.
"""

import pytest
from unittest.mock import patch, MagicMock
from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError

from core.database import get_db, get_db_context
from core.exceptions import ConflictError


class TestGetDb:
    """Test cases for the FastAPI session dependency."""

    @patch('core.database.SessionLocal')
    def test_get_db_success(self, mock_session_local):
        """Session is yielded and closed once the request finishes."""
        mock_session = MagicMock()
        mock_session_local.return_value = mock_session

        db_iter = get_db()
        db = next(db_iter)

        assert db == mock_session
        mock_session_local.assert_called_once()

        with pytest.raises(StopIteration):
            next(db_iter)

        mock_session.close.assert_called_once()
        mock_session.rollback.assert_not_called()

    @patch('core.database.SessionLocal')
    def test_get_db_rolls_back_on_database_error(self, mock_session_local):
        mock_session = MagicMock()
        mock_session_local.return_value = mock_session

        db_iter = get_db()
        next(db_iter)

        with pytest.raises(SQLAlchemyError):
            db_iter.throw(SQLAlchemyError("connection lost"))

        mock_session.rollback.assert_called_once()
        mock_session.close.assert_called_once()

    @patch('core.database.SessionLocal')
    def test_get_db_rolls_back_on_business_error(self, mock_session_local):
        """Conflicts and HTTP errors raised inside a route still roll back."""
        mock_session = MagicMock()
        mock_session_local.return_value = mock_session

        for error in (ConflictError("Time slot conflicts", []), HTTPException(status_code=404)):
            mock_session.reset_mock()
            db_iter = get_db()
            next(db_iter)

            with pytest.raises(type(error)):
                db_iter.throw(error)

            mock_session.rollback.assert_called_once()
            mock_session.close.assert_called_once()


class TestGetDbContext:
    """Test cases for the standalone session context manager."""

    @patch('core.database.SessionLocal')
    def test_get_db_context_success(self, mock_session_local):
        mock_session = MagicMock()
        mock_session_local.return_value = mock_session

        with get_db_context() as db:
            assert db == mock_session

        # Should commit and close on success
        mock_session.commit.assert_called_once()
        mock_session.close.assert_called_once()

    @patch('core.database.SessionLocal')
    def test_get_db_context_with_exception(self, mock_session_local):
        mock_session = MagicMock()
        mock_session_local.return_value = mock_session

        with pytest.raises(ValueError):
            with get_db_context():
                raise ValueError("Test exception")

        # Should rollback and close on exception
        mock_session.commit.assert_not_called()
        mock_session.rollback.assert_called_once()
        mock_session.close.assert_called_once()

    @patch('core.database.SessionLocal')
    def test_get_db_context_with_scheduling_error(self, mock_session_local):
        mock_session = MagicMock()
        mock_session_local.return_value = mock_session

        with pytest.raises(ConflictError):
            with get_db_context():
                raise ConflictError("Time slot conflicts", [])

        mock_session.rollback.assert_called_once()
        mock_session.close.assert_called_once()

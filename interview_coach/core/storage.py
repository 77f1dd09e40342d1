from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from .database_models import Base, enable_sqlite_foreign_keys
from .logging import log_event


class StorageError(Exception):
    """Base exception for storage operations."""

    pass


class UsageUpdateError(StorageError):
    """Raised when the prompt usage counter cannot be read or written."""

    pass


class ResultSaveError(StorageError):
    """Raised when a question result or difficulty state cannot be saved."""

    pass


class DatabaseManager:
    def __init__(self, db_path: str = "interview_coach.db"):
        """Initialize database manager with SQLite database."""
        self.db_path = self._validate_db_path(db_path)

        db_dir = Path(self.db_path).parent
        db_dir.mkdir(parents=True, exist_ok=True)

        # Writers wait on SQLite's lock instead of failing; the quota UPDATE relies on it
        self.engine = create_engine(
            f"sqlite:///{self.db_path}",
            echo=False,
            pool_pre_ping=True,
            pool_recycle=3600,
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        self.SessionLocal = sessionmaker(bind=self.engine)

        enable_sqlite_foreign_keys(self.engine)
        Base.metadata.create_all(bind=self.engine)

        log_event(
            "db.initialized",
            component="db",
            operation="init",
            db_engine="sqlite",
            db_path=Path(self.db_path).name,
        )

    def _validate_db_path(self, db_path: str) -> str:
        """Validate database path to prevent path traversal attacks."""
        try:
            resolved = Path(db_path).resolve()
            current_dir = Path.cwd().resolve()

            if not resolved.is_relative_to(current_dir):
                raise ValueError("Database path outside working directory not allowed")

            return str(resolved)
        except (ValueError, OSError) as e:
            raise ValueError(f"Invalid database path: {e}")

    def close(self) -> None:
        """Close the database engine and clean up resources."""
        if getattr(self, "engine", None) is not None:
            self.engine.dispose()

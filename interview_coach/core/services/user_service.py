from sqlalchemy import select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session as DBSession

from interview_coach.core.database_models import UserTable
from interview_coach.core.logging import log_event
from interview_coach.core.models import User, UserCreate


class UserService:
    def __init__(self, db_session: DBSession):
        self.db_session = db_session

    def create_user(self, user_create: UserCreate) -> User:
        """Create a new user or return the existing user with the same email."""
        existing_user = self.get_user_by_email(user_create.email)
        if existing_user:
            return existing_user

        user_table = UserTable(email=user_create.email, name=user_create.name)

        self.db_session.add(user_table)
        self.db_session.flush()
        self.db_session.refresh(user_table)

        return self._table_to_model(user_table)

    def ensure_user(self, user_id: str) -> User:
        """Return the user with this gateway id, creating a bare row the first time it is seen.

        Concurrent first requests for the same id both succeed; only one row is inserted.
        """
        user_table = self.db_session.get(UserTable, user_id)
        if user_table is None:
            stmt = sqlite_insert(UserTable).values(id=user_id).on_conflict_do_nothing(index_elements=["id"])
            if self.db_session.execute(stmt).rowcount == 1:
                log_event("user.provisioned", component="users", operation="ensure_user", user_id=user_id)
            user_table = self.db_session.get(UserTable, user_id)

        return self._table_to_model(user_table)

    def get_user_by_id(self, user_id: str) -> User | None:
        user_table = self.db_session.get(UserTable, user_id)
        if user_table:
            return self._table_to_model(user_table)
        return None

    def get_user_by_email(self, email: str) -> User | None:
        query = select(UserTable).where(UserTable.email == email)
        user_table = self.db_session.execute(query).scalar_one_or_none()

        if user_table:
            return self._table_to_model(user_table)
        return None

    def _table_to_model(self, user_table: UserTable) -> User:
        return User(
            id=user_table.id,
            email=user_table.email,
            name=user_table.name,
            current_difficulty=user_table.current_difficulty,
            created_at=user_table.created_at,
            updated_at=user_table.updated_at,
        )

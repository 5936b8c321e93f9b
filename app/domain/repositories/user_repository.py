from sqlalchemy.orm import Session

from app.domain.repositories.base_sqlalchemy import SQLAlchemyRepository
from app.models.user_model import User


class UserRepository(SQLAlchemyRepository[User, int]):
    def __init__(self, db: Session):
        super().__init__(User, db)

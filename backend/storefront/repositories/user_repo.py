from typing import List, Optional

from sqlalchemy.orm import Session

from storefront.models.user import User


class UserRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: int) -> Optional[User]:
        return self.db.get(User, user_id)

    def get_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email.lower()).first()

    def list(self) -> List[User]:
        return self.db.query(User).order_by(User.id).all()

    def create(self, username: str, email: str, password_hash: str, role: str = "user") -> User:
        u = User(username=username, email=email.lower(), password_hash=password_hash, role=role)
        self.db.add(u)
        self.db.flush()
        return u

    def delete(self, user: User):
        self.db.delete(user)
        self.db.flush()

from datetime import datetime, timezone

from sqlalchemy.orm import Session

from exam_portal.models.user import User


def normalize_email(email: str) -> str:
    return email.strip().lower()


class UserService:
    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: str) -> User | None:
        return self.db.query(User).filter(User.id == user_id).one_or_none()

    def get_by_email(self, email: str) -> User | None:
        return self.db.query(User).filter(User.email == normalize_email(email)).one_or_none()

    def validate_student_login(self, email: str) -> User | None:
        """Only the email is checked; any display name is accepted at login."""
        return (
            self.db.query(User)
            .filter(User.email == normalize_email(email), User.role == "student")
            .one_or_none()
        )

    def create(self, email: str, full_name: str, role: str = "student") -> User:
        user = User(email=normalize_email(email), full_name=full_name, role=role)
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def update(self, user: User, full_name: str | None = None, email: str | None = None) -> User:
        if full_name is not None:
            user.full_name = full_name
        if email is not None:
            user.email = normalize_email(email)
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def ensure_student(self, email: str, full_name: str | None = None) -> tuple[User, bool]:
        """Find or create a student for the email; fix the role if needed. Returns (user, created)."""
        user = self.get_by_email(email)
        if user is None:
            name = full_name or normalize_email(email).split("@")[0]
            return self.create(email, name, role="student"), True
        if user.role != "student":
            user.role = "student"
            self.db.add(user)
            self.db.commit()
            self.db.refresh(user)
        return user, False

    def list_students(self) -> list[User]:
        return self.db.query(User).filter(User.role == "student").order_by(User.full_name).all()

    def delete(self, user: User) -> None:
        self.db.delete(user)
        self.db.commit()

    def touch_login(self, user: User) -> None:
        user.last_login_at = datetime.now(timezone.utc)
        self.db.add(user)
        self.db.commit()

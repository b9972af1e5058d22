import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from kanflow.config import settings
from kanflow.database import Base, get_db
from kanflow.main import app
from kanflow.models import User

TEST_DATABASE_URL = "sqlite://"
engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(autouse=True)
def db_session() -> Session:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


def _make_user(session: Session, user_id: str, email: str) -> User:
    user = User(id=user_id, email=email, name=user_id)
    session.add(user)
    session.commit()
    return user


@pytest.fixture
def user(db_session: Session) -> User:
    return _make_user(db_session, "user-alice", "alice@example.com")


@pytest.fixture
def other_user(db_session: Session) -> User:
    return _make_user(db_session, "user-bob", "bob@example.com")


def make_token(user_id: str) -> str:
    return jwt.encode({"sub": user_id}, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


@pytest.fixture
def api(db_session: Session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def token_for():
    return make_token


@pytest.fixture
def auth_headers(user: User):
    return {"Authorization": f"Bearer {make_token(user.id)}"}

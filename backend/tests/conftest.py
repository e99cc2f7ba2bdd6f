"""
Pytest configuration and fixtures for blog tests.
"""

import pytest
from datetime import datetime, timedelta
from typing import Callable, Generator
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi import FastAPI
from fastapi.testclient import TestClient
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from blog.core.database import Base, get_db
from blog.core.auth import SESSION_COOKIE_NAME, SessionIdentity, create_access_token
from blog.core.errors import register_exception_handlers
from blog.core.rate_limit import limiter
from blog.core.security import hash_password
from blog.models.user import User
from blog.models.category import Category
from blog.models.post import Post
from blog.models.comment import Comment


# Use in-memory SQLite database for tests
TEST_DATABASE_URL = "sqlite:///:memory:"

TEST_PASSWORD = "secret1"

# Fixed clock for rows created by fixtures, so ordering is deterministic
BASE_TIME = datetime(2024, 1, 1, 12, 0, 0)


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Create a test database session."""
    TestingSessionLocal = sessionmaker(
        autocommit=False, autoflush=False, bind=db_engine
    )
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def test_app(db_session):
    """Create a FastAPI test app without lifespan events."""
    from blog.api.endpoints import auth, categories, posts

    test_app = FastAPI(title="Blog - Test", version="1.0.0")
    register_exception_handlers(test_app)

    test_app.state.limiter = limiter
    test_app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    test_app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
    test_app.include_router(
        categories.router, prefix="/api/categories", tags=["categories"]
    )
    test_app.include_router(posts.router, prefix="/api/posts", tags=["posts"])

    @test_app.get("/health")
    def health():
        return {"status": "ok"}

    # Override database dependency
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    test_app.dependency_overrides[get_db] = override_get_db

    return test_app


@pytest.fixture(scope="function")
def client(test_app) -> TestClient:
    """Create a test client without entering context manager."""
    return TestClient(test_app, raise_server_exceptions=False)


@pytest.fixture(autouse=True)
def reset_rate_limits():
    """Rate limit counters are per process; start every test from zero."""
    limiter.reset()
    yield


@pytest.fixture(scope="function")
def make_user(db_session) -> Callable[..., User]:
    """Factory for users with a known password."""

    def _make_user(email: str, name: str = "User", password: str = TEST_PASSWORD):
        user = User(email=email, name=name, password=hash_password(password))
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture(scope="function")
def test_user(make_user) -> User:
    """Create a test user."""
    return make_user("author@example.com", name="Test Author")


@pytest.fixture(scope="function")
def other_user(make_user) -> User:
    """A second user who owns nothing."""
    return make_user("reader@example.com", name="Other Reader")


def token_for(user: User) -> str:
    return create_access_token(SessionIdentity(user_id=user.id, email=user.email))


@pytest.fixture(scope="function")
def login_as(client) -> Callable[[User], TestClient]:
    """Switch the client's session cookie to ``user`` (None logs out)."""

    def _login_as(user):
        client.cookies.clear()
        if user is not None:
            client.cookies.set(SESSION_COOKIE_NAME, token_for(user))
        return client

    return _login_as


@pytest.fixture(scope="function")
def authenticated_client(login_as, test_user) -> TestClient:
    """Create an authenticated test client."""
    return login_as(test_user)


@pytest.fixture(scope="function")
def test_category(db_session) -> Category:
    """Create a test category."""
    category = Category(name="Technology", slug="technology", created_at=BASE_TIME)
    db_session.add(category)
    db_session.commit()
    db_session.refresh(category)
    return category


@pytest.fixture(scope="function")
def make_post(db_session) -> Callable[..., Post]:
    """Factory for posts; ``age`` orders them (larger = older)."""

    def _make_post(
        author: User,
        title: str = "Test Post",
        content: str = "Post content",
        published: bool = True,
        deleted: bool = False,
        category: Category = None,
        age: int = 0,
    ):
        created_at = BASE_TIME - timedelta(minutes=age)
        post = Post(
            author_id=author.id,
            title=title,
            content=content,
            published=published,
            category_id=category.id if category else None,
            created_at=created_at,
            updated_at=created_at,
            deleted_at=created_at + timedelta(seconds=1) if deleted else None,
        )
        db_session.add(post)
        db_session.commit()
        db_session.refresh(post)
        return post

    return _make_post


@pytest.fixture(scope="function")
def test_post(make_post, test_user, test_category) -> Post:
    """A published post by ``test_user``."""
    return make_post(test_user, title="Hello", category=test_category)


@pytest.fixture(scope="function")
def make_comment(db_session) -> Callable[..., Comment]:
    def _make_comment(post: Post, author: User, content: str, age: int = 0):
        created_at = BASE_TIME - timedelta(minutes=age)
        comment = Comment(
            post_id=post.id,
            author_id=author.id,
            content=content,
            created_at=created_at,
            updated_at=created_at,
        )
        db_session.add(comment)
        db_session.commit()
        db_session.refresh(comment)
        return comment

    return _make_comment

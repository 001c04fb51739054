import sys
import os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import itertools
import pytest
import httpx
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient
from app.core.database import Base, get_db
from app.core.config import settings
from app.core.constants import RoleEnum
from app.core.security import create_access_token
from app.schemas.user import UserContext
from app.services.evaluation import evaluation_service
from app.services.semantic_evaluator import SemanticEvaluatorClient
from app.utils import deps as deps_utils
import app.models.registry  # noqa: F401
import main

test_db_url = settings.TEST_DATABASE_URL or "sqlite:///./test.db"

_user_ids = itertools.count(1000)

@pytest.fixture(scope="session")
def database_engine():
    if test_db_url.startswith("sqlite"):
        engine = create_engine(test_db_url, connect_args={"check_same_thread": False})
    else:
        engine = create_engine(test_db_url)
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()
    if test_db_url.startswith("sqlite") and os.path.exists("./test.db"):
        os.remove("./test.db")

@pytest.fixture(scope="function")
def db_session(database_engine):
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=database_engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.rollback()
        db.close()

@pytest.fixture(scope="function")
def client(db_session):
    main.app.dependency_overrides[get_db] = lambda: db_session
    main.app.dependency_overrides[deps_utils.get_db] = lambda: db_session
    main.app.dependency_overrides[deps_utils.get_transactional_db] = lambda: db_session
    with TestClient(main.app, raise_server_exceptions=False) as test_client:
        yield test_client
    main.app.dependency_overrides.clear()

@pytest.fixture
def user_context():
    """Build a UserContext for a fresh user id carrying a real signed token."""
    def _user_context(role: RoleEnum, user_id: int = None) -> UserContext:
        user_id = user_id or next(_user_ids)
        return UserContext(user_id=user_id, role=role, access_token=create_access_token(user_id, role))
    return _user_context

@pytest.fixture
def teacher_context(user_context):
    return user_context(RoleEnum.TEACHER)

@pytest.fixture
def student_context(user_context):
    return user_context(RoleEnum.STUDENT)

@pytest.fixture
def token_for_role():
    """Create bearer tokens for different roles; repeated calls return the same user."""
    tokens = {}

    def _create_token_for_role(role_name: str):
        if role_name not in tokens:
            role = getattr(RoleEnum, role_name.upper())
            tokens[role_name] = create_access_token(next(_user_ids), role)
        return tokens[role_name]

    return _create_token_for_role

@pytest.fixture
def semantic_evaluator_stub(monkeypatch):
    """Route open-ended evaluation through an httpx.MockTransport.

    Call the returned function with a handler ``(httpx.Request) -> httpx.Response``;
    every request the handler receives is recorded in ``requests``.
    """
    requests = []

    def _install(handler):
        def _recording_handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return handler(request)

        client = SemanticEvaluatorClient(
            url="http://evaluator.test/evaluate-open-ended",
            transport=httpx.MockTransport(_recording_handler),
        )
        monkeypatch.setattr(evaluation_service, "evaluator", client)
        return client

    _install.requests = requests
    return _install

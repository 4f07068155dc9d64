import os

os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from surveyhub.app.core.security import sign_token
from surveyhub.app.main import app
from surveyhub.app.schemas.survey import QuestionIn
from surveyhub.app.services.survey_writer import SurveyWriteCoordinator
from surveyhub.db import Base
from surveyhub.db.models import User, UserRole, Visibility
from surveyhub.db.session import get_store, make_engine
from surveyhub.db.store import EntityStore


@pytest.fixture
def store(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'surveyhub.db'}", busy_timeout=1.0)
    Base.metadata.create_all(bind=engine)
    yield EntityStore(sessionmaker(autoflush=False, expire_on_commit=False, bind=engine))
    engine.dispose()


def add_user(store, name, role, email=None):
    with store.unit_of_work() as session:
        user = User(name=name, role=role, email=email)
        session.add(user)
        session.flush()
        return user.user_id


@pytest.fixture
def teacher(store):
    return add_user(store, "Ms. Hopper", UserRole.teacher, "hopper@school.test")


@pytest.fixture
def other_teacher(store):
    return add_user(store, "Mr. Knuth", UserRole.teacher)


@pytest.fixture
def student(store):
    return add_user(store, "Ada", UserRole.student, "ada@school.test")


@pytest.fixture
def other_student(store):
    return add_user(store, "Alan", UserRole.student)


@pytest.fixture
def writer(store):
    return SurveyWriteCoordinator(store)


def feedback_questions():
    return [
        QuestionIn(text="How was the pace?", type="SINGLE_CHOICE", required=True, choices=["Slow", "Fine", "Fast"]),
        QuestionIn(text="Topics you liked", type="MULTIPLE_CHOICE", choices=["A", "B", "C"]),
        QuestionIn(text="Rate the course", type="RATING_SCALE"),
        QuestionIn(text="Anything else?", type="TEXT"),
    ]


@pytest.fixture
def survey(writer, teacher):
    return writer.create_survey(teacher, "Course feedback", "End of term", Visibility.public, feedback_questions())


def auth(user_id, role):
    token = sign_token({"sub": user_id, "role": UserRole(role).value})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()

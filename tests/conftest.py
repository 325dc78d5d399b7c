import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from helpers import (
    ADMIN_ID,
    BANNED_ID,
    OTHER_ID,
    OWNER_ID,
    PRIVATE_IMAGE_ID,
    PUBLIC_IMAGE_ID,
    FakeGateway,
    make_annotation,
)
from pinpoint.db.base import Base
from pinpoint.db.session import build_session_factory
from pinpoint.main import create_app
from pinpoint.models.annotation import Annotation as AnnotationRow
from pinpoint.models.image import Image
from pinpoint.models.user import User
from pinpoint.schemas.annotation import Actor, ImageRef, Role


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    factory = build_session_factory(engine)

    with factory() as session:
        session.add_all(
            [
                User(id=ADMIN_ID, email="admin@example.com", username="admin", role="ADMIN"),
                User(id=OWNER_ID, email="owner@example.com", username="owner"),
                User(id=OTHER_ID, email="other@example.com", username="other"),
                User(id=BANNED_ID, email="banned@example.com", username="banned", is_banned=True),
            ]
        )
        session.add_all(
            [
                Image(id=PUBLIC_IMAGE_ID, url="/uploads/7.jpg", width=800, height=600, is_public=True, user_id=OWNER_ID),
                Image(id=PRIVATE_IMAGE_ID, url="/uploads/8.jpg", width=640, height=480, is_public=False, user_id=OTHER_ID),
            ]
        )
        session.commit()

    yield factory
    engine.dispose()


@pytest.fixture
def seed_annotation(session_factory):
    def _seed(user_id: int = OWNER_ID, image_id: int = PUBLIC_IMAGE_ID, **fields) -> int:
        values = {"type": "DOT", "x": 20.0, "y": 30.0, "label": "Seeded"}
        values.update(fields)
        with session_factory() as session:
            row = AnnotationRow(image_id=image_id, user_id=user_id, **values)
            session.add(row)
            session.commit()
            return row.id

    return _seed


@pytest.fixture
def app(session_factory):
    return create_app(session_factory)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def owner() -> Actor:
    return Actor(id=OWNER_ID, role=Role.USER)


@pytest.fixture
def other() -> Actor:
    return Actor(id=OTHER_ID, role=Role.USER)


@pytest.fixture
def admin() -> Actor:
    return Actor(id=ADMIN_ID, role=Role.ADMIN)


@pytest.fixture
def image() -> ImageRef:
    return ImageRef(id=PUBLIC_IMAGE_ID, url="/uploads/7.jpg", owner_id=OWNER_ID, is_public=True)


@pytest.fixture
def fake_gateway():
    return FakeGateway(
        [
            make_annotation(1, label="Nest"),
            make_annotation(2, type="ARROW", x=5.0, y=5.0, end_x=50.0, end_y=50.0, label="Branch"),
            make_annotation(3, user_id=OTHER_ID, label="Someone else's"),
        ]
    )

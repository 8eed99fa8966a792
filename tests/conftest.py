"""
Shared fixtures: an in-memory SQLite database, a temp-dir storage backend
and factories for users, sessions, coins and image bytes.
"""
import io
import itertools
import os
from datetime import timedelta

# Must be set before the app (and config.db) is imported
os.environ["DB_URL"] = "sqlite://"
os.environ["APP_ENV"] = "test"

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from config.db import enable_sqlite_foreign_keys, get_db
from model import load_all_models
from model.base import Base
from model.coin import Coin, CoinImage
from model.user import Users, UserCredential, SessionToken
from src.app import app
from src.storage import LocalFileStorage, get_storage
from src.utils import gen_token_urlsafe, hash_password, utcnow

load_all_models()

_seq = itertools.count(1)


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(eng)
    Base.metadata.create_all(eng)
    yield eng
    Base.metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def storage(tmp_path):
    return LocalFileStorage(base_dir=str(tmp_path / "uploads"), base_url="http://testserver")


@pytest.fixture
def client(session_factory, storage):
    def _get_db():
        session = session_factory()
        try:
            yield session
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_storage] = lambda: storage
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    """Insert a user; credentials are only created when a password is given."""
    def _make(username=None, *, email=None, password=None, role="user", **fields):
        n = next(_seq)
        user = Users(
            email=email or f"collector{n}@example.com",
            username=username or f"collector{n}",
            display_name=fields.pop("display_name", f"Collector {n}"),
            role=role,
            **fields,
        )
        db.add(user)
        db.flush()
        if password:
            db.add(UserCredential(user_id=user.id, password_hash=hash_password(password), last_password_change=utcnow()))
        db.commit()
        return user
    return _make


@pytest.fixture
def auth_headers(db):
    def _headers(user):
        sess = SessionToken(
            user_id=user.id,
            token=gen_token_urlsafe(32),
            expires_at=utcnow() + timedelta(days=1),
        )
        db.add(sess)
        db.commit()
        return {"Authorization": f"Bearer {sess.token}"}
    return _headers


@pytest.fixture
def make_coin(db):
    def _make(owner, *, images=(), **fields):
        values = dict(title="Morgan Dollar", country="USA", year=1921)
        values.update(fields)
        coin = Coin(user_id=owner.id, **values)
        coin.images = [CoinImage(url=key, order_index=i) for i, key in enumerate(images)]
        db.add(coin)
        db.commit()
        return coin
    return _make


def _image_bytes(fmt="PNG", size=(8, 8), color=(180, 140, 60)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def make_image():
    return _image_bytes


@pytest.fixture
def png_bytes():
    return _image_bytes()

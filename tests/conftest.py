from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from posledger.database import get_db, init_db
from posledger.main import app
from posledger.schemas.product import CategoryCreate, ProductCreate
from posledger.services import auth_service, product_service


@pytest.fixture()
def engine(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'posledger.db'}", connect_args={"check_same_thread": False})
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def make_category(db):
    def _make(name):
        return product_service.create_category(db, CategoryCreate(nombre=name))
    return _make


@pytest.fixture()
def make_product(db):
    def _make(name, price, stock=0, categories=()):
        return product_service.create_product(
            db,
            ProductCreate(nombre=name, precio=Decimal(str(price)), stock_inicial=stock, categorias=list(categories)),
        )
    return _make


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    with session_factory() as session:
        user = auth_service.create_user(session, "cajero", "secreta", role="admin")
        token = auth_service.create_access_token(user.id, user.username)

    app.dependency_overrides[get_db] = override_get_db
    test_client = TestClient(app)
    test_client.headers.update({"Authorization": f"Bearer {token}"})
    yield test_client
    app.dependency_overrides.clear()

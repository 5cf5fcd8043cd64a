import os

# Sin archivos de profiling durante los tests
os.environ.setdefault('NEGOCIO_PROFILING', '0')

import pytest

from app_negocio.app_container import AppContainer
from app_negocio.main import create_app
from app_negocio.models.entities import Identity


@pytest.fixture
def container(tmp_path):
    AppContainer.reset_instance()
    c = AppContainer(base_path=str(tmp_path))
    yield c
    AppContainer.reset_instance()


@pytest.fixture
def store(container):
    return container.store


@pytest.fixture
def identity():
    return Identity(id='user-1', email='ana@tienda.com')


@pytest.fixture
def make_product(container):
    def _make(name='Producto A', cost=10, selling_price=15, stock_quantity=5,
              category='Abarrotes', is_active=True):
        return container.inventory_service.create_product(
            name,
            category=category,
            cost=cost,
            selling_price=selling_price,
            stock_quantity=stock_quantity,
            is_active=is_active,
        )
    return _make


@pytest.fixture
def app(container):
    app = create_app(container=container)
    app.config['TESTING'] = True
    return app


@pytest.fixture
def client(app):
    with app.test_client() as c:
        yield c

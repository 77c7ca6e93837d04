import pytest

from app import create_app
from app.config import TestingConfig
from db.extensions import db
from tests.helpers import FrozenClock, BASE_TIME


@pytest.fixture
def clock():
    return FrozenClock(BASE_TIME)


@pytest.fixture
def app(clock):
    app = create_app(TestingConfig, clock=clock)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def services(app):
    return app.extensions['parking']


@pytest.fixture
def make_slot(services):
    def _make_slot(label, occupied=False):
        slot = services.slots.create(label)
        if occupied:
            services.slots.set_occupied(slot.id, True)
        return slot
    return _make_slot


@pytest.fixture
def book(services):
    def _book(slot, start, end, tag='TAG-1', name='Ndapewa', email='ndapewa@example.com'):
        return services.bookings.create(
            name=name,
            email=email,
            rfid_tag_id=tag,
            slot_id=slot.id,
            start_time=start,
            end_time=end,
        )
    return _book

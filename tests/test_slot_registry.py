import pytest

from services.errors import NotFound, InvalidInput, Conflict


def test_create_and_list_slots(services):
    a2 = services.slots.create('A2')
    a1 = services.slots.create(' A1 ')

    assert a1.slot_number == 'A1'
    assert a1.is_occupied is False
    assert [s.slot_number for s in services.slots.list_all()] == ['A1', 'A2']
    assert services.slots.get(a2.id).slot_number == 'A2'
    assert services.slots.get_by_number('A1').id == a1.id


def test_create_rejects_blank_long_and_duplicate_labels(services):
    services.slots.create('B1')

    with pytest.raises(InvalidInput):
        services.slots.create('   ')
    with pytest.raises(InvalidInput):
        services.slots.create(None)
    with pytest.raises(InvalidInput):
        services.slots.create('X' * 11)
    with pytest.raises(Conflict):
        services.slots.create('B1')


def test_get_unknown_slot_is_not_found(services):
    with pytest.raises(NotFound):
        services.slots.get(999)
    with pytest.raises(NotFound):
        services.slots.get_by_number('Z9')


def test_set_occupied_is_unconditional_override(services, make_slot):
    slot = make_slot('C1')

    services.slots.set_occupied(slot.id, True)
    assert services.slots.get(slot.id).is_occupied is True
    # Writing the same value again is allowed
    services.slots.set_occupied(slot.id, True)
    assert services.slots.get(slot.id).is_occupied is True

    services.slots.set_occupied(slot.id, False)
    assert services.slots.get(slot.id).is_occupied is False


def test_set_occupied_validates_flag_and_slot(services, make_slot):
    slot = make_slot('C2')

    with pytest.raises(InvalidInput):
        services.slots.set_occupied(slot.id, 'yes')
    with pytest.raises(InvalidInput):
        services.slots.set_occupied(slot.id, 1)
    with pytest.raises(NotFound):
        services.slots.set_occupied(12345, True)


def test_list_physically_free(services, make_slot):
    make_slot('D1')
    make_slot('D2', occupied=True)
    make_slot('D3')

    assert [s.slot_number for s in services.slots.list_physically_free()] == ['D1', 'D3']

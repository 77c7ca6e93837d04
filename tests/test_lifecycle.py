import pytest

from models.booking import BookingStatus, BLOCKING_STATUSES
from services.errors import NotFound, InvalidInput, Conflict
from services.lifecycle import BookingEvent, TRANSITIONS, next_status
from tests.helpers import at


# ---- create ----

def test_create_booking_is_active(services, make_slot, book, clock):
    slot = make_slot('A1')
    booking = book(slot, at(10), at(11))

    assert booking.id is not None
    assert booking.status == BookingStatus.active
    assert booking.check_in_time is None
    assert booking.check_out_time is None
    assert booking.created_at == clock.now
    assert booking.slot.slot_number == 'A1'
    # Reserving does not touch the physical flag
    assert services.slots.get(slot.id).is_occupied is False


def test_create_unknown_slot(services):
    with pytest.raises(NotFound):
        services.bookings.create('N', 'n@example.com', 'T', 42, at(10), at(11))


def test_create_on_physically_occupied_slot(make_slot, book):
    slot = make_slot('A1', occupied=True)
    with pytest.raises(Conflict, match='physically occupied'):
        book(slot, at(10), at(11))


@pytest.mark.parametrize('start,end', [(at(11), at(10)), (at(10), at(10))])
def test_create_invalid_window(make_slot, book, start, end):
    slot = make_slot('A1')
    with pytest.raises(InvalidInput, match='before end time'):
        book(slot, start, end)


def test_create_in_the_past(make_slot, book, clock):
    slot = make_slot('A1')
    with pytest.raises(InvalidInput, match='past'):
        book(slot, at(7, 59), at(9))
    # Starting exactly now is allowed
    assert book(slot, clock.now, at(9)).status == BookingStatus.active


def test_create_overlap_conflict(make_slot, book):
    slot = make_slot('A1')
    book(slot, at(10), at(12), tag='T1')

    with pytest.raises(Conflict, match='already booked'):
        book(slot, at(11), at(13), tag='T2')
    with pytest.raises(Conflict):
        book(slot, at(9), at(10, 1), tag='T3')
    with pytest.raises(Conflict):
        book(slot, at(10, 30), at(11), tag='T4')


def test_create_touching_windows_are_allowed(make_slot, book):
    slot = make_slot('A1')
    book(slot, at(10), at(11), tag='T1')

    before = book(slot, at(9), at(10), tag='T2')
    after = book(slot, at(11), at(12), tag='T3')
    assert before.status == after.status == BookingStatus.active


def test_create_after_cancel_reuses_window(services, make_slot, book):
    slot = make_slot('A1')
    first = book(slot, at(10), at(11), tag='T1')
    services.bookings.cancel(first.id)

    second = book(slot, at(10), at(11), tag='T2')
    assert second.status == BookingStatus.active


def test_same_slot_different_slots_do_not_conflict(make_slot, book):
    a = make_slot('A1')
    b = make_slot('B1')
    book(a, at(10), at(11), tag='T1')
    assert book(b, at(10), at(11), tag='T2').slot_id == b.id


def test_tag_cannot_be_bound_twice_in_the_same_window(make_slot, book):
    a = make_slot('A1')
    b = make_slot('B1')
    book(a, at(10), at(11), tag='SHARED')

    with pytest.raises(Conflict, match='RFID tag'):
        book(b, at(10, 30), at(12), tag='SHARED')
    # A later, non-overlapping window may reuse the tag
    assert book(b, at(11), at(12), tag='SHARED').status == BookingStatus.active


@pytest.mark.parametrize('field,value', [
    ('name', ''),
    ('email', 'not-an-email'),
    ('rfid_tag_id', '  '),
])
def test_create_validates_requester_fields(services, make_slot, field, value):
    slot = make_slot('A1')
    kwargs = dict(name='N', email='n@example.com', rfid_tag_id='T',
                  slot_id=slot.id, start_time=at(10), end_time=at(11))
    kwargs[field] = value
    with pytest.raises(InvalidInput):
        services.bookings.create(**kwargs)


def test_no_double_booking_after_many_sequential_attempts(services, make_slot, book):
    slot = make_slot('A1')
    windows = [(at(h), at(h + 2)) for h in range(9, 17)]
    for i, (start, end) in enumerate(windows):
        try:
            book(slot, start, end, tag=f'T{i}')
        except Conflict:
            pass

    blocking = [b for b in services.bookings.list_all()
                if b.status in BLOCKING_STATUSES]
    for first in blocking:
        for second in blocking:
            if first.id != second.id:
                assert not (first.start_time < second.end_time
                            and first.end_time > second.start_time)


# ---- check-in / check-out ----

def test_check_in_sets_time_and_occupies_slot(services, make_slot, book, clock):
    slot = make_slot('A1')
    booking = book(slot, at(10), at(11))
    clock.set(at(10, 5))

    booking = services.bookings.check_in(booking.id)

    assert booking.status == BookingStatus.checked_in
    assert booking.check_in_time == at(10, 5)
    assert booking.check_out_time is None
    assert services.slots.get(slot.id).is_occupied is True


def test_early_check_in_is_rejected(services, make_slot, book, clock):
    slot = make_slot('A1')
    booking = book(slot, at(10), at(11))
    clock.set(at(9, 59))

    with pytest.raises(InvalidInput, match='before booking start time'):
        services.bookings.check_in(booking.id)
    assert services.bookings.get(booking.id).status == BookingStatus.active
    assert services.slots.get(slot.id).is_occupied is False


def test_check_out_completes_and_frees_slot(services, make_slot, book, clock):
    slot = make_slot('A1')
    booking = book(slot, at(10), at(11))
    clock.set(at(10))
    services.bookings.check_in(booking.id)
    clock.set(at(10, 50))

    booking = services.bookings.check_out(booking.id)

    assert booking.status == BookingStatus.completed
    assert booking.check_out_time == at(10, 50)
    assert services.slots.get(slot.id).is_occupied is False


def test_check_out_requires_checked_in(services, make_slot, book):
    slot = make_slot('A1')
    booking = book(slot, at(10), at(11))
    with pytest.raises(Conflict):
        services.bookings.check_out(booking.id)


def test_check_in_twice_is_rejected(services, make_slot, book, clock):
    slot = make_slot('A1')
    booking = book(slot, at(10), at(11))
    clock.set(at(10))
    services.bookings.check_in(booking.id)

    with pytest.raises(Conflict):
        services.bookings.check_in(booking.id)


def test_transitions_on_unknown_booking(services):
    for action in (services.bookings.check_in, services.bookings.check_out,
                   services.bookings.cancel, services.bookings.expire,
                   services.bookings.complete):
        with pytest.raises(NotFound):
            action(999)


# ---- cancel ----

def test_cancel_active_booking(services, make_slot, book):
    slot = make_slot('A1')
    booking = book(slot, at(10), at(11))

    booking = services.bookings.cancel(booking.id)

    assert booking.status == BookingStatus.cancelled
    assert booking.check_out_time is None
    assert services.slots.get(slot.id).is_occupied is False
    # Retained for audit
    assert services.bookings.get(booking.id).status == BookingStatus.cancelled


def test_cancel_checked_in_is_a_conflict_and_changes_nothing(services, make_slot, book, clock):
    slot = make_slot('A1')
    booking = book(slot, at(10), at(11))
    clock.set(at(10, 15))
    services.bookings.check_in(booking.id)

    with pytest.raises(Conflict):
        services.bookings.cancel(booking.id)

    booking = services.bookings.get(booking.id)
    assert booking.status == BookingStatus.checked_in
    assert services.slots.get(slot.id).is_occupied is True


def test_terminal_states_have_no_transitions(services, make_slot, book):
    slot = make_slot('A1')
    booking = book(slot, at(10), at(11))
    services.bookings.cancel(booking.id)

    for action in (services.bookings.check_in, services.bookings.check_out,
                   services.bookings.cancel):
        with pytest.raises(Conflict):
            action(booking.id)
    assert services.bookings.get(booking.id).status == BookingStatus.cancelled


def test_release_keeps_slot_occupied_for_other_occupant(services, make_slot, book, clock):
    slot = make_slot('A1')
    first = book(slot, at(9), at(10), tag='T1')
    second = book(slot, at(10), at(11), tag='T2')

    clock.set(at(9))
    services.bookings.check_in(first.id)
    # First occupant overstays; the second booking is cancelled meanwhile
    clock.set(at(10, 30))
    services.bookings.cancel(second.id)

    assert services.slots.get(slot.id).is_occupied is True


# ---- complete / expire ----

def test_complete_checked_in_booking(services, make_slot, book, clock):
    slot = make_slot('A1')
    booking = book(slot, at(10), at(11))
    clock.set(at(10))
    services.bookings.check_in(booking.id)

    assert services.bookings.complete(booking.id).status == BookingStatus.completed


def test_complete_active_booking_inside_window_is_rejected(services, make_slot, book, clock):
    slot = make_slot('A1')
    booking = book(slot, at(10), at(11))
    clock.set(at(10, 30))

    with pytest.raises(Conflict):
        services.bookings.complete(booking.id)
    assert services.bookings.get(booking.id).status == BookingStatus.active


def test_expire_bypasses_check_in(services, make_slot, book, clock):
    slot = make_slot('A1')
    booking = book(slot, at(10), at(11))
    clock.set(at(11, 1))

    booking = services.bookings.complete(booking.id)

    assert booking.status == BookingStatus.completed
    assert booking.check_in_time is None
    assert booking.check_out_time == at(11, 1)
    assert services.slots.get(slot.id).is_occupied is False


def test_expire_requires_elapsed_window(services, make_slot, book, clock):
    slot = make_slot('A1')
    booking = book(slot, at(10), at(11))
    clock.set(at(11))

    # end_time == now is not yet elapsed
    with pytest.raises(Conflict):
        services.bookings.expire(booking.id)


# ---- state machine table ----

def test_transition_table_never_returns_to_active():
    assert BookingStatus.active not in TRANSITIONS.values()
    for (source, _event) in TRANSITIONS:
        assert source in BLOCKING_STATUSES


@pytest.mark.parametrize('status', list(BookingStatus))
@pytest.mark.parametrize('event', list(BookingEvent))
def test_next_status_rejects_illegal_pairs(status, event):
    if (status, event) in TRANSITIONS:
        assert next_status(status, event) == TRANSITIONS[(status, event)]
    else:
        with pytest.raises(Conflict):
            next_status(status, event)


# ---- queries ----

def test_queries(services, make_slot, book, clock):
    slot = make_slot('A1')
    early = book(slot, at(10), at(11), tag='T1', email='a@example.com')
    late = book(slot, at(12), at(13), tag='T2', email='a@example.com')
    other = book(slot, at(14), at(15), tag='T3', email='b@example.com')
    services.bookings.cancel(other.id)

    assert [b.id for b in services.bookings.list_by_email('a@example.com')] == [late.id, early.id]
    assert [b.id for b in services.bookings.list_all()] == [other.id, late.id, early.id]
    assert [b.id for b in services.bookings.list_active()] == [early.id, late.id]
    assert services.bookings.find_active_by_email('a@example.com').id == early.id
    assert services.bookings.find_active_by_email('nobody@example.com') is None

    clock.set(at(11, 30))
    assert [b.id for b in services.bookings.list_active()] == [late.id]

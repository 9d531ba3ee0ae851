"""
Unit tests for the seating chart projection.
"""

import pytest

from seat_layout import SeatLayout, seat_sort_key, available_choices
from models import build_seat_chart, SECTION_LABELS


@pytest.fixture
def layout():
    return SeatLayout()


@pytest.mark.parametrize('seat_number, expected', [
    ('L07', 7),
    ('L1', 1),
    ('R30', 30),
    ('A1-2', 12),
])
def test_seat_sort_key(seat_number, expected):
    assert seat_sort_key(seat_number) == expected


def test_seat_without_digits_sorts_last(layout):
    seats = [
        {'id': 1, 'seat_number': 'LX', 'section': 'left', 'status': 'available'},
        {'id': 2, 'seat_number': 'L10', 'section': 'left', 'status': 'available'},
        {'id': 3, 'seat_number': 'L2', 'section': 'left', 'status': 'available'},
    ]
    grouped = layout.group_by_section(seats)
    assert [s['seat_number'] for s in grouped['left']] == ['L2', 'L10', 'LX']


def test_group_by_section_sorts_numerically(layout):
    """
    Test Case: Section Grouping
    Description: Seats arrive in string order (L1, L10, L2 ...)
    Expected Output: Each fixed section holds its seats in numeric order
    """
    seats = [
        {'id': 'a', 'seat_number': 'L10', 'section': 'left', 'status': 'available'},
        {'id': 'b', 'seat_number': 'L1', 'section': 'left', 'status': 'available'},
        {'id': 'c', 'seat_number': 'L2', 'section': 'left', 'status': 'available'},
        {'id': 'd', 'seat_number': 'R20', 'section': 'right', 'status': 'available'},
        {'id': 'e', 'seat_number': 'Z1', 'section': 'balcony', 'status': 'available'},
    ]
    grouped = layout.group_by_section(seats)

    assert list(grouped) == ['left', 'front', 'right']
    assert [s['seat_number'] for s in grouped['left']] == ['L1', 'L2', 'L10']
    assert grouped['front'] == []
    assert [s['seat_number'] for s in grouped['right']] == ['R20']


def test_occupancy_comes_from_students(layout):
    seat = {'id': 's1', 'seat_number': 'L01', 'section': 'left', 'status': 'available'}
    students = [{'id': 'x', 'name': 'Asha', 'seat_id': 's1'}]

    assert layout.seat_state(seat, students) == 'occupied'
    assert layout.seat_tooltip(seat, students) == 'Occupied by Asha'
    assert layout.seat_state(seat, []) == 'available'
    assert layout.seat_tooltip(seat, []) == 'Available'


def test_stale_occupied_status_renders_available(layout):
    seat = {'id': 's1', 'seat_number': 'L01', 'section': 'left', 'status': 'occupied'}
    assert layout.seat_state(seat, []) == 'available'


def test_maintenance_is_trusted(layout):
    seat = {'id': 's1', 'seat_number': 'L01', 'section': 'left', 'status': 'maintenance'}
    students = [{'id': 'x', 'name': 'Asha', 'seat_id': 's1'}]

    assert layout.seat_state(seat, students) == 'maintenance'
    assert layout.seat_tooltip(seat, students) == 'Under maintenance'


def test_counts(backend, registered, layout):
    backend.seat('R22')['status'] = 'maintenance'
    counts = layout.count_seats(backend.tables['seats'], backend.tables['students'])

    assert counts == {'available': 27, 'occupied': 2, 'maintenance': 1, 'total': 30}


def test_available_choices_only_available_status(backend, registered):
    backend.seat('R22')['status'] = 'maintenance'
    backend.seat('R23')['status'] = 'occupied'
    choices = available_choices(backend.tables['seats'], backend.tables['students'])

    assert all(seat['status'] == 'available' for seat in choices)
    numbers = {seat['seat_number'] for seat in choices}
    assert not numbers & {'L07', 'F14', 'R22', 'R23'}
    assert len(choices) == 26


def test_available_choices_skip_seat_with_occupant(backend):
    backend.tables['students'].append({'id': 'x', 'name': 'Asha', 'seat_id': 'seat-L03'})
    choices = available_choices(backend.tables['seats'], backend.tables['students'])
    assert 'seat-L03' not in {seat['id'] for seat in choices}


def test_find_inconsistencies(backend, registered, layout):
    backend.seat('R21')['status'] = 'occupied'
    backend.seat('L07')['status'] = 'available'

    issues = layout.find_inconsistencies(backend.tables['seats'], backend.tables['students'])

    assert 'Seat R21 is marked occupied but no student is assigned' in issues
    assert 'Seat L07 is marked available but is assigned to Asha Verma' in issues
    assert len(issues) == 2


def test_build_layout(backend, registered, layout):
    result = layout.build_layout(backend.tables['seats'], backend.tables['students'])

    assert [s['label'] for s in result['sections']] == list(SECTION_LABELS.values())
    assert [len(s['cells']) for s in result['sections']] == [13, 6, 11]
    left = result['sections'][0]['cells']
    assert left[6]['seat']['seat_number'] == 'L07'
    assert left[6]['student']['name'] == 'Asha Verma'
    assert left[6]['state'] == 'occupied'
    assert result['issues'] == []


def test_seat_chart_numbers():
    seats = build_seat_chart()
    assert len(seats) == 30
    assert seats[0]['seat_number'] == 'L01'
    assert seats[13]['seat_number'] == 'F14'
    assert seats[-1]['seat_number'] == 'R30'
    assert all(seat['status'] == 'available' for seat in seats)

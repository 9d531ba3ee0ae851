import re
import logging
from typing import List, Dict, Optional

from models import (
    SECTIONS, SECTION_LABELS, SEAT_AVAILABLE, SEAT_OCCUPIED, SEAT_MAINTENANCE
)

NON_DIGITS = re.compile(r'\D')


def seat_sort_key(seat_number) -> float:
    """
    Numeric part of a seat number: 'L07' -> 7, 'L1' -> 1.
    Every digit in the label counts, so 'A1-2' sorts as 12.
    Labels without digits sort after all numbered seats.
    """
    digits = NON_DIGITS.sub('', str(seat_number or ''))
    if not digits:
        return float('inf')
    return int(digits)


class SeatLayout:
    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def get_seat_student(self, seat: Dict, students: List[Dict]) -> Optional[Dict]:
        """First student whose seat_id points at this seat."""
        seat_id = seat.get('id')
        return next((s for s in students if s.get('seat_id') == seat_id), None)

    def seat_state(self, seat: Dict, students: List[Dict]) -> str:
        """
        Maintenance comes from the seat row itself; occupancy comes from
        the students list, not from the stored status.
        """
        if seat.get('status') == SEAT_MAINTENANCE:
            return SEAT_MAINTENANCE
        if self.get_seat_student(seat, students):
            return SEAT_OCCUPIED
        return SEAT_AVAILABLE

    def seat_tooltip(self, seat: Dict, students: List[Dict]) -> str:
        if seat.get('status') == SEAT_MAINTENANCE:
            return 'Under maintenance'
        student = self.get_seat_student(seat, students)
        if student:
            return f"Occupied by {student.get('name')}"
        return 'Available'

    def group_by_section(self, seats: List[Dict]) -> Dict[str, List[Dict]]:
        """Seats per fixed section, each list sorted by seat number."""
        grouped = {section: [] for section in SECTIONS}
        for seat in seats:
            section = seat.get('section')
            if section in grouped:
                grouped[section].append(seat)
            else:
                self.logger.warning(
                    f"Seat {seat.get('seat_number')} has unknown section {section!r}"
                )

        for section_seats in grouped.values():
            section_seats.sort(key=lambda s: seat_sort_key(s.get('seat_number')))
        return grouped

    def count_seats(self, seats: List[Dict], students: List[Dict]) -> Dict[str, int]:
        occupied_ids = {s.get('seat_id') for s in students if s.get('seat_id')}

        available = sum(1 for seat in seats
                        if seat.get('status') == SEAT_AVAILABLE and seat.get('id') not in occupied_ids)
        occupied = sum(1 for seat in seats if seat.get('id') in occupied_ids)
        maintenance = sum(1 for seat in seats if seat.get('status') == SEAT_MAINTENANCE)

        return {
            'available': available,
            'occupied': occupied,
            'maintenance': maintenance,
            'total': len(seats)
        }

    def available_choices(self, seats: List[Dict], students: List[Dict]) -> List[Dict]:
        """
        Seats offered on the registration form: stored status 'available'
        and not referenced by any student.
        """
        occupied_ids = {s.get('seat_id') for s in students if s.get('seat_id')}
        return [seat for seat in seats
                if seat.get('status') == SEAT_AVAILABLE and seat.get('id') not in occupied_ids]

    def find_inconsistencies(self, seats: List[Dict], students: List[Dict]) -> List[str]:
        """
        Seats whose stored status disagrees with who actually sits there.
        Returns human readable descriptions.
        """
        issues = []
        occupants = {}
        for student in students:
            seat_id = student.get('seat_id')
            if seat_id:
                occupants.setdefault(seat_id, []).append(student)

        for seat in seats:
            number = seat.get('seat_number')
            status = seat.get('status')
            seated = occupants.get(seat.get('id'), [])

            if status == SEAT_OCCUPIED and not seated:
                issues.append(f"Seat {number} is marked occupied but no student is assigned")
            elif status == SEAT_AVAILABLE and seated:
                issues.append(f"Seat {number} is marked available but is assigned to {seated[0].get('name')}")
            elif status == SEAT_MAINTENANCE and seated:
                issues.append(f"Seat {number} is under maintenance but is assigned to {seated[0].get('name')}")
            if len(seated) > 1:
                names = ', '.join(s.get('name', '?') for s in seated)
                issues.append(f"Seat {number} is assigned to more than one student: {names}")

        for issue in issues:
            self.logger.warning(issue)
        return issues

    def build_layout(self, seats: List[Dict], students: List[Dict]) -> Dict:
        """
        Everything the seating tab renders: per-section cells, counts and
        any status/occupancy mismatches.
        """
        grouped = self.group_by_section(seats)
        sections = []
        for section in SECTIONS:
            cells = []
            for seat in grouped[section]:
                cells.append({
                    'seat': seat,
                    'student': self.get_seat_student(seat, students),
                    'state': self.seat_state(seat, students),
                    'tooltip': self.seat_tooltip(seat, students)
                })
            sections.append({
                'key': section,
                'label': SECTION_LABELS[section],
                'cells': cells
            })

        return {
            'sections': sections,
            'counts': self.count_seats(seats, students),
            'issues': self.find_inconsistencies(seats, students)
        }


# Global wrapper functions for convenience
def build_layout(seats: List[Dict], students: List[Dict]) -> Dict:
    return seat_layout.build_layout(seats, students)


def available_choices(seats: List[Dict], students: List[Dict]) -> List[Dict]:
    return seat_layout.available_choices(seats, students)


# Global instance for import
seat_layout = SeatLayout()

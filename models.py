# Seats, students and fees live in the Supabase backend as plain rows.
# The dashboard works on the dicts returned by the client, so this module
# only carries the fixed vocabulary shared by the views and forms.

# Sections of the reading hall, in display order
SECTIONS = ['left', 'front', 'right']

SECTION_LABELS = {
    'left': 'Left Section (1-13)',
    'front': 'Front Section (14-19)',
    'right': 'Right Section (20-30)',
}

# Seat numbers per section, used by the seed script
SECTION_LAYOUT = {
    'left': ('L', range(1, 14)),
    'front': ('F', range(14, 20)),
    'right': ('R', range(20, 31)),
}

SEAT_AVAILABLE = 'available'
SEAT_OCCUPIED = 'occupied'
SEAT_MAINTENANCE = 'maintenance'
SEAT_STATUSES = [SEAT_AVAILABLE, SEAT_OCCUPIED, SEAT_MAINTENANCE]

FEE_PENDING = 'pending'
FEE_PARTIAL = 'partial'
FEE_PAID = 'paid'
FEE_OVERDUE = 'overdue'
FEE_STATUSES = [FEE_PENDING, FEE_PARTIAL, FEE_PAID, FEE_OVERDUE]

FEE_FILTERS = ['all', FEE_PENDING, FEE_PAID, FEE_OVERDUE]

FEE_TYPES = ['monthly', 'registration', 'penalty']


def seat_number_for(section, number):
    """Seat number label, e.g. ('left', 7) -> 'L07'"""
    prefix, _ = SECTION_LAYOUT[section]
    return f"{prefix}{number:02d}"


def build_seat_chart():
    """Rows for the fixed 30 seat chart, all available."""
    seats = []
    for section in SECTIONS:
        _, numbers = SECTION_LAYOUT[section]
        for number in numbers:
            seats.append({
                'seat_number': seat_number_for(section, number),
                'section': section,
                'status': SEAT_AVAILABLE
            })
    return seats

import logging
from typing import Dict, List

import database

BACKEND_UNAVAILABLE = 'Could not load data from the backend. Check the connection or sign in again.'


class DashboardData:
    """
    Seats, students and fees as last fetched from the backend.

    Every load re-fetches the three tables in full and replaces the
    previous lists; nothing is patched incrementally.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self.seats: List[Dict] = []
        self.students: List[Dict] = []
        self.fees: List[Dict] = []
        self.loaded = False

    def load(self, strict: bool = False) -> 'DashboardData':
        """
        Fetch all three tables. A failed read leaves every list empty;
        with strict=True the error is re-raised for the caller to report.
        """
        try:
            seats = database.get_all_seats()
            students = database.get_all_students()
            fees = database.get_all_fees()
        except Exception as e:
            self.logger.error(f"Error loading data: {str(e)}")
            self.seats, self.students, self.fees = [], [], []
            self.loaded = False
            if strict:
                raise
            return self

        self.seats = seats
        self.students = students
        self.fees = fees
        self.loaded = True
        self.logger.debug(
            f"Loaded {len(seats)} seats, {len(students)} students, {len(fees)} fees"
        )
        if not seats:
            self.logger.warning("Seat table came back empty")
        return self

    reload = load

    def find_student(self, student_id):
        return next((s for s in self.students if str(s.get('id')) == str(student_id)), None)


def load_dashboard(strict: bool = False) -> DashboardData:
    return DashboardData().load(strict)

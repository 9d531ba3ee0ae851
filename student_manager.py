import logging
from typing import Dict

import database
from models import SEAT_AVAILABLE, SEAT_OCCUPIED


class StudentManager:
    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def remove_student(self, student: Dict):
        """
        Free the student's seat, then delete the student.

        The delete only runs once the seat update succeeded. If the delete
        fails, the seat is put back to occupied before re-raising.
        """
        seat_id = student.get('seat_id')
        if seat_id:
            database.update_seat_status(seat_id, SEAT_AVAILABLE)

        try:
            database.delete_student(student['id'])
        except Exception as e:
            self.logger.error(f"Error deleting student {student.get('student_id')}: {str(e)}")
            if seat_id:
                try:
                    database.update_seat_status(seat_id, SEAT_OCCUPIED)
                    self.logger.warning(f"Seat {seat_id} restored to occupied")
                except Exception as restore_error:
                    self.logger.error(f"Could not restore seat {seat_id}: {str(restore_error)}")
            raise

        self.logger.info(f"Removed student {student.get('student_id')}, seat {seat_id} freed")


# Global instance for import
student_manager = StudentManager()

import re
import math
import logging
from datetime import date
from typing import Dict, List, Optional, Tuple

import pandas as pd

import database
from database import DuplicateEntryError
from models import SEAT_AVAILABLE, SEAT_OCCUPIED, FEE_PAID, FEE_PARTIAL, FEE_PENDING

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')

REQUIRED_TEXT_FIELDS = [
    ('name', 'Name is required'),
    ('email', 'Email is required'),
    ('phone', 'Phone is required'),
    ('student_id', 'Student ID is required'),
]

DUPLICATE_MESSAGES = {
    'email': 'This email is already registered',
    'student_id': 'This student ID is already registered',
}

GENERIC_FAILURE = 'Failed to assign seat. Please try again.'


def default_form() -> Dict[str, str]:
    """Blank registration form"""
    return {
        'name': '',
        'email': '',
        'phone': '',
        'student_id': '',
        'seat_id': '',
        'registration_date': date.today().isoformat(),
        'monthly_fee': '1000',
        'amount_paid': '0',
    }


def parse_amount(value) -> Optional[float]:
    """Parse a money field; None when it is not a finite number."""
    if value is None:
        return None
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return number


def parse_date(value) -> Optional[date]:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        return None


def derive_fee_status(amount_paid: float, amount: float) -> str:
    """paid when fully covered, partial when something was paid, else pending"""
    if amount_paid >= amount:
        return FEE_PAID
    if amount_paid > 0:
        return FEE_PARTIAL
    return FEE_PENDING


def monthly_due_date(registration_date: date) -> date:
    """One calendar month after registration, clamped to the end of a shorter month."""
    return (pd.Timestamp(registration_date) + pd.DateOffset(months=1)).date()


def duplicate_field_errors(error: DuplicateEntryError) -> Dict[str, str]:
    message = DUPLICATE_MESSAGES.get(error.field)
    if message is None:
        return {}
    return {error.field: message}


class StudentRegistration:
    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def validate(self, form: Dict, seat_choices: List[Dict]) -> Tuple[Dict, Dict[str, str]]:
        """
        Check the submitted form against the available seats.

        Returns (cleaned values, field errors). Nothing is sent to the
        backend here; callers must not write when errors is non-empty.
        """
        errors = {}
        cleaned = {}

        for field, message in REQUIRED_TEXT_FIELDS:
            value = str(form.get(field) or '').strip()
            if not value:
                errors[field] = message
            cleaned[field] = value

        seat_id = str(form.get('seat_id') or '').strip()
        choice_ids = {str(seat.get('id')) for seat in seat_choices}
        if not seat_id or seat_id not in choice_ids:
            errors['seat_id'] = 'Please select a seat'
        else:
            cleaned['seat_id'] = next(seat.get('id') for seat in seat_choices
                                      if str(seat.get('id')) == seat_id)

        raw_date = form.get('registration_date')
        if not raw_date:
            errors['registration_date'] = 'Registration date is required'
        else:
            registration_date = parse_date(raw_date)
            if registration_date is None:
                errors['registration_date'] = 'Registration date must be a valid date'
            cleaned['registration_date'] = registration_date

        monthly_fee = parse_amount(form.get('monthly_fee'))
        if monthly_fee is None or monthly_fee <= 0:
            errors['monthly_fee'] = 'Monthly fee must be greater than 0'
        cleaned['monthly_fee'] = monthly_fee

        raw_paid = form.get('amount_paid')
        if raw_paid is None or str(raw_paid).strip() == '':
            raw_paid = '0'
        amount_paid = parse_amount(raw_paid)
        if amount_paid is None:
            errors['amount_paid'] = 'Amount paid must be a number'
        elif amount_paid < 0:
            errors['amount_paid'] = 'Amount paid cannot be negative'
        elif 'monthly_fee' not in errors and amount_paid > monthly_fee:
            errors['amount_paid'] = 'Amount paid cannot exceed monthly fee'
        cleaned['amount_paid'] = amount_paid

        if cleaned['email'] and not EMAIL_PATTERN.match(cleaned['email']):
            errors['email'] = 'Please enter a valid email address'

        return cleaned, errors

    def build_fee(self, student_row: Dict, cleaned: Dict) -> Dict:
        amount = cleaned['monthly_fee']
        amount_paid = cleaned['amount_paid']
        status = derive_fee_status(amount_paid, amount)
        registration_date = cleaned['registration_date']

        return {
            'student_id': student_row['id'],
            'amount': amount,
            'amount_paid': amount_paid,
            'fee_type': 'monthly',
            'due_date': monthly_due_date(registration_date).isoformat(),
            'status': status,
            'paid_date': registration_date.isoformat() if status == FEE_PAID else None,
        }

    def register(self, cleaned: Dict) -> Dict:
        """
        Insert the student, occupy the seat, then record the first monthly fee.

        A failing step stops the sequence and the steps already done are
        undone in reverse order before the error is re-raised.
        """
        undo = []
        result = {'student': None, 'fee': None}

        try:
            student = database.add_student({
                'name': cleaned['name'],
                'email': cleaned['email'].lower(),
                'phone': cleaned['phone'],
                'student_id': cleaned['student_id'],
                'seat_id': cleaned['seat_id'],
                'registration_date': cleaned['registration_date'].isoformat(),
            })
            result['student'] = student
            undo.append(('delete student', lambda: database.delete_student(student['id'])))

            database.update_seat_status(cleaned['seat_id'], SEAT_OCCUPIED)
            undo.append(('free seat', lambda: database.update_seat_status(cleaned['seat_id'], SEAT_AVAILABLE)))

            if cleaned['monthly_fee'] > 0:
                result['fee'] = database.add_fee(self.build_fee(student, cleaned))

        except Exception as e:
            self.logger.error(f"Registration of {cleaned.get('student_id')} failed: {str(e)}")
            self._compensate(undo)
            raise

        self.logger.info(
            f"Registered student {cleaned['student_id']} on seat {cleaned['seat_id']}"
        )
        return result

    def _compensate(self, undo):
        for label, action in reversed(undo):
            try:
                action()
                self.logger.warning(f"Rolled back registration step: {label}")
            except Exception as e:
                self.logger.error(f"Could not roll back '{label}': {str(e)}")


# Global instance for import
student_registration = StudentRegistration()

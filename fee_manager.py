import logging
from datetime import date
from typing import Dict, List, Optional, Tuple

import database
from models import FEE_FILTERS, FEE_STATUSES, FEE_TYPES, FEE_PAID, FEE_PENDING
from registration import parse_amount, parse_date


def fee_amount(fee: Dict) -> float:
    try:
        return float(fee.get('amount') or 0)
    except (TypeError, ValueError):
        return 0.0


class FeeManager:
    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def normalize_filter(self, selected: Optional[str]) -> str:
        return selected if selected in FEE_FILTERS else 'all'

    def filter_fees(self, fees: List[Dict], selected: Optional[str]) -> List[Dict]:
        selected = self.normalize_filter(selected)
        if selected == 'all':
            return list(fees)
        return [fee for fee in fees if fee.get('status') == selected]

    def summarize(self, fees: List[Dict], selected: Optional[str] = 'all') -> Dict[str, float]:
        """
        Amount totals. 'total' follows the active filter; the per-status
        totals always cover every fee.
        """
        totals = {'total': sum(fee_amount(fee) for fee in self.filter_fees(fees, selected))}
        for status in FEE_STATUSES:
            totals[status] = sum(fee_amount(fee) for fee in fees if fee.get('status') == status)
        return totals

    def mark_paid(self, fee_id, paid_on: Optional[date] = None):
        """
        Set a fee to paid as of today. Works from any status, including
        paid, in which case only the paid date moves.
        """
        paid_on = paid_on or date.today()
        database.update_fee(fee_id, {
            'status': FEE_PAID,
            'paid_date': paid_on.isoformat()
        })
        self.logger.info(f"Fee {fee_id} marked paid on {paid_on.isoformat()}")

    def validate_new_fee(self, form: Dict, students: List[Dict]) -> Tuple[Dict, Dict[str, str]]:
        errors = {}
        cleaned = {}

        student_id = str(form.get('student_id') or '').strip()
        student = next((s for s in students if str(s.get('id')) == student_id), None)
        if student is None:
            errors['student_id'] = 'Please select a student'
        else:
            cleaned['student_id'] = student['id']

        amount = parse_amount(form.get('amount'))
        if amount is None or amount <= 0:
            errors['amount'] = 'Amount must be greater than 0'
        cleaned['amount'] = amount

        fee_type = str(form.get('fee_type') or 'monthly').strip()
        if fee_type not in FEE_TYPES:
            errors['fee_type'] = 'Unknown fee type'
        cleaned['fee_type'] = fee_type

        due_date = parse_date(form.get('due_date')) if form.get('due_date') else None
        if due_date is None:
            errors['due_date'] = 'Due date is required'
        cleaned['due_date'] = due_date

        return cleaned, errors

    def add_fee(self, cleaned: Dict) -> Optional[Dict]:
        """New fees always start pending, whatever the amount."""
        row = database.add_fee({
            'student_id': cleaned['student_id'],
            'amount': cleaned['amount'],
            'amount_paid': 0,
            'fee_type': cleaned['fee_type'],
            'due_date': cleaned['due_date'].isoformat(),
            'status': FEE_PENDING,
        })
        self.logger.info(
            f"Added {cleaned['fee_type']} fee of {cleaned['amount']} for student {cleaned['student_id']}"
        )
        return row


# Global instance for import
fee_manager = FeeManager()

import pandas as pd
import openpyxl
from openpyxl.styles import Font, Alignment, Border, Side, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.workbook import Workbook
import os
import logging
from datetime import datetime
from typing import Optional, Dict, List

STATE_FILLS = {
    'available': 'E2F0D9',
    'occupied': 'DDEBF7',
    'maintenance': 'D9D9D9',
}

FEE_STATUS_FILLS = {
    'paid': 'E2F0D9',
    'partial': 'FFF2CC',
    'pending': 'FFF2CC',
    'overdue': 'FFE6E6',
}

HEADER_FILL = PatternFill(start_color="366092", end_color="366092", fill_type="solid")
THIN_BORDER = Border(
    left=Side(style='thin'),
    right=Side(style='thin'),
    top=Side(style='thin'),
    bottom=Side(style='thin')
)


class ExcelHandler:
    def __init__(self, export_folder: str = 'exports'):
        self.logger = logging.getLogger(__name__)
        self.export_folder = export_folder

    def _timestamped_path(self, prefix: str) -> str:
        os.makedirs(self.export_folder, exist_ok=True)
        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        return os.path.join(self.export_folder, f"{prefix}_{timestamp}.xlsx")

    def _style_header(self, ws, row: int, columns: int):
        for col in range(1, columns + 1):
            cell = ws.cell(row=row, column=col)
            cell.font = Font(bold=True, color="FFFFFF")
            cell.fill = HEADER_FILL
            cell.border = THIN_BORDER
            cell.alignment = Alignment(horizontal='center', vertical='center')

    def _auto_width(self, ws):
        for col_idx in range(1, ws.max_column + 1):
            max_length = 0
            column_letter = get_column_letter(col_idx)
            for row_idx in range(1, ws.max_row + 1):
                value = ws.cell(row=row_idx, column=col_idx).value
                if value is not None:
                    max_length = max(max_length, len(str(value)))
            ws.column_dimensions[column_letter].width = min(max_length + 2, 50)

    def students_frame(self, students: List[Dict]) -> pd.DataFrame:
        rows = []
        for student in students:
            seat = student.get('seat') or {}
            rows.append({
                'Student ID': student.get('student_id'),
                'Name': student.get('name'),
                'Email': student.get('email'),
                'Phone': student.get('phone'),
                'Seat': seat.get('seat_number') or 'No seat assigned',
                'Section': seat.get('section', ''),
                'Started': student.get('registration_date'),
            })
        return pd.DataFrame(rows, columns=['Student ID', 'Name', 'Email', 'Phone',
                                           'Seat', 'Section', 'Started'])

    def fees_frame(self, fees: List[Dict]) -> pd.DataFrame:
        rows = []
        for fee in fees:
            student = fee.get('student') or {}
            rows.append({
                'Student': student.get('name') or 'Unknown Student',
                'Student ID': student.get('student_id', ''),
                'Fee Type': fee.get('fee_type'),
                'Amount': float(fee.get('amount') or 0),
                'Amount Paid': float(fee.get('amount_paid') or 0),
                'Due Date': fee.get('due_date'),
                'Paid Date': fee.get('paid_date') or '',
                'Status': fee.get('status'),
            })
        return pd.DataFrame(rows, columns=['Student', 'Student ID', 'Fee Type', 'Amount',
                                           'Amount Paid', 'Due Date', 'Paid Date', 'Status'])

    def export_students(self, students: List[Dict]) -> Optional[str]:
        """Export the student register with seat assignments."""
        try:
            filepath = self._timestamped_path('students_export')
            df = self.students_frame(students)
            df.to_excel(filepath, index=False, engine='openpyxl', sheet_name='Students')

            wb = openpyxl.load_workbook(filepath)
            ws = wb['Students']
            self._style_header(ws, 1, len(df.columns))
            self._auto_width(ws)
            wb.save(filepath)

            self.logger.info(f"Exported {len(df)} students to {filepath}")
            return filepath

        except Exception as e:
            self.logger.error(f"Error exporting students: {str(e)}")
            return None

    def export_fees(self, fees: List[Dict], totals: Dict[str, float]) -> Optional[str]:
        """
        Export the fee ledger followed by a summary block of the totals.
        """
        try:
            filepath = self._timestamped_path('fees_export')
            df = self.fees_frame(fees)
            df.to_excel(filepath, index=False, engine='openpyxl', sheet_name='Fees')

            wb = openpyxl.load_workbook(filepath)
            ws = wb['Fees']
            self._style_header(ws, 1, len(df.columns))

            status_col = df.columns.get_loc('Status') + 1
            for row_idx in range(2, len(df) + 2):
                cell = ws.cell(row=row_idx, column=status_col)
                color = FEE_STATUS_FILLS.get(cell.value)
                if color:
                    cell.fill = PatternFill(start_color=color, end_color=color, fill_type="solid")

            summary_row = len(df) + 3
            ws.cell(row=summary_row, column=1, value="Summary:").font = Font(bold=True)
            labels = [('total', 'Total Amount'), ('paid', 'Paid'), ('pending', 'Pending'),
                      ('partial', 'Partial'), ('overdue', 'Overdue')]
            for offset, (key, label) in enumerate(labels, 1):
                ws.cell(row=summary_row + offset, column=1, value=label)
                ws.cell(row=summary_row + offset, column=2, value=round(totals.get(key, 0), 2))

            self._auto_width(ws)
            wb.save(filepath)

            self.logger.info(f"Exported {len(df)} fees to {filepath}")
            return filepath

        except Exception as e:
            self.logger.error(f"Error exporting fees: {str(e)}")
            return None

    def export_seating_chart(self, layout: Dict) -> Optional[str]:
        """
        Export the seating chart, one column block per section, colour
        coded by seat state.
        """
        try:
            wb = Workbook()
            ws = wb.active
            ws.title = "Seating Chart"

            sections = layout.get('sections', [])
            width = max(len(sections) * 3 - 1, 1)
            ws.merge_cells(start_row=1, start_column=1, end_row=1, end_column=width)
            title_cell = ws.cell(row=1, column=1, value="Library Seating Chart")
            title_cell.font = Font(size=16, bold=True)
            title_cell.alignment = Alignment(horizontal='center')

            ws.cell(row=2, column=1, value=f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
            ws.cell(row=2, column=1).font = Font(size=10, italic=True)

            last_row = 4
            for index, section in enumerate(sections):
                col = index * 3 + 1
                header = ws.cell(row=4, column=col, value=section['label'])
                header.font = Font(bold=True)
                ws.merge_cells(start_row=4, start_column=col, end_row=4, end_column=col + 1)

                row = 5
                for cell_info in section['cells']:
                    seat = cell_info['seat']
                    student = cell_info['student']
                    seat_cell = ws.cell(row=row, column=col, value=seat.get('seat_number'))
                    who = student.get('name') if student else cell_info['tooltip']
                    who_cell = ws.cell(row=row, column=col + 1, value=who)

                    color = STATE_FILLS.get(cell_info['state'])
                    for cell in (seat_cell, who_cell):
                        cell.border = THIN_BORDER
                        if color:
                            cell.fill = PatternFill(start_color=color, end_color=color, fill_type="solid")
                    row += 1
                last_row = max(last_row, row)

            counts = layout.get('counts', {})
            summary_row = last_row + 1
            ws.cell(row=summary_row, column=1, value="Summary:").font = Font(bold=True)
            ws.cell(row=summary_row + 1, column=1, value=f"Available: {counts.get('available', 0)}")
            ws.cell(row=summary_row + 2, column=1, value=f"Occupied: {counts.get('occupied', 0)}")
            ws.cell(row=summary_row + 3, column=1, value=f"Maintenance: {counts.get('maintenance', 0)}")

            for col_idx in range(1, width + 1):
                ws.column_dimensions[get_column_letter(col_idx)].width = 18

            filepath = self._timestamped_path('seating_chart')
            wb.save(filepath)

            self.logger.info(f"Exported seating chart to {filepath}")
            return filepath

        except Exception as e:
            self.logger.error(f"Error exporting seating chart: {str(e)}")
            return None

import os
import logging
from functools import wraps
from flask import (
    Flask, render_template, request, redirect, url_for, flash, jsonify, send_file,
    session, g
)

import database
from database import DuplicateEntryError, load_supabase_settings, close_db
from dashboard import load_dashboard, BACKEND_UNAVAILABLE
from seat_layout import seat_layout
from registration import (
    student_registration, default_form, duplicate_field_errors, GENERIC_FAILURE
)
from fee_manager import fee_manager
from student_manager import student_manager
from excel_handler import ExcelHandler
from models import FEE_FILTERS, FEE_TYPES

# Set up logging
logging.basicConfig(level=os.environ.get('LOG_LEVEL', 'DEBUG').upper())

app = Flask(__name__)
app.secret_key = os.environ.get("SESSION_SECRET", "dev-secret-key-change-in-production")

# Configuration
SUPABASE_URL, SUPABASE_KEY = load_supabase_settings()
EXPORT_FOLDER = os.environ.get('EXPORT_FOLDER', 'exports')

app.config['SUPABASE_URL'] = SUPABASE_URL
app.config['SUPABASE_KEY'] = SUPABASE_KEY
app.config['EXPORT_FOLDER'] = EXPORT_FOLDER
app.config['LIBRARY_NAME'] = os.environ.get('LIBRARY_NAME', 'श्री श्याम लाइब्रेरी')


@app.teardown_appcontext
def teardown_db(exception):
    close_db()


@app.before_request
def load_logged_in_admin():
    g.admin = session.get('admin_email')


@app.context_processor
def inject_library_name():
    return {'library_name': app.config['LIBRARY_NAME']}


def login_required(view):
    @wraps(view)
    def wrapped_view(**kwargs):
        if g.admin is None:
            flash('Login required.', 'error')
            return redirect(url_for('login'))
        return view(**kwargs)

    return wrapped_view


@app.route('/login', methods=['GET', 'POST'])
def login():
    if request.method == 'POST':
        email = request.form.get('email', '').strip()
        password = request.form.get('password', '')

        if not email or not password:
            flash('Email and password are required', 'error')
            return render_template('login.html', email=email), 400

        try:
            user = database.sign_in(email, password)
        except Exception as e:
            logging.error(f"Login failed for {email}: {str(e)}")
            user = None

        if user is None:
            flash('Invalid email or password', 'error')
            return render_template('login.html', email=email), 401

        session.clear()
        session['admin_email'] = email
        logging.info(f"Admin {email} logged in")
        return redirect(url_for('seating'))

    return render_template('login.html', email='')


@app.route('/logout')
def logout():
    try:
        database.sign_out()
    except Exception as e:
        logging.error(f"Error signing out: {str(e)}")
    session.clear()
    flash('Logged out.', 'info')
    return redirect(url_for('login'))


def load_for_view():
    """Dashboard data for a page render, warning when the backend gave nothing back"""
    data = load_dashboard()
    if not data.loaded or not data.seats:
        flash(BACKEND_UNAVAILABLE, 'warning')
    return data


@app.route('/')
@login_required
def index():
    return redirect(url_for('seating'))


@app.route('/seating')
@login_required
def seating():
    data = load_for_view()
    layout = seat_layout.build_layout(data.seats, data.students)
    return render_template('seating.html', active_tab='seating', layout=layout)


@app.route('/students')
@login_required
def students():
    data = load_for_view()
    return render_template('students.html', active_tab='students', students=data.students)


@app.route('/remove_student', methods=['POST'])
@login_required
def remove_student():
    student_id = request.form.get('student_id', '').strip()
    if request.form.get('confirm') != 'yes':
        flash('Removal was not confirmed', 'error')
        return redirect(url_for('students'))

    try:
        data = load_dashboard(strict=True)
        student = data.find_student(student_id)
        if student is None:
            flash('Student not found', 'error')
            return redirect(url_for('students'))

        student_manager.remove_student(student)
        flash(f"Removed {student.get('name')} and freed their seat", 'success')

    except Exception as e:
        logging.error(f"Error removing student: {str(e)}")
        flash('Failed to remove student. Please try again.', 'error')

    return redirect(url_for('students'))


def render_assign(form, errors, status=200):
    data = load_for_view()
    choices = seat_layout.available_choices(data.seats, data.students)
    return render_template('assign.html', active_tab='assign', form=form,
                           errors=errors, seats=choices), status


@app.route('/assign', methods=['GET'])
@login_required
def assign():
    return render_assign(default_form(), {})


@app.route('/assign', methods=['POST'])
@login_required
def assign_seat():
    form = default_form()
    form.update({key: request.form.get(key, '') for key in form})

    try:
        data = load_dashboard(strict=True)
    except Exception as e:
        logging.error(f"Error loading seats for assignment: {str(e)}")
        flash(GENERIC_FAILURE, 'error')
        return render_assign(form, {}, 502)

    choices = seat_layout.available_choices(data.seats, data.students)
    cleaned, errors = student_registration.validate(form, choices)
    if errors:
        return render_assign(form, errors, 400)

    try:
        student_registration.register(cleaned)
    except DuplicateEntryError as e:
        errors = duplicate_field_errors(e)
        if not errors:
            flash(GENERIC_FAILURE, 'error')
        return render_assign(form, errors, 409)
    except Exception as e:
        logging.error(f"Error assigning seat: {str(e)}")
        flash(GENERIC_FAILURE, 'error')
        return render_assign(form, {}, 502)

    flash('Student successfully registered and seat assigned!', 'success')
    return redirect(url_for('assign'))


def render_fees(selected, form, errors, status=200):
    data = load_for_view()
    return render_template('fees.html', active_tab='fees',
                           fees=fee_manager.filter_fees(data.fees, selected),
                           totals=fee_manager.summarize(data.fees, selected),
                           students=data.students,
                           selected_filter=selected,
                           filters=FEE_FILTERS,
                           fee_types=FEE_TYPES,
                           form=form,
                           errors=errors), status


@app.route('/fees')
@login_required
def fees():
    selected = fee_manager.normalize_filter(request.args.get('filter'))
    return render_fees(selected, {}, {})


@app.route('/mark_fee_paid/<fee_id>', methods=['POST'])
@login_required
def mark_fee_paid(fee_id):
    selected = fee_manager.normalize_filter(request.form.get('filter'))
    try:
        fee_manager.mark_paid(fee_id)
        flash('Fee marked as paid', 'success')
    except Exception as e:
        logging.error(f"Error updating fee: {str(e)}")
        flash('Failed to update fee status. Please try again.', 'error')

    return redirect(url_for('fees', filter=selected))


@app.route('/add_fee', methods=['POST'])
@login_required
def add_fee():
    try:
        data = load_dashboard(strict=True)
    except Exception as e:
        logging.error(f"Error loading students for new fee: {str(e)}")
        flash('Failed to add fee. Please try again.', 'error')
        return redirect(url_for('fees'))

    cleaned, errors = fee_manager.validate_new_fee(request.form, data.students)
    if errors:
        return render_fees('all', request.form.to_dict(), errors, 400)

    try:
        fee_manager.add_fee(cleaned)
        flash('Fee added successfully', 'success')
    except Exception as e:
        logging.error(f"Error adding fee: {str(e)}")
        flash('Failed to add fee. Please try again.', 'error')

    return redirect(url_for('fees'))


@app.route('/get_dashboard_data')
@login_required
def get_dashboard_data():
    data = load_dashboard()
    return jsonify({
        'seats': data.seats,
        'students': data.students,
        'fees': data.fees,
        'seat_counts': seat_layout.count_seats(data.seats, data.students),
        'fee_totals': fee_manager.summarize(data.fees),
        'loaded': data.loaded
    })


def send_export(filepath, fallback):
    if filepath and os.path.exists(filepath):
        filename = os.path.basename(filepath)
        return send_file(os.path.abspath(filepath), as_attachment=True, download_name=filename)
    flash('Error generating Excel file', 'error')
    return redirect(url_for(fallback))


@app.route('/export_students')
@login_required
def export_students():
    """Export the student register to Excel"""
    data = load_dashboard()
    if not data.students:
        flash('No student data to export', 'info')
        return redirect(url_for('students'))

    excel_handler = ExcelHandler(app.config['EXPORT_FOLDER'])
    return send_export(excel_handler.export_students(data.students), 'students')


@app.route('/export_fees')
@login_required
def export_fees():
    """Export the fee ledger, honouring the active filter"""
    selected = fee_manager.normalize_filter(request.args.get('filter'))
    data = load_dashboard()
    if not data.fees:
        flash('No fee records to export', 'info')
        return redirect(url_for('fees'))

    excel_handler = ExcelHandler(app.config['EXPORT_FOLDER'])
    filepath = excel_handler.export_fees(fee_manager.filter_fees(data.fees, selected),
                                         fee_manager.summarize(data.fees, selected))
    return send_export(filepath, 'fees')


@app.route('/export_seating')
@login_required
def export_seating():
    """Export the seating chart to Excel"""
    data = load_dashboard()
    layout = seat_layout.build_layout(data.seats, data.students)

    excel_handler = ExcelHandler(app.config['EXPORT_FOLDER'])
    return send_export(excel_handler.export_seating_chart(layout), 'seating')


if __name__ == '__main__':
    app.run(host='0.0.0.0', port=5000, debug=True)

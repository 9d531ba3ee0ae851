import os
import re
import logging

from flask import g, current_app
from postgrest.exceptions import APIError
from supabase import create_client

logger = logging.getLogger(__name__)

# Postgres error code for a unique constraint violation
UNIQUE_VIOLATION = '23505'

# Unique constraints on the students table and the form field each one guards
UNIQUE_CONSTRAINT_FIELDS = {
    'students_email_key': 'email',
    'students_student_id_key': 'student_id',
}

KEY_DETAIL_PATTERN = re.compile(r'Key \((?P<column>[^)]+)\)=')


class BackendConfigError(RuntimeError):
    """Backend endpoint or access key missing from the environment"""


class BackendError(Exception):
    """A remote table operation failed"""

    def __init__(self, message, code=None):
        super().__init__(message)
        self.code = code


class DuplicateEntryError(BackendError):
    """A unique constraint rejected the row; `field` names the offending column"""

    def __init__(self, message, field=None, code=UNIQUE_VIOLATION):
        super().__init__(message, code)
        self.field = field


def load_supabase_settings(environ=None):
    """Return (url, key) for the backend, raising if either is missing."""
    environ = os.environ if environ is None else environ
    url = environ.get('SUPABASE_URL') or environ.get('VITE_SUPABASE_URL')
    key = environ.get('SUPABASE_ANON_KEY') or environ.get('VITE_SUPABASE_ANON_KEY')
    if not url or not key:
        raise BackendConfigError('Missing Supabase environment variables')
    return url, key


def get_db():
    """Get the Supabase client for the current request"""
    if 'db' not in g:
        client = current_app.extensions.get('supabase')
        if client is None:
            client = create_client(current_app.config['SUPABASE_URL'],
                                   current_app.config['SUPABASE_KEY'])
            current_app.extensions['supabase'] = client
        g.db = client
    return g.db


def close_db(e=None):
    """Drop the request's handle on the client"""
    g.pop('db', None)


def translate_error(error):
    """Map a PostgREST error onto BackendError / DuplicateEntryError."""
    code = getattr(error, 'code', None)
    message = getattr(error, 'message', None) or str(error)
    if code == UNIQUE_VIOLATION:
        return DuplicateEntryError(message, field=_duplicate_field(error))
    return BackendError(message, code)


def _duplicate_field(error):
    message = getattr(error, 'message', None) or ''
    details = getattr(error, 'details', None) or ''

    for constraint, field in UNIQUE_CONSTRAINT_FIELDS.items():
        if constraint in message:
            return field

    match = KEY_DETAIL_PATTERN.search(details)
    if match:
        return match.group('column').strip()

    # Constraint names differ across schemas; last resort is the column name
    for field in ('student_id', 'email'):
        if field in message:
            return field
    return None


def run_query(query):
    """Execute a built query and return its rows"""
    try:
        response = query.execute()
    except APIError as e:
        raise translate_error(e) from e
    return response.data or []


# Read operations
def get_all_seats():
    return run_query(get_db().table('seats').select('*').order('seat_number'))


def get_all_students():
    return run_query(
        get_db().table('students').select('*, seat:seats(*)').order('name')
    )


def get_all_fees():
    return run_query(
        get_db().table('fees').select('*, student:students(*)').order('due_date', desc=True)
    )


# Seat operations
def add_seat(seat_number, section, status='available'):
    rows = run_query(get_db().table('seats').insert({
        'seat_number': seat_number,
        'section': section,
        'status': status
    }))
    return rows[0] if rows else None


def update_seat_status(seat_id, status):
    run_query(get_db().table('seats').update({'status': status}).eq('id', seat_id))
    logger.debug(f"Seat {seat_id} set to {status}")


# Student operations
def add_student(record):
    """Insert a student row and return it as stored"""
    rows = run_query(get_db().table('students').insert(record))
    if not rows:
        raise BackendError('Student insert returned no row')
    return rows[0]


def delete_student(student_id):
    run_query(get_db().table('students').delete().eq('id', student_id))


# Fee operations
def add_fee(record):
    rows = run_query(get_db().table('fees').insert(record))
    return rows[0] if rows else None


def update_fee(fee_id, values):
    run_query(get_db().table('fees').update(values).eq('id', fee_id))


# Auth
def sign_in(email, password):
    """Sign the admin in through Supabase Auth; returns the user or None"""
    response = get_db().auth.sign_in_with_password({'email': email, 'password': password})
    return getattr(response, 'user', None)


def sign_out():
    get_db().auth.sign_out()

"""
Shared fixtures: an in-memory stand-in for the Supabase query builder and
a Flask test client wired to it.
"""

import os
import copy
import itertools
from types import SimpleNamespace

import pytest
from postgrest.exceptions import APIError

os.environ.setdefault('SUPABASE_URL', 'https://library-test.supabase.co')
os.environ.setdefault('SUPABASE_ANON_KEY', 'test-anon-key')
os.environ.setdefault('LOG_LEVEL', 'WARNING')

from models import build_seat_chart  # noqa: E402

UNIQUE_COLUMNS = {
    'students': ['email', 'student_id'],
}

EMBEDS = {
    'seat:seats(*)': ('seat', 'seats', 'seat_id'),
    'student:students(*)': ('student', 'students', 'student_id'),
}


def duplicate_error(table, column, value):
    return APIError({
        'code': '23505',
        'message': f'duplicate key value violates unique constraint "{table}_{column}_key"',
        'details': f'Key ({column})=({value}) already exists.',
        'hint': None,
    })


class FakeQuery:
    def __init__(self, backend, table):
        self.backend = backend
        self.table = table
        self.operation = None
        self.columns = '*'
        self.payload = None
        self.filters = []
        self.ordering = None

    def select(self, columns='*'):
        self.operation = 'select'
        self.columns = columns
        return self

    def insert(self, payload):
        self.operation = 'insert'
        self.payload = payload
        return self

    def update(self, payload):
        self.operation = 'update'
        self.payload = payload
        return self

    def delete(self):
        self.operation = 'delete'
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def order(self, column, desc=False):
        self.ordering = (column, desc)
        return self

    def _matches(self, row):
        return all(row.get(column) == value for column, value in self.filters)

    def execute(self):
        self.backend.calls.append((self.table, self.operation, copy.deepcopy(self.payload), list(self.filters)))

        failure = self.backend.take_failure(self.table, self.operation)
        if failure is not None:
            raise failure

        handler = getattr(self, f'_execute_{self.operation}')
        return SimpleNamespace(data=handler())

    def _execute_select(self):
        rows = [copy.deepcopy(r) for r in self.backend.tables[self.table] if self._matches(r)]
        for embed, (key, other_table, fk) in EMBEDS.items():
            if embed in self.columns:
                for row in rows:
                    row[key] = copy.deepcopy(next(
                        (o for o in self.backend.tables[other_table] if o['id'] == row.get(fk)), None))
        if self.ordering:
            column, desc = self.ordering
            rows.sort(key=lambda r: (r.get(column) is None, r.get(column) or ''), reverse=desc)
        return rows

    def _execute_insert(self):
        records = self.payload if isinstance(self.payload, list) else [self.payload]
        inserted = []
        for record in records:
            for column in UNIQUE_COLUMNS.get(self.table, []):
                if any(r.get(column) == record.get(column) for r in self.backend.tables[self.table]):
                    raise duplicate_error(self.table, column, record.get(column))
            row = dict(record)
            row.setdefault('id', self.backend.next_id(self.table))
            row.setdefault('created_at', '2026-10-01T09:00:00+00:00')
            self.backend.tables[self.table].append(row)
            inserted.append(copy.deepcopy(row))
        return inserted

    def _execute_update(self):
        updated = []
        for row in self.backend.tables[self.table]:
            if self._matches(row):
                row.update(self.payload)
                updated.append(copy.deepcopy(row))
        return updated

    def _execute_delete(self):
        kept, removed = [], []
        for row in self.backend.tables[self.table]:
            (removed if self._matches(row) else kept).append(row)
        self.backend.tables[self.table] = kept
        return removed


class FakeAuth:
    def __init__(self):
        self.users = {'admin@library.test': 'secret'}
        self.signed_out = False

    def sign_in_with_password(self, credentials):
        email = credentials.get('email')
        if self.users.get(email) != credentials.get('password'):
            raise Exception('Invalid login credentials')
        return SimpleNamespace(user={'email': email})

    def sign_out(self):
        self.signed_out = True


class FakeSupabase:
    def __init__(self):
        self.tables = {'seats': [], 'students': [], 'fees': []}
        self.calls = []
        self.failures = {}
        self.auth = FakeAuth()
        self._ids = itertools.count(1)

    def next_id(self, table):
        return f"{table[:-1]}-{next(self._ids)}"

    def table(self, name):
        return FakeQuery(self, name)

    def fail(self, table, operation, error=None):
        """Make the next `operation` on `table` raise."""
        self.failures[(table, operation)] = error or APIError({
            'code': '42501', 'message': 'permission denied', 'details': None, 'hint': None
        })

    def take_failure(self, table, operation):
        return self.failures.pop((table, operation), None)

    def writes(self):
        return [call for call in self.calls if call[1] != 'select']

    def seat(self, seat_number):
        return next(s for s in self.tables['seats'] if s['seat_number'] == seat_number)


@pytest.fixture
def backend():
    fake = FakeSupabase()
    for seat in build_seat_chart():
        seat['id'] = f"seat-{seat['seat_number']}"
        fake.tables['seats'].append(seat)
    return fake


@pytest.fixture
def app(backend, tmp_path):
    from app import app as flask_app
    flask_app.config.update(TESTING=True, EXPORT_FOLDER=str(tmp_path / 'exports'))
    flask_app.extensions['supabase'] = backend
    yield flask_app
    flask_app.extensions.pop('supabase', None)


@pytest.fixture
def app_ctx(app):
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_client(client):
    with client.session_transaction() as sess:
        sess['admin_email'] = 'admin@library.test'
    return client


@pytest.fixture
def registered(backend):
    """Two students already seated, with one fee each."""
    backend.tables['students'].extend([
        {'id': 'student-a', 'name': 'Asha Verma', 'email': 'asha@example.com', 'phone': '9876500001',
         'student_id': 'STU001', 'seat_id': 'seat-L07', 'registration_date': '2026-09-01',
         'created_at': '2026-09-01T10:00:00+00:00'},
        {'id': 'student-b', 'name': 'Ravi Kumar', 'email': 'ravi@example.com', 'phone': '9876500002',
         'student_id': 'STU002', 'seat_id': 'seat-F14', 'registration_date': '2026-09-05',
         'created_at': '2026-09-05T10:00:00+00:00'},
    ])
    backend.seat('L07')['status'] = 'occupied'
    backend.seat('F14')['status'] = 'occupied'
    backend.tables['fees'].extend([
        {'id': 'fee-a', 'student_id': 'student-a', 'amount': 1000, 'amount_paid': 0,
         'fee_type': 'monthly', 'due_date': '2026-10-01', 'paid_date': None, 'status': 'pending'},
        {'id': 'fee-b', 'student_id': 'student-b', 'amount': 1200, 'amount_paid': 1200,
         'fee_type': 'monthly', 'due_date': '2026-10-05', 'paid_date': '2026-09-05', 'status': 'paid'},
        {'id': 'fee-c', 'student_id': 'student-a', 'amount': 200, 'amount_paid': 0,
         'fee_type': 'penalty', 'due_date': '2026-09-15', 'paid_date': None, 'status': 'overdue'},
    ])
    return backend

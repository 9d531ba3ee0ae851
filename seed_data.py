#!/usr/bin/env python3
"""
Seed the library backend with the 30 seat chart and, optionally, some
registered students for trying out the dashboard.
"""
import sys
import random
import argparse
from datetime import date, timedelta

from faker import Faker

import database
from models import build_seat_chart, SECTIONS
from registration import student_registration
from seat_layout import available_choices


def seed_seats():
    """Insert any chart seats the backend does not have yet."""
    existing = {seat['seat_number'] for seat in database.get_all_seats()}
    added = 0
    for seat in build_seat_chart():
        if seat['seat_number'] in existing:
            continue
        database.add_seat(seat['seat_number'], seat['section'], seat['status'])
        added += 1
    return added


def fake_registration(fake, seat, index):
    """Cleaned registration values for one made-up student."""
    first_name = fake.first_name()
    last_name = fake.last_name()
    monthly_fee = random.choice([800.0, 1000.0, 1200.0])
    amount_paid = random.choice([0.0, monthly_fee / 2, monthly_fee])

    return {
        'name': f"{first_name} {last_name}",
        'email': f"{first_name}.{last_name}{index}@example.com".lower(),
        'phone': fake.phone_number(),
        'student_id': f"STU{index:03d}",
        'seat_id': seat['id'],
        'registration_date': date.today() - timedelta(days=random.randint(0, 60)),
        'monthly_fee': monthly_fee,
        'amount_paid': amount_paid,
    }


def seed_students(count):
    fake = Faker('en_IN')
    students = database.get_all_students()
    choices = available_choices(database.get_all_seats(), students)
    random.shuffle(choices)

    registered = 0
    start = len(students) + 1
    for offset, seat in enumerate(choices[:count]):
        cleaned = fake_registration(fake, seat, start + offset)
        student_registration.register(cleaned)
        registered += 1
    return registered


def main(argv=None):
    parser = argparse.ArgumentParser(description='Seed the library seat chart.')
    parser.add_argument('--students', type=int, default=0,
                        help='number of sample students to register')
    args = parser.parse_args(argv)

    # Imported late so a missing backend configuration fails with a clear message
    from app import app

    print("📚 Seeding library seat chart")
    print("=" * 50)

    with app.app_context():
        added = seed_seats()
        print(f"✅ Seats added: {added} (sections: {', '.join(SECTIONS)})")

        if args.students:
            registered = seed_students(args.students)
            print(f"👥 Students registered: {registered}")

    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except database.BackendConfigError as e:
        print(f"❌ {e}: set SUPABASE_URL and SUPABASE_ANON_KEY")
        sys.exit(1)

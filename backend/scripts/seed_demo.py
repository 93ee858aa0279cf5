"""CLI script to seed the backend DB with demo accounts, a group and a session.
Usage: python scripts/seed_demo.py [--password PASSWORD] [--days-ahead N]
"""
import sys
import argparse
import pathlib
from datetime import timedelta
# Ensure `backend/` is on sys.path so `studyhub` package imports work when running this script directly
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from sqlmodel import Session
from studyhub.database import engine, create_db_and_tables
from studyhub import models, repositories, services
from studyhub.errors import StudyHubError

DEMO_USERS = [
    {'username': 'alice', 'email': 'alice@example.com', 'college_name': 'Demo College', 'current_year': '2nd Year'},
    {'username': 'bob', 'email': 'bob@example.com', 'college_name': 'Demo College', 'current_year': '1st Year'},
]


def main(password: str = 'password123', days_ahead: int = 7):
    """Create demo data through the services so every rule still applies.

    Existing demo accounts are reused, so the script can be run twice.
    Results are printed to stdout for a quick CLI feedback loop.
    """
    create_db_and_tables()
    with Session(engine) as session:
        auth = services.AuthService(session)
        accounts = repositories.AccountRepository(session)
        created = []
        for user in DEMO_USERS:
            existing = accounts.get_by_email(user['email'])
            if existing:
                print(f"Account {user['username']} already exists")
                created.append(existing)
                continue
            account = auth.register({**user, 'password': password})
            print(f'Registered {account.username} ({account.id})')
            created.append(account)
        alice, bob = created
        groups = services.GroupService(session)
        group = groups.create(alice.id, {
            'name': 'Calculus Study Circle',
            'description': 'Weekly problem sets and exam preparation.',
            'subject': 'Mathematics',
            'max_members': 10,
        })
        try:
            groups.join(group.id, bob.id)
        except StudyHubError as e:
            print(f'Could not add {bob.username} to group: {e.message}')
        services.ResourceService(session).add(group.id, alice.id, {
            'title': 'Practice exam', 'url': 'https://example.com/calculus-exam.pdf', 'kind': 'resource'})
        when = models.utcnow() + timedelta(days=days_ahead)
        study_session = services.SessionService(session).create(alice.id, {
            'title': 'Integrals review',
            'subject': 'Mathematics',
            'date': when.date().isoformat(),
            'start_time': '10:00',
            'end_time': '12:00',
            'location': 'Library room 2',
            'max_participants': 8,
        })
        services.SessionService(session).join(study_session.id, bob.id)
        print(f'Created group {group.id} and session {study_session.id}')


if __name__ == '__main__':
    parser = argparse.ArgumentParser()
    parser.add_argument('--password', default='password123', help='Password for the demo accounts')
    parser.add_argument('--days-ahead', type=int, default=7, help='Schedule the demo session this many days ahead')
    args = parser.parse_args()
    main(password=args.password, days_ahead=args.days_ahead)

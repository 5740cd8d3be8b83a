from bloodconnect.commands import SAMPLE_STUDENTS, seed_database
from bloodconnect.models import User


def test_seed_is_idempotent(app):
    assert seed_database() == 1 + len(SAMPLE_STUDENTS)
    assert seed_database() == 0

    admin = User.query.filter_by(role='admin').one()
    assert admin.email == app.config['DEFAULT_ADMIN_EMAIL']
    assert admin.check_password(app.config['DEFAULT_ADMIN_PASSWORD'])
    assert User.query.filter_by(role='student').count() == len(SAMPLE_STUDENTS)


def test_seed_command_without_students(app):
    result = app.test_cli_runner().invoke(args=['seed', '--no-students'])

    assert 'Seeded 1 users' in result.output
    assert User.query.filter_by(role='student').count() == 0

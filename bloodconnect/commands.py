import click
from flask import current_app

from bloodconnect.extensions import db
from bloodconnect.models import User

SAMPLE_STUDENTS = [
    {'name': 'John Doe', 'email': 'john.doe@university.edu', 'blood_group': 'O+', 'roll_no': 'CS2021001',
     'phone': '+1234567890'},
    {'name': 'Jane Smith', 'email': 'jane.smith@university.edu', 'blood_group': 'A+', 'roll_no': 'CS2021002',
     'phone': '+1234567891'},
    {'name': 'Mike Johnson', 'email': 'mike.johnson@university.edu', 'blood_group': 'B+', 'roll_no': 'CS2021003',
     'phone': '+1234567892'},
]
SAMPLE_STUDENT_PASSWORD = 'student123'


def seed_database(with_students=True):
    """Create the default admin and sample students that are missing.

    Returns the number of users created.
    """
    created = 0
    admin_email = current_app.config['DEFAULT_ADMIN_EMAIL']
    if not User.query.filter_by(email=admin_email).first():
        admin = User(name='System Administrator', email=admin_email, role='admin')
        admin.set_password(current_app.config['DEFAULT_ADMIN_PASSWORD'])
        db.session.add(admin)
        created += 1

    if with_students:
        for sample in SAMPLE_STUDENTS:
            if User.query.filter_by(email=sample['email']).first():
                continue
            student = User(role='student', availability_status=True, **sample)
            student.set_password(SAMPLE_STUDENT_PASSWORD)
            db.session.add(student)
            created += 1

    db.session.commit()
    return created


def register_commands(app):
    @app.cli.command('seed')
    @click.option('--no-students', is_flag=True, help='Only create the default admin.')
    def seed(no_students):
        """Create the default admin and sample students."""
        db.create_all()
        created = seed_database(with_students=not no_students)
        click.echo(f'Seeded {created} users')

import logging
from smtplib import SMTPException

from flask import render_template
from flask_mail import Message
from jinja2 import TemplateError, TemplateNotFound

from bloodconnect.extensions import mail

logger = logging.getLogger(__name__)

# Symbolic template name -> Jinja template under templates/email/
TEMPLATES = {
    'new_blood_request': 'email/new_blood_request.html',
    'request_confirmation': 'email/request_confirmation.html',
    'request_approved': 'email/request_approved.html',
    'request_rejected': 'email/request_rejected.html',
    'donor_assigned': 'email/donor_assigned.html',
    'donor_selected': 'email/donor_selected.html',
    'student_welcome': 'email/student_welcome.html',
    'certificate_approved': 'email/certificate_approved.html',
    'donation_completed': 'email/donation_completed.html',
    'admin_certificate_approved': 'email/admin_certificate_approved.html',
}


def render_email(template, **data):
    if template not in TEMPLATES:
        raise TemplateNotFound(template)
    return render_template(TEMPLATES[template], **data)


def send_email(to, subject, template, **data):
    """Render and send a templated email.

    Delivery problems are logged and reported through the return value,
    they never propagate to the caller.
    """
    recipients = [address for address in (to or []) if address]
    if not recipients:
        return False

    try:
        html = render_email(template, **data)
        mail.send(Message(subject, recipients=recipients, html=html))
    except (TemplateError, SMTPException, OSError) as e:
        logger.error(f'Failed to send "{template}" email to {", ".join(recipients)}: {e}')
        return False
    logger.info(f'Email "{template}" sent to: {", ".join(recipients)}')
    return True

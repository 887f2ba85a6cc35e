# tasks.py
"""
rq jobs for the ``emails`` queue. Run a worker with:

    rq worker emails
"""
from dotenv import load_dotenv

from pos_api.services.email_service import load_email_config, send_password_reset_email as _send_reset
from pos_api.utils.logger import Log

load_dotenv()


def send_password_reset_email(email, reset_link):
    Log.info(f"[tasks.py][send_password_reset_email] sending password reset email to {email}")
    return _send_reset(email, reset_link, load_email_config())

import os
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

import jinja2
import requests

from ..utils.logger import Log

TEMPLATES_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "templates")


# ---------- Config ----------

@dataclass
class EmailConfig:
    from_email: str
    from_name: str = "POS Backend"
    templates_dir: str = TEMPLATES_DIR

    mailgun_api_key: Optional[str] = None
    mailgun_domain: Optional[str] = None
    mailgun_api_host: str = "api.mailgun.net"  # api.eu.mailgun.net for EU region


def load_email_config(config: Optional[Dict[str, Any]] = None) -> EmailConfig:
    """Build the mail config from a Flask config mapping, falling back to the environment."""
    config = config or {}

    def _get(key, default=None):
        value = config.get(key)
        return value if value is not None else os.getenv(key, default)

    return EmailConfig(
        from_email=_get("SENDER_EMAIL") or "",
        from_name=_get("MAIL_NAME", "POS Backend"),
        mailgun_api_key=_get("MAILGUN_API_KEY"),
        mailgun_domain=_get("MAILGUN_DOMAIN"),
        mailgun_api_host=_get("MAILGUN_API_HOST", "api.mailgun.net"),
    )


# ---------- Templates ----------

class TemplateRenderer:
    def __init__(self, templates_dir: str):
        self.env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(os.path.abspath(templates_dir)),
            autoescape=jinja2.select_autoescape(["html", "xml"]),
        )

    def render(self, template_filename: str, **context) -> str:
        try:
            return self.env.get_template(template_filename).render(**context)
        except jinja2.TemplateError as exc:
            Log.error(f"Template render failed: {template_filename} err={exc}")
            raise


# ---------- Provider ----------

class EmailSendError(Exception):
    pass


class MailgunProvider:
    def __init__(self, cfg: EmailConfig):
        self.cfg = cfg
        if not cfg.mailgun_api_key or not cfg.mailgun_domain:
            raise EmailSendError("Mailgun config missing: MAILGUN_API_KEY / MAILGUN_DOMAIN")

    def _post(self, data: Dict[str, Any], max_retries: int = 3) -> requests.Response:
        url = f"https://{self.cfg.mailgun_api_host}/v3/{self.cfg.mailgun_domain}/messages"

        for attempt in range(1, max_retries + 1):
            try:
                resp = requests.post(url, auth=("api", self.cfg.mailgun_api_key), data=data, timeout=20)
                Log.info(f"Mailgun send status={resp.status_code} attempt={attempt}")

                if resp.status_code < 400:
                    return resp
                if resp.status_code in (429, 500, 502, 503, 504) and attempt < max_retries:
                    time.sleep(2 ** attempt)
                    continue
                raise EmailSendError(f"Mailgun error {resp.status_code}: {resp.text[:800]}")
            except requests.RequestException as exc:
                Log.error(f"Mailgun request exception attempt={attempt} err={exc}")
                if attempt < max_retries:
                    time.sleep(2 ** attempt)
                    continue
                raise EmailSendError(f"Mailgun request failed after retries: {exc}") from exc

        raise EmailSendError("Mailgun failed unexpectedly")

    def send(self, to: Union[str, List[str]], subject: str, text: str, html: Optional[str] = None) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "from": f"{self.cfg.from_name} <{self.cfg.from_email}>",
            "to": [to] if isinstance(to, str) else to,
            "subject": subject,
            "text": text or "",
        }
        if html:
            data["html"] = html
        resp = self._post(data)
        return {"ok": True, "provider": "mailgun", "status_code": resp.status_code}


# ---------- Service layer ----------

class EmailService:
    def __init__(self, cfg: EmailConfig):
        if not cfg.from_email:
            raise EmailSendError("SENDER_EMAIL is missing (used in From:)")
        self.cfg = cfg
        self.renderer = TemplateRenderer(cfg.templates_dir)
        self.provider = MailgunProvider(cfg)

    def send_templated(self, to, subject, template, text, **context):
        html = self.renderer.render(template, app_name=self.cfg.from_name, **context)
        return self.provider.send(to, subject, text, html)


def send_password_reset_email(email: str, reset_link: str, cfg: Optional[EmailConfig] = None) -> Dict[str, Any]:
    cfg = cfg or load_email_config()
    service = EmailService(cfg)
    return service.send_templated(
        email,
        f"Reset your {cfg.from_name} password",
        "email/password_reset.html",
        f"Use this link to reset your password: {reset_link}",
        email=email,
        link=reset_link,
    )


class QueuedMailer:
    """
    Password-reset mailer handed to the identity provider; enqueues the send
    on the rq ``emails`` queue so the request does not wait on Mailgun.
    """

    def __init__(self, queue):
        self.queue = queue

    def __call__(self, email, reset_link):
        job = self.queue.enqueue("tasks.send_password_reset_email", email, reset_link)
        Log.info(f"[email_service.py][QueuedMailer] password reset email queued job={job.id}")
        return job.id


class DirectMailer:
    """Sends in-process. Used when no queue is configured."""

    def __init__(self, cfg: EmailConfig):
        self.cfg = cfg

    def __call__(self, email, reset_link):
        return send_password_reset_email(email, reset_link, self.cfg)

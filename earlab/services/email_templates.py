"""Email bodies for newsletter and contact flows.

Every user-supplied value is HTML-escaped before it reaches markup.
"""

from __future__ import annotations

from html import escape
from urllib.parse import urlencode

from earlab.adapters.email.base import OutgoingEmail

SITE_NAME = "EAR Lab"


def _wrap_html(*, title: str, content: str) -> str:
    return f"""\
<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <title>{escape(title)}</title>
  </head>
  <body style="margin:0;padding:24px;background:#f3f6f8;font-family:Arial,sans-serif;color:#0f172a;">
    <div style="max-width:600px;margin:0 auto;background:#ffffff;border-radius:12px;padding:24px;">
      <h1 style="margin:0 0 16px;font-size:20px;">{escape(title)}</h1>
      {content}
      <p style="margin:24px 0 0;font-size:12px;color:#64748b;">{SITE_NAME} &middot; Embodied AI &amp; Robotics</p>
    </div>
  </body>
</html>
"""


def _button(label: str, href: str) -> str:
    return (
        f'<p style="margin:20px 0;"><a href="{escape(href, quote=True)}" '
        'style="display:inline-block;background:#0f172a;color:#ffffff;text-decoration:none;'
        f'padding:12px 18px;border-radius:8px;font-weight:600;">{escape(label)}</a></p>'
    )


def _greeting(name: str | None) -> str:
    return f"Hi {name}," if name else "Hi there,"


def verification_url(api_url: str, token: str) -> str:
    return f"{api_url.rstrip('/')}/v1/newsletter/verify?{urlencode({'token': token})}"


def newsletter_verification(*, email: str, name: str | None, url: str, ttl_hours: float) -> OutgoingEmail:
    greeting = _greeting(name)
    text = (
        f"{greeting}\n\n"
        f"Please confirm your subscription to the {SITE_NAME} newsletter:\n{url}\n\n"
        f"This link expires in {ttl_hours:g} hours. If you did not sign up, ignore this email."
    )
    html = _wrap_html(
        title="Confirm your subscription",
        content=(
            f"<p>{escape(greeting)}</p>"
            f"<p>Please confirm your subscription to the {SITE_NAME} newsletter.</p>"
            f"{_button('Confirm my email', url)}"
            f"<p style=\"font-size:13px;color:#475569;\">This link expires in {ttl_hours:g} hours. "
            "If you did not sign up, ignore this email.</p>"
        ),
    )
    return OutgoingEmail(
        to=email,
        subject=f"Confirm your email for {SITE_NAME} Newsletter",
        text=text,
        html=html,
    )


def newsletter_welcome(*, email: str, name: str | None) -> OutgoingEmail:
    greeting = _greeting(name)
    body = (
        "Your subscription is confirmed. Expect research updates, project write-ups "
        "and mentoring announcements from the lab."
    )
    return OutgoingEmail(
        to=email,
        subject=f"Welcome to {SITE_NAME} Newsletter!",
        text=f"{greeting}\n\n{body}",
        html=_wrap_html(
            title=f"Welcome to {SITE_NAME}",
            content=f"<p>{escape(greeting)}</p><p>{escape(body)}</p>",
        ),
    )


def contact_notification(
    *,
    admin_email: str,
    name: str,
    email: str,
    message: str,
    company: str | None = None,
    budget_range: str | None = None,
    timeline: str | None = None,
) -> OutgoingEmail:
    rows = [
        ("Name", name),
        ("Email", email),
        ("Company", company),
        ("Budget", budget_range),
        ("Timeline", timeline),
    ]
    present = [(label, value) for label, value in rows if value]
    text = "\n".join(f"{label}: {value}" for label, value in present) + f"\n\n{message}"
    table = "".join(
        f"<tr><td style=\"padding:4px 12px 4px 0;font-weight:600;\">{label}</td>"
        f"<td>{escape(value)}</td></tr>"
        for label, value in present
    )
    html = _wrap_html(
        title="New contact form submission",
        content=(
            f"<table>{table}</table>"
            f"<p style=\"white-space:pre-wrap;\">{escape(message)}</p>"
        ),
    )
    return OutgoingEmail(
        to=admin_email,
        subject=f"New Contact Form Submission from {' '.join(name.split())}",
        text=text,
        html=html,
        reply_to=email,
    )


def contact_confirmation(*, email: str, name: str) -> OutgoingEmail:
    body = "Thanks for reaching out. We received your message and will reply within 2 business days."
    return OutgoingEmail(
        to=email,
        subject=f"{SITE_NAME} received your message",
        text=f"{_greeting(name)}\n\n{body}",
        html=_wrap_html(
            title="We received your message",
            content=f"<p>{escape(_greeting(name))}</p><p>{escape(body)}</p>",
        ),
    )

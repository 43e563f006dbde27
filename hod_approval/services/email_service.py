import smtplib
import os
from email.mime.image import MIMEImage
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from jinja2 import Environment, FileSystemLoader
from loguru import logger

from hod_approval.core.config import settings
from hod_approval.services.qr_service import decode_data_url

TEMPLATE_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "templates", "email")
QR_CONTENT_ID = "exitpass-qrcode"

URGENCY_COLORS = {
    "CRITICAL": "#dc2626",
    "HIGH": "#ea580c",
    "MEDIUM": "#f59e0b",
    "LOW": "#10b981",
}

log = logger.bind(tag="notification")


# Helper to get template
def get_template(template_name):
    env = Environment(loader=FileSystemLoader(TEMPLATE_DIR), autoescape=True)
    return env.get_template(template_name)


# Helper to send email via SMTP
def send_email_via_smtp(to_email, subject, html_content, inline_png: Optional[bytes] = None):
    # Only HOST is required; user/pass are optional (local relays such as Mailpit)
    if not settings.SMTP_HOST:
        log.warning(f"SMTP host not configured. Skipping email to {to_email}")
        return

    try:
        if inline_png is None:
            msg = MIMEMultipart("alternative")
            msg.attach(MIMEText(html_content, "html"))
        else:
            msg = MIMEMultipart("related")
            msg.attach(MIMEText(html_content, "html"))
            image = MIMEImage(inline_png, _subtype="png")
            image.add_header("Content-ID", f"<{QR_CONTENT_ID}>")
            image.add_header("Content-Disposition", "inline", filename="exitpass-qrcode.png")
            msg.attach(image)

        msg["Subject"] = subject
        msg["From"] = f"{settings.EMAILS_FROM_NAME} <{settings.EMAILS_FROM_EMAIL}>"
        msg["To"] = to_email

        log.debug(f"Connecting to SMTP: {settings.SMTP_HOST}:{settings.SMTP_PORT}")

        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT) as server:
            server.ehlo()

            # TLS only on submission ports; local relays on 1025 run plain
            if settings.SMTP_PORT in [587, 2525]:
                server.starttls()
                server.ehlo()

            if settings.SMTP_USER and settings.SMTP_PASSWORD:
                server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)

            server.sendmail(settings.EMAILS_FROM_EMAIL, to_email, msg.as_string())

        log.info(f"Email sent to {to_email}: {subject}")
    except Exception as e:
        log.error(f"Failed to send email to {to_email}: {e}")


# ---------------------------------------------------------
# 1. NEW REQUEST (to the routed approver)
# ---------------------------------------------------------
def send_new_request_email(data: dict):
    """
    data requires: approver_email, approver_name, faculty_name, faculty_email,
    department, departure_date, departure_time, urgency_level, reason
    """
    try:
        template = get_template("new_request.html")
        urgency = data.get("urgency_level")
        context = {
            "approver_name": data.get("approver_name"),
            "faculty_name": data.get("faculty_name"),
            "faculty_email": data.get("faculty_email"),
            "department": data.get("department"),
            "departure_date": data.get("departure_date"),
            "departure_time": data.get("departure_time"),
            "urgency_level": urgency,
            "badge_color": URGENCY_COLORS.get(urgency, "#6b7280"),
            "reason": data.get("reason"),
            "dashboard_url": f"{settings.FRONTEND_URL}/dashboard",
        }
        html_content = template.render(context)
        send_email_via_smtp(
            data.get("approver_email"),
            f"New Request from {data.get('faculty_name')} - {urgency} Priority",
            html_content,
        )
    except Exception as e:
        log.error(f"Error preparing new request email: {e}")


# ---------------------------------------------------------
# 2. APPROVAL EMAIL (exit pass + inline QR)
# ---------------------------------------------------------
def send_request_approved_email(data: dict):
    """
    data requires: email, faculty_name, exit_pass_number, departure_date,
    departure_time, approved_by, approved_by_role, qr_code (data URL)
    """
    try:
        template = get_template("request_approved.html")
        context = {
            "faculty_name": data.get("faculty_name"),
            "exit_pass_number": data.get("exit_pass_number"),
            "departure_date": data.get("departure_date"),
            "departure_time": data.get("departure_time"),
            "approved_by": data.get("approved_by"),
            "approved_by_role": data.get("approved_by_role"),
            "hod_comments": data.get("hod_comments"),
            "qr_cid": QR_CONTENT_ID,
            "dashboard_url": f"{settings.FRONTEND_URL}/my-requests",
        }
        html_content = template.render(context)

        qr_code = data.get("qr_code")
        inline_png = decode_data_url(qr_code) if qr_code else None

        send_email_via_smtp(
            data.get("email"),
            f"Request Approved - Exit Pass {data.get('exit_pass_number')}",
            html_content,
            inline_png=inline_png,
        )
    except Exception as e:
        log.error(f"Error preparing approval email: {e}")


# ---------------------------------------------------------
# 3. REJECTION EMAIL
# ---------------------------------------------------------
def send_request_rejected_email(data: dict):
    """
    data requires: email, faculty_name, departure_date, rejection_reason, rejected_by
    """
    try:
        template = get_template("request_rejected.html")
        context = {
            "faculty_name": data.get("faculty_name"),
            "departure_date": data.get("departure_date"),
            "rejection_reason": data.get("rejection_reason"),
            "rejected_by": data.get("rejected_by"),
            "hod_comments": data.get("hod_comments"),
            "dashboard_url": f"{settings.FRONTEND_URL}/my-requests",
        }
        html_content = template.render(context)
        send_email_via_smtp(
            data.get("email"),
            "Request Update - Action Required",
            html_content,
        )
    except Exception as e:
        log.error(f"Error preparing rejection email: {e}")

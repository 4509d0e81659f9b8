"""
email_digest.py — HTML email digest of qualified jobs.
Sends via SMTP over SSL (Gmail App Password by default).

send_digest() returns True only when the server accepted the message.
The pipeline marks jobs as sent only on True, so it never raises.
"""

import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape
from typing import Optional

import config
from models import JobListing, utcnow
from monitoring import get_logger

logger = get_logger("email_digest")

ANALYSIS_EXCERPT_CHARS = 400

BREAKDOWN_LABELS = {
    "java_in_title": "Title match",
    "senior_level": "Seniority",
    "remote_explicit": "Remote",
    "no_us_only": "Open to international",
    "contract_b2b": "Contract / B2B",
    "latam_brazil_boost": "Region",
    "tech_stack": "Tech stack",
}


def send_digest(listings: list[JobListing]) -> bool:
    """Send the digest for these listings. False on missing credentials or any SMTP error."""
    if not listings:
        logger.info("No jobs to send - skipping digest")
        return True

    if not config.GMAIL_ADDRESS or not config.GMAIL_APP_PASSWORD:
        logger.error("Email credentials not configured — cannot send digest")
        return False

    subject, html_body = _build_email_content(listings)

    try:
        _send_email(subject, html_body)
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"Failed to send email digest: {e}")
        return False

    logger.info(f"Email digest with {len(listings)} jobs sent to {config.EMAIL_TO or config.GMAIL_ADDRESS}")
    return True


def _build_email_content(listings: list[JobListing]) -> tuple[str, str]:
    """Build email subject and HTML body."""
    today = utcnow().strftime("%Y-%m-%d")
    remote_count = sum(1 for l in listings if l.is_remote)
    contract_count = sum(1 for l in listings if l.is_contract)
    avg_score = sum(l.score for l in listings) / len(listings)
    top_score = max(l.score for l in listings)

    subject = f"🎯 {len(listings)} New Job Matches (Top: {top_score}/100) — {today}"

    html_parts = [_html_header()]

    html_parts.append(f"""
    <div style="background:#f8f9fa; padding:16px; border-radius:8px; margin-bottom:20px;">
        <h2 style="margin:0 0 8px 0; color:#333;">Summary</h2>
        <p style="margin:4px 0; color:#555;">New matches: <strong>{len(listings)}</strong></p>
        <p style="margin:4px 0; color:#555;">Remote: <strong>{remote_count}</strong></p>
        <p style="margin:4px 0; color:#555;">Contract: <strong>{contract_count}</strong></p>
        <p style="margin:4px 0; color:#555;">Average score: <strong>{avg_score:.0f}</strong></p>
    </div>
    """)

    for i, listing in enumerate(listings, 1):
        html_parts.append(_job_card(i, listing))

    html_parts.append(_html_footer())
    return subject, "\n".join(html_parts)


def _job_card(position: int, listing: JobListing) -> str:
    tags = []
    if listing.is_remote:
        tags.append('<span style="color:#059669;">🌎 Remote</span>')
    if listing.is_contract:
        tags.append('<span style="color:#d97706;">📄 Contract</span>')

    breakdown = ", ".join(
        f"{escape(BREAKDOWN_LABELS.get(k, k))} +{v}" for k, v in listing.score_breakdown.items()
    ) or "—"

    analysis = ""
    excerpt = _analysis_excerpt(listing.ai_analysis)
    if excerpt:
        analysis = (
            '<p style="margin:6px 0; color:#333; font-size:13px; font-style:italic; white-space:pre-line;">'
            f"{escape(excerpt)}</p>"
        )

    return f"""
    <div style="border:1px solid #e0e0e0; border-radius:8px; padding:14px; margin-bottom:12px;">
        <div style="display:flex; justify-content:space-between; align-items:center;">
            <h3 style="margin:0; color:#1a1a1a;">{position}. {escape(listing.title)}</h3>
            <span style="background:#4f46e5; color:white; padding:3px 10px; border-radius:12px; font-weight:bold; font-size:14px;">{listing.score}/100</span>
        </div>
        <p style="margin:4px 0; color:#666;">{escape(listing.company)} · {escape(listing.location or 'Location N/A')} · {escape(listing.source)} {" ".join(tags)}</p>
        <p style="margin:4px 0; color:#555; font-size:13px;">📊 {breakdown}</p>
        {analysis}
        <a href="{escape(listing.url, quote=True)}" style="color:#4f46e5; text-decoration:none; font-size:13px;">View Listing →</a>
    </div>
    """


def _analysis_excerpt(analysis: Optional[str]) -> str:
    if not analysis:
        return ""
    analysis = analysis.strip()
    if len(analysis) > ANALYSIS_EXCERPT_CHARS:
        return analysis[:ANALYSIS_EXCERPT_CHARS] + "..."
    return analysis


def _html_header() -> str:
    return """
    <!DOCTYPE html>
    <html>
    <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; max-width:600px; margin:0 auto; padding:20px; color:#333;">
    <h1 style="color:#4f46e5; border-bottom:2px solid #4f46e5; padding-bottom:8px;">🔍 Job Scanner Digest</h1>
    """


def _html_footer() -> str:
    return """
    <hr style="border:none; border-top:1px solid #e0e0e0; margin:24px 0;">
    <p style="color:#999; font-size:12px; text-align:center;">
        Sent by your Job Scanner pipeline. Jobs in this email will not be sent again.
    </p>
    </body>
    </html>
    """


def _send_email(subject: str, html_body: str):
    """Send an email via SMTP over SSL."""
    recipient = config.EMAIL_TO or config.GMAIL_ADDRESS

    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = config.GMAIL_ADDRESS
    msg["To"] = recipient
    msg.attach(MIMEText(html_body, "html"))

    with smtplib.SMTP_SSL(config.SMTP_HOST, config.SMTP_PORT, timeout=30) as server:
        server.login(config.GMAIL_ADDRESS, config.GMAIL_APP_PASSWORD)
        server.sendmail(config.GMAIL_ADDRESS, [recipient], msg.as_string())
